"""Tests for the headless editor buffer."""

from __future__ import annotations

from inkspan.editor.buffer import HIGHLIGHT_TAG, SUPPRESS_TAG, ChangeEvent, EditorBuffer
from inkspan.editor.document_model import HighlightDocument, Run


def _recorder(buffer: EditorBuffer) -> list[ChangeEvent]:
    events: list[ChangeEvent] = []
    buffer.add_change_listener(events.append)
    return events


def test_from_text_builds_one_line_per_paragraph() -> None:
    buffer = EditorBuffer.from_text("one\ntwo")

    assert len(buffer.document.lines) == 2
    assert buffer.text == "one\ntwo"
    assert buffer.selection is None
    assert buffer.selection_offsets() is None


def test_set_text_collapses_caret_to_end() -> None:
    buffer = EditorBuffer()
    events = _recorder(buffer)

    buffer.set_text("hello")

    assert buffer.selection_offsets().as_tuple() == (5, 5)  # type: ignore[union-attr]
    (event,) = events
    assert event.content_changed
    assert event.version == buffer.version == 1


def test_insert_text_at_caret_selects_inserted_text() -> None:
    buffer = EditorBuffer()
    buffer.set_text("ab")

    buffer.insert_text("XY")

    assert buffer.text == "abXY"
    assert buffer.selection_offsets().as_tuple() == (2, 4)  # type: ignore[union-attr]


def test_insert_text_without_selection_appends() -> None:
    buffer = EditorBuffer.from_text("ab")

    buffer.insert_text("!")

    assert buffer.text == "ab!"


def test_replace_range_clamps_and_orders_bounds() -> None:
    buffer = EditorBuffer.from_text("hello world")

    buffer.replace_range(99, 6, "there")

    assert buffer.text == "hello there"
    assert buffer.selection_offsets().as_tuple() == (6, 11)  # type: ignore[union-attr]


def test_tags_are_forwarded_to_listeners() -> None:
    buffer = EditorBuffer.from_text("x")
    events = _recorder(buffer)

    buffer.insert_text("y", 0, tags={SUPPRESS_TAG})
    buffer.replace_tree(HighlightDocument.from_lines([[Run("yx")]]), tags={HIGHLIGHT_TAG})

    assert [event.has_tag(SUPPRESS_TAG) for event in events] == [True, False]
    assert [event.has_tag(HIGHLIGHT_TAG) for event in events] == [False, True]
    assert [event.version for event in events] == [1, 2]


def test_selection_changes_do_not_mark_content_dirty() -> None:
    buffer = EditorBuffer.from_text("abc")
    events = _recorder(buffer)

    buffer.select_offsets(1, 3)

    (event,) = events
    assert not event.content_changed
    assert buffer.selection_offsets().as_tuple() == (1, 3)  # type: ignore[union-attr]


def test_removed_listeners_stop_receiving_events() -> None:
    buffer = EditorBuffer()
    events = _recorder(buffer)

    buffer.remove_change_listener(events.append)
    buffer.remove_change_listener(events.append)
    buffer.set_text("quiet")

    assert events == []
