"""Headless editable surface owning the run tree and the selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from .document_model import HighlightDocument, Selection, SelectionRange
from .position_mapper import selection_from_offsets, selection_to_offsets

__all__ = [
    "CONTENT",
    "ChangeEvent",
    "ChangeListener",
    "EditorBuffer",
    "HIGHLIGHT_TAG",
    "SELECTION",
    "SUPPRESS_TAG",
]

HIGHLIGHT_TAG = "inkspan-highlights"
"""Tag carried by tree replacements performed by the highlight rebuilder."""

SUPPRESS_TAG = "historic"
"""Tag for programmatic edits that must not trigger a highlight rebuild."""

CONTENT = "content"
SELECTION = "selection"


@dataclass(slots=True, frozen=True)
class ChangeEvent:
    """Notification sent to listeners after every buffer mutation."""

    tags: frozenset[str] = frozenset()
    dirty: frozenset[str] = frozenset()
    version: int = 0

    @property
    def content_changed(self) -> bool:
        return CONTENT in self.dirty

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags


class ChangeListener(Protocol):
    """Callback invoked with the :class:`ChangeEvent` of each mutation."""

    def __call__(self, event: ChangeEvent) -> None:
        ...


@dataclass(slots=True)
class EditorBuffer:
    """Plain-Python stand-in for a host text-editing surface.

    Text edits replace the touched content with unannotated runs; the
    highlight rebuilder later swaps in a fully annotated tree through
    :meth:`replace_tree`. ``has_focus`` mirrors whether the host editor owns
    keyboard focus.
    """

    document: HighlightDocument = field(default_factory=lambda: HighlightDocument.from_text(""))
    selection: Selection | None = None
    has_focus: bool = True
    version: int = 0
    _listeners: list[ChangeListener] = field(default_factory=list, repr=False)

    @classmethod
    def from_text(cls, text: str, *, has_focus: bool = True) -> "EditorBuffer":
        return cls(document=HighlightDocument.from_text(text), has_focus=has_focus)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------
    @property
    def text(self) -> str:
        return self.document.flatten()

    def selection_offsets(self) -> SelectionRange | None:
        """Return the current selection as flat offsets, if any."""

        return selection_to_offsets(self.document, self.selection)

    # ------------------------------------------------------------------
    # Listener management
    # ------------------------------------------------------------------
    def add_change_listener(self, listener: ChangeListener) -> None:
        """Register a callback fired after every mutation."""

        self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    # ------------------------------------------------------------------
    # Editing helpers
    # ------------------------------------------------------------------
    def set_text(self, text: str, *, tags: Iterable[str] = ()) -> None:
        """Replace the entire content with ``text`` and collapse the caret to the end."""

        self.document = HighlightDocument.from_text(text)
        self.selection = selection_from_offsets(self.document, SelectionRange(len(text), len(text)))
        self._emit(tags, CONTENT, SELECTION)

    def insert_text(self, text: str, position: int | None = None, *, tags: Iterable[str] = ()) -> None:
        """Insert ``text`` at ``position`` or the current selection start."""

        if position is None:
            offsets = self.selection_offsets()
            position = offsets.start if offsets is not None else len(self.text)
        self.replace_range(position, position, text, tags=tags)

    def replace_range(self, start: int, end: int, replacement: str, *, tags: Iterable[str] = ()) -> None:
        """Replace the flat slice ``[start:end]`` and select the inserted text."""

        current = self.text
        begin, finish = self._clamp_range(start, end, len(current))
        self.document = HighlightDocument.from_text(current[:begin] + replacement + current[finish:])
        self.selection = selection_from_offsets(self.document, SelectionRange(begin, begin + len(replacement)))
        self._emit(tags, CONTENT, SELECTION)

    def replace_tree(
        self,
        document: HighlightDocument,
        selection: Selection | None = None,
        *,
        tags: Iterable[str] = (),
    ) -> None:
        """Swap in a freshly built run tree together with its selection."""

        self.document = document
        self.selection = selection
        self._emit(tags, CONTENT, SELECTION)

    def set_selection(self, selection: Selection | None, *, tags: Iterable[str] = ()) -> None:
        self.selection = selection
        self._emit(tags, SELECTION)

    def select_offsets(self, anchor: int, focus: int | None = None, *, tags: Iterable[str] = ()) -> None:
        """Select between flat offsets; ``focus`` defaults to a caret at ``anchor``."""

        target = SelectionRange(anchor, anchor if focus is None else focus)
        self.set_selection(selection_from_offsets(self.document, target), tags=tags)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _clamp_range(start: int, end: int, length: int) -> tuple[int, int]:
        start = max(0, min(int(start), length))
        end = max(0, min(int(end), length))
        if end < start:
            start, end = end, start
        return start, end

    def _emit(self, tags: Iterable[str], *dirty: str) -> None:
        self.version += 1
        event = ChangeEvent(tags=frozenset(tags), dirty=frozenset(dirty), version=self.version)
        for listener in list(self._listeners):
            listener(event)
