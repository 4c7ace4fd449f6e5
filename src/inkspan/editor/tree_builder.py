"""Rebuild the line/run tree from flattened text and highlight segments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Sequence

from ..highlight.annotations import Annotation, HighlightSegment, MentionAnnotation, TagAnnotation
from ..highlight.rules import Rule
from ..highlight.segments import collapsing_tag_rule, is_tag_collapsed
from ..highlight.symbols import CODEPOINT_DISPLAY_MAP, LINE_BREAK_SYMBOL
from .document_model import LINE_SEPARATOR, MARKER_ID_PREFIX, HighlightDocument, Line, Run

__all__ = ["MentionPlacement", "build_run_tree", "css_types", "mention_placements"]


@dataclass(slots=True, frozen=True)
class MentionPlacement:
    start: int
    end: int
    annotation: MentionAnnotation


def css_types(annotations: Iterable[Annotation]) -> tuple[str, ...]:
    """Return de-duplicated class names for ``annotations`` in first-seen order."""

    seen: dict[str, None] = {}
    for annotation in annotations:
        seen.setdefault(annotation.css_type, None)
    return tuple(seen)


def mention_placements(segments: Sequence[HighlightSegment]) -> list[MentionPlacement]:
    """Collect the distinct single-line mention spans carried by ``segments``."""

    placements: dict[int, MentionPlacement] = {}
    for segment in segments:
        for raw in segment.ranges:
            if isinstance(raw.annotation, MentionAnnotation) and raw.start not in placements:
                placements[raw.start] = MentionPlacement(raw.start, raw.end, raw.annotation)
    return sorted(placements.values(), key=lambda placement: placement.start)


def build_run_tree(
    text: str,
    segments: Sequence[HighlightSegment],
    rules: Sequence[Rule] = (),
    *,
    codepoint_map: Mapping[int, str] | None = None,
) -> HighlightDocument:
    """Return a fresh :class:`HighlightDocument` for ``text``.

    Each line alternates plain runs with highlight runs at segment
    boundaries. Mentions become one indivisible mention run. A marker run
    follows every line whose trailing separator is covered by a segment, and
    every line holds at least one real (possibly empty) run.
    """

    if not text:
        return HighlightDocument([Line((Run(""),))])

    builder = _LineBuilder(text, segments, rules, codepoint_map or CODEPOINT_DISPLAY_MAP)
    lines: list[Line] = []
    line_start = 0
    for line_text in text.split(LINE_SEPARATOR):
        line_end = line_start + len(line_text)
        lines.append(builder.build(line_start, line_end))
        line_start = line_end + 1
    return HighlightDocument(lines)


class _LineBuilder:
    def __init__(
        self,
        text: str,
        segments: Sequence[HighlightSegment],
        rules: Sequence[Rule],
        codepoint_map: Mapping[int, str],
    ) -> None:
        self._text = text
        self._segments = segments
        self._tag_rule = collapsing_tag_rule(rules)
        self._codepoint_map = codepoint_map
        self._mentions = [
            placement
            for placement in mention_placements(segments)
            if LINE_SEPARATOR not in text[placement.start : placement.end]
        ]
        self._emitted_mentions: set[int] = set()

    def build(self, line_start: int, line_end: int) -> Line:
        runs: list[Run] = []
        cursor = line_start
        for segment in self._segments:
            if segment.end <= line_start or segment.start >= line_end:
                continue
            seg_start = max(segment.start, line_start)
            seg_end = min(segment.end, line_end)
            if seg_start > cursor:
                self._append_with_mentions(runs, cursor, seg_start, Run)
            containing = next(
                (m for m in self._mentions if m.start <= seg_start and m.end >= seg_end),
                None,
            )
            if containing is not None:
                self._append_mention(runs, containing)
            else:
                factory = self._highlight_factory(segment)
                self._append_with_mentions(runs, seg_start, seg_end, factory)
            cursor = seg_end
        if cursor < line_end:
            self._append_with_mentions(runs, cursor, line_end, Run)

        marker = self._line_break_marker(line_end)
        if marker is not None:
            if not runs:
                runs.append(Run(""))
            runs.append(marker)
        if not runs:
            runs.append(Run(""))
        return Line(tuple(runs))

    # ------------------------------------------------------------------
    # Run factories
    # ------------------------------------------------------------------
    def _highlight_factory(self, segment: HighlightSegment) -> Callable[[str], Run]:
        annotations = segment.annotations
        tag = segment.first_of("tag")
        collapsed = isinstance(tag, TagAnnotation) and is_tag_collapsed(tag, self._tag_rule)
        atomic = any(getattr(annotation, "atomic", False) for annotation in annotations if annotation.kind == "keyword")
        quote = segment.first_of("quote")

        types = list(css_types(annotations))
        if atomic and "keyword-atomic" not in types:
            types.append("keyword-atomic")
        if collapsed:
            types.append("tag-collapsed")

        display_text: str | None = None
        if collapsed:
            display_text = tag.display_text  # type: ignore[union-attr]
        elif quote is not None:
            display_text = quote.replacement_char  # type: ignore[union-attr]
        ids = segment.annotation_ids
        splittable = not (collapsed or quote is not None or atomic)

        def factory(chunk: str) -> Run:
            shown = display_text
            if shown is None and atomic:
                symbols = "".join(self._codepoint_map.get(ord(char), char) for char in chunk)
                shown = symbols if symbols != chunk else None
            return Run(
                chunk,
                kind="highlight",
                types=tuple(types),
                annotation_ids=ids,
                display_text=shown,
                splittable=splittable,
            )

        return factory

    def _append_mention(self, runs: list[Run], placement: MentionPlacement) -> None:
        if placement.start in self._emitted_mentions:
            return
        self._emitted_mentions.add(placement.start)
        annotation = placement.annotation
        runs.append(
            Run(
                self._text[placement.start : placement.end],
                kind="mention",
                types=(annotation.css_type,),
                annotation_ids=(annotation.id,),
                splittable=False,
                mention_id=annotation.mention_id,
                mention_name=annotation.mention_name,
            )
        )

    def _append_with_mentions(
        self,
        runs: list[Run],
        range_start: int,
        range_end: int,
        make_run: Callable[[str], Run],
    ) -> None:
        overlapping = [
            m
            for m in self._mentions
            if m.start < range_end and m.end > range_start and m.start not in self._emitted_mentions
        ]
        cursor = range_start
        for placement in overlapping:
            mention_start = max(placement.start, range_start)
            if mention_start > cursor:
                runs.append(make_run(self._text[cursor:mention_start]))
            self._append_mention(runs, placement)
            cursor = min(placement.end, range_end)
        if cursor < range_end:
            runs.append(make_run(self._text[cursor:range_end]))

    def _line_break_marker(self, line_end: int) -> Run | None:
        if line_end >= len(self._text) or self._text[line_end] != LINE_SEPARATOR:
            return None
        covering = [segment for segment in self._segments if segment.start <= line_end < segment.end]
        if not covering:
            return None
        annotations = [annotation for segment in covering for annotation in segment.annotations]
        return Run(
            LINE_BREAK_SYMBOL,
            kind="marker",
            types=css_types(annotations),
            annotation_ids=tuple(MARKER_ID_PREFIX + annotation.id for annotation in annotations),
            splittable=False,
        )
