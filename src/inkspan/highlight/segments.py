"""Sweep-line merge of overlapping raw ranges into highlight segments.

Cut points are drawn only from existing range boundaries, so every segment is
either entirely inside or entirely outside any given range. A segment carries
every raw range covering it, in input order; overlapping annotations thereby
become nested styling instead of partially overlapping runs.
"""

from __future__ import annotations

from collections import defaultdict
from types import MappingProxyType
from typing import Iterable, Mapping, Sequence

from .annotations import Annotation, HighlightSegment, RawRange, TagAnnotation
from .rules import Rule, TagRule

__all__ = [
    "build_annotation_map",
    "collapsing_tag_rule",
    "is_tag_collapsed",
    "compute_highlight_segments",
    "segment_ranges",
    "segment_ranges_naive",
    "suppress_inside_collapsed_tags",
]


def segment_ranges(ranges: Sequence[RawRange]) -> list[HighlightSegment]:
    """Merge ``ranges`` into ordered, pairwise non-overlapping segments.

    Each segment's ``ranges`` are exactly the inputs covering it, ordered as
    they appear in ``ranges``. The output equals :func:`segment_ranges_naive`.
    """

    if not ranges:
        return []
    starts: dict[int, list[int]] = defaultdict(list)
    ends: dict[int, list[int]] = defaultdict(list)
    for index, raw in enumerate(ranges):
        starts[raw.start].append(index)
        ends[raw.end].append(index)
    points = sorted(set(starts) | set(ends))

    active: set[int] = set()
    segments: list[HighlightSegment] = []
    for seg_start, seg_end in zip(points, points[1:]):
        active.difference_update(ends.get(seg_start, ()))
        active.update(starts.get(seg_start, ()))
        if active:
            covering = tuple(ranges[index] for index in sorted(active))
            segments.append(HighlightSegment(seg_start, seg_end, covering))
    return segments


def segment_ranges_naive(ranges: Sequence[RawRange]) -> list[HighlightSegment]:
    """Reference O(boundaries x ranges) form of :func:`segment_ranges`."""

    points = sorted({point for raw in ranges for point in (raw.start, raw.end)})
    segments: list[HighlightSegment] = []
    for seg_start, seg_end in zip(points, points[1:]):
        covering = tuple(raw for raw in ranges if raw.start <= seg_start and raw.end >= seg_end)
        if covering:
            segments.append(HighlightSegment(seg_start, seg_end, covering))
    return segments


def suppress_inside_collapsed_tags(ranges: Sequence[RawRange], rules: Sequence[Rule]) -> list[RawRange]:
    """Drop non-tag ranges that overlap a collapsed tag.

    Collapsed tags render as a single atomic token, so nothing may split them.
    With ``collapse_scope="html-only"`` only HTML tags are treated as atomic.
    """

    tag_rule = collapsing_tag_rule(rules)
    if tag_rule is None or not tag_rule.collapsed:
        return list(ranges)
    atomic = [
        raw
        for raw in ranges
        if isinstance(raw.annotation, TagAnnotation) and is_tag_collapsed(raw.annotation, tag_rule)
    ]
    if not atomic:
        return list(ranges)
    return [
        raw
        for raw in ranges
        if raw.annotation.kind == "tag" or not any(raw.span.overlaps(tag.span) for tag in atomic)
    ]


def collapsing_tag_rule(rules: Sequence[Rule]) -> TagRule | None:
    """Return the first collapsed tag rule, else the first tag rule, else ``None``."""

    tag_rules = [rule for rule in rules if isinstance(rule, TagRule)]
    return next((rule for rule in tag_rules if rule.collapsed), tag_rules[0] if tag_rules else None)


def is_tag_collapsed(annotation: TagAnnotation, rule: TagRule | None) -> bool:
    if rule is None or not rule.collapsed:
        return False
    return rule.collapse_scope == "all" or annotation.is_html


def compute_highlight_segments(ranges: Sequence[RawRange], rules: Sequence[Rule] = ()) -> list[HighlightSegment]:
    """Apply collapsed-tag suppression, then segment the remaining ranges."""

    return segment_ranges(suppress_inside_collapsed_tags(ranges, rules))


def build_annotation_map(segments: Iterable[HighlightSegment]) -> Mapping[str, Annotation]:
    """Return a read-only id -> annotation map for hover and popover lookups."""

    mapping: dict[str, Annotation] = {}
    for segment in segments:
        for raw in segment.ranges:
            mapping[raw.annotation.id] = raw.annotation
    return MappingProxyType(mapping)
