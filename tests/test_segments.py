"""Tests for the sweep-line segmenter and collapsed-tag suppression."""

from __future__ import annotations

import random
from types import MappingProxyType

import pytest

from inkspan.highlight.annotations import KeywordAnnotation, RawRange, TagAnnotation, annotation_id
from inkspan.highlight.matcher import match_rules
from inkspan.highlight.rules import KeywordEntry, KeywordRule, TagRule
from inkspan.highlight.segments import (
    build_annotation_map,
    collapsing_tag_rule,
    compute_highlight_segments,
    segment_ranges,
    segment_ranges_naive,
    suppress_inside_collapsed_tags,
)


def _keyword(start: int, end: int, label: str = "k") -> RawRange:
    return RawRange(
        start,
        end,
        KeywordAnnotation(id=annotation_id("keyword", start, end, label=label), label=label, term="t"),
    )


def _tag(start: int, end: int, *, is_html: bool = True) -> RawRange:
    return RawRange(
        start,
        end,
        TagAnnotation(
            id=annotation_id("tag", start, end),
            tag_number=1,
            tag_name="b",
            is_closing=False,
            is_self_closing=False,
            original_text="<b>",
            display_text="<1>",
            is_html=is_html,
        ),
    )


def _random_ranges(rng: random.Random, count: int, limit: int = 60) -> list[RawRange]:
    ranges = []
    for index in range(count):
        start = rng.randrange(0, limit - 1)
        end = rng.randrange(start + 1, limit)
        ranges.append(_keyword(start, end, label=f"r{index}"))
    return ranges


def test_overlapping_ranges_split_at_every_boundary() -> None:
    a = _keyword(0, 10, "a")
    b = _keyword(5, 15, "b")

    segments = segment_ranges([a, b])

    assert [(s.start, s.end, s.ranges) for s in segments] == [
        (0, 5, (a,)),
        (5, 10, (a, b)),
        (10, 15, (b,)),
    ]


def test_gaps_produce_no_segments() -> None:
    segments = segment_ranges([_keyword(0, 2), _keyword(5, 7)])

    assert [(s.start, s.end) for s in segments] == [(0, 2), (5, 7)]


def test_identical_ranges_share_one_segment_in_input_order() -> None:
    first = _keyword(3, 6, "x")
    second = _keyword(3, 6, "y")

    (segment,) = segment_ranges([first, second])

    assert segment.ranges == (first, second)
    assert segment.annotation_ids == ("kw-x-3-6", "kw-y-3-6")


def test_empty_input() -> None:
    assert segment_ranges([]) == []
    assert segment_ranges_naive([]) == []


@pytest.mark.parametrize("seed", range(12))
def test_sweep_matches_reference(seed: int) -> None:
    rng = random.Random(seed)
    ranges = _random_ranges(rng, rng.randrange(1, 25))

    assert segment_ranges(ranges) == segment_ranges_naive(ranges)


@pytest.mark.parametrize("seed", range(6))
def test_segments_cover_union_without_overlap(seed: int) -> None:
    rng = random.Random(1000 + seed)
    ranges = _random_ranges(rng, 15)

    segments = segment_ranges(ranges)

    covered = {offset for s in segments for offset in range(s.start, s.end)}
    expected = {offset for raw in ranges for offset in range(raw.start, raw.end)}
    assert covered == expected
    for left, right in zip(segments, segments[1:]):
        assert left.end <= right.start
    for segment in segments:
        covering = tuple(raw for raw in ranges if raw.start <= segment.start and raw.end >= segment.end)
        assert segment.ranges == covering


class TestCollapsedTags:
    def test_ranges_overlapping_collapsed_tags_are_removed(self) -> None:
        tag = _tag(4, 7)
        inside = _keyword(5, 6)
        outside = _keyword(0, 3)

        kept = suppress_inside_collapsed_tags([tag, inside, outside], [TagRule(collapsed=True)])

        assert kept == [tag, outside]

    def test_expanded_tags_keep_everything(self) -> None:
        ranges = [_tag(4, 7), _keyword(5, 6)]

        assert suppress_inside_collapsed_tags(ranges, [TagRule()]) == ranges

    def test_html_only_scope_ignores_placeholders(self) -> None:
        placeholder = _tag(4, 7, is_html=False)
        inside = _keyword(5, 6)
        rules = [TagRule(collapsed=True, collapse_scope="html-only")]

        assert suppress_inside_collapsed_tags([placeholder, inside], rules) == [placeholder, inside]

    def test_any_collapsed_tag_rule_enables_suppression(self) -> None:
        tag = _tag(4, 7)
        inside = _keyword(5, 6)
        rules = [TagRule(pattern=r"\{\w+\}"), TagRule(collapsed=True)]

        assert suppress_inside_collapsed_tags([tag, inside], rules) == [tag]
        assert collapsing_tag_rule(rules) is rules[1]
        assert collapsing_tag_rule([TagRule()]) == TagRule()
        assert collapsing_tag_rule([]) is None

    def test_keywords_do_not_split_tags_behind_an_expanded_rule(self) -> None:
        rules = [
            TagRule(pattern=r"\{\w+\}"),
            TagRule(collapsed=True),
            KeywordRule(label="k", entries=(KeywordEntry(term="b"),)),
        ]

        segments = compute_highlight_segments(match_rules("<b>b</b>", rules), rules)

        assert [(s.start, s.end, s.annotation_ids) for s in segments] == [
            (0, 3, ("tag-0-3",)),
            (3, 4, ("kw-k-3-4",)),
            (4, 8, ("tag-4-8",)),
        ]

    def test_compute_segments_applies_suppression(self) -> None:
        rules = [
            TagRule(collapsed=True),
            KeywordRule(label="k", entries=(KeywordEntry(term="b"),)),
        ]
        text = "<b>b</b>"

        segments = compute_highlight_segments(match_rules(text, rules), rules)

        kinds = [{raw.kind for raw in segment.ranges} for segment in segments]
        assert {"tag"} in kinds
        assert {"keyword"} in kinds
        assert all(kind_set in ({"tag"}, {"keyword"}) for kind_set in kinds)


def test_annotation_map_is_read_only() -> None:
    raw = _keyword(0, 3, "g")

    mapping = build_annotation_map(segment_ranges([raw]))

    assert isinstance(mapping, MappingProxyType)
    assert mapping["kw-g-0-3"] is raw.annotation
    with pytest.raises(TypeError):
        mapping["other"] = raw.annotation  # type: ignore[index]


def test_raw_range_rejects_empty_spans() -> None:
    with pytest.raises(ValueError):
        _keyword(4, 4)
