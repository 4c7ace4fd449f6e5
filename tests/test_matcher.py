"""Tests for rule matching into raw annotated ranges."""

from __future__ import annotations

import logging

import pytest

from inkspan.highlight.annotations import (
    KeywordAnnotation,
    LinkAnnotation,
    MentionAnnotation,
    QuoteAnnotation,
    SpellcheckAnnotation,
    TagAnnotation,
)
from inkspan.highlight.matcher import MASK_CHAR, find_mentions, mask_spans, match_rules
from inkspan.highlight.rules import (
    KeywordEntry,
    KeywordRule,
    LinkRule,
    MentionRule,
    MentionUser,
    QuoteMapping,
    QuoteRule,
    SpellcheckRule,
    SpellcheckValidation,
    TagRule,
)


def _spans(ranges) -> list[tuple[int, int, str]]:
    return [(raw.start, raw.end, raw.kind) for raw in ranges]


class TestSpellcheck:
    def test_valid_validation_becomes_range(self) -> None:
        rule = SpellcheckRule(
            validations=(
                SpellcheckValidation(
                    start=4,
                    end=9,
                    content="teh",
                    message="Possible typo",
                    category_id="TYPOS",
                    suggestions=("the",),
                ),
            )
        )

        (raw,) = match_rules("Fix tehxx now", [rule])

        assert (raw.start, raw.end) == (4, 9)
        assert isinstance(raw.annotation, SpellcheckAnnotation)
        assert raw.annotation.id == "sc-4-9"
        assert raw.annotation.css_type == "spellcheck-TYPOS"
        assert [s.value for s in raw.annotation.suggestions] == ["the"]

    @pytest.mark.parametrize("start,end", [(-1, 3), (5, 5), (6, 2), (0, 99)])
    def test_out_of_range_entries_are_dropped(self, start: int, end: int) -> None:
        rule = SpellcheckRule(validations=(SpellcheckValidation(start=start, end=end),))

        assert match_rules("short text", [rule]) == []

    def test_content_defaults_to_covered_text(self) -> None:
        rule = SpellcheckRule(validations=(SpellcheckValidation(start=0, end=5),))

        (raw,) = match_rules("Hello world", [rule])

        assert raw.annotation.content == "Hello"

    def test_relocation_finds_shifted_content(self) -> None:
        rule = SpellcheckRule(
            validations=(SpellcheckValidation(start=0, end=3, content="teh"),),
            relocate_stale=True,
        )

        (raw,) = match_rules("Oh, teh cat", [rule])

        assert (raw.start, raw.end) == (4, 7)

    def test_relocation_drops_missing_content(self) -> None:
        rule = SpellcheckRule(
            validations=(SpellcheckValidation(start=0, end=3, content="teh"),),
            relocate_stale=True,
        )

        assert match_rules("nothing here", [rule]) == []


class TestKeyword:
    def test_literal_terms_match_case_insensitively(self) -> None:
        rule = KeywordRule(label="glossary", entries=(KeywordEntry(term="Invoice", description="Billing"),))

        ranges = match_rules("invoice and INVOICE", [rule])

        assert _spans(ranges) == [(0, 7, "keyword"), (12, 19, "keyword")]
        annotation = ranges[0].annotation
        assert isinstance(annotation, KeywordAnnotation)
        assert annotation.id == "kw-glossary-0-7"
        assert annotation.description == "Billing"

    def test_case_sensitive_entry(self) -> None:
        rule = KeywordRule(label="names", entries=(KeywordEntry(term="Ada", case_sensitive=True),))

        assert _spans(match_rules("ada Ada", [rule])) == [(4, 7, "keyword")]

    def test_regex_entries_and_atomic_code_points(self) -> None:
        rule = KeywordRule(
            label="special",
            entries=(KeywordEntry(pattern="\u00a0", atomic=True, display_symbol="⍽"),),
        )

        (raw,) = match_rules("a\u00a0b", [rule])

        assert raw.annotation.atomic is True
        assert raw.annotation.code_points == "U+00A0"

    def test_invalid_regex_isolates_rule(self, caplog: pytest.LogCaptureFixture) -> None:
        broken = KeywordRule(label="broken", entries=(KeywordEntry(pattern="(unclosed"),))
        good = KeywordRule(label="good", entries=(KeywordEntry(term="cat"),))

        with caplog.at_level(logging.WARNING, logger="inkspan.highlight.matcher"):
            ranges = match_rules("the cat sat", [broken, good])

        assert [raw.annotation.label for raw in ranges] == ["good"]
        assert "invalid pattern" in caplog.text


class TestTags:
    def test_html_tags_are_paired_and_numbered(self) -> None:
        ranges = match_rules("<b>bold <i>x</i></b>", [TagRule()])

        displays = [raw.annotation.display_text for raw in ranges]
        assert displays == ["<1>", "<2>", "</2>", "</1>"]
        assert all(isinstance(raw.annotation, TagAnnotation) and raw.annotation.is_html for raw in ranges)

    def test_custom_placeholder_pattern(self) -> None:
        ranges = match_rules("Hello {name}, you owe {amount}", [TagRule(pattern=r"\{\w+\}")])

        assert [(raw.annotation.original_text, raw.annotation.display_text) for raw in ranges] == [
            ("{name}", "<1>"),
            ("{amount}", "<2>"),
        ]
        assert not any(raw.annotation.is_html for raw in ranges)

    def test_unpaired_tags_are_dropped(self) -> None:
        assert match_rules("</i> text <b>", [TagRule()]) == []


class TestQuotes:
    def test_closed_quotes_yield_delimiter_ranges(self) -> None:
        rule = QuoteRule(double_quote=QuoteMapping("«", "»"))

        ranges = match_rules('say "hi" now', [rule])

        assert _spans(ranges) == [(4, 5, "quote"), (7, 8, "quote")]
        opening, closing = (raw.annotation for raw in ranges)
        assert isinstance(opening, QuoteAnnotation)
        assert (opening.position, opening.replacement_char) == ("opening", "«")
        assert (closing.position, closing.replacement_char) == ("closing", "»")

    def test_unclosed_quotes_are_not_annotated(self) -> None:
        assert match_rules('say "hi now', [QuoteRule()]) == []

    def test_quotes_inside_tags_are_skipped(self) -> None:
        text = '<a href="x">link</a>'

        assert match_rules(text, [QuoteRule()]) == []
        assert len(match_rules(text, [QuoteRule(detect_in_tags=True)])) == 2


class TestLinksAndMentions:
    def test_links_strip_trailing_punctuation(self) -> None:
        (raw,) = match_rules("See https://example.com/docs.", [LinkRule()])

        assert isinstance(raw.annotation, LinkAnnotation)
        assert raw.annotation.url == "https://example.com/docs"
        assert (raw.start, raw.end) == (4, 28)

    def test_mentions_resolve_known_users(self) -> None:
        rule = MentionRule(users=(MentionUser("u1", "Ada Lovelace"),))

        ranges = match_rules("ping @{u1} and @{ghost}", [rule])

        (raw,) = ranges
        assert (raw.start, raw.end) == (5, 10)
        assert isinstance(raw.annotation, MentionAnnotation)
        assert raw.annotation.mention_name == "Ada Lovelace"

    def test_other_rules_do_not_match_inside_mentions(self) -> None:
        mention = MentionRule(users=(MentionUser("cat", "Cat"),))
        keyword = KeywordRule(label="animals", entries=(KeywordEntry(term="cat"),))

        ranges = match_rules("@{cat} cat", [mention, keyword])

        assert _spans(ranges) == [(0, 6, "mention"), (7, 10, "keyword")]

    def test_custom_trigger(self) -> None:
        rule = MentionRule(users=(MentionUser("7", "Seven"),), trigger="#")

        assert [span.mention_id for span in find_mentions("see #{7}", rule)] == ["7"]


def test_mask_spans_preserves_length() -> None:
    masked = mask_spans("abcdef", [(1, 3), (4, 5)])

    assert masked == f"a{MASK_CHAR * 2}d{MASK_CHAR}f"
    assert len(masked) == 6


def test_rule_order_defines_range_order() -> None:
    rules = [
        KeywordRule(label="second", entries=(KeywordEntry(term="b"),)),
        KeywordRule(label="first", entries=(KeywordEntry(term="a"),)),
    ]

    ranges = match_rules("a b", rules)

    assert [raw.annotation.label for raw in ranges] == ["second", "first"]
