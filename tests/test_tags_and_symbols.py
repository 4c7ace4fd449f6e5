"""Tests for tag detection and display-symbol helpers."""

from __future__ import annotations

import re

import pytest

from inkspan.highlight.rules import KeywordEntry, KeywordRule, TagRule
from inkspan.highlight.symbols import (
    CODEPOINT_DISPLAY_MAP,
    LINE_BREAK_SYMBOL,
    code_point_listing,
    effective_codepoint_map,
    replace_invisible_chars,
)
from inkspan.highlight.tags import detect_tags, is_html_tag


def test_self_closing_tags_get_their_own_number() -> None:
    tags = detect_tags("a<br/>b<b>c</b>")

    assert [(tag.original_text, tag.display_text, tag.tag_number) for tag in tags] == [
        ("<br/>", "<1/>", 1),
        ("<b>", "<2>", 2),
        ("</b>", "</2>", 2),
    ]
    assert tags[0].is_self_closing is True


def test_mismatched_closing_tag_pairs_with_nearest_open_of_same_name() -> None:
    tags = detect_tags("<b><i>x</b>")

    assert [tag.original_text for tag in tags] == ["<b>", "</b>"]


def test_tag_names_are_case_insensitive() -> None:
    tags = detect_tags("<B>x</b>")

    assert [tag.tag_name for tag in tags] == ["b", "b"]


def test_invalid_custom_pattern_raises_re_error() -> None:
    with pytest.raises(re.error):
        detect_tags("text", TagRule(pattern="[unclosed"))


@pytest.mark.parametrize(
    "token,expected",
    [("<b>", True), ("</span>", True), ("<br/>", True), ("{0}", False), ("<1>", False)],
)
def test_is_html_tag(token: str, expected: bool) -> None:
    assert is_html_tag(token) is expected


def test_code_point_listing() -> None:
    assert code_point_listing("A\u200b") == "U+0041 U+200B"


def test_replace_invisible_chars_uses_default_map() -> None:
    assert replace_invisible_chars("a\tb\u00a0c") == "a⇥b⍽c"
    assert LINE_BREAK_SYMBOL == "↩"


def test_replace_invisible_chars_honours_overrides() -> None:
    assert replace_invisible_chars("a\tb", {0x09: "→"}) == "a→b"


def test_effective_map_merges_atomic_keywords_and_overrides() -> None:
    rules = [
        KeywordRule(
            label="special",
            entries=(
                KeywordEntry(pattern="\\u2028", atomic=True, display_symbol="⤶"),
                KeywordEntry(pattern="\u00ad", atomic=True, display_symbol="-"),
                KeywordEntry(pattern="ab", atomic=True, display_symbol="x"),
                KeywordEntry(pattern="\u2009", atomic=False, display_symbol="!"),
            ),
        )
    ]

    mapping = effective_codepoint_map(rules, {0x3000: "▢"})

    assert mapping[0x2028] == "⤶"
    assert mapping[0x00AD] == "-"
    assert mapping[0x3000] == "▢"
    assert mapping[0x2009] == CODEPOINT_DISPLAY_MAP[0x2009]
    assert ord("a") not in mapping


def test_effective_map_without_additions_is_the_default() -> None:
    assert effective_codepoint_map() is CODEPOINT_DISPLAY_MAP
