"""Visible display symbols for invisible and special characters."""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Mapping, Sequence

from .rules import KeywordRule, Rule

__all__ = [
    "CODEPOINT_DISPLAY_MAP",
    "LINE_BREAK_SYMBOL",
    "code_point_listing",
    "effective_codepoint_map",
    "replace_invisible_chars",
]

CODEPOINT_DISPLAY_MAP: Mapping[int, str] = MappingProxyType(
    {
        0x0000: "␀",
        0x0009: "⇥",
        0x000A: "↩",
        0x000C: "␌",
        0x000D: "↵",
        0x00A0: "⍽",
        0x2002: "␣",
        0x2003: "␣",
        0x2009: "·",
        0x200A: "·",
        0x200B: "∅",
        0x200C: "⊘",
        0x200D: "⊕",
        0x2060: "⁀",
        0x3000: "□",
        0xFEFF: "◊",
    }
)

LINE_BREAK_SYMBOL = CODEPOINT_DISPLAY_MAP[0x000A]

_UNICODE_ESCAPE = re.compile(r"^\\u([0-9A-Fa-f]{4})$")


def code_point_listing(text: str) -> str:
    """Return ``U+XXXX`` notation for every character of ``text``."""

    return " ".join(f"U+{ord(char):04X}" for char in text)


def replace_invisible_chars(text: str, overrides: Mapping[int, str] | None = None) -> str:
    """Replace characters that have a display symbol with that symbol."""

    mapping = effective_codepoint_map((), overrides)
    return "".join(mapping.get(ord(char), char) for char in text)


def effective_codepoint_map(
    rules: Sequence[Rule] = (),
    overrides: Mapping[int, str] | None = None,
) -> Mapping[int, str]:
    """Merge atomic keyword display symbols and ``overrides`` over the defaults.

    An atomic keyword entry contributes when its pattern (or term) is a single
    character or a ``\\uXXXX`` escape and it declares a ``display_symbol``.
    """

    merged: dict[int, str] = {}
    for rule in rules:
        if not isinstance(rule, KeywordRule):
            continue
        for entry in rule.entries:
            if not entry.atomic or not entry.display_symbol:
                continue
            source = entry.pattern if entry.pattern is not None else entry.term
            code_point = _single_code_point(source or "")
            if code_point is not None:
                merged[code_point] = entry.display_symbol
    if overrides:
        merged.update(overrides)
    if not merged:
        return CODEPOINT_DISPLAY_MAP
    return MappingProxyType({**CODEPOINT_DISPLAY_MAP, **merged})


def _single_code_point(source: str) -> int | None:
    escaped = _UNICODE_ESCAPE.match(source)
    if escaped:
        return int(escaped.group(1), 16)
    if len(source) == 1:
        return ord(source)
    return None
