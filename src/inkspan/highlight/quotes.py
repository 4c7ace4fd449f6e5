"""Single-pass quote range detection.

The scanner walks the text once and keeps at most one open pointer per quote
type. Same-type quotes therefore never nest (a second ``"`` always closes the
first) while single and double quotes can nest inside each other one level
deep. Apostrophes that belong to contractions such as ``don't`` or ``it's``
are recognised through configurable suffix tables and never act as
delimiters.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Sequence

import jsonschema

from ..errors import ConfigurationError, ErrorCode

__all__ = [
    "BUILTIN_ESCAPE_PATTERNS",
    "DetectQuotesOptions",
    "QuoteRange",
    "QuoteType",
    "detect_quotes",
    "resolve_escape_suffixes",
    "unique_quote_ranges",
]

LOGGER = logging.getLogger(__name__)

QuoteType = Literal["single", "double"]

BUILTIN_ESCAPE_PATTERNS: Mapping[str, tuple[str, ...]] = {
    "english": ("n't", "'s", "'re", "'ve", "'ll", "'m", "'d"),
    "default": (),
}

_WORD_CHAR = re.compile(r"\w")

OPTIONS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "escape_contractions": {"type": "boolean"},
        "escape_patterns": {
            "oneOf": [
                {"type": "string"},
                {
                    "type": "object",
                    "additionalProperties": {
                        "type": "array",
                        "items": {"type": "string", "minLength": 1},
                    },
                },
            ]
        },
        "allow_nesting": {"type": "boolean"},
        "detect_inner_quotes": {"type": "boolean"},
    },
    "additionalProperties": False,
}


@dataclass(slots=True, frozen=True)
class QuoteRange:
    """A detected quote span; ``end`` is ``None`` while the quote is unclosed."""

    start: int
    end: int | None
    quote_type: QuoteType
    content: str
    closed: bool


@dataclass(slots=True, frozen=True)
class DetectQuotesOptions:
    """Option bag for :func:`detect_quotes`."""

    escape_contractions: bool = True
    escape_patterns: str | Mapping[str, Sequence[str]] = "english"
    allow_nesting: bool = False
    detect_inner_quotes: bool = True
    _suffixes: tuple[str, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_suffixes", resolve_escape_suffixes(self.escape_patterns))

    @property
    def suffixes(self) -> tuple[str, ...]:
        """Return the effective escape suffixes (empty when escaping is off)."""

        if not self.escape_contractions:
            return ()
        return self._suffixes

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> "DetectQuotesOptions":
        """Build options from a plain mapping, validating it first."""

        if not payload:
            return cls()
        validator = jsonschema.Draft202012Validator(OPTIONS_SCHEMA)
        issues = [
            _format_issue(issue.absolute_path, issue.message)
            for issue in validator.iter_errors(dict(payload))
        ]
        if issues:
            raise ConfigurationError(
                error_code=ErrorCode.INVALID_OPTIONS,
                message="Invalid quote detection options",
                issues=tuple(issues),
            )
        return cls(**dict(payload))


def resolve_escape_suffixes(patterns: str | Mapping[str, Sequence[str]]) -> tuple[str, ...]:
    """Flatten ``patterns`` into the ordered list of contraction suffixes.

    A string names one of :data:`BUILTIN_ESCAPE_PATTERNS`; unknown names yield
    no suffixes. A mapping is flattened in insertion order.
    """

    if isinstance(patterns, str):
        return tuple(BUILTIN_ESCAPE_PATTERNS.get(patterns, ()))
    if not isinstance(patterns, Mapping):
        raise ConfigurationError(
            error_code=ErrorCode.INVALID_ESCAPE_PATTERNS,
            message="Escape patterns must be a builtin name or a mapping of suffix lists",
            details={"type": type(patterns).__name__},
        )
    suffixes: list[str] = []
    for name, values in patterns.items():
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise ConfigurationError(
                error_code=ErrorCode.INVALID_ESCAPE_PATTERNS,
                message=f"Escape pattern table {name!r} must be a list of strings",
                details={"table": str(name)},
            )
        for value in values:
            if not isinstance(value, str) or not value:
                raise ConfigurationError(
                    error_code=ErrorCode.INVALID_ESCAPE_PATTERNS,
                    message=f"Escape pattern table {name!r} contains an invalid suffix",
                    details={"table": str(name), "suffix": repr(value)},
                )
            suffixes.append(value)
    return tuple(suffixes)


def _is_contraction_apostrophe(text: str, index: int, suffixes: Sequence[str]) -> bool:
    for suffix in suffixes:
        for position, char in enumerate(suffix):
            if char != "'":
                continue
            suffix_start = index - position
            if suffix_start < 0:
                continue
            suffix_end = suffix_start + len(suffix)
            if suffix_end > len(text):
                continue
            if text[suffix_start:suffix_end] != suffix:
                continue
            # ``'t`` at the very start of the text is not a contraction.
            if suffix_start > 0 and _WORD_CHAR.match(text[suffix_start - 1]):
                return True
    return False


def detect_quotes(text: str, options: DetectQuotesOptions | None = None) -> dict[int, QuoteRange]:
    """Scan ``text`` and return every quote range keyed by its boundaries.

    Closed ranges are stored under both the opening and the closing offset (the
    same object under both keys); unclosed ranges only under their opening
    offset.
    """

    opts = options or DetectQuotesOptions()
    suffixes = opts.suffixes
    result: dict[int, QuoteRange] = {}
    open_pointers: dict[QuoteType, int | None] = {"single": None, "double": None}

    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\\":
            index += 2
            continue
        if char == '"':
            quote_type: QuoteType = "double"
            other: QuoteType = "single"
        elif char == "'":
            quote_type = "single"
            other = "double"
        else:
            index += 1
            continue

        if not opts.allow_nesting and not opts.detect_inner_quotes and open_pointers[other] is not None:
            index += 1
            continue

        if quote_type == "single" and suffixes and _is_contraction_apostrophe(text, index, suffixes):
            index += 1
            continue

        opened_at = open_pointers[quote_type]
        if opened_at is not None:
            other_opened_at = open_pointers[other]
            if not opts.allow_nesting and other_opened_at is not None and other_opened_at > opened_at:
                open_pointers[other] = None
            quote = QuoteRange(
                start=opened_at,
                end=index,
                quote_type=quote_type,
                content=text[opened_at + 1 : index],
                closed=True,
            )
            result[opened_at] = quote
            result[index] = quote
            open_pointers[quote_type] = None
        else:
            open_pointers[quote_type] = index
        index += 1

    for quote_type in ("single", "double"):
        opened_at = open_pointers[quote_type]
        if opened_at is None:
            continue
        result[opened_at] = QuoteRange(
            start=opened_at,
            end=None,
            quote_type=quote_type,
            content=text[opened_at + 1 :],
            closed=False,
        )
    return result


def unique_quote_ranges(result: Mapping[int, QuoteRange]) -> list[QuoteRange]:
    """Return the distinct ranges of a :func:`detect_quotes` result by start."""

    seen: dict[int, QuoteRange] = {}
    for quote in result.values():
        seen.setdefault(id(quote), quote)
    return sorted(seen.values(), key=lambda quote: (quote.start, quote.quote_type))


def _format_issue(path: Sequence[Any], message: str) -> str:
    location = ".".join(str(part) for part in path)
    return f"{location}: {message}" if location else message
