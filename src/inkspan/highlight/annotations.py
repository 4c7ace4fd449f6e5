"""Annotation payloads, raw ranges and merged highlight segments."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from ..core.ranges import TextRange

__all__ = [
    "Annotation",
    "AnnotationKind",
    "HighlightSegment",
    "KeywordAnnotation",
    "LinkAnnotation",
    "MentionAnnotation",
    "QuoteAnnotation",
    "RawRange",
    "SpellcheckAnnotation",
    "Suggestion",
    "TagAnnotation",
    "annotation_id",
    "annotation_span",
]

AnnotationKind = Literal["spellcheck", "keyword", "tag", "quote", "link", "mention"]

_ID_PREFIXES: dict[str, str] = {
    "spellcheck": "sc",
    "keyword": "kw",
    "tag": "tag",
    "quote": "qt",
    "link": "ln",
    "mention": "mn",
}


def annotation_id(kind: str, start: int, end: int, *, label: str | None = None) -> str:
    """Return the stable identifier for an annotation of ``kind`` over ``[start, end)``."""

    prefix = _ID_PREFIXES.get(kind, kind)
    if label:
        return f"{prefix}-{label}-{start}-{end}"
    return f"{prefix}-{start}-{end}"


def annotation_span(identifier: str) -> TextRange | None:
    """Recover ``[start, end)`` from an id built by :func:`annotation_id`."""

    parts = identifier.rsplit("-", 2)
    if len(parts) != 3:
        return None
    try:
        start, end = int(parts[1]), int(parts[2])
    except ValueError:
        return None
    if start < 0 or end < start:
        return None
    return TextRange(start, end)


@dataclass(slots=True, frozen=True)
class Suggestion:
    value: str


@dataclass(slots=True, frozen=True)
class SpellcheckAnnotation:
    """Spelling/grammar validation attached to a span."""

    id: str
    category_id: str
    content: str
    message: str
    short_message: str = ""
    suggestions: tuple[Suggestion, ...] = ()
    dictionaries: tuple[str, ...] = ()
    kind: Literal["spellcheck"] = field(default="spellcheck", init=False)

    @property
    def css_type(self) -> str:
        return f"spellcheck-{self.category_id}" if self.category_id else "spellcheck"


@dataclass(slots=True, frozen=True)
class KeywordAnnotation:
    """Glossary/terminology/search hit produced by a keyword rule."""

    id: str
    label: str
    term: str
    description: str | None = None
    atomic: bool = False
    display_symbol: str | None = None
    code_points: str | None = None
    kind: Literal["keyword"] = field(default="keyword", init=False)

    @property
    def css_type(self) -> str:
        return f"keyword-{self.label}"


@dataclass(slots=True, frozen=True)
class TagAnnotation:
    """An HTML tag or placeholder token, numbered for collapsed display."""

    id: str
    tag_number: int
    tag_name: str
    is_closing: bool
    is_self_closing: bool
    original_text: str
    display_text: str
    is_html: bool
    kind: Literal["tag"] = field(default="tag", init=False)

    @property
    def css_type(self) -> str:
        return "tag"


@dataclass(slots=True, frozen=True)
class QuoteAnnotation:
    """A single quote delimiter and the character it is displayed as."""

    id: str
    quote_type: Literal["single", "double"]
    position: Literal["opening", "closing"]
    original_char: str
    replacement_char: str
    kind: Literal["quote"] = field(default="quote", init=False)

    @property
    def css_type(self) -> str:
        return "quote"


@dataclass(slots=True, frozen=True)
class LinkAnnotation:
    id: str
    url: str
    kind: Literal["link"] = field(default="link", init=False)

    @property
    def css_type(self) -> str:
        return "link"


@dataclass(slots=True, frozen=True)
class MentionAnnotation:
    id: str
    mention_id: str
    mention_name: str
    kind: Literal["mention"] = field(default="mention", init=False)

    @property
    def css_type(self) -> str:
        return "mention"


Annotation = Union[
    SpellcheckAnnotation,
    KeywordAnnotation,
    TagAnnotation,
    QuoteAnnotation,
    LinkAnnotation,
    MentionAnnotation,
]


@dataclass(slots=True, frozen=True)
class RawRange:
    """Unmerged ``[start, end)`` interval produced by one rule match."""

    start: int
    end: int
    annotation: Annotation

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"RawRange requires 0 <= start < end (got {self.start}, {self.end})")

    @property
    def kind(self) -> str:
        return self.annotation.kind

    @property
    def span(self) -> TextRange:
        return TextRange(self.start, self.end)


@dataclass(slots=True, frozen=True)
class HighlightSegment:
    """Maximal sub-interval covered by exactly the same set of raw ranges."""

    start: int
    end: int
    ranges: tuple[RawRange, ...]

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        return tuple(raw.annotation for raw in self.ranges)

    @property
    def annotation_ids(self) -> tuple[str, ...]:
        return tuple(raw.annotation.id for raw in self.ranges)

    @property
    def span(self) -> TextRange:
        return TextRange(self.start, self.end)

    def first_of(self, kind: str) -> Annotation | None:
        for raw in self.ranges:
            if raw.annotation.kind == kind:
                return raw.annotation
        return None
