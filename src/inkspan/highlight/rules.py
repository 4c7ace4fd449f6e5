"""Rule configuration objects consumed by the rule matcher."""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass, field
from typing import Literal, Sequence, Union

from .quotes import DetectQuotesOptions

__all__ = [
    "DEFAULT_LINK_PATTERN",
    "KeywordEntry",
    "KeywordRule",
    "LinkRule",
    "MentionRule",
    "MentionUser",
    "QuoteMapping",
    "QuoteRule",
    "Rule",
    "SpellcheckRule",
    "SpellcheckValidation",
    "TagRule",
    "compile_pattern",
    "mention_pattern_source",
    "rules_of_kind",
]

DEFAULT_LINK_PATTERN = r"""https?://[^\s<>"']+|www\.[^\s<>"']+"""
DEFAULT_MENTION_TRIGGER = "@"


@functools.lru_cache(maxsize=256)
def compile_pattern(source: str, flags: int = 0) -> re.Pattern[str]:
    """Compile ``source`` once and reuse the pattern across rebuilds.

    ``re.error`` propagates so callers can isolate the failing rule.
    """

    return re.compile(source, flags)


@dataclass(slots=True, frozen=True)
class SpellcheckValidation:
    """One validation reported by an external spell/grammar checker."""

    start: int
    end: int
    content: str = ""
    message: str = ""
    short_message: str = ""
    category_id: str = ""
    suggestions: tuple[str, ...] = ()
    dictionaries: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class SpellcheckRule:
    validations: tuple[SpellcheckValidation, ...] = ()
    relocate_stale: bool = False
    kind: Literal["spellcheck"] = field(default="spellcheck", init=False)


@dataclass(slots=True, frozen=True)
class KeywordEntry:
    """A literal ``term`` (case-insensitive) and/or a regex ``pattern``."""

    term: str | None = None
    pattern: str | None = None
    description: str | None = None
    atomic: bool = False
    display_symbol: str | None = None
    case_sensitive: bool = False


@dataclass(slots=True, frozen=True)
class KeywordRule:
    """Glossary, terminology, search or special-character highlighting.

    ``label`` selects the styling class (``keyword-<label>``) and badge text.
    """

    label: str
    entries: tuple[KeywordEntry, ...] = ()
    kind: Literal["keyword"] = field(default="keyword", init=False)


@dataclass(slots=True, frozen=True)
class TagRule:
    """HTML tag / placeholder detection.

    Without ``pattern`` HTML tags are paired and numbered; with ``pattern``
    every match is a standalone token. ``collapsed`` makes tags atomic and
    renders them as their numbered display text.
    """

    pattern: str | None = None
    detect_inner: bool = True
    collapsed: bool = False
    collapse_scope: Literal["all", "html-only"] = "all"
    kind: Literal["tag"] = field(default="tag", init=False)


@dataclass(slots=True, frozen=True)
class QuoteMapping:
    opening: str
    closing: str


@dataclass(slots=True, frozen=True)
class QuoteRule:
    """Quote delimiter detection with per-type replacement characters."""

    single_quote: QuoteMapping = QuoteMapping("‘", "’")
    double_quote: QuoteMapping = QuoteMapping("“", "”")
    detect_in_tags: bool = False
    detect_options: DetectQuotesOptions = field(default_factory=DetectQuotesOptions)
    kind: Literal["quote"] = field(default="quote", init=False)


@dataclass(slots=True, frozen=True)
class LinkRule:
    pattern: str | None = None
    kind: Literal["link"] = field(default="link", init=False)

    @property
    def source(self) -> str:
        return self.pattern or DEFAULT_LINK_PATTERN


@dataclass(slots=True, frozen=True)
class MentionUser:
    id: str
    name: str


@dataclass(slots=True, frozen=True)
class MentionRule:
    """Mentions serialized as ``<trigger>{id}`` resolved against ``users``."""

    users: tuple[MentionUser, ...] = ()
    trigger: str = DEFAULT_MENTION_TRIGGER
    pattern: str | None = None
    kind: Literal["mention"] = field(default="mention", init=False)

    @property
    def source(self) -> str:
        return self.pattern or mention_pattern_source(self.trigger)

    def find_user(self, user_id: str) -> MentionUser | None:
        for user in self.users:
            if user.id == user_id:
                return user
        return None


def mention_pattern_source(trigger: str = DEFAULT_MENTION_TRIGGER) -> str:
    """Return the regex matching ``<trigger>{id}`` with the id as group 1."""

    return re.escape(trigger or DEFAULT_MENTION_TRIGGER) + r"\{([^}]+)\}"


Rule = Union[SpellcheckRule, KeywordRule, TagRule, QuoteRule, LinkRule, MentionRule]


def rules_of_kind(rules: Sequence[Rule], kind: str) -> list[Rule]:
    return [rule for rule in rules if rule.kind == kind]
