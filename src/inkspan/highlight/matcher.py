"""Turn heterogeneous rule configurations into raw annotated ranges.

Rules are processed in list order and every rule contributes its ranges in
discovery order, which is what makes segment annotation order reproducible.
A rule whose regex cannot be compiled contributes nothing; the remaining
rules are matched as usual.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from .annotations import (
    KeywordAnnotation,
    LinkAnnotation,
    MentionAnnotation,
    QuoteAnnotation,
    RawRange,
    SpellcheckAnnotation,
    Suggestion,
    TagAnnotation,
    annotation_id,
)
from .quotes import detect_quotes, unique_quote_ranges
from .rules import (
    KeywordEntry,
    KeywordRule,
    LinkRule,
    MentionRule,
    QuoteRule,
    Rule,
    SpellcheckRule,
    SpellcheckValidation,
    TagRule,
    compile_pattern,
)
from .symbols import code_point_listing
from .tags import HTML_TAG_PATTERN, detect_tags

__all__ = ["MASK_CHAR", "MentionSpan", "find_mentions", "mask_spans", "match_rules"]

LOGGER = logging.getLogger(__name__)

MASK_CHAR = "\x01"
_LINK_TRAILING_PUNCTUATION = ".,;:!?)"
_MIN_RELOCATE_RADIUS = 64


@dataclass(slots=True, frozen=True)
class MentionSpan:
    start: int
    end: int
    mention_id: str
    mention_name: str
    text: str


@dataclass(slots=True)
class _MatchContext:
    text: str
    masked: str
    rules: Sequence[Rule]
    _tag_spans: list[tuple[int, int]] | None = None

    def tag_spans(self) -> list[tuple[int, int]]:
        if self._tag_spans is None:
            self._tag_spans = _collect_tag_spans(self.masked, self.rules)
        return self._tag_spans


def match_rules(text: str, rules: Sequence[Rule]) -> list[RawRange]:
    """Return every raw range produced by ``rules`` over ``text``."""

    mentions = [span for rule in rules if isinstance(rule, MentionRule) for span in _safe_mentions(text, rule)]
    masked = mask_spans(text, ((span.start, span.end) for span in mentions))
    context = _MatchContext(text=text, masked=masked, rules=rules)

    ranges: list[RawRange] = []
    for index, rule in enumerate(rules):
        matcher = _MATCHERS.get(rule.kind)
        if matcher is None:
            LOGGER.warning("Ignoring rule #%d with unknown kind %r", index, rule.kind)
            continue
        try:
            produced = list(matcher(rule, context))
        except re.error as exc:
            LOGGER.warning("Rule #%d (%s) has an invalid pattern and was skipped: %s", index, rule.kind, exc)
            continue
        ranges.extend(produced)
    return ranges


def find_mentions(text: str, rule: MentionRule) -> list[MentionSpan]:
    """Return mention spans in ``text`` whose id resolves to a known user."""

    pattern = compile_pattern(rule.source)
    spans: list[MentionSpan] = []
    for match in pattern.finditer(text):
        if match.end() <= match.start():
            continue
        user_id = match.group(1) if pattern.groups else match.group(0)
        user = rule.find_user(user_id)
        if user is None:
            continue
        spans.append(
            MentionSpan(
                start=match.start(),
                end=match.end(),
                mention_id=user.id,
                mention_name=user.name,
                text=match.group(0),
            )
        )
    return spans


def mask_spans(text: str, spans: Iterable[tuple[int, int]]) -> str:
    """Replace every ``[start, end)`` span with :data:`MASK_CHAR` characters."""

    ordered = sorted(spans)
    if not ordered:
        return text
    pieces: list[str] = []
    cursor = 0
    for start, end in ordered:
        start = max(start, cursor)
        if end <= start:
            continue
        pieces.append(text[cursor:start])
        pieces.append(MASK_CHAR * (end - start))
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _safe_mentions(text: str, rule: MentionRule) -> list[MentionSpan]:
    try:
        return find_mentions(text, rule)
    except re.error:
        # reported when the rule itself is matched
        return []


# ---------------------------------------------------------------------------
# Per-kind matchers
# ---------------------------------------------------------------------------
def _match_spellcheck(rule: SpellcheckRule, context: _MatchContext) -> Iterable[RawRange]:
    text = context.masked
    length = len(text)
    for validation in rule.validations:
        if validation.start < 0 or validation.start >= validation.end:
            continue
        span = _resolve_validation(text, validation, relocate=rule.relocate_stale)
        if span is None:
            continue
        start, end = span
        if end > length:
            continue
        yield RawRange(
            start,
            end,
            SpellcheckAnnotation(
                id=annotation_id("spellcheck", start, end),
                category_id=validation.category_id,
                content=validation.content or context.text[start:end],
                message=validation.message,
                short_message=validation.short_message,
                suggestions=tuple(Suggestion(value) for value in validation.suggestions),
                dictionaries=tuple(validation.dictionaries),
            ),
        )


def _resolve_validation(text: str, validation: SpellcheckValidation, *, relocate: bool) -> tuple[int, int] | None:
    start, end = validation.start, validation.end
    in_bounds = end <= len(text)
    if not relocate or not validation.content:
        return (start, end) if in_bounds else None
    if in_bounds and text[start:end] == validation.content:
        return start, end
    radius = max(_MIN_RELOCATE_RADIUS, len(validation.content) * 4)
    window_start = max(0, start - radius)
    window_end = min(len(text), end + radius)
    found = text[window_start:window_end].lower().find(validation.content.lower())
    if found == -1:
        return None
    match_start = window_start + found
    return match_start, match_start + len(validation.content)


def _match_keyword(rule: KeywordRule, context: _MatchContext) -> Iterable[RawRange]:
    ranges: list[RawRange] = []
    for entry in rule.entries:
        pattern = _keyword_pattern(entry)
        if pattern is None:
            continue
        compiled = compile_pattern(*pattern)
        for match in compiled.finditer(context.masked):
            start, end = match.span()
            if end <= start:
                continue
            matched = match.group(0)
            ranges.append(
                RawRange(
                    start,
                    end,
                    KeywordAnnotation(
                        id=annotation_id("keyword", start, end, label=rule.label),
                        label=rule.label,
                        term=entry.term if entry.term else matched,
                        description=entry.description,
                        atomic=entry.atomic,
                        display_symbol=entry.display_symbol,
                        code_points=code_point_listing(matched) if entry.atomic else None,
                    ),
                )
            )
    return ranges


def _keyword_pattern(entry: KeywordEntry) -> tuple[str, int] | None:
    if entry.pattern:
        return entry.pattern, 0 if entry.case_sensitive else re.IGNORECASE
    if entry.term:
        return re.escape(entry.term), 0 if entry.case_sensitive else re.IGNORECASE
    return None


def _match_tag(rule: TagRule, context: _MatchContext) -> Iterable[RawRange]:
    for tag in detect_tags(context.masked, rule):
        yield RawRange(
            tag.start,
            tag.end,
            TagAnnotation(
                id=annotation_id("tag", tag.start, tag.end),
                tag_number=tag.tag_number,
                tag_name=tag.tag_name,
                is_closing=tag.is_closing,
                is_self_closing=tag.is_self_closing,
                original_text=tag.original_text,
                display_text=tag.display_text,
                is_html=tag.is_html,
            ),
        )


def _match_quote(rule: QuoteRule, context: _MatchContext) -> Iterable[RawRange]:
    text = context.masked
    detected = unique_quote_ranges(detect_quotes(text, rule.detect_options))
    tag_spans = [] if rule.detect_in_tags else context.tag_spans()
    ranges: list[RawRange] = []
    for quote in detected:
        if not quote.closed or quote.end is None:
            continue
        mapping = rule.double_quote if quote.quote_type == "double" else rule.single_quote
        for offset, position, replacement in (
            (quote.start, "opening", mapping.opening),
            (quote.end, "closing", mapping.closing),
        ):
            if _inside_any(offset, tag_spans):
                continue
            ranges.append(
                RawRange(
                    offset,
                    offset + 1,
                    QuoteAnnotation(
                        id=annotation_id("quote", offset, offset + 1),
                        quote_type=quote.quote_type,
                        position=position,
                        original_char=text[offset],
                        replacement_char=replacement,
                    ),
                )
            )
    ranges.sort(key=lambda raw: raw.start)
    return ranges


def _match_link(rule: LinkRule, context: _MatchContext) -> Iterable[RawRange]:
    pattern = compile_pattern(rule.source, re.IGNORECASE)
    for match in pattern.finditer(context.masked):
        start = match.start()
        url = match.group(0).rstrip(_LINK_TRAILING_PUNCTUATION)
        end = start + len(url)
        if end <= start:
            continue
        yield RawRange(start, end, LinkAnnotation(id=annotation_id("link", start, end), url=url))


def _match_mention(rule: MentionRule, context: _MatchContext) -> Iterable[RawRange]:
    for span in find_mentions(context.text, rule):
        yield RawRange(
            span.start,
            span.end,
            MentionAnnotation(
                id=annotation_id("mention", span.start, span.end),
                mention_id=span.mention_id,
                mention_name=span.mention_name,
            ),
        )


def _collect_tag_spans(text: str, rules: Sequence[Rule]) -> list[tuple[int, int]]:
    spans = [match.span() for match in HTML_TAG_PATTERN.finditer(text)]
    for rule in rules:
        if not isinstance(rule, TagRule) or not rule.pattern:
            continue
        try:
            spans.extend((tag.start, tag.end) for tag in detect_tags(text, rule))
        except re.error:
            LOGGER.debug("Tag pattern %r unusable for quote suppression", rule.pattern)
    return spans


def _inside_any(offset: int, spans: Sequence[tuple[int, int]]) -> bool:
    return any(start <= offset < end for start, end in spans)


_MATCHERS: dict[str, Callable[[Rule, _MatchContext], Iterable[RawRange]]] = {
    "spellcheck": _match_spellcheck,  # type: ignore[dict-item]
    "keyword": _match_keyword,  # type: ignore[dict-item]
    "tag": _match_tag,  # type: ignore[dict-item]
    "quote": _match_quote,  # type: ignore[dict-item]
    "link": _match_link,  # type: ignore[dict-item]
    "mention": _match_mention,  # type: ignore[dict-item]
}
