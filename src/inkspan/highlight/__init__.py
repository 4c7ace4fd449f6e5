"""Highlight engine: quote scanning, rule matching and segment merging."""

from .annotations import (
    Annotation,
    HighlightSegment,
    KeywordAnnotation,
    LinkAnnotation,
    MentionAnnotation,
    QuoteAnnotation,
    RawRange,
    SpellcheckAnnotation,
    TagAnnotation,
)
from .matcher import match_rules
from .quotes import BUILTIN_ESCAPE_PATTERNS, DetectQuotesOptions, QuoteRange, detect_quotes
from .rules import (
    KeywordEntry,
    KeywordRule,
    LinkRule,
    MentionRule,
    MentionUser,
    QuoteMapping,
    QuoteRule,
    Rule,
    SpellcheckRule,
    SpellcheckValidation,
    TagRule,
)
from .segments import build_annotation_map, compute_highlight_segments, segment_ranges

__all__ = [
    "Annotation",
    "BUILTIN_ESCAPE_PATTERNS",
    "DetectQuotesOptions",
    "HighlightSegment",
    "KeywordAnnotation",
    "KeywordEntry",
    "KeywordRule",
    "LinkAnnotation",
    "LinkRule",
    "MentionAnnotation",
    "MentionRule",
    "MentionUser",
    "QuoteAnnotation",
    "QuoteMapping",
    "QuoteRange",
    "QuoteRule",
    "RawRange",
    "Rule",
    "SpellcheckAnnotation",
    "SpellcheckRule",
    "SpellcheckValidation",
    "TagAnnotation",
    "TagRule",
    "build_annotation_map",
    "compute_highlight_segments",
    "detect_quotes",
    "match_rules",
    "segment_ranges",
]
