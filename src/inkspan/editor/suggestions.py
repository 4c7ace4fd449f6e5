"""Apply a spellcheck suggestion picked from a hover popover."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from ..core.ranges import TextRange
from ..highlight.annotations import Annotation, SpellcheckAnnotation, Suggestion, annotation_span
from .buffer import EditorBuffer

__all__ = ["AppliedSuggestion", "apply_suggestion"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AppliedSuggestion:
    range: TextRange
    original: str
    replacement: str


def apply_suggestion(
    buffer: EditorBuffer,
    annotation_map: Mapping[str, Annotation],
    annotation_id: str,
    suggestion: Suggestion | str | int,
    *,
    tags: Iterable[str] = (),
) -> AppliedSuggestion | None:
    """Replace the span annotated by ``annotation_id`` with ``suggestion``.

    ``suggestion`` may be the replacement text, a :class:`Suggestion` or an
    index into the annotation's suggestions. Returns ``None`` without editing
    when the annotation is unknown or the buffer no longer holds the
    annotated content at that span.
    """

    annotation = annotation_map.get(annotation_id)
    span = annotation_span(annotation_id)
    if annotation is None or span is None:
        LOGGER.debug("Cannot apply suggestion: unknown annotation %s", annotation_id)
        return None

    replacement = _resolve_replacement(annotation, suggestion)
    if replacement is None:
        LOGGER.debug("Cannot apply suggestion %r to %s", suggestion, annotation_id)
        return None

    text = buffer.text
    if not TextRange(0, len(text)).covers(span):
        return None
    original = text[span.start : span.end]
    if isinstance(annotation, SpellcheckAnnotation) and annotation.content and original != annotation.content:
        LOGGER.debug("Annotation %s is stale (%r != %r)", annotation_id, original, annotation.content)
        return None

    buffer.replace_range(span.start, span.end, replacement, tags=tags)
    buffer.select_offsets(span.start + len(replacement))
    return AppliedSuggestion(range=span, original=original, replacement=replacement)


def _resolve_replacement(annotation: Annotation, suggestion: Suggestion | str | int) -> str | None:
    if isinstance(suggestion, Suggestion):
        return suggestion.value
    if isinstance(suggestion, str):
        return suggestion
    if isinstance(suggestion, bool) or not isinstance(suggestion, int):
        return None
    options = annotation.suggestions if isinstance(annotation, SpellcheckAnnotation) else ()
    if 0 <= suggestion < len(options):
        return options[suggestion].value
    return None
