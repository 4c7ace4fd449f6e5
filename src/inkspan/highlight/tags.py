"""HTML tag and placeholder detection with sequential numbering."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .rules import TagRule, compile_pattern

__all__ = ["DetectedTag", "HTML_TAG_PATTERN", "detect_tags", "is_html_tag"]

LOGGER = logging.getLogger(__name__)

HTML_TAG_PATTERN = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)\b[^>]*?(/?)>")
_HTML_TOKEN = re.compile(r"^</?[a-zA-Z][a-zA-Z0-9]*\b[^>]*?/?>$")


@dataclass(slots=True, frozen=True)
class DetectedTag:
    start: int
    end: int
    tag_name: str
    tag_number: int
    is_closing: bool
    is_self_closing: bool
    original_text: str
    display_text: str
    is_html: bool


@dataclass(slots=True)
class _RawTag:
    start: int
    end: int
    tag_name: str
    is_closing: bool
    is_self_closing: bool
    original_text: str


def is_html_tag(token: str) -> bool:
    """Return ``True`` for ``<tag>``, ``</tag>`` and ``<tag/>`` shaped tokens."""

    return bool(_HTML_TOKEN.match(token))


def detect_tags(text: str, rule: TagRule | None = None) -> list[DetectedTag]:
    """Return the tags found in ``text`` ordered by start offset.

    Raises ``re.error`` when the rule carries an invalid custom pattern.
    """

    rule = rule or TagRule()
    if rule.pattern:
        return _detect_pattern_tokens(text, rule.pattern)
    return _detect_html_pairs(text)


def _detect_pattern_tokens(text: str, source: str) -> list[DetectedTag]:
    pattern = compile_pattern(source)
    detected: list[DetectedTag] = []
    number = 1
    for match in pattern.finditer(text):
        token = match.group(0)
        if not token:
            continue
        html_match = HTML_TAG_PATTERN.fullmatch(token)
        if html_match is not None:
            tag_name = html_match.group(2).lower()
            is_closing = html_match.group(1) == "/"
            is_self_closing = html_match.group(3) == "/"
        else:
            tag_name = token
            is_closing = False
            is_self_closing = False
        detected.append(
            DetectedTag(
                start=match.start(),
                end=match.end(),
                tag_name=tag_name,
                tag_number=number,
                is_closing=is_closing,
                is_self_closing=is_self_closing,
                original_text=token,
                display_text=f"<{number}>",
                is_html=html_match is not None,
            )
        )
        number += 1
    return detected


def _detect_html_pairs(text: str) -> list[DetectedTag]:
    raw_tags: list[_RawTag] = []
    for match in HTML_TAG_PATTERN.finditer(text):
        token = match.group(0)
        is_closing = match.group(1) == "/"
        is_self_closing = match.group(3) == "/" or (not is_closing and token.endswith("/>"))
        raw_tags.append(
            _RawTag(
                start=match.start(),
                end=match.end(),
                tag_name=match.group(2).lower(),
                is_closing=is_closing,
                is_self_closing=is_self_closing,
                original_text=token,
            )
        )

    next_number = 1
    stack: list[tuple[str, int, _RawTag]] = []
    detected: list[DetectedTag] = []
    for tag in raw_tags:
        if tag.is_self_closing:
            detected.append(_finish(tag, next_number, f"<{next_number}/>"))
            next_number += 1
        elif not tag.is_closing:
            stack.append((tag.tag_name, next_number, tag))
            next_number += 1
        else:
            for index in range(len(stack) - 1, -1, -1):
                name, number, opening = stack[index]
                if name != tag.tag_name:
                    continue
                del stack[index]
                detected.append(_finish(opening, number, f"<{number}>"))
                detected.append(_finish(tag, number, f"</{number}>"))
                break
            # unpaired closing tags are dropped
    if stack:
        LOGGER.debug("Skipping %d unpaired opening tag(s)", len(stack))
    detected.sort(key=lambda item: item.start)
    return detected


def _finish(tag: _RawTag, number: int, display: str) -> DetectedTag:
    return DetectedTag(
        start=tag.start,
        end=tag.end,
        tag_name=tag.tag_name,
        tag_number=number,
        is_closing=tag.is_closing,
        is_self_closing=tag.is_self_closing,
        original_text=tag.original_text,
        display_text=display,
        is_html=True,
    )
