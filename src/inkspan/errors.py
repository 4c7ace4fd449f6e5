"""Error types raised by inkspan at configuration time.

Per-rebuild failures (bad regexes, stale offsets, tree reconstruction
problems) are recovered where they happen and only logged. The classes here
cover the one case that surfaces synchronously to callers: configuration
that cannot be used at all.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ErrorCode:
    """Machine-readable error identifiers."""

    INVALID_OPTIONS = "invalid_options"
    INVALID_ESCAPE_PATTERNS = "invalid_escape_patterns"
    INVALID_RULE = "invalid_rule"
    INVALID_RULE_SET = "invalid_rule_set"
    UNSUPPORTED_FORMAT = "unsupported_format"


@dataclass
class InkspanError(Exception):
    """Base exception for all inkspan errors.

    Attributes:
        error_code: Machine-readable error identifier.
        message: Human-readable error description.
        details: Additional structured error information.
    """

    error_code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = dict(self.details)
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


@dataclass
class ConfigurationError(InkspanError, ValueError):
    """Raised when options or rule configuration cannot be used."""

    error_code: str = field(default=ErrorCode.INVALID_OPTIONS)
    message: str = field(default="Invalid configuration")
    details: dict[str, Any] = field(default_factory=dict)

    issues: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.issues:
            result["issues"] = list(self.issues)
        return result


__all__ = ["ConfigurationError", "ErrorCode", "InkspanError"]
