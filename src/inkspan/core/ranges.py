"""Half-open text spans shared by the highlight engine and the editor layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span over flat character offsets."""

    start: int
    end: int

    def __post_init__(self) -> None:
        start = self._coerce_index(self.start, "start")
        end = self._coerce_index(self.end, "end")
        if end < start:
            start, end = end, start
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @staticmethod
    def _coerce_index(value: Any, label: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"TextRange {label} must be an integer") from exc
        return max(0, number)

    @property
    def length(self) -> int:
        return self.end - self.start

    def covers(self, other: "TextRange") -> bool:
        """Return ``True`` when ``other`` lies entirely within this span."""

        return self.start <= other.start and other.end <= self.end

    def overlaps(self, other: "TextRange") -> bool:
        """Return ``True`` when the two spans share at least one character."""

        return self.start < other.end and other.start < self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


__all__ = ["TextRange"]
