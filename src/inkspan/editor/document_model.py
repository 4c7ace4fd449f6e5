"""Dataclasses representing the rendered line/run tree and positions in it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Literal, Sequence

__all__ = [
    "DocumentPosition",
    "HighlightDocument",
    "LINE_SEPARATOR",
    "MARKER_ID_PREFIX",
    "Line",
    "Run",
    "RunKind",
    "Selection",
    "SelectionRange",
]

LINE_SEPARATOR = "\n"
MARKER_ID_PREFIX = "__nl-"

RunKind = Literal["text", "highlight", "mention", "marker"]


@dataclass(slots=True, frozen=True)
class Run:
    """An inline unit of a line.

    ``marker`` runs are decorative (e.g. a line-break glyph): they carry no
    document text and are skipped by flattening and offset counting.
    ``splittable`` tells the host editor whether the caret may enter or type
    into the run.
    """

    text: str
    kind: RunKind = "text"
    types: tuple[str, ...] = ()
    annotation_ids: tuple[str, ...] = ()
    display_text: str | None = None
    splittable: bool = True
    mention_id: str | None = None
    mention_name: str | None = None

    @property
    def is_marker(self) -> bool:
        return self.kind == "marker"

    @property
    def length(self) -> int:
        """Number of document characters contributed by this run."""

        return 0 if self.is_marker else len(self.text)

    @property
    def rendered_text(self) -> str:
        return self.display_text if self.display_text is not None else self.text


@dataclass(slots=True, frozen=True)
class Line:
    runs: tuple[Run, ...] = ()

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs if not run.is_marker)

    @property
    def length(self) -> int:
        return sum(run.length for run in self.runs)

    def real_runs(self) -> Iterator[tuple[int, Run]]:
        """Yield ``(index, run)`` for every non-marker run."""

        for index, run in enumerate(self.runs):
            if not run.is_marker:
                yield index, run


@dataclass(slots=True)
class HighlightDocument:
    """The structured document: one :class:`Line` per paragraph."""

    lines: list[Line] = field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> "HighlightDocument":
        """Build an unannotated document with one plain run per line."""

        return cls([Line((Run(line),)) for line in text.split(LINE_SEPARATOR)])

    @classmethod
    def from_lines(cls, lines: Iterable[Sequence[Run]]) -> "HighlightDocument":
        return cls([Line(tuple(runs)) for runs in lines])

    def flatten(self) -> str:
        """Join line texts with a single separator, excluding marker runs."""

        return LINE_SEPARATOR.join(line.text for line in self.lines)

    def content_length(self) -> int:
        if not self.lines:
            return 0
        return sum(line.length for line in self.lines) + len(self.lines) - 1

    def run_at(self, line_index: int, run_index: int) -> Run | None:
        if not 0 <= line_index < len(self.lines):
            return None
        runs = self.lines[line_index].runs
        if not 0 <= run_index < len(runs):
            return None
        return runs[run_index]

    def markers(self) -> list[tuple[int, int, Run]]:
        return [
            (line_index, run_index, run)
            for line_index, line in enumerate(self.lines)
            for run_index, run in enumerate(line.runs)
            if run.is_marker
        ]


@dataclass(slots=True, frozen=True)
class DocumentPosition:
    """Structured address into the line/run tree.

    ``kind="text"`` addresses ``offset`` characters into run ``run_index``.
    ``kind="element"`` addresses the line itself, ``offset`` counting child
    runs, and ``run_index`` is ``None``.
    """

    line_index: int
    run_index: int | None
    offset: int
    kind: Literal["text", "element"] = "text"

    @classmethod
    def element(cls, line_index: int, offset: int = 0) -> "DocumentPosition":
        return cls(line_index=line_index, run_index=None, offset=offset, kind="element")


@dataclass(slots=True, frozen=True)
class Selection:
    """Anchor/focus pair of structured positions."""

    anchor: DocumentPosition
    focus: DocumentPosition

    @classmethod
    def caret(cls, position: DocumentPosition) -> "Selection":
        return cls(position, position)

    @property
    def is_collapsed(self) -> bool:
        return self.anchor == self.focus


@dataclass(slots=True)
class SelectionRange:
    """Selection captured as flat anchor/focus offsets."""

    anchor: int = 0
    focus: int = 0

    @property
    def start(self) -> int:
        return min(self.anchor, self.focus)

    @property
    def end(self) -> int:
        return max(self.anchor, self.focus)

    def as_tuple(self) -> tuple[int, int]:
        """Return the selection as a tuple for serialization."""

        return (self.anchor, self.focus)
