"""Translate between flat character offsets and run-tree positions.

The flat offset counts every real character of every line plus one implicit
separator between consecutive lines. Marker runs contribute nothing, so an
offset captured before a rebuild resolves to the same logical character in
the freshly built tree even though every run was recreated.
"""

from __future__ import annotations

from .document_model import DocumentPosition, HighlightDocument, Selection, SelectionRange

__all__ = [
    "offset_to_position",
    "position_to_offset",
    "selection_from_offsets",
    "selection_to_offsets",
]


def position_to_offset(document: HighlightDocument, position: DocumentPosition) -> int:
    """Return the flat offset addressed by ``position``.

    A position inside a marker run clamps to the offset just before the
    marker. Line and run indexes outside the document are clamped.
    """

    lines = document.lines
    if not lines:
        return 0
    line_index = min(max(position.line_index, 0), len(lines) - 1)
    total = sum(line.length + 1 for line in lines[:line_index])
    line = lines[line_index]

    if position.kind == "element" or position.run_index is None:
        counted = max(position.offset, 0)
        return total + sum(run.length for run in line.runs[:counted])

    run_index = min(max(position.run_index, 0), len(line.runs))
    for run in line.runs[:run_index]:
        total += run.length
    if run_index >= len(line.runs):
        return total
    run = line.runs[run_index]
    if run.is_marker:
        return total
    return total + min(max(position.offset, 0), run.length)


def offset_to_position(document: HighlightDocument, offset: int) -> DocumentPosition | None:
    """Return the position of flat ``offset`` or ``None`` for an empty tree.

    Offsets on a run boundary resolve to the end of the earlier run. Negative
    offsets clamp to the start; offsets past the content clamp to the end of
    the last real run.
    """

    lines = document.lines
    if not lines:
        return None
    remaining = max(offset, 0)

    for line_index, line in enumerate(lines):
        if line_index > 0:
            if remaining <= 0:
                return _line_start(document, line_index)
            remaining -= 1
        for run_index, run in line.real_runs():
            if remaining <= run.length:
                return DocumentPosition(line_index, run_index, remaining)
            remaining -= run.length

    for line_index in range(len(lines) - 1, -1, -1):
        real = list(lines[line_index].real_runs())
        if real:
            run_index, run = real[-1]
            return DocumentPosition(line_index, run_index, run.length)
    return DocumentPosition.element(len(lines) - 1)


def _line_start(document: HighlightDocument, line_index: int) -> DocumentPosition:
    for run_index, _run in document.lines[line_index].real_runs():
        return DocumentPosition(line_index, run_index, 0)
    return DocumentPosition.element(line_index)


def selection_to_offsets(document: HighlightDocument, selection: Selection | None) -> SelectionRange | None:
    """Capture ``selection`` as flat anchor/focus offsets."""

    if selection is None:
        return None
    return SelectionRange(
        anchor=position_to_offset(document, selection.anchor),
        focus=position_to_offset(document, selection.focus),
    )


def selection_from_offsets(document: HighlightDocument, offsets: SelectionRange | None) -> Selection | None:
    """Resolve captured offsets against ``document``; ``None`` when unresolvable."""

    if offsets is None:
        return None
    anchor = offset_to_position(document, offsets.anchor)
    focus = offset_to_position(document, offsets.focus)
    if anchor is None or focus is None:
        return None
    return Selection(anchor, focus)
