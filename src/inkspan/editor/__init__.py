"""Editor package: run-tree model, buffer and the highlight rebuild cycle."""

from importlib import import_module
from typing import Any

from . import buffer, document_model, position_mapper, rebuilder, tree_builder
from .buffer import HIGHLIGHT_TAG, SUPPRESS_TAG, ChangeEvent, EditorBuffer
from .document_model import DocumentPosition, HighlightDocument, Line, Run, Selection
from .position_mapper import offset_to_position, position_to_offset
from .rebuilder import HighlightRebuilder, RebuildResult, RebuildState
from .tree_builder import build_run_tree

__all__ = [
    "ChangeEvent",
    "DocumentPosition",
    "EditorBuffer",
    "HIGHLIGHT_TAG",
    "HighlightDocument",
    "HighlightRebuilder",
    "Line",
    "RebuildResult",
    "RebuildState",
    "Run",
    "SUPPRESS_TAG",
    "Selection",
    "buffer",
    "build_run_tree",
    "document_model",
    "offset_to_position",
    "position_mapper",
    "position_to_offset",
    "rebuilder",
    "tree_builder",
]


def __getattr__(name: str) -> Any:
    if name == "suggestions":
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
