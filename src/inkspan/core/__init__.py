"""Core span types shared by the highlight engine and the editor layer."""

from .ranges import TextRange

__all__ = ["TextRange"]
