"""Rule-driven text highlighting with a coalesced run-tree rebuild cycle."""

__version__ = "0.1.0"
