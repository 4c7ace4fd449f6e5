"""Bootstrap helpers for hosts embedding the highlighter."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from .editor.buffer import EditorBuffer
from .editor.rebuilder import HighlightRebuilder
from .editor.scheduler import CoalescingTimer
from .services.settings import HighlightSettings, SettingsStore
from .utils import logging as logging_utils

__all__ = ["configure_logging", "create_rebuilder", "load_settings"]

_LOGGER = logging.getLogger(__name__)


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> HighlightSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        return active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        return HighlightSettings()


def configure_logging(
    settings: HighlightSettings,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    force: bool = False,
) -> Path:
    """Configure logging at the level named by ``settings.log_level``."""

    level = logging_utils.resolve_level(settings.log_level)
    log_path = logging_utils.setup_logging(level, log_dir=log_dir, console=console, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))
    return log_path


def create_rebuilder(
    buffer: EditorBuffer,
    settings: HighlightSettings,
    *,
    timer: CoalescingTimer | None = None,
) -> HighlightRebuilder:
    """Build a rebuilder from ``settings``, attach it and render the initial tree."""

    rebuilder = HighlightRebuilder.from_settings(buffer, settings, timer=timer)
    rebuilder.attach()
    rebuilder.rebuild_now()
    return rebuilder
