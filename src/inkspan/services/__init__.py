"""Service layer helpers (settings, rule-set loading, telemetry)."""

from .settings import HighlightSettings, SettingsStore
from .telemetry import emit, register_event_listener, unregister_event_listener

__all__ = [
    "HighlightSettings",
    "SettingsStore",
    "emit",
    "register_event_listener",
    "unregister_event_listener",
]
