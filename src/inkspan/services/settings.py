"""Settings dataclass and persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

__all__ = [
    "HighlightSettings",
    "SettingsStore",
    "default_settings_path",
    "parse_code_point",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".inkspan"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"
_SETTINGS_VERSION = 1
_ENV_OVERRIDES: Mapping[str, str] = {
    "INKSPAN_ESCAPE_PATTERNS": "escape_patterns",
    "INKSPAN_LOG_LEVEL": "log_level",
    "INKSPAN_RULES_PATH": "rules_path",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "INKSPAN_RESTORE_SELECTION": "restore_selection",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "INKSPAN_DEBOUNCE_MS": "debounce_ms",
}
_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class HighlightSettings:
    """User-configurable highlighting preferences persisted between sessions."""

    debounce_ms: int = 16
    escape_patterns: str = "english"
    restore_selection: bool = True
    codepoint_overrides: dict[int, str] = field(default_factory=dict)
    log_level: str = "INFO"
    rules_path: str | None = None


def default_settings_path() -> Path:
    return _DEFAULT_SETTINGS_PATH


def parse_code_point(key: Any) -> int:
    """Parse ``42``, ``"42"``, ``"0x2A"`` or ``"U+002A"`` into a code point."""

    if isinstance(key, int) and not isinstance(key, bool):
        return key
    text = str(key).strip()
    upper = text.upper()
    if upper.startswith("U+"):
        return int(text[2:], 16)
    if upper.startswith("0X"):
        return int(text[2:], 16)
    return int(text, 10)


class SettingsStore:
    """Persistence adapter for :class:`HighlightSettings`."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path) if path is not None else _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        """Return the resolved path backing this store."""

        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> HighlightSettings:
        """Load settings from disk, applying runtime then environment overrides."""

        payload = self._read_payload()
        settings = HighlightSettings()
        if payload:
            data = _filter_fields(payload)
            if "codepoint_overrides" in data:
                data["codepoint_overrides"] = _normalize_codepoints(data["codepoint_overrides"])
            try:
                settings = HighlightSettings(**data)
            except TypeError as exc:
                LOGGER.warning("Settings payload contained unexpected data: %s", exc)
                settings = HighlightSettings()
            LOGGER.debug("Settings loaded from %s", self._path)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="runtime")

        return self._apply_env_overrides(settings)

    def save(self, settings: HighlightSettings) -> Path:
        """Persist settings to disk with atomic file writes."""

        payload = self._serialize(settings)
        body = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _serialize(self, settings: HighlightSettings) -> Dict[str, Any]:
        data = asdict(settings)
        data["codepoint_overrides"] = {
            f"U+{code_point:04X}": symbol for code_point, symbol in sorted(settings.codepoint_overrides.items())
        }
        data["version"] = _SETTINGS_VERSION
        return data

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            text = self._path.read_text(encoding="utf-8")
            payload = json.loads(text)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload

    def _apply_overrides(
        self,
        settings: HighlightSettings,
        overrides: Mapping[str, Any],
        *,
        source: str = "runtime",
    ) -> HighlightSettings:
        allowed = {field.name for field in fields(HighlightSettings)}
        filtered: Dict[str, Any] = {}
        for key, value in overrides.items():
            if key not in allowed or value is None:
                continue
            filtered[key] = value
        codepoint_override = filtered.get("codepoint_overrides")
        if isinstance(codepoint_override, Mapping):
            merged = dict(settings.codepoint_overrides)
            merged.update(_normalize_codepoints(codepoint_override))
            filtered["codepoint_overrides"] = merged
        if filtered:
            LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
            settings = replace(settings, **filtered)
        return settings

    def _apply_env_overrides(self, settings: HighlightSettings) -> HighlightSettings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = value.strip().lower() in _TRUE_VALUES
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning(
                    "Environment override %s=%s is not a valid integer",
                    env_name,
                    value,
                )
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


def _filter_fields(payload: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {field.name for field in fields(HighlightSettings)}
    return {key: value for key, value in payload.items() if key in allowed}


def _normalize_codepoints(payload: Any) -> dict[int, str]:
    if not isinstance(payload, Mapping):
        return {}
    normalized: dict[int, str] = {}
    for key, symbol in payload.items():
        try:
            code_point = parse_code_point(key)
        except ValueError:
            LOGGER.warning("Ignoring invalid code point override key %r", key)
            continue
        normalized[code_point] = str(symbol)
    return normalized
