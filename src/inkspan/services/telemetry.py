"""In-process telemetry bus for highlight rebuild diagnostics."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Mapping

LOGGER = logging.getLogger(__name__)

REBUILD_EVENT = "highlight.rebuild"
STALE_REBUILD_EVENT = "highlight.rebuild.stale"

_EVENT_LISTENERS: dict[str, list[Callable[[dict[str, Any]], None]]] = {}


@dataclass(slots=True)
class RebuildEvent:
    """A single completed rebuild as reported by the rebuilder."""

    generation: int
    segment_count: int
    annotation_count: int
    duration_ms: float
    fallback: bool

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RebuildEvent":
        return cls(
            generation=int(payload.get("generation", 0)),
            segment_count=int(payload.get("segment_count", 0)),
            annotation_count=int(payload.get("annotation_count", 0)),
            duration_ms=float(payload.get("duration_ms", 0.0)),
            fallback=bool(payload.get("fallback", False)),
        )


class InMemoryTelemetrySink:
    """Ring buffer of rebuild events for local inspection and tests."""

    def __init__(self, capacity: int = 200) -> None:
        self._capacity = max(10, capacity)
        self._buffer: deque[RebuildEvent] = deque(maxlen=self._capacity)
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def record(self, event: RebuildEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def tail(self, limit: int | None = None) -> list[RebuildEvent]:
        with self._lock:
            events = list(self._buffer)
        if limit is None or limit >= len(events):
            return events
        return events[-limit:]

    def attach(self) -> Callable[[dict[str, Any]], None]:
        """Subscribe to rebuild events; return the listener for later removal."""

        def _listener(payload: dict[str, Any]) -> None:
            self.record(RebuildEvent.from_payload(payload))

        register_event_listener(REBUILD_EVENT, _listener)
        return _listener

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


def register_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    """Register a callback invoked whenever :func:`emit` fires *event_name*."""

    if not event_name or callback is None:
        return
    listeners = _EVENT_LISTENERS.setdefault(event_name, [])
    if callback not in listeners:
        listeners.append(callback)


def unregister_event_listener(event_name: str, callback: Callable[[dict[str, Any]], None]) -> None:
    listeners = _EVENT_LISTENERS.get(event_name)
    if not listeners:
        return
    try:
        listeners.remove(callback)
    except ValueError:
        return
    if not listeners:
        _EVENT_LISTENERS.pop(event_name, None)


def clear_event_listeners() -> None:
    _EVENT_LISTENERS.clear()


def emit(event_name: str, payload: Mapping[str, Any] | None = None) -> None:
    """Broadcast a structured telemetry event to in-process listeners."""

    if not event_name:
        return
    event_payload = {"event": event_name}
    if payload:
        event_payload.update(payload)
    listeners = list(_EVENT_LISTENERS.get(event_name, ()))
    for callback in listeners:
        try:
            callback(dict(event_payload))
        except Exception:  # listeners must not break emitters
            LOGGER.debug("Telemetry listener %s failed", callback, exc_info=True)
    LOGGER.debug("Telemetry emit %s: %s", event_name, event_payload)


__all__ = [
    "InMemoryTelemetrySink",
    "REBUILD_EVENT",
    "RebuildEvent",
    "STALE_REBUILD_EVENT",
    "clear_event_listeners",
    "emit",
    "register_event_listener",
    "unregister_event_listener",
]
