"""Single-slot coalescing timers used to debounce highlight rebuilds.

Every timer holds at most one pending callback: scheduling again cancels and
replaces the previous one, so a burst of edits yields a single rebuild.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol

# Qt imports with headless fallback
try:  # pragma: no cover - PySide6 optional in CI
    from PySide6.QtCore import QTimer

    _QT_AVAILABLE = True
except Exception:  # pragma: no cover - headless environments
    _QT_AVAILABLE = False
    QTimer = None  # type: ignore[assignment,misc]

__all__ = [
    "AsyncioCoalescingTimer",
    "CoalescingTimer",
    "ManualCoalescingTimer",
    "QtCoalescingTimer",
    "qt_available",
]

Callback = Callable[[], None]


class CoalescingTimer(Protocol):
    """Interface shared by every coalescing timer."""

    @property
    def pending(self) -> bool:
        ...

    def schedule(self, callback: Callback) -> None:
        ...

    def cancel(self) -> None:
        ...


def qt_available() -> bool:
    return _QT_AVAILABLE


class AsyncioCoalescingTimer:
    """Debounce through ``loop.call_later`` on the running event loop."""

    def __init__(self, delay_seconds: float = 0.016, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callback) -> None:
        self.cancel()
        loop = self._loop or asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay_seconds, self._fire, callback)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, callback: Callback) -> None:
        self._handle = None
        callback()


class QtCoalescingTimer:
    """Debounce through a single-shot ``QTimer`` on the Qt event loop."""

    def __init__(self, delay_ms: int = 16, *, parent: Any | None = None) -> None:
        if not _QT_AVAILABLE:
            raise RuntimeError("PySide6 is required for QtCoalescingTimer")
        self._timer = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(delay_ms)))
        self._timer.timeout.connect(self._fire)
        self._callback: Callback | None = None

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callback) -> None:
        self._callback = callback
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()
        self._callback = None

    def _fire(self) -> None:
        callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class ManualCoalescingTimer:
    """Timer fired explicitly by the host, e.g. once per rendered frame."""

    def __init__(self) -> None:
        self._callback: Callback | None = None
        self.scheduled_count = 0

    @property
    def pending(self) -> bool:
        return self._callback is not None

    def schedule(self, callback: Callback) -> None:
        self._callback = callback
        self.scheduled_count += 1

    def cancel(self) -> None:
        self._callback = None

    def fire(self) -> bool:
        """Run the pending callback; return ``False`` when nothing was pending."""

        callback, self._callback = self._callback, None
        if callback is None:
            return False
        callback()
        return True
