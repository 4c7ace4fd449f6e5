"""Tests for the coalescing timers."""

from __future__ import annotations

import asyncio

import pytest

from inkspan.editor import scheduler
from inkspan.editor.scheduler import AsyncioCoalescingTimer, ManualCoalescingTimer, QtCoalescingTimer


def test_manual_timer_keeps_only_the_latest_callback() -> None:
    calls: list[str] = []
    timer = ManualCoalescingTimer()

    timer.schedule(lambda: calls.append("first"))
    timer.schedule(lambda: calls.append("second"))

    assert timer.pending
    assert timer.scheduled_count == 2
    assert timer.fire() is True
    assert calls == ["second"]
    assert timer.fire() is False
    assert not timer.pending


def test_manual_timer_cancel() -> None:
    timer = ManualCoalescingTimer()
    timer.schedule(lambda: None)

    timer.cancel()

    assert timer.fire() is False


def test_asyncio_timer_coalesces_a_burst() -> None:
    calls: list[str] = []

    async def scenario() -> AsyncioCoalescingTimer:
        timer = AsyncioCoalescingTimer(0.01)
        for label in ("a", "b", "c"):
            timer.schedule(lambda label=label: calls.append(label))
        assert timer.pending
        await asyncio.sleep(0.05)
        return timer

    timer = asyncio.run(scenario())

    assert calls == ["c"]
    assert not timer.pending


def test_asyncio_timer_cancel_prevents_callback() -> None:
    calls: list[str] = []

    async def scenario() -> None:
        timer = AsyncioCoalescingTimer(0.01)
        timer.schedule(lambda: calls.append("late"))
        timer.cancel()
        await asyncio.sleep(0.03)

    asyncio.run(scenario())

    assert calls == []


def test_asyncio_timer_requires_a_loop() -> None:
    timer = AsyncioCoalescingTimer()

    with pytest.raises(RuntimeError):
        timer.schedule(lambda: None)


def test_asyncio_timer_clamps_negative_delay() -> None:
    assert AsyncioCoalescingTimer(-1).delay_seconds == 0.0


def test_qt_timer_requires_pyside(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(scheduler, "_QT_AVAILABLE", False)

    assert scheduler.qt_available() is False
    with pytest.raises(RuntimeError):
        QtCoalescingTimer()


def test_qt_timer_fires_latest_callback() -> None:
    pytest.importorskip("PySide6")
    from PySide6.QtCore import QCoreApplication

    _app = QCoreApplication.instance() or QCoreApplication([])
    calls: list[str] = []
    timer = QtCoalescingTimer(0)

    timer.schedule(lambda: calls.append("first"))
    timer.schedule(lambda: calls.append("second"))
    assert timer.pending
    timer._timer.timeout.emit()

    assert calls == ["second"]
    assert not timer.pending
    timer.cancel()
