"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any, Iterator

import pytest

from inkspan.editor.buffer import EditorBuffer
from inkspan.editor.rebuilder import HighlightRebuilder
from inkspan.editor.scheduler import ManualCoalescingTimer
from inkspan.highlight.rules import KeywordEntry, KeywordRule, QuoteRule, TagRule
from inkspan.services import telemetry


@pytest.fixture(autouse=True)
def _isolated_telemetry() -> Iterator[None]:
    telemetry.clear_event_listeners()
    yield
    telemetry.clear_event_listeners()


@pytest.fixture
def captured_events() -> list[dict[str, Any]]:
    events: list[dict[str, Any]] = []
    telemetry.register_event_listener(telemetry.REBUILD_EVENT, events.append)
    telemetry.register_event_listener(telemetry.STALE_REBUILD_EVENT, events.append)
    return events


@pytest.fixture
def sample_rules() -> list:
    return [
        KeywordRule(label="glossary", entries=(KeywordEntry(term="invoice", description="Billing document"),)),
        TagRule(collapsed=True),
        QuoteRule(),
    ]


@pytest.fixture
def manual_timer() -> ManualCoalescingTimer:
    return ManualCoalescingTimer()


@pytest.fixture
def attached_rebuilder(sample_rules: list, manual_timer: ManualCoalescingTimer) -> HighlightRebuilder:
    buffer = EditorBuffer.from_text("")
    rebuilder = HighlightRebuilder(buffer, sample_rules, timer=manual_timer)
    rebuilder.attach()
    return rebuilder
