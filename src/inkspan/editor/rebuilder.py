"""Coalesced rebuild cycle keeping the run tree in sync with highlight rules.

One cycle flattens the buffer, matches rules, segments the ranges, captures
the selection as flat offsets, swaps in a rebuilt run tree and resolves the
offsets back against it. The tree swap is tagged so the change listener does
not schedule another rebuild in response to its own mutation.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Sequence

from ..highlight.annotations import Annotation, HighlightSegment
from ..highlight.matcher import match_rules
from ..highlight.rules import Rule
from ..highlight.segments import build_annotation_map, compute_highlight_segments
from ..highlight.symbols import effective_codepoint_map
from ..services import telemetry
from ..services.rule_config import load_rules
from ..services.settings import HighlightSettings
from .buffer import HIGHLIGHT_TAG, SUPPRESS_TAG, ChangeEvent, EditorBuffer
from .document_model import HighlightDocument, Selection, SelectionRange
from .position_mapper import selection_from_offsets
from .scheduler import AsyncioCoalescingTimer, CoalescingTimer
from .tree_builder import build_run_tree

__all__ = ["HighlightRebuilder", "RebuildResult", "RebuildState"]

LOGGER = logging.getLogger(__name__)

_EMPTY_MAP: Mapping[str, Annotation] = MappingProxyType({})


class RebuildState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    REBUILDING = "rebuilding"


@dataclass(slots=True, frozen=True)
class RebuildResult:
    """Everything one rebuild produced, handed to the presentation layer."""

    generation: int
    text: str
    segments: tuple[HighlightSegment, ...]
    annotation_map: Mapping[str, Annotation]
    document: HighlightDocument
    selection_offsets: SelectionRange | None
    fallback: bool = False
    duration_ms: float = 0.0


class HighlightRebuilder:
    """Owns the rebuild state machine for a single :class:`EditorBuffer`."""

    def __init__(
        self,
        buffer: EditorBuffer,
        rules: Sequence[Rule] = (),
        *,
        timer: CoalescingTimer | None = None,
        restore_selection: bool = True,
        codepoint_overrides: Mapping[int, str] | None = None,
    ) -> None:
        self._buffer = buffer
        self._rules: tuple[Rule, ...] = tuple(rules)
        self._timer: CoalescingTimer = timer or AsyncioCoalescingTimer()
        self._restore_selection = restore_selection
        self._codepoint_overrides = dict(codepoint_overrides or {})
        self._state = RebuildState.IDLE
        self._generation = 0
        self._annotation_map: Mapping[str, Annotation] = _EMPTY_MAP
        self._last_result: RebuildResult | None = None
        self._attached = False

    @classmethod
    def from_settings(
        cls,
        buffer: EditorBuffer,
        settings: HighlightSettings,
        rules: Sequence[Rule] | None = None,
        *,
        timer: CoalescingTimer | None = None,
    ) -> "HighlightRebuilder":
        """Build a rebuilder configured from persisted :class:`HighlightSettings`.

        When ``rules`` is omitted they are loaded from ``settings.rules_path``
        with ``settings.escape_patterns`` as the default contraction table.
        Loading errors propagate as :class:`ConfigurationError`.
        """

        if rules is None:
            rules = (
                load_rules(settings.rules_path, escape_patterns=settings.escape_patterns)
                if settings.rules_path
                else ()
            )
        return cls(
            buffer,
            rules,
            timer=timer or AsyncioCoalescingTimer(settings.debounce_ms / 1000.0),
            restore_selection=settings.restore_selection,
            codepoint_overrides=settings.codepoint_overrides,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def buffer(self) -> EditorBuffer:
        return self._buffer

    @property
    def state(self) -> RebuildState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def rules(self) -> tuple[Rule, ...]:
        return self._rules

    @property
    def annotation_map(self) -> Mapping[str, Annotation]:
        """Read-only id -> annotation map published by the last rebuild."""

        return self._annotation_map

    @property
    def last_result(self) -> RebuildResult | None:
        return self._last_result

    def lookup(self, annotation_id: str) -> Annotation | None:
        return self._annotation_map.get(annotation_id)

    def attach(self) -> None:
        """Start listening to buffer changes."""

        if not self._attached:
            self._buffer.add_change_listener(self._handle_change)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            self._buffer.remove_change_listener(self._handle_change)
            self._attached = False
        self._timer.cancel()
        if self._state is RebuildState.SCHEDULED:
            self._state = RebuildState.IDLE

    def set_rules(self, rules: Sequence[Rule]) -> None:
        """Replace the active rules and schedule a rebuild."""

        self._rules = tuple(rules)
        self.request_rebuild()

    def set_codepoint_overrides(self, overrides: Mapping[int, str] | None) -> None:
        self._codepoint_overrides = dict(overrides or {})
        self.request_rebuild()

    def request_rebuild(self) -> int:
        """Schedule a coalesced rebuild, superseding any pending one."""

        self._generation += 1
        generation = self._generation
        self._state = RebuildState.SCHEDULED
        try:
            self._timer.schedule(lambda: self._run_scheduled(generation))
        except RuntimeError as exc:
            # No event loop to debounce on (synchronous host); rebuild inline.
            LOGGER.warning("Rebuild timer unavailable (%s); rebuilding generation %s synchronously", exc, generation)
            self.apply(self.prepare())
        return generation

    def rebuild_now(self) -> RebuildResult | None:
        """Run the rebuild cycle synchronously and apply its result."""

        self._timer.cancel()
        return self.apply(self.prepare())

    def prepare(self) -> RebuildResult:
        """Compute a rebuild for the current buffer without touching it.

        The result is bound to the current generation; :meth:`apply` rejects
        it if another rebuild was requested in the meantime.
        """

        self._state = RebuildState.REBUILDING
        started = time.perf_counter()
        text = self._buffer.text
        offsets = self._buffer.selection_offsets()
        fallback = False
        segments: tuple[HighlightSegment, ...] = ()
        annotation_map: Mapping[str, Annotation] = _EMPTY_MAP
        try:
            ranges = match_rules(text, self._rules)
            segments = tuple(compute_highlight_segments(ranges, self._rules))
            annotation_map = build_annotation_map(segments)
            codepoint_map = effective_codepoint_map(self._rules, self._codepoint_overrides)
            document = build_run_tree(text, segments, self._rules, codepoint_map=codepoint_map)
        except Exception:
            LOGGER.exception("Highlight rebuild failed; rendering plain text (generation=%s)", self._generation)
            segments = ()
            annotation_map = _EMPTY_MAP
            document = HighlightDocument.from_text(text)
            fallback = True
        return RebuildResult(
            generation=self._generation,
            text=text,
            segments=segments,
            annotation_map=annotation_map,
            document=document,
            selection_offsets=offsets,
            fallback=fallback,
            duration_ms=(time.perf_counter() - started) * 1000.0,
        )

    def apply(self, result: RebuildResult) -> RebuildResult | None:
        """Swap ``result`` into the buffer unless a newer rebuild superseded it."""

        if result.generation != self._generation:
            LOGGER.debug("Discarding stale rebuild %s (current=%s)", result.generation, self._generation)
            telemetry.emit(
                telemetry.STALE_REBUILD_EVENT,
                {"generation": result.generation, "current_generation": self._generation},
            )
            self._state = RebuildState.SCHEDULED if self._timer.pending else RebuildState.IDLE
            return None

        self._buffer.replace_tree(result.document, self._resolve_selection(result), tags={HIGHLIGHT_TAG})
        self._annotation_map = result.annotation_map
        self._last_result = result
        if not self._timer.pending:
            self._state = RebuildState.IDLE
        telemetry.emit(
            telemetry.REBUILD_EVENT,
            {
                "generation": result.generation,
                "segment_count": len(result.segments),
                "annotation_count": len(result.annotation_map),
                "duration_ms": round(result.duration_ms, 3),
                "fallback": result.fallback,
            },
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _handle_change(self, event: ChangeEvent) -> None:
        if event.has_tag(HIGHLIGHT_TAG) or event.has_tag(SUPPRESS_TAG):
            return
        if not event.content_changed:
            return
        self.request_rebuild()

    def _run_scheduled(self, generation: int) -> None:
        if generation != self._generation:
            telemetry.emit(
                telemetry.STALE_REBUILD_EVENT,
                {"generation": generation, "current_generation": self._generation},
            )
            return
        self.apply(self.prepare())

    def _resolve_selection(self, result: RebuildResult) -> Selection | None:
        if not self._restore_selection or not self._buffer.has_focus:
            return None
        return selection_from_offsets(result.document, result.selection_offsets)
