"""Benchmark helper for segmentation and full rebuild latency."""
from __future__ import annotations

import argparse
import random
import statistics
from dataclasses import dataclass
from pathlib import Path
from time import perf_counter
from typing import Iterable, Sequence

from inkspan.editor.buffer import EditorBuffer
from inkspan.editor.rebuilder import HighlightRebuilder
from inkspan.editor.scheduler import ManualCoalescingTimer
from inkspan.highlight.matcher import match_rules
from inkspan.highlight.rules import KeywordEntry, KeywordRule, LinkRule, QuoteRule, Rule, TagRule
from inkspan.highlight.segments import segment_ranges, segment_ranges_naive
from inkspan.services.rule_config import load_rules

_WORDS = ("invoice", "the", "customer", "said", "paid", "total", "due", "<b>", "</b>", '"', "it's", "\n")


@dataclass(slots=True)
class BenchmarkResult:
    label: str
    chars: int
    raw_ranges: int
    segments: int
    sweep_ms: float
    naive_ms: float | None
    rebuild_ms: float

    @property
    def speedup(self) -> float | None:
        if self.naive_ms is None or self.sweep_ms <= 0:
            return None
        return self.naive_ms / self.sweep_ms


def _default_rules() -> list[Rule]:
    return [
        KeywordRule(label="glossary", entries=(KeywordEntry(term="invoice"), KeywordEntry(term="customer"))),
        KeywordRule(label="search", entries=(KeywordEntry(term="total"),)),
        TagRule(collapsed=True),
        QuoteRule(),
        LinkRule(),
    ]


def _synthetic_text(size: int, seed: int = 7) -> str:
    rng = random.Random(seed)
    parts: list[str] = []
    length = 0
    while length < size:
        word = rng.choice(_WORDS)
        parts.append(word)
        length += len(word) + 1
    return " ".join(parts)


def _default_cases() -> Sequence[tuple[str, str]]:
    return tuple((f"synthetic {size:,}", _synthetic_text(size)) for size in (2_000, 20_000, 100_000))


def _time_ms(func, *args) -> tuple[float, object]:
    start = perf_counter()
    value = func(*args)
    return (perf_counter() - start) * 1000.0, value


def run_benchmarks(
    cases: Iterable[tuple[str, str]],
    rules: Sequence[Rule],
    *,
    naive_limit: int,
) -> list[BenchmarkResult]:
    results: list[BenchmarkResult] = []
    for label, text in cases:
        ranges = match_rules(text, rules)
        sweep_ms, segments = _time_ms(segment_ranges, ranges)
        naive_ms: float | None = None
        if len(text) <= naive_limit:
            naive_ms, naive_segments = _time_ms(segment_ranges_naive, ranges)
            if naive_segments != segments:
                raise RuntimeError(f"Segmenters disagree on case {label!r}")

        rebuilder = HighlightRebuilder(EditorBuffer.from_text(text), rules, timer=ManualCoalescingTimer())
        rebuild_ms, _ = _time_ms(rebuilder.rebuild_now)
        results.append(
            BenchmarkResult(
                label=label,
                chars=len(text),
                raw_ranges=len(ranges),
                segments=len(segments),  # type: ignore[arg-type]
                sweep_ms=sweep_ms,
                naive_ms=naive_ms,
                rebuild_ms=rebuild_ms,
            )
        )
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description="Measure segmentation and rebuild latency.")
    parser.add_argument(
        "--case",
        action="append",
        metavar="LABEL=PATH",
        help="Optional text file case; can be supplied multiple times.",
    )
    parser.add_argument("--rules", type=Path, help="Rule set (.json/.yaml) used instead of the built-in rules.")
    parser.add_argument(
        "--naive-limit",
        type=int,
        default=25_000,
        help="Skip the quadratic reference segmenter for texts longer than this.",
    )
    parser.add_argument("--json", action="store_true", help="Emit machine-readable JSON results.")
    args = parser.parse_args()

    if args.case:
        cases: list[tuple[str, str]] = []
        for raw in args.case:
            if "=" not in raw:
                parser.error(f"Invalid --case '{raw}'. Expected LABEL=PATH format.")
            label, value = raw.split("=", 1)
            cases.append((label.strip(), Path(value).expanduser().read_text(encoding="utf-8")))
    else:
        cases = list(_default_cases())

    rules = load_rules(args.rules) if args.rules else _default_rules()
    results = run_benchmarks(cases, rules, naive_limit=max(0, args.naive_limit))

    if args.json:
        import json

        payload = [
            {
                "label": result.label,
                "chars": result.chars,
                "raw_ranges": result.raw_ranges,
                "segments": result.segments,
                "sweep_ms": result.sweep_ms,
                "naive_ms": result.naive_ms,
                "rebuild_ms": result.rebuild_ms,
            }
            for result in results
        ]
        print(json.dumps(payload, indent=2))
        return

    max_label = max(len(result.label) for result in results)
    header = (
        f"{'Document':<{max_label}}  {'Chars':>9}  {'Ranges':>7}  {'Segments':>8}  "
        f"{'Sweep (ms)':>10}  {'Naive (ms)':>10}  {'Speedup':>7}  Rebuild (ms)"
    )
    print(header)
    print("-" * len(header))
    for result in results:
        naive = f"{result.naive_ms:>10.2f}" if result.naive_ms is not None else f"{'-':>10}"
        speedup = f"{result.speedup:>6.1f}x" if result.speedup is not None else f"{'-':>7}"
        print(
            f"{result.label:<{max_label}}  "
            f"{result.chars:>9,}  "
            f"{result.raw_ranges:>7,}  "
            f"{result.segments:>8,}  "
            f"{result.sweep_ms:>10.2f}  "
            f"{naive}  "
            f"{speedup}  "
            f"{result.rebuild_ms:>11.2f}"
        )

    runtimes = [result.rebuild_ms for result in results]
    print()
    print(
        "Rebuild runtime stats → min: "
        f"{min(runtimes):.2f} ms · median: {statistics.median(runtimes):.2f} ms · max: {max(runtimes):.2f} ms"
    )


if __name__ == "__main__":
    main()
