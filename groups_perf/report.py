"""Formats perf run results as colored terminal output or structured JSON.

Two output modes are supported:

- **Terminal**: ANSI-colored step results grouped by phase, a chunk latency
  summary, and a one-line verdict.
- **JSON**: machine-readable output with ``summary``, ``timings`` and
  ``results`` keys, for CI pipelines that track latency over time.
"""

import json
import math
import sys
from typing import Any, Dict, List, Optional, Sequence

from .models import ChunkTiming


class StepResult:
    """Outcome of one step of the run.

    Attributes:
        name:    Human-readable step name (e.g. ``POST /groups``).
        status:  One of PASS, FAIL, ERROR.
        message: Optional detail about the outcome.
        phase:   Phase label used to group output (e.g. ``Setup``).
    """

    PASS = "pass"
    FAIL = "fail"
    ERROR = "error"

    def __init__(
        self,
        name: str,
        status: str,
        message: str = "",
        phase: str = "",
    ):
        self.name = name
        self.status = status
        self.message = message
        self.phase = phase

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON output.  Omits empty fields."""
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
        }
        if self.message:
            d["message"] = self.message
        if self.phase:
            d["phase"] = self.phase
        return d


def _colorize(text: str, color: str) -> str:
    """Apply ANSI color codes.  Returns plain text when stdout is not a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


_STATUS_SYMBOLS = {
    StepResult.PASS: ("PASS", "green"),
    StepResult.FAIL: ("FAIL", "red"),
    StepResult.ERROR: ("ERR ", "red"),
}


def _percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Nearest-rank percentile of an already sorted sequence."""
    rank = max(1, math.ceil(pct / 100 * len(sorted_values)))
    return sorted_values[rank - 1]


def summarize_timings(timings: Sequence[ChunkTiming]) -> Dict[str, Any]:
    """Latency statistics over all completed chunks, in milliseconds.

    Returns ``{"chunks": 0}`` when no chunk completed.
    """
    if not timings:
        return {"chunks": 0}
    values = sorted(t.elapsed_ms for t in timings)
    total = sum(values)
    return {
        "chunks": len(values),
        "members": sum(t.size for t in timings),
        "total_ms": round(total, 1),
        "min_ms": round(values[0], 1),
        "max_ms": round(values[-1], 1),
        "mean_ms": round(total / len(values), 1),
        "p50_ms": round(_percentile(values, 50), 1),
        "p95_ms": round(_percentile(values, 95), 1),
    }


def _counts(results: List[StepResult]) -> Dict[str, int]:
    return {
        "total": len(results),
        "passed": sum(1 for r in results if r.status == StepResult.PASS),
        "failed": sum(1 for r in results if r.status == StepResult.FAIL),
        "errors": sum(1 for r in results if r.status == StepResult.ERROR),
    }


def print_results(
    results: List[StepResult],
    timings: Optional[Sequence[ChunkTiming]] = None,
    json_output: bool = False,
    version: str = "",
    timestamp: str = "",
    target: str = "",
):
    """Print the full run report in terminal or JSON format."""
    timings = timings or []
    if json_output:
        _print_json(results, timings, version=version, timestamp=timestamp, target=target)
    else:
        _print_terminal(results, timings, version=version, timestamp=timestamp, target=target)


def _print_terminal(
    results: List[StepResult],
    timings: Sequence[ChunkTiming],
    version: str = "",
    timestamp: str = "",
    target: str = "",
):
    """Render results as ANSI-colored terminal output, grouped by phase."""
    counts = _counts(results)

    print()
    print(_colorize("Groups API Perf Test", "bold"))
    print(_colorize("=" * 50, "dim"))
    meta_parts = []
    if version:
        meta_parts.append(f"groups-perf {version}")
    if target:
        meta_parts.append(target)
    if timestamp:
        meta_parts.append(timestamp)
    if meta_parts:
        print(_colorize("  " + "  |  ".join(meta_parts), "dim"))

    current_phase = ""
    for result in results:
        if result.phase and result.phase != current_phase:
            current_phase = result.phase
            print()
            print(_colorize(f"  {current_phase}", "bold"))
            print(_colorize("  " + "-" * 40, "dim"))

        symbol, color = _STATUS_SYMBOLS.get(result.status, ("??? ", "dim"))
        print(f"  [{_colorize(symbol, color)}] {result.name}")
        if result.message:
            print(f"         {_colorize(result.message, 'dim')}")

    stats = summarize_timings(timings)
    if stats["chunks"]:
        print()
        print(_colorize("  Chunk latency", "bold"))
        print(_colorize("  " + "-" * 40, "dim"))
        print(f"  {stats['chunks']} chunks, {stats['members']} members, {stats['total_ms']:.0f} ms total")
        print(
            f"  min {stats['min_ms']:.0f} ms  mean {stats['mean_ms']:.0f} ms  "
            f"p50 {stats['p50_ms']:.0f} ms  p95 {stats['p95_ms']:.0f} ms  max {stats['max_ms']:.0f} ms"
        )

    print()
    print(_colorize("=" * 50, "dim"))
    summary_parts = []
    if counts["passed"]:
        summary_parts.append(_colorize(f"{counts['passed']} passed", "bold"))
    if counts["failed"]:
        summary_parts.append(_colorize(f"{counts['failed']} failed", "red"))
    if counts["errors"]:
        summary_parts.append(_colorize(f"{counts['errors']} errors", "red"))
    print("  " + ", ".join(summary_parts))

    if counts["failed"] == 0 and counts["errors"] == 0:
        print(_colorize("  Result: Perf test passed.", "bold"))
    else:
        print(_colorize("  Result: Perf test failed, see the step output above.", "red"))
    print()


def _print_json(
    results: List[StepResult],
    timings: Sequence[ChunkTiming],
    version: str = "",
    timestamp: str = "",
    target: str = "",
):
    """Render results as structured JSON with summary counts and chunk timings."""
    output = {
        "groups_perf_version": version,
        "target": target,
        "timestamp": timestamp,
        "summary": _counts(results),
        "timings": {
            "summary": summarize_timings(timings),
            "chunks": [t.to_dict() for t in timings],
        },
        "results": [r.to_dict() for r in results],
    }
    print(json.dumps(output, indent=2))
