"""
In-process run statistics.

:class:`RunReport` collects one sample per workload iteration: which
branch and operation ran, how long it took and whether it succeeded.
The threaded engine fills it in directly; with Locust, Locust's own
statistics are authoritative and the report only counts branches.

Reports serialise to JSON so that ``catalog-bench check-thresholds`` can
gate a CI build on a run made earlier in the pipeline.
"""

from __future__ import annotations

import json
import math
import threading
from pathlib import Path
from typing import Any


class OperationStats:
    """Counters and latency samples for one named operation."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        self.count = 0
        self.failures = 0
        self.latencies_ms: list[float] = []

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "count": self.count,
            "failures": self.failures,
            "latencies_ms": list(self.latencies_ms),
        }


def percentile(samples: list[float], pct: float) -> float:
    """Nearest-rank percentile; ``0.0`` for an empty sample list."""
    if not samples:
        return 0.0
    ordered = sorted(samples)
    rank = max(1, math.ceil(pct / 100.0 * len(ordered)))
    return ordered[rank - 1]


class RunReport:
    """Thread-safe aggregate of workload iterations."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.operations: dict[str, OperationStats] = {}

    def record(self, branch: str, operation: str, elapsed_ms: float, ok: bool) -> None:
        with self._lock:
            stats = self.operations.get(operation)
            if stats is None:
                stats = self.operations[operation] = OperationStats(branch)
            stats.count += 1
            stats.latencies_ms.append(elapsed_ms)
            if not ok:
                stats.failures += 1

    @property
    def total(self) -> int:
        return sum(stats.count for stats in self.operations.values())

    @property
    def failures(self) -> int:
        return sum(stats.failures for stats in self.operations.values())

    def branch_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for stats in self.operations.values():
            counts[stats.branch] = counts.get(stats.branch, 0) + stats.count
        return counts

    def error_rate_percent(self) -> float:
        if self.total == 0:
            return 0.0
        return self.failures / self.total * 100.0

    def p95_ms(self) -> float:
        samples = [
            latency
            for stats in self.operations.values()
            for latency in stats.latencies_ms
        ]
        return percentile(samples, 95.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "failures": self.failures,
            "operations": {
                name: stats.to_dict() for name, stats in sorted(self.operations.items())
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RunReport:
        report = cls()
        for name, raw in (data.get("operations") or {}).items():
            stats = OperationStats(str(raw["branch"]))
            stats.count = int(raw["count"])
            stats.failures = int(raw["failures"])
            stats.latencies_ms = [float(value) for value in raw.get("latencies_ms", [])]
            report.operations[name] = stats
        return report

    def write_json(self, path: Path) -> None:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, indent=2)

    @classmethod
    def load_json(cls, path: Path) -> RunReport:
        with path.open("r", encoding="utf-8") as handle:
            return cls.from_dict(json.load(handle))
