"""
Pass/fail gate for a finished benchmark run.

``catalog-bench check-thresholds`` compares one run against the limits in
``thresholds.yml`` and turns the outcome into an exit code for CI.  The
run may be described by either of:

- the ``*_stats.csv`` Locust writes with ``--csv`` (its ``Aggregated``
  summary row);
- the JSON report ``catalog-bench run --report`` writes.

Two metrics are gated:

- **Error rate (%)** — failed requests over all requests
- **P95 latency (ms)** — 95th-percentile response time

Key Concepts Demonstrated:
- One metrics object fed from two result formats
- Tolerant CSV cells (``%`` suffixes, column names that vary between
  Locust releases)
- A plain-text verdict table for CI logs
"""

from __future__ import annotations

import csv
from collections.abc import Iterable
from pathlib import Path

import yaml

from catalog_bench.exceptions import ConfigError
from catalog_bench.report import RunReport

# Locust has renamed its p95 column more than once.
P95_COLUMNS = ("95%", "95%ile", "95th percentile", "p95")
AGGREGATED = "Aggregated"


def parse_float(value: object, field_name: str) -> float:
    """Read a numeric cell, ignoring whitespace and a ``%`` suffix."""
    if value is None:
        raise ValueError(f"Column {field_name!r} is missing")
    cleaned = str(value).strip().rstrip("%").strip()
    if not cleaned:
        raise ValueError(f"Column {field_name!r} is empty")
    try:
        return float(cleaned)
    except ValueError as exc:
        raise ValueError(f"Column {field_name!r} is not a number: {value!r}") from exc


def find_aggregated_row(rows: Iterable[dict[str, str]]) -> dict[str, str]:
    """
    Pick the summary row out of Locust's per-request rows.

    Older Locust releases put the ``Aggregated`` marker in ``Name``,
    newer ones in ``Type``.
    """
    for row in rows:
        if AGGREGATED in (row.get("Name"), row.get("Type")):
            return row
    raise ValueError(f"No {AGGREGATED!r} row in the stats CSV")


def load_aggregated_row(stats_path: Path) -> dict[str, str]:
    with stats_path.open("r", encoding="utf-8", newline="") as handle:
        return find_aggregated_row(csv.DictReader(handle))


def extract_p95_ms(row: dict[str, str]) -> float:
    for column in P95_COLUMNS:
        if row.get(column):
            return parse_float(row[column], column)
    raise ValueError(f"None of the p95 columns {P95_COLUMNS} are filled in")


def compute_error_rate_percent(row: dict[str, str]) -> float:
    requests = parse_float(row.get("Request Count"), "Request Count")
    failures = parse_float(row.get("Failure Count"), "Failure Count")
    if requests <= 0:
        raise ValueError("Cannot compute an error rate from zero requests")
    return failures * 100.0 / requests


class Thresholds:
    """Upper limits a run must stay within."""

    def __init__(self, max_error_rate_percent: float, max_p95_ms: float) -> None:
        self.max_error_rate_percent = max_error_rate_percent
        self.max_p95_ms = max_p95_ms

    @classmethod
    def load(cls, path: Path) -> Thresholds:
        """
        Read limits from a YAML file.

        Raises:
            ConfigError: If the file is unreadable or either limit is
                missing or not a number.
        """
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle) or {}
            return cls(float(data["max_error_rate_percent"]), float(data["max_p95_ms"]))
        except OSError as exc:
            raise ConfigError(f"Cannot read thresholds file {path}: {exc}") from exc
        except (KeyError, TypeError, ValueError, yaml.YAMLError) as exc:
            raise ConfigError(
                f"{path} must set numeric max_error_rate_percent and max_p95_ms"
            ) from exc


class RunMetrics:
    """The two gated numbers of one run, whatever format they came from."""

    def __init__(self, error_rate_percent: float, p95_ms: float) -> None:
        self.error_rate_percent = error_rate_percent
        self.p95_ms = p95_ms

    @classmethod
    def from_stats_csv(cls, stats_path: Path) -> RunMetrics:
        row = load_aggregated_row(stats_path)
        return cls(compute_error_rate_percent(row), extract_p95_ms(row))

    @classmethod
    def from_report(cls, report: RunReport) -> RunMetrics:
        if report.total <= 0:
            raise ValueError("The run report has no iterations")
        return cls(report.error_rate_percent(), report.p95_ms())

    @classmethod
    def from_path(cls, results_path: Path) -> RunMetrics:
        """``.json`` files are run reports; anything else is a stats CSV."""
        if results_path.suffix == ".json":
            return cls.from_report(RunReport.load_json(results_path))
        return cls.from_stats_csv(results_path)

    def verdicts(self, thresholds: Thresholds) -> list[tuple[str, float, float, bool]]:
        """``(label, actual, limit, ok)`` for every gated metric."""
        return [
            (
                "Error rate (%)",
                self.error_rate_percent,
                thresholds.max_error_rate_percent,
                self.error_rate_percent <= thresholds.max_error_rate_percent,
            ),
            (
                "P95 latency (ms)",
                self.p95_ms,
                thresholds.max_p95_ms,
                self.p95_ms <= thresholds.max_p95_ms,
            ),
        ]


def render_summary(verdicts: list[tuple[str, float, float, bool]]) -> str:
    """Format verdicts as a fixed-width table ending in the overall result."""
    rule = "=" * 58
    lines = [
        "catalog-bench threshold check",
        rule,
        f"{'Metric':<20}{'Actual':>12}{'Limit':>12}{'Result':>14}",
        rule,
    ]
    for label, actual, limit, ok in verdicts:
        lines.append(f"{label:<20}{actual:>12.2f}{limit:>12.2f}{'PASS' if ok else 'FAIL':>14}")
    lines.append(rule)
    overall = all(ok for *_rest, ok in verdicts)
    lines.append(f"Overall: {'PASS' if overall else 'FAIL'}")
    return "\n".join(lines)


def check(results_path: Path, thresholds_path: Path) -> bool:
    """
    Gate *results_path* on the limits in *thresholds_path*.

    Prints the verdict table and returns ``True`` when every metric is
    within its limit.
    """
    thresholds = Thresholds.load(thresholds_path)
    verdicts = RunMetrics.from_path(results_path).verdicts(thresholds)
    print(render_summary(verdicts))
    return all(ok for *_rest, ok in verdicts)
