"""
Unit tests for the CI threshold gate.
"""

from __future__ import annotations

import pytest

from catalog_bench.exceptions import ConfigError
from catalog_bench.report import RunReport
from catalog_bench.thresholds import (
    RunMetrics,
    Thresholds,
    check,
    compute_error_rate_percent,
    extract_p95_ms,
    load_aggregated_row,
    parse_float,
    render_summary,
)

pytestmark = pytest.mark.unit

STATS_CSV = (
    "Type,Name,Request Count,Failure Count,95%\n"
    "GET,Fetch Table,90,1,120\n"
    ",Aggregated,100,2,150\n"
)


@pytest.fixture
def thresholds_file(tmp_path):
    path = tmp_path / "thresholds.yml"
    path.write_text("max_error_rate_percent: 5\nmax_p95_ms: 200\n", encoding="utf-8")
    return path


def test_load_thresholds(thresholds_file):
    thresholds = Thresholds.load(thresholds_file)

    assert thresholds.max_error_rate_percent == 5.0
    assert thresholds.max_p95_ms == 200.0


def test_load_thresholds_requires_both_keys(tmp_path):
    path = tmp_path / "thresholds.yml"
    path.write_text("max_p95_ms: 200\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        Thresholds.load(path)


def test_aggregated_row_metrics(tmp_path):
    path = tmp_path / "run_stats.csv"
    path.write_text(STATS_CSV, encoding="utf-8")

    row = load_aggregated_row(path)

    assert compute_error_rate_percent(row) == pytest.approx(2.0)
    assert extract_p95_ms(row) == 150.0


def test_missing_aggregated_row(tmp_path):
    path = tmp_path / "run_stats.csv"
    path.write_text("Type,Name\nGET,Fetch Table\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_aggregated_row(path)


@pytest.mark.parametrize("column", ["95%", "95%ile", "p95"])
def test_p95_column_variants(column):
    assert extract_p95_ms({column: "42"}) == 42.0


def test_parse_float_strips_percent():
    assert parse_float(" 12.5% ", "rate") == 12.5
    with pytest.raises(ValueError):
        parse_float("", "rate")


def test_check_passes_csv_within_limits(tmp_path, thresholds_file, capsys):
    path = tmp_path / "run_stats.csv"
    path.write_text(STATS_CSV, encoding="utf-8")

    assert check(path, thresholds_file) is True
    assert "Overall: PASS" in capsys.readouterr().out


def test_check_fails_report_over_error_limit(tmp_path, thresholds_file, capsys):
    # Arrange: 1 failure in 4 iterations is a 25 % error rate.
    report = RunReport()
    for ok in (True, True, True, False):
        report.record("Read", "Fetch Table", 10.0, ok)
    path = tmp_path / "report.json"
    report.write_json(path)

    # Act
    passed = check(path, thresholds_file)

    # Assert
    assert passed is False
    assert "Overall: FAIL" in capsys.readouterr().out


def test_check_rejects_empty_report(tmp_path, thresholds_file):
    path = tmp_path / "report.json"
    RunReport().write_json(path)

    with pytest.raises(ValueError):
        check(path, thresholds_file)


def test_unreadable_thresholds_file(tmp_path):
    with pytest.raises(ConfigError):
        Thresholds.load(tmp_path / "missing.yml")


def test_verdicts_flag_each_metric_independently():
    metrics = RunMetrics(error_rate_percent=0.5, p95_ms=900.0)

    verdicts = metrics.verdicts(Thresholds(max_error_rate_percent=1.0, max_p95_ms=500.0))

    assert [(label, ok) for label, _actual, _limit, ok in verdicts] == [
        ("Error rate (%)", True),
        ("P95 latency (ms)", False),
    ]
    assert render_summary(verdicts).endswith("Overall: FAIL")
