"""
Unit tests for the ``catalog-bench`` command line.

Key SDET Concepts Demonstrated:
- Exit-code assertions for CI-facing tools
- Monkeypatching collaborators to isolate argument handling
- Capturing stdout/stderr with ``capsys``
"""

from __future__ import annotations

import pytest
import yaml

from catalog_bench import cli
from catalog_bench.exceptions import GateTimeoutError, VersionResourceError
from catalog_bench.report import RunReport
from catalog_bench.version import get_version

pytestmark = pytest.mark.unit


def test_version_flag_prints_bundled_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.strip() == get_version()[0]


def test_version_flag_reports_resource_version(monkeypatch, capsys):
    monkeypatch.setattr(cli, "get_version", lambda: ["1.2.3"])

    with pytest.raises(SystemExit):
        cli.main(["--version"])

    assert capsys.readouterr().out.strip() == "1.2.3"


def test_missing_version_resource_is_fatal(monkeypatch, capsys):
    def _missing():
        raise VersionResourceError("version.properties not found")

    monkeypatch.setattr(cli, "get_version", _missing)

    assert cli.main(["show-config"]) == cli.EXIT_SCRIPT_ERROR
    assert "cannot start" in capsys.readouterr().err


def test_show_config_prints_yaml(capsys):
    exit_code = cli.main(["--env", "testing", "show-config"])

    data = yaml.safe_load(capsys.readouterr().out)
    assert exit_code == cli.EXIT_PASS
    assert data["dataset"]["namespace_width"] == 3
    assert "client_secret" not in data["connection"]


def test_bad_config_is_script_error(tmp_path, capsys):
    path = tmp_path / "bench.yml"
    path.write_text("workload:\n  read_write_ratio: 2\n", encoding="utf-8")

    assert cli.main(["--config", str(path), "show-config"]) == cli.EXIT_SCRIPT_ERROR


def test_check_thresholds_exit_codes(tmp_path):
    # Arrange
    thresholds = tmp_path / "thresholds.yml"
    thresholds.write_text("max_error_rate_percent: 0\nmax_p95_ms: 1000\n", encoding="utf-8")
    report = RunReport()
    report.record("Read", "Fetch Table", 5.0, True)
    good = tmp_path / "good.json"
    report.write_json(good)
    report.record("Write", "Update table metadata", 5.0, False)
    bad = tmp_path / "bad.json"
    report.write_json(bad)

    # Act / Assert
    args = ["check-thresholds", "--thresholds", str(thresholds), "--results"]
    assert cli.main(args + [str(good)]) == cli.EXIT_PASS
    assert cli.main(args + [str(bad)]) == cli.EXIT_THRESHOLD_BREACH


def test_run_writes_report(monkeypatch, tmp_path, capsys):
    # Arrange: replace the simulation so no network is involved.
    canned = RunReport()
    canned.record("Read", "Fetch Namespace", 3.0, True)

    class _FakeSimulation:
        def __init__(self, config, transport, engine, randomized=True):
            self.randomized = randomized

        def run(self):
            return canned

    monkeypatch.setattr(cli, "ReadUpdateTreeDataset", _FakeSimulation)
    report_path = tmp_path / "out" / "report.json"

    # Act
    exit_code = cli.main(["--env", "testing", "run", "--report", str(report_path)])

    # Assert
    assert exit_code == cli.EXIT_PASS
    assert RunReport.load_json(report_path).total == 1
    assert "Read" in capsys.readouterr().out


def test_run_gate_timeout_is_reported_as_failure(monkeypatch):
    class _StuckSimulation:
        def __init__(self, *args, **kwargs):
            pass

        def run(self):
            raise GateTimeoutError("no token")

    monkeypatch.setattr(cli, "ReadUpdateTreeDataset", _StuckSimulation)

    assert cli.main(["--env", "testing", "run"]) == cli.EXIT_THRESHOLD_BREACH
