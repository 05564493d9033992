"""
Command-line entry point: ``catalog-bench``.

Subcommands:

- ``run`` — execute the read/update simulation with the threaded engine.
- ``show-config`` — print the resolved configuration (without secrets).
- ``check-thresholds`` — gate a CI build on a Locust CSV or a run report.

Exit codes follow a three-state convention so that CI can distinguish
"the benchmark failed" from "the script crashed":

- ``0`` — success / all thresholds passed
- ``1`` — a threshold was breached or the run could not complete
- ``2`` — the script itself failed (bad config, missing file, ...)

Usage examples::

    catalog-bench --version
    catalog-bench --config bench.yml run --report results/report.json
    catalog-bench check-thresholds --results results/report.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from catalog_bench.config import load_config
from catalog_bench.engine import ThreadedEngine
from catalog_bench.exceptions import CatalogBenchError, ConfigError, VersionResourceError
from catalog_bench.simulation import ReadUpdateTreeDataset
from catalog_bench.thresholds import check
from catalog_bench.transport import RequestsTransport
from catalog_bench.version import get_version

EXIT_PASS = 0
EXIT_THRESHOLD_BREACH = 1
EXIT_SCRIPT_ERROR = 2

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    The version is resolved here, so a missing version resource stops the
    CLI before any subcommand runs.
    """
    parser = argparse.ArgumentParser(
        prog="catalog-bench",
        description="Read/update load benchmark for Iceberg REST catalogs.",
    )
    parser.add_argument("--version", action="version", version=get_version()[0])
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Benchmark YAML file (defaults to $CATALOG_BENCH_CONFIG)",
    )
    parser.add_argument(
        "--env",
        default=None,
        help="Preset name: development, testing or production",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the read/update simulation")
    run_parser.add_argument(
        "--max-workers",
        type=int,
        default=32,
        help="Maximum concurrently running virtual users",
    )
    run_parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write the run report as JSON to this path",
    )
    run_parser.add_argument(
        "--no-randomize",
        action="store_true",
        help="Space arrivals evenly instead of randomly",
    )

    subparsers.add_parser("show-config", help="Print the resolved configuration")

    check_parser = subparsers.add_parser(
        "check-thresholds", help="Check run results against thresholds"
    )
    check_parser.add_argument(
        "--results",
        required=True,
        type=Path,
        help="Locust *_stats.csv file or JSON run report",
    )
    check_parser.add_argument(
        "--thresholds",
        type=Path,
        default=Path("thresholds.yml"),
        help="Path to thresholds YAML file",
    )
    return parser


def _run(args: argparse.Namespace) -> int:
    config = load_config(args.config, env=args.env)
    transport = RequestsTransport(
        config.connection.base_url, timeout=config.connection.request_timeout
    )
    try:
        simulation = ReadUpdateTreeDataset(
            config,
            transport,
            ThreadedEngine(max_workers=args.max_workers),
            randomized=not args.no_randomize,
        )
        report = simulation.run()
    finally:
        transport.close()

    if args.report is not None:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        report.write_json(args.report)
        logger.info("Report written to %s", args.report)

    for branch, count in sorted(report.branch_counts().items()):
        print(f"{branch:<8}{count:>10}")
    print(f"{'Failed':<8}{report.failures:>10}")
    return EXIT_PASS


def _show_config(args: argparse.Namespace) -> int:
    config = load_config(args.config, env=args.env)
    print(yaml.safe_dump(config.to_dict(), sort_keys=False), end="")
    return EXIT_PASS


def _check_thresholds(args: argparse.Namespace) -> int:
    passed = check(args.results, args.thresholds)
    return EXIT_PASS if passed else EXIT_THRESHOLD_BREACH


COMMANDS = {
    "run": _run,
    "show-config": _show_config,
    "check-thresholds": _check_thresholds,
}


def main(argv: list[str] | None = None) -> int:
    """
    Entry point: parse arguments and dispatch to a subcommand.

    Returns:
        One of ``EXIT_PASS``, ``EXIT_THRESHOLD_BREACH`` or
        ``EXIT_SCRIPT_ERROR``.
    """
    try:
        parser = build_parser()
    except VersionResourceError as exc:
        print(f"catalog-bench cannot start: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        return COMMANDS[args.command](args)
    except (ConfigError, OSError, ValueError) as exc:
        print(f"{args.command} failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR
    except CatalogBenchError as exc:
        print(f"{args.command} failed: {exc}", file=sys.stderr)
        return EXIT_THRESHOLD_BREACH


if __name__ == "__main__":
    raise SystemExit(main())
