"""
Locust entrypoint for the read/update benchmark.

This is the file the ``locust`` CLI loads for full-scale runs.  It maps
the benchmark's lifecycle onto Locust events:

- ``init`` — load the benchmark config and build the workload table;
- ``test_start`` — start the token refresh loop and block on the gate
  until the first token exists, so no user runs unauthenticated;
- ``test_stop`` — stop the token refresh loop.

:class:`ConstantArrivalShape` turns the configured throughput and
duration into a Locust load shape; it ends the test when the duration
has elapsed.

Usage examples::

    # Headless run against a local catalog, config from YAML:
    locust -f catalog_bench/locustfile.py --headless \\
        --host http://localhost:8181 --bench-config bench.yml \\
        --csv results/read_update

    # Then gate the build on the Aggregated row:
    catalog-bench check-thresholds --results results/read_update_stats.csv

Key Concepts Demonstrated:
- Locust event hooks for per-run setup and teardown
- One shared credential cell read by every virtual user
- A ``LoadTestShape`` derived from an injection profile
"""

from __future__ import annotations

import logging

from locust import HttpUser, LoadTestShape, constant_throughput, events, task
from locust.clients import HttpSession

from catalog_bench.auth import TokenRefreshLoop, make_authenticator
from catalog_bench.config import BenchmarkConfig, load_config
from catalog_bench.credentials import CredentialHolder
from catalog_bench.dataset import TreeDataset
from catalog_bench.gate import wait_for_token
from catalog_bench.injection import InjectionProfile
from catalog_bench.selector import WorkloadSelector, build_read_update_selector
from catalog_bench.transport import LocustTransport

logger = logging.getLogger(__name__)


class _BenchmarkRun:
    """Per-process benchmark state shared by the hooks, users and shape."""

    config: BenchmarkConfig | None = None
    holder: CredentialHolder | None = None
    selector: WorkloadSelector | None = None
    profile: InjectionProfile | None = None
    refresh_loop: TokenRefreshLoop | None = None


RUN = _BenchmarkRun()


@events.init_command_line_parser.add_listener
def _add_benchmark_arguments(parser, **_kwargs):
    parser.add_argument(
        "--bench-config",
        type=str,
        env_var="CATALOG_BENCH_CONFIG",
        default="",
        help="catalog-bench YAML file",
    )
    parser.add_argument(
        "--bench-env",
        type=str,
        env_var="CATALOG_BENCH_ENV",
        default="",
        help="catalog-bench preset (development, testing, production)",
    )


@events.init.add_listener
def _prepare_workload(environment, **_kwargs):
    """Load config and build the workload table once per process."""
    options = environment.parsed_options
    RUN.config = load_config(
        getattr(options, "bench_config", "") or None,
        env=getattr(options, "bench_env", "") or None,
    )
    RUN.selector = build_read_update_selector(
        TreeDataset(RUN.config.dataset), RUN.config.workload
    )
    RUN.profile = InjectionProfile.from_workload(RUN.config.workload)
    if not environment.host:
        environment.host = RUN.config.connection.base_url


@events.test_start.add_listener
def _start_token_refresh(environment, **_kwargs):
    """Authenticate every interval; block until the first token exists."""
    # A holder stopped by the previous run never refreshes again, and
    # Locust can run several tests in one process.
    RUN.holder = CredentialHolder()
    session = HttpSession(
        base_url=environment.host,
        request_event=environment.events.request,
        user=None,
    )
    RUN.refresh_loop = TokenRefreshLoop(
        RUN.holder,
        make_authenticator(LocustTransport(session), RUN.config.connection),
        interval=RUN.config.workload.token_refresh_seconds,
    )
    RUN.refresh_loop.start()
    wait_for_token(
        RUN.holder,
        poll_interval=RUN.config.workload.gate_poll_seconds,
        timeout=RUN.config.workload.gate_timeout_seconds,
    )


@events.test_stop.add_listener
def _stop_token_refresh(environment, **_kwargs):
    if RUN.refresh_loop is not None:
        RUN.refresh_loop.stop(timeout=RUN.config.workload.token_refresh_seconds)
        RUN.refresh_loop = None


class ReadUpdateTreeDatasetUser(HttpUser):
    """
    Read and write entities using the Iceberg REST API.

    Each user runs one weighted operation per second, so the number of
    users equals the request rate.
    """

    wait_time = constant_throughput(1)

    def on_start(self) -> None:
        self.transport = LocustTransport(self.client)

    @task
    def read_or_write(self) -> None:
        # Failures are already reported to Locust by the transport.
        RUN.selector.run_once(self.transport, RUN.holder)


class ConstantArrivalShape(LoadTestShape):
    """Hold ``throughput`` users for ``duration``, then end the test."""

    def tick(self):
        profile = RUN.profile
        if profile is None or self.get_run_time() >= profile.duration_seconds:
            return None
        users = max(1, round(profile.users_per_second))
        return users, users
