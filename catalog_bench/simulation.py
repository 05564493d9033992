"""
Read/update simulation over an existing tree dataset.

Wires the pieces together in the order the benchmark requires:

1. start the token refresh loop;
2. wait on the gate until the first token is published;
3. run the weighted read/write workload through the load engine;
4. stop the refresh loop, whether the workload succeeded or not.

The dataset must already exist in the catalog; this simulation only
reads it and updates entity properties.
"""

from __future__ import annotations

import logging
import random

from catalog_bench.auth import TokenRefreshLoop, make_authenticator
from catalog_bench.config import BenchmarkConfig
from catalog_bench.credentials import CredentialHolder
from catalog_bench.dataset import TreeDataset
from catalog_bench.engine import LoadEngine
from catalog_bench.gate import wait_for_token
from catalog_bench.injection import InjectionProfile
from catalog_bench.report import RunReport
from catalog_bench.selector import WorkloadSelector, build_read_update_selector
from catalog_bench.transport import CatalogTransport

logger = logging.getLogger(__name__)


class ReadUpdateTreeDataset:
    """
    Randomly read and update entities using the Iceberg REST API.

    Attributes:
        holder: The shared credential cell.
        refresh_loop: Background re-authentication loop.
        selector: Weighted operation table.
        profile: Arrival rate and duration of virtual users.
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        transport: CatalogTransport,
        engine: LoadEngine,
        holder: CredentialHolder | None = None,
        rng: random.Random | None = None,
        randomized: bool = True,
    ) -> None:
        self.config = config
        self.transport = transport
        self.engine = engine
        self.holder = holder if holder is not None else CredentialHolder()
        self.dataset = TreeDataset(config.dataset)
        self.selector: WorkloadSelector = build_read_update_selector(
            self.dataset, config.workload, rng=rng
        )
        self.profile = InjectionProfile.from_workload(config.workload, randomized=randomized)
        self.refresh_loop = TokenRefreshLoop(
            self.holder,
            make_authenticator(transport, config.connection),
            interval=config.workload.token_refresh_seconds,
        )

    def iteration(self, report: RunReport) -> None:
        """One virtual user: run a single weighted operation."""
        self.selector.run_once(self.transport, self.holder, report)

    def run(self) -> RunReport:
        """
        Execute the full simulation and return the engine's report.

        Raises:
            GateTimeoutError: If no token appeared in time; the refresh
                loop is still stopped before the error propagates.
        """
        workload = self.config.workload
        self.refresh_loop.start()
        try:
            wait_for_token(
                self.holder,
                poll_interval=workload.gate_poll_seconds,
                timeout=workload.gate_timeout_seconds,
            )
            report = self.engine.run(self.iteration, self.profile)
        finally:
            logger.info("Stopping the token refresh loop")
            self.refresh_loop.stop(timeout=workload.token_refresh_seconds)

        branches = report.branch_counts()
        logger.info(
            "Simulation finished: %d iterations (%s), error rate %.2f%%",
            report.total,
            ", ".join(f"{name}={count}" for name, count in sorted(branches.items())),
            report.error_rate_percent(),
        )
        return report
