"""
Load engines.

The benchmark treats the load generator as an injected dependency with a
single method: :meth:`LoadEngine.run` takes one workload iteration and an
injection profile, executes the iteration once per arriving virtual
user and returns a :class:`~catalog_bench.report.RunReport`.

:class:`ThreadedEngine` is a small, dependency-light engine built on a
thread pool.  It is what ``catalog-bench run`` uses and what the test
suite drives.  Full-scale runs go through Locust instead (see
:mod:`catalog_bench.locustfile`).
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait

from catalog_bench.injection import InjectionProfile
from catalog_bench.report import RunReport

logger = logging.getLogger(__name__)

Iteration = Callable[[RunReport], object]


class LoadEngine:
    """Interface for anything that can inject virtual users."""

    def run(self, iteration: Iteration, profile: InjectionProfile) -> RunReport:
        raise NotImplementedError


class ThreadedEngine(LoadEngine):
    """
    Start one pooled task per arrival offset of the injection profile.

    Args:
        max_workers: Upper bound on concurrently running iterations.
            Arrivals beyond it queue up, so a slow server shows up as
            latency rather than as unbounded thread growth.
        rng: Random generator for randomized arrival gaps.
        sleep: Sleep function, injectable so tests run without pacing.
        clock: Monotonic clock paired with *sleep*.
    """

    def __init__(
        self,
        max_workers: int = 32,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self.rng = rng
        self.sleep = sleep
        self.clock = clock

    def run(self, iteration: Iteration, profile: InjectionProfile) -> RunReport:
        report = RunReport()
        futures: list[Future] = []
        logger.info("Injecting %r with up to %d workers", profile, self.max_workers)

        started = self.clock()
        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="virtual-user"
        ) as pool:
            for offset in profile.arrival_offsets(self.rng):
                delay = started + offset - self.clock()
                if delay > 0:
                    self.sleep(delay)
                futures.append(pool.submit(iteration, report))
            wait(futures)

        errors = [future.exception() for future in futures if future.exception() is not None]
        for error in errors:
            logger.error("Virtual user crashed: %r", error)
        if errors:
            raise errors[0]

        logger.info(
            "Injected %d users: %d iterations recorded, %d failed",
            len(futures),
            report.total,
            report.failures,
        )
        return report
