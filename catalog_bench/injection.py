"""Injection profile: how many virtual users arrive, how fast, for how long."""

from __future__ import annotations

import random
from collections.abc import Iterator

from catalog_bench.config import WorkloadParameters


class InjectionProfile:
    """
    Constant arrival rate of virtual users for a fixed duration.

    Each arriving user runs one workload iteration.  With
    ``randomized=True`` the gaps between arrivals are exponentially
    distributed around ``1 / users_per_second`` instead of being evenly
    spaced, which avoids lock-step bursts against the server while
    keeping the same average rate.
    """

    def __init__(
        self,
        users_per_second: float,
        duration_seconds: float,
        randomized: bool = True,
    ) -> None:
        if users_per_second <= 0:
            raise ValueError("users_per_second must be positive")
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive")
        self.users_per_second = float(users_per_second)
        self.duration_seconds = float(duration_seconds)
        self.randomized = randomized

    @classmethod
    def from_workload(cls, workload: WorkloadParameters, randomized: bool = True) -> InjectionProfile:
        return cls(workload.throughput, workload.duration_seconds, randomized=randomized)

    @property
    def expected_users(self) -> int:
        return int(self.users_per_second * self.duration_seconds)

    def arrival_offsets(self, rng: random.Random | None = None) -> Iterator[float]:
        """
        Yield the start offset, in seconds, of every virtual user.

        Offsets are non-decreasing and strictly below the duration.
        """
        if not self.randomized:
            for index in range(self.expected_users):
                offset = index / self.users_per_second
                if offset >= self.duration_seconds:
                    return
                yield offset
            return

        rng = rng if rng is not None else random.Random()
        offset = rng.expovariate(self.users_per_second)
        while offset < self.duration_seconds:
            yield offset
            offset += rng.expovariate(self.users_per_second)

    def __repr__(self) -> str:
        mode = "randomized" if self.randomized else "constant"
        return (
            f"InjectionProfile({self.users_per_second:g} users/s for "
            f"{self.duration_seconds:g}s, {mode})"
        )
