"""
Weighted read/write workload selection.

The workload is a small declarative table.  Each iteration first picks
a branch ("Read" or "Write") with probability proportional to its
weight, then picks one of the branch's operations uniformly.  The
chosen operation draws one record from its own feeder and issues a
single request with the token read from the credential holder at that
moment.

Read branch (9 operations):

- list child namespaces, check namespace exists, fetch namespace
- list tables, check table exists, fetch table
- list views, check view exists, fetch view

Write branch (3 operations):

- update namespace, table and view properties

Key Concepts Demonstrated:
- Two-level weighted choice with an injectable ``random.Random``
- One independent round-robin feeder per operation
- Failures recorded in the report instead of aborting the worker
"""

from __future__ import annotations

import logging
import random
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from typing import Any

from catalog_bench import actions, feeders
from catalog_bench.config import WorkloadParameters
from catalog_bench.credentials import CredentialHolder
from catalog_bench.dataset import TreeDataset
from catalog_bench.exceptions import CatalogRequestError
from catalog_bench.report import RunReport
from catalog_bench.transport import CatalogTransport

logger = logging.getLogger(__name__)

READ = "Read"
WRITE = "Write"

Action = Callable[[CatalogTransport, "str | None", dict[str, Any]], dict[str, Any]]


class Operation:
    """A catalog action bound to the feeder that supplies its records."""

    def __init__(self, name: str, action: Action, feeder: Iterator[dict[str, Any]]) -> None:
        self.name = name
        self.action = action
        self.feeder = feeder

    def __call__(self, transport: CatalogTransport, token: str | None) -> dict[str, Any]:
        record = next(self.feeder)
        return self.action(transport, token, record)

    def __repr__(self) -> str:
        return f"Operation({self.name!r})"


class Branch:
    """A weighted group of operations chosen between uniformly."""

    def __init__(self, name: str, weight: float, operations: Sequence[Operation]) -> None:
        if weight < 0:
            raise ValueError(f"Branch {name!r} has a negative weight")
        if weight > 0 and not operations:
            raise ValueError(f"Branch {name!r} has weight but no operations")
        self.name = name
        self.weight = float(weight)
        self.operations = list(operations)


class IterationResult:
    """Outcome of one :meth:`WorkloadSelector.run_once` call."""

    def __init__(self, branch: str, operation: str, ok: bool, elapsed_ms: float) -> None:
        self.branch = branch
        self.operation = operation
        self.ok = ok
        self.elapsed_ms = elapsed_ms


class WorkloadSelector:
    """
    Dispatch iterations across weighted branches.

    Args:
        branches: The branch table.  Weights need not sum to 100; only
            their proportions matter.
        rng: Random generator; seed it for reproducible runs.
    """

    def __init__(self, branches: Sequence[Branch], rng: random.Random | None = None) -> None:
        if not branches:
            raise ValueError("WorkloadSelector needs at least one branch")
        if sum(branch.weight for branch in branches) <= 0:
            raise ValueError("Branch weights must have a positive sum")
        self.branches = list(branches)
        self._weights = [branch.weight for branch in self.branches]
        self.rng = rng if rng is not None else random.Random()
        # random.Random is not safe to share between threads without a lock.
        self._lock = threading.Lock()

    def choose(self) -> tuple[Branch, Operation]:
        """Pick a branch by weight, then an operation uniformly within it."""
        with self._lock:
            branch = self.rng.choices(self.branches, weights=self._weights, k=1)[0]
            operation = self.rng.choice(branch.operations)
        return branch, operation

    def run_once(
        self,
        transport: CatalogTransport,
        holder: CredentialHolder,
        report: RunReport | None = None,
    ) -> IterationResult:
        """
        Run one iteration of the workload.

        A :class:`~catalog_bench.exceptions.CatalogRequestError` marks the
        iteration as failed; any other exception propagates.
        """
        branch, operation = self.choose()
        token = holder.get()
        started = time.perf_counter()
        ok = True
        try:
            operation(transport, token)
        except CatalogRequestError as exc:
            ok = False
            logger.debug("%s / %s failed: %s", branch.name, operation.name, exc)
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        if report is not None:
            report.record(branch.name, operation.name, elapsed_ms, ok)
        return IterationResult(branch.name, operation.name, ok, elapsed_ms)


# (branch, operation name, action, record source, feeder kind)
READ_UPDATE_TABLE = [
    (READ, "Fetch all child namespaces", actions.fetch_all_children_namespaces,
     feeders.namespace_identity_records, "circular"),
    (READ, "Check Namespace Exists", actions.check_namespace_exists,
     feeders.namespace_identity_records, "circular"),
    (READ, "Fetch Namespace", actions.fetch_namespace,
     feeders.namespace_fetch_records, "circular"),
    (READ, "Fetch all tables under parent namespace", actions.fetch_all_tables,
     feeders.table_identity_records, "circular"),
    (READ, "Check Table Exists", actions.check_table_exists,
     feeders.table_identity_records, "circular"),
    (READ, "Fetch Table", actions.fetch_table,
     feeders.table_fetch_records, "circular"),
    (READ, "Fetch all views under parent namespace", actions.fetch_all_views,
     feeders.view_identity_records, "circular"),
    (READ, "Check View Exists", actions.check_view_exists,
     feeders.view_identity_records, "circular"),
    (READ, "Fetch View", actions.fetch_view,
     feeders.view_fetch_records, "circular"),
    (WRITE, "Update Namespace Properties", actions.update_namespace_properties,
     feeders.namespace_identity_records, "namespace_properties"),
    (WRITE, "Update table metadata", actions.update_table,
     feeders.table_identity_records, "table_properties"),
    (WRITE, "Update View metadata", actions.update_view,
     feeders.view_identity_records, "view_properties"),
]


def build_read_update_selector(
    dataset: TreeDataset,
    workload: WorkloadParameters,
    rng: random.Random | None = None,
) -> WorkloadSelector:
    """
    Build the read/update workload over a tree dataset.

    Every operation gets a fresh feeder, so two operations over the same
    entity type advance independently.  Operations whose entity type is
    empty in this dataset (e.g. no views) are left out.

    Args:
        dataset: Entities to target.
        workload: Supplies the read and write weights.
        rng: Random generator; defaults to one seeded from
            ``workload.seed``.
    """
    if rng is None:
        rng = random.Random(workload.seed)

    grouped: dict[str, list[Operation]] = {READ: [], WRITE: []}
    for branch, name, action, source, kind in READ_UPDATE_TABLE:
        records = source(dataset)
        if not records:
            logger.warning("Skipping %r: the dataset has no matching entities", name)
            continue
        if kind == "circular":
            feeder: Iterator[dict[str, Any]] = feeders.CircularFeeder(records, name=name)
        else:
            feeder = feeders.PropertyUpdateFeeder(
                records, slots=getattr(dataset.params, kind), name=name
            )
        grouped[branch].append(Operation(name, action, feeder))

    logger.info(
        "Read/write weights %.1f/%.1f over %d namespaces (%d read, %d write operations)",
        workload.read_ratio,
        workload.write_ratio,
        dataset.num_namespaces,
        len(grouped[READ]),
        len(grouped[WRITE]),
    )
    return WorkloadSelector(
        [
            Branch(READ, workload.read_ratio, grouped[READ]),
            Branch(WRITE, workload.write_ratio, grouped[WRITE]),
        ],
        rng=rng,
    )
