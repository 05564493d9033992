"""
Unit tests for weighted workload selection.

Key SDET Concepts Demonstrated:
- Statistical assertions with seeded generators for reproducibility
- Recording fakes to inspect which requests would have been sent
- Independence of per-operation feeders
"""

from __future__ import annotations

import random
from collections import Counter

import pytest

from catalog_bench.config import DatasetParameters, WorkloadParameters
from catalog_bench.credentials import CredentialHolder
from catalog_bench.dataset import TreeDataset
from catalog_bench.feeders import CircularFeeder
from catalog_bench.report import RunReport
from catalog_bench.selector import (
    READ,
    WRITE,
    Branch,
    Operation,
    WorkloadSelector,
    build_read_update_selector,
)

pytestmark = pytest.mark.unit

READ_OPERATIONS = {
    "Fetch all child namespaces",
    "Check Namespace Exists",
    "Fetch Namespace",
    "Fetch all tables under parent namespace",
    "Check Table Exists",
    "Fetch Table",
    "Fetch all views under parent namespace",
    "Check View Exists",
    "Fetch View",
}
WRITE_OPERATIONS = {
    "Update Namespace Properties",
    "Update table metadata",
    "Update View metadata",
}


def _ten_namespace_dataset() -> TreeDataset:
    return TreeDataset(
        DatasetParameters(
            catalog_name="C_0",
            namespace_width=9,
            namespace_depth=2,
            tables_per_namespace=2,
            max_tables=-1,
            views_per_namespace=2,
            max_views=-1,
            namespace_properties=3,
            table_properties=3,
            view_properties=3,
        )
    )


def _workload(ratio: float) -> WorkloadParameters:
    return WorkloadParameters(read_write_ratio=ratio, throughput=1, duration_minutes=1)


def test_selector_builds_nine_reads_and_three_writes(dataset):
    selector = build_read_update_selector(dataset, _workload(0.5), rng=random.Random(1))

    branches = {branch.name: branch for branch in selector.branches}

    assert {op.name for op in branches[READ].operations} == READ_OPERATIONS
    assert {op.name for op in branches[WRITE].operations} == WRITE_OPERATIONS
    assert branches[READ].weight == pytest.approx(50.0)


def test_seventy_thirty_split_over_thousand_iterations(recording_transport):
    # Arrange
    dataset = _ten_namespace_dataset()
    assert dataset.num_namespaces == 10
    selector = build_read_update_selector(dataset, _workload(0.7), rng=random.Random(42))
    holder = CredentialHolder(token="t")
    report = RunReport()

    # Act
    for _ in range(1000):
        selector.run_once(recording_transport, holder, report)

    # Assert: binomial sd is about 14.5, so 60 is > 4 sd.
    counts = report.branch_counts()
    assert counts[READ] + counts[WRITE] == 1000
    assert abs(counts[READ] - 700) <= 60
    assert abs(counts[WRITE] - 300) <= 60


@pytest.mark.parametrize("ratio", [0.1, 0.5, 0.9])
def test_observed_split_converges_to_ratio(ratio):
    selector = build_read_update_selector(
        _ten_namespace_dataset(), _workload(ratio), rng=random.Random(2024)
    )

    branches = Counter(selector.choose()[0].name for _ in range(20000))

    assert branches[READ] / 20000 == pytest.approx(ratio, abs=0.02)


@pytest.mark.parametrize(("ratio", "only"), [(1.0, READ), (0.0, WRITE)])
def test_extreme_ratios_use_one_branch(ratio, only):
    selector = build_read_update_selector(
        _ten_namespace_dataset(), _workload(ratio), rng=random.Random(3)
    )

    assert {selector.choose()[0].name for _ in range(500)} == {only}


def test_operations_are_uniform_within_branch():
    selector = build_read_update_selector(
        _ten_namespace_dataset(), _workload(1.0), rng=random.Random(11)
    )

    counts = Counter(selector.choose()[1].name for _ in range(9000))

    assert set(counts) == READ_OPERATIONS
    assert all(abs(count - 1000) < 150 for count in counts.values())


def test_seeded_selectors_make_identical_choices():
    first = build_read_update_selector(_ten_namespace_dataset(), _workload(0.7), rng=random.Random(5))
    second = build_read_update_selector(_ten_namespace_dataset(), _workload(0.7), rng=random.Random(5))

    assert [first.choose()[1].name for _ in range(200)] == [
        second.choose()[1].name for _ in range(200)
    ]


def test_each_operation_walks_its_own_feeder(recording_transport):
    # Arrange: a read-only workload over the namespaces of a 10-node tree.
    selector = build_read_update_selector(
        _ten_namespace_dataset(), _workload(1.0), rng=random.Random(0)
    )
    read_branch = next(b for b in selector.branches if b.name == READ)
    by_name = {op.name: op for op in read_branch.operations}

    # Act: advance "Check Namespace Exists" but not "Fetch Namespace".
    for _ in range(3):
        by_name["Check Namespace Exists"](recording_transport, "t")
    by_name["Fetch Namespace"](recording_transport, "t")

    # Assert: the fetch still starts at the root namespace.
    assert recording_transport.calls[-1][1] == "/api/catalog/v1/C_0/namespaces/NS_0"


def test_token_is_read_from_holder_at_call_time(recording_transport, dataset):
    selector = build_read_update_selector(dataset, _workload(0.5), rng=random.Random(9))
    holder = CredentialHolder(token="old")

    selector.run_once(recording_transport, holder)
    holder.set("new")
    selector.run_once(recording_transport, holder)

    assert [call[3] for call in recording_transport.calls] == ["old", "new"]


def test_failed_operation_is_recorded_not_raised(recording_transport):
    # Arrange
    recording_transport.fail_names.add("Fetch Namespace")
    operation = Operation(
        "Fetch Namespace",
        lambda transport, token, record: transport.request(
            "GET", "/x", name="Fetch Namespace", token=token
        ),
        CircularFeeder([{"id": 1}]),
    )
    selector = WorkloadSelector([Branch(READ, 1, [operation])], rng=random.Random(0))
    report = RunReport()

    # Act
    result = selector.run_once(recording_transport, CredentialHolder("t"), report)

    # Assert
    assert result.ok is False
    assert report.failures == 1
    assert report.operations["Fetch Namespace"].branch == READ


def test_write_operations_send_property_updates(recording_transport):
    selector = build_read_update_selector(
        _ten_namespace_dataset(), _workload(0.0), rng=random.Random(1)
    )

    for _ in range(30):
        selector.run_once(recording_transport, CredentialHolder("t"))

    posts = [call for call in recording_transport.calls if call[0] == "POST"]
    assert len(posts) == 30
    ns_updates = [c for c in posts if c[2] == "Update Namespace Properties"]
    assert ns_updates
    assert ns_updates[0][4]["json"]["updates"] == {"UpdatedAttribute_0": "0"}
    table_updates = [c for c in posts if c[2] == "Update table metadata"]
    assert table_updates[0][4]["json"]["updates"][0]["action"] == "set-properties"


def test_empty_entity_types_are_skipped():
    dataset = TreeDataset(
        DatasetParameters("C_0", 2, 2, 0, -1, 0, -1, 1, 1, 1)
    )

    selector = build_read_update_selector(dataset, _workload(0.5), rng=random.Random(1))

    names = {op.name for branch in selector.branches for op in branch.operations}
    assert names == {
        "Fetch all child namespaces",
        "Check Namespace Exists",
        "Fetch Namespace",
        "Update Namespace Properties",
    }


def test_selector_rejects_zero_total_weight():
    op = Operation("noop", lambda *args: {}, CircularFeeder([{}]))

    with pytest.raises(ValueError):
        WorkloadSelector([Branch(READ, 0, [op]), Branch(WRITE, 0, [op])])


def test_branch_with_weight_needs_operations():
    with pytest.raises(ValueError):
        Branch(WRITE, 10, [])
