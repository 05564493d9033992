"""
Record feeders for workload operations.

A feeder hands out one record per operation.  Read operations use a
:class:`CircularFeeder` over a fixed list of entities, so repeated
iterations walk through the dataset in a fixed order and wrap around.
Write operations use a :class:`PropertyUpdateFeeder`, which cycles over
the same entities but attaches a fresh property update to every record.

Every operation gets its *own* feeder instance: listing tables and
checking that a table exists walk the table list independently.

Records are plain dicts so they can be logged and passed straight to the
catalog actions.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator, Sequence
from typing import Any

from catalog_bench.dataset import TreeDataset

Record = dict[str, Any]


class CircularFeeder:
    """
    Thread-safe round-robin iterator over a fixed sequence of records.

    After ``len(records)`` draws the feeder is back at the first record.
    Each draw returns a shallow copy so callers may annotate the record
    without corrupting the dataset.
    """

    def __init__(self, records: Sequence[Record], name: str = "feeder") -> None:
        if not records:
            raise ValueError(f"{name} has no records to feed")
        self.name = name
        self._records = list(records)
        self._position = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return self

    def __next__(self) -> Record:
        with self._lock:
            record = self._records[self._position]
            self._position = (self._position + 1) % len(self._records)
        return dict(record)


class PropertyUpdateFeeder:
    """
    Infinite stream of property updates over a fixed list of entities.

    The n-th draw targets entity ``n % len(records)`` and sets
    ``UpdatedAttribute_<n % slots>`` to ``str(n)``, so every update
    actually changes the entity and the set of touched keys stays
    bounded.
    """

    def __init__(self, records: Sequence[Record], slots: int = 1, name: str = "updates") -> None:
        self.name = name
        self._entities = CircularFeeder(records, name=name)
        self._slots = max(1, slots)
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Record]:
        return self

    def __next__(self) -> Record:
        with self._lock:
            n = next(self._counter)
            record = next(self._entities)
        record["updates"] = {f"UpdatedAttribute_{n % self._slots}": str(n)}
        return record


def namespace_identity_records(dataset: TreeDataset) -> list[Record]:
    return [
        {
            "catalog": dataset.catalog_name,
            "ordinal": ordinal,
            "namespace": dataset.namespace(ordinal),
        }
        for ordinal in range(dataset.num_namespaces)
    ]


def namespace_fetch_records(dataset: TreeDataset) -> list[Record]:
    properties = dataset.namespace_properties()
    return [
        dict(record, properties=dict(properties))
        for record in namespace_identity_records(dataset)
    ]


def table_identity_records(dataset: TreeDataset) -> list[Record]:
    return [
        {
            "catalog": dataset.catalog_name,
            "ordinal": table.ordinal,
            "namespace": table.namespace,
            "table": table.name,
        }
        for table in dataset.tables()
    ]


def table_fetch_records(dataset: TreeDataset) -> list[Record]:
    properties = dataset.table_properties()
    return [
        dict(record, properties=dict(properties))
        for record in table_identity_records(dataset)
    ]


def view_identity_records(dataset: TreeDataset) -> list[Record]:
    return [
        {
            "catalog": dataset.catalog_name,
            "ordinal": view.ordinal,
            "namespace": view.namespace,
            "view": view.name,
        }
        for view in dataset.views()
    ]


def view_fetch_records(dataset: TreeDataset) -> list[Record]:
    properties = dataset.view_properties()
    return [
        dict(record, properties=dict(properties))
        for record in view_identity_records(dataset)
    ]
