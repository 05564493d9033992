"""
Deterministic tree-shaped catalog dataset.

Namespaces form a complete N-ary tree addressed by ordinal: the root is
``0`` and the children of node ``n`` are ``n*w+1 .. n*w+w``.  Every node
``n`` is named ``NS_<n>`` and its namespace identifier is the path of
names from the root down to it.  Tables and views are only created in
leaf namespaces and are numbered globally across leaves, so a dataset
described by the same parameters always contains the same entities.

The benchmark assumes the dataset already exists in the catalog; this
module only describes it.
"""

from __future__ import annotations

from collections.abc import Iterator

from catalog_bench.config import DatasetParameters


class NAryTree:
    """Ordinal arithmetic for a complete tree of a given width and depth."""

    def __init__(self, width: int, depth: int) -> None:
        if width < 1 or depth < 1:
            raise ValueError("width and depth must both be >= 1")
        self.width = width
        self.depth = depth

    @property
    def number_of_nodes(self) -> int:
        return sum(self.width**level for level in range(self.depth))

    def _check(self, ordinal: int) -> None:
        if not 0 <= ordinal < self.number_of_nodes:
            raise IndexError(f"node {ordinal} is outside a tree of {self.number_of_nodes} nodes")

    def parent(self, ordinal: int) -> int | None:
        """Return the parent ordinal, or ``None`` for the root."""
        self._check(ordinal)
        if ordinal == 0:
            return None
        return (ordinal - 1) // self.width

    def depth_of(self, ordinal: int) -> int:
        """Level of *ordinal*, the root being level 0."""
        return len(self.path_to_root(ordinal)) - 1

    def is_leaf(self, ordinal: int) -> bool:
        return self.depth_of(ordinal) == self.depth - 1

    def children(self, ordinal: int) -> list[int]:
        self._check(ordinal)
        if self.is_leaf(ordinal):
            return []
        first = ordinal * self.width + 1
        return list(range(first, first + self.width))

    def path_to_root(self, ordinal: int) -> list[int]:
        """Ordinals from the root down to *ordinal*, both included."""
        path = []
        node: int | None = ordinal
        while node is not None:
            path.append(node)
            node = self.parent(node)
        path.reverse()
        return path

    def leaves(self) -> list[int]:
        """Walk down from the root one level at a time; the last level is the leaves."""
        level = [0]
        while True:
            below = [child for node in level for child in self.children(node)]
            if not below:
                return level
            level = below


class TableIdentity:
    """A table (or view) name together with the namespace that holds it."""

    def __init__(self, ordinal: int, name: str, namespace: list[str]) -> None:
        self.ordinal = ordinal
        self.name = name
        self.namespace = namespace

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TableIdentity):
            return NotImplemented
        return (self.ordinal, self.name, self.namespace) == (
            other.ordinal,
            other.name,
            other.namespace,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({'.'.join(self.namespace)}.{self.name})"


class TreeDataset:
    """
    All entities described by a :class:`DatasetParameters` instance.

    Example:
        A width-2, depth-3 tree has 7 namespaces; its 4 leaves
        (``NS_3`` .. ``NS_6``) each hold ``tables_per_namespace``
        tables, so with 5 tables per leaf the dataset has 20 tables
        named ``T_0`` .. ``T_19``.
    """

    def __init__(self, params: DatasetParameters) -> None:
        self.params = params
        self.tree = NAryTree(params.namespace_width, params.namespace_depth)

    @property
    def catalog_name(self) -> str:
        return self.params.catalog_name

    @property
    def num_namespaces(self) -> int:
        return self.tree.number_of_nodes

    def namespace(self, ordinal: int) -> list[str]:
        """Namespace identifier (multi-level) of node *ordinal*."""
        return [f"NS_{node}" for node in self.tree.path_to_root(ordinal)]

    def namespaces(self) -> Iterator[list[str]]:
        for ordinal in range(self.num_namespaces):
            yield self.namespace(ordinal)

    def namespace_properties(self) -> dict[str, str]:
        return {
            f"InitialAttribute_{i}": str(i)
            for i in range(self.params.namespace_properties)
        }

    def table_properties(self) -> dict[str, str]:
        return {f"InitialAttribute_{i}": str(i) for i in range(self.params.table_properties)}

    def view_properties(self) -> dict[str, str]:
        return {f"InitialAttribute_{i}": str(i) for i in range(self.params.view_properties)}

    def _entities(self, prefix: str, per_namespace: int, cap: int) -> list[TableIdentity]:
        entities: list[TableIdentity] = []
        ordinal = 0
        for leaf in self.tree.leaves():
            namespace = self.namespace(leaf)
            for _ in range(per_namespace):
                if cap != -1 and ordinal >= cap:
                    return entities
                entities.append(TableIdentity(ordinal, f"{prefix}_{ordinal}", namespace))
                ordinal += 1
        return entities

    def tables(self) -> list[TableIdentity]:
        return self._entities("T", self.params.tables_per_namespace, self.params.max_tables)

    def views(self) -> list[TableIdentity]:
        return self._entities("V", self.params.views_per_namespace, self.params.max_views)
