"""Relationship preserver — generation order and key propagation.

Foreign keys define the dependency graph: a table is generated only after
every table it references, so the parent primary keys exist when child rows
need them. This module also owns the rules for extracting a row's primary
key and copying a parent key into a child's foreign-key columns.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from relsynth.errors import CyclicDependencyError
from relsynth.source_loader.base import SchemaModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FkEdge:
    """`source` has a foreign key referencing `target`."""

    source: str
    target: str


@dataclass
class TableDependency:
    """A table and its FK dependencies in the generation graph."""

    table_name: str
    depends_on: list[str] = field(default_factory=list)
    referenced_by: list[str] = field(default_factory=list)


def build_fk_edges(schema: SchemaModel) -> list[FkEdge]:
    """One edge per declared foreign key, in schema order."""
    return [
        FkEdge(source=table_name, target=fk.ref_table)
        for table_name, table in schema.tables.items()
        for fk in table.foreign_keys
    ]


def toposort(tables: Sequence[str], edges: Iterable[FkEdge]) -> list[str]:
    """Kahn's algorithm over the given tables.

    Edges touching tables outside `tables` and self-references are ignored.
    Ties break first-in-first-out by position in `tables`, so the order is
    reproducible for a given input order.
    """
    members = set(tables)
    in_degree = {t: 0 for t in tables}
    adjacency: dict[str, list[str]] = {t: [] for t in tables}

    for edge in edges:
        if edge.source not in members or edge.target not in members:
            continue
        if edge.source == edge.target:
            continue
        adjacency[edge.target].append(edge.source)
        in_degree[edge.source] += 1

    queue = deque(t for t in tables if in_degree[t] == 0)
    order: list[str] = []
    while queue:
        current = queue.popleft()
        order.append(current)
        for dependent in adjacency[current]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                queue.append(dependent)

    if len(order) != len(in_degree):
        emitted = set(order)
        raise CyclicDependencyError([t for t in tables if t not in emitted])

    return order


class RelationshipPreserver:
    """Dependency graph over the tables a scenario generates."""

    def __init__(self, schema: SchemaModel, tables: Sequence[str]):
        self.schema = schema
        self.tables = list(tables)
        self.edges = [
            e for e in build_fk_edges(schema)
            if e.source in self.tables and e.target in self.tables
        ]
        self.dependency_graph: dict[str, TableDependency] = {
            t: TableDependency(table_name=t) for t in self.tables
        }
        for edge in self.edges:
            if edge.source == edge.target:
                continue
            if edge.target not in self.dependency_graph[edge.source].depends_on:
                self.dependency_graph[edge.source].depends_on.append(edge.target)
                self.dependency_graph[edge.target].referenced_by.append(edge.source)

    def get_generation_order(self) -> list[str]:
        """Return table names with every referenced table before its referrers."""
        try:
            order = toposort(self.tables, self.edges)
        except CyclicDependencyError as exc:
            for table, depends_on in self.describe_cycle(exc.tables).items():
                logger.error(f"Unresolved table {table} depends on {depends_on}")
            raise
        logger.info(f"Generation order: {order}")
        return order

    def describe_cycle(self, tables: Iterable[str]) -> dict[str, list[str]]:
        """Dependencies among the given tables, as reported for a cycle."""
        stuck = set(tables)
        return {
            t: [d for d in self.dependency_graph[t].depends_on if d in stuck]
            for t in self.tables if t in stuck
        }


def extract_pk(row: dict[str, Any], primary_key: Sequence[str]) -> Any:
    """Scalar for single-column keys, tuple in declared order for composite keys."""
    if not primary_key:
        return None
    if len(primary_key) == 1:
        return row.get(primary_key[0])
    return tuple(row.get(col) for col in primary_key)


def assign_fk_values(row: dict[str, Any], fk_columns: Sequence[str], pk_value: Any) -> None:
    """Copy a parent key into the row's FK columns, positionally for composites."""
    if len(fk_columns) == 1:
        row[fk_columns[0]] = pk_value[0] if isinstance(pk_value, tuple) else pk_value
        return

    values = pk_value if isinstance(pk_value, tuple) else (pk_value,)
    for idx, column in enumerate(fk_columns):
        row[column] = values[idx] if idx < len(values) else None
