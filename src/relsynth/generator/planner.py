"""Plan builder — turns scenario count modes into concrete row counts.

Tables are planned in dependency order. Per-parent and many-to-many tables
read the already-resolved row count of the table they hang off, then draw
one count per parent (or left) row from the shared sampler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Sequence

from relsynth.errors import FkMismatchError
from relsynth.generator.context import GenerationContext
from relsynth.generator.relationship_preserver import RelationshipPreserver
from relsynth.source_loader.base import SchemaModel, TableSchema
from relsynth.source_loader.scenario import Scenario

logger = logging.getLogger(__name__)


class CountMode(str, Enum):
    """How a table's row count is determined."""

    FIXED = "count"
    PER_PARENT = "perParent"
    M2M = "m2m"


@dataclass(frozen=True)
class TablePlan:
    """Resolved plan for one table.

    Per-parent and per-left count tuples align by index with the referenced
    table's generated primary-key list.
    """

    table: str
    mode: CountMode
    row_count: int
    parent_table: Optional[str] = None
    parent_fk: tuple[str, ...] = ()
    parent_row_counts: tuple[int, ...] = ()
    left_table: Optional[str] = None
    left_fk: tuple[str, ...] = ()
    right_table: Optional[str] = None
    right_fk: tuple[str, ...] = ()
    per_left_counts: tuple[int, ...] = ()


@dataclass(frozen=True)
class GenerationPlan:
    seed: int
    table_order: tuple[str, ...]
    table_plans: Mapping[str, TablePlan]

    @property
    def total_rows(self) -> int:
        return sum(p.row_count for p in self.table_plans.values())

    def summary(self) -> list[dict]:
        """Per-table mode and row count, in generation order."""
        return [
            {
                "table": name,
                "mode": self.table_plans[name].mode.value,
                "row_count": self.table_plans[name].row_count,
            }
            for name in self.table_order
        ]


def validate_fk_columns(table_schema: TableSchema, ref_table: str, fk_columns: Sequence[str]) -> None:
    """Require fk_columns to equal, in order, a declared FK to ref_table."""
    candidates = table_schema.foreign_keys_to(ref_table)
    if any(list(fk.columns) == list(fk_columns) for fk in candidates):
        return
    raise FkMismatchError(
        table=table_schema.name,
        ref_table=ref_table,
        requested=list(fk_columns),
        available=[fk.columns for fk in candidates],
    )


class PlanBuilder:
    """Builds a GenerationPlan from a schema and scenario."""

    def __init__(self, schema: SchemaModel, scenario: Scenario):
        self.schema = schema
        self.scenario = scenario

    def scenario_tables(self) -> list[str]:
        """Scenario tables that exist in the schema, in scenario order."""
        tables = []
        for name in self.scenario.tables:
            if name in self.schema.tables:
                tables.append(name)
            else:
                logger.warning(f"Scenario table {name} is not in the schema; skipping")
        return tables

    def build(self, context: GenerationContext) -> GenerationPlan:
        """Resolve every table's count mode; records row counts on the context."""
        order = RelationshipPreserver(self.schema, self.scenario_tables()).get_generation_order()
        plans: dict[str, TablePlan] = {}

        for table_name in order:
            plan = self._plan_table(table_name, context)
            context.row_counts[table_name] = plan.row_count
            plans[table_name] = plan
            logger.debug(f"Planned {table_name}: {plan.row_count} rows ({plan.mode.value})")

        return GenerationPlan(
            seed=context.seed,
            table_order=tuple(order),
            table_plans=MappingProxyType(plans),
        )

    def _plan_table(self, table_name: str, context: GenerationContext) -> TablePlan:
        table_scenario = self.scenario.tables[table_name]
        table_schema = self.schema.tables[table_name]
        mode = CountMode(table_scenario.count_mode(table_name))

        if mode is CountMode.FIXED:
            return TablePlan(table=table_name, mode=mode, row_count=int(table_scenario.count))

        if mode is CountMode.PER_PARENT:
            pp = table_scenario.per_parent
            validate_fk_columns(table_schema, pp.parent, pp.fk)
            parent_count = context.row_counts.get(pp.parent, 0)
            counts = tuple(context.sampler.randint(pp.min, pp.max) for _ in range(parent_count))
            return TablePlan(
                table=table_name,
                mode=mode,
                row_count=sum(counts),
                parent_table=pp.parent,
                parent_fk=tuple(pp.fk),
                parent_row_counts=counts,
            )

        m2m = table_scenario.m2m
        if m2m.left.table == m2m.right.table:
            context.warn(f"{table_name}: m2m left and right both reference {m2m.left.table}")
        validate_fk_columns(table_schema, m2m.left.table, m2m.left.fk)
        validate_fk_columns(table_schema, m2m.right.table, m2m.right.fk)
        left_count = context.row_counts.get(m2m.left.table, 0)
        counts = tuple(context.sampler.randint(m2m.min, m2m.max) for _ in range(left_count))
        return TablePlan(
            table=table_name,
            mode=mode,
            row_count=sum(counts),
            left_table=m2m.left.table,
            left_fk=tuple(m2m.left.fk),
            right_table=m2m.right.table,
            right_fk=tuple(m2m.right.fk),
            per_left_counts=counts,
        )


def build_plan(schema: SchemaModel, scenario: Scenario, context: GenerationContext) -> GenerationPlan:
    return PlanBuilder(schema, scenario).build(context)
