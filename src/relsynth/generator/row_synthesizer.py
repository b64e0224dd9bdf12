"""Row synthesizer — materializes rows for every planned table.

Tables are produced strictly in plan order. After each table, its primary
keys are recorded on the context so later tables can point at them.

Per-row column values are resolved in a fixed priority order (first match
wins): fixed override, one-of override, range override, declared
distribution, native enum values, type-driven default. Null injection,
coherence rules, foreign-key assignment and relational-constraint repair
follow in that order.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

from relsynth.errors import UnrepairableConstraintError
from relsynth.generator.constraints import (
    ParsedCheckConstraint,
    fix_relational_constraints,
    parse_table_checks,
)
from relsynth.generator.context import GenerationContext
from relsynth.generator.planner import CountMode, GenerationPlan, TablePlan
from relsynth.generator.relationship_preserver import assign_fk_values, extract_pk
from relsynth.generator.value_generators import (
    ColumnRequest,
    generate_default_value,
    is_integer_type,
)
from relsynth.source_loader.base import ColumnSpec, SchemaModel, TableSchema
from relsynth.source_loader.scenario import AUTO_NOT_NULL, Scenario, TableScenario

logger = logging.getLogger(__name__)

GeneratedRow = dict[str, Any]
GeneratedData = dict[str, list[GeneratedRow]]


@dataclass
class _TableState:
    schema: TableSchema
    scenario: TableScenario
    checks: ParsedCheckConstraint
    unrepaired: Counter = field(default_factory=Counter)


def _same_value(actual: Any, expected: Any) -> bool:
    """Equality that does not conflate booleans with 0/1."""
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def matches_condition(row: GeneratedRow, condition: dict[str, Any]) -> bool:
    """Exact-equality match. Dotted (cross-table) keys never match."""
    for key, expected in condition.items():
        if "." in key:
            return False
        if key not in row or not _same_value(row[key], expected):
            return False
    return True


class RowSynthesizer:
    """Generates rows for a plan, threading keys through the context."""

    def __init__(
        self,
        schema: SchemaModel,
        scenario: Scenario,
        plan: GenerationPlan,
        context: GenerationContext,
    ):
        self.schema = schema
        self.scenario = scenario
        self.plan = plan
        self.context = context

    def synthesize(self) -> GeneratedData:
        data: GeneratedData = {}
        for table_name in self.plan.table_order:
            table_plan = self.plan.table_plans[table_name]
            rows = self._generate_table(table_plan)
            primary_key = self.schema.tables[table_name].primary_key
            self.context.primary_keys[table_name] = [extract_pk(row, primary_key) for row in rows]
            data[table_name] = rows
            logger.info(f"Generated {len(rows)} rows for {table_name} ({table_plan.mode.value})")

        logger.info(f"Generated {sum(len(r) for r in data.values())} rows across {len(data)} tables")
        return data

    # ------------------------------------------------------------------ #
    #  Tables
    # ------------------------------------------------------------------ #

    def _generate_table(self, table_plan: TablePlan) -> list[GeneratedRow]:
        table_schema = self.schema.tables[table_plan.table]
        state = _TableState(
            schema=table_schema,
            scenario=self.scenario.tables.get(table_plan.table) or TableScenario(),
            checks=parse_table_checks(c.expression for c in table_schema.checks),
        )

        if table_plan.mode is CountMode.PER_PARENT:
            rows = self._generate_per_parent(state, table_plan)
        elif table_plan.mode is CountMode.M2M:
            rows = self._generate_m2m(state, table_plan)
        else:
            rows = [self._finish_row(state, self.generate_row(state, i)) for i in range(table_plan.row_count)]

        for constraint, count in state.unrepaired.items():
            if self.context.config.strict_constraints:
                raise UnrepairableConstraintError(table_plan.table, constraint, count)
            self.context.warn(
                f"{table_plan.table}: {count} row(s) violate '{constraint}', which has no repair rule"
            )
        return rows

    def _generate_per_parent(self, state: _TableState, table_plan: TablePlan) -> list[GeneratedRow]:
        parent_pks = self.context.primary_keys.get(table_plan.parent_table, [])
        counts = table_plan.parent_row_counts
        rows = []
        row_index = 0
        for idx, parent_pk in enumerate(parent_pks):
            count = counts[idx] if idx < len(counts) else 0
            for _ in range(count):
                row = self.generate_row(state, row_index)
                assign_fk_values(row, table_plan.parent_fk, parent_pk)
                rows.append(self._finish_row(state, row))
                row_index += 1
        return rows

    def _generate_m2m(self, state: _TableState, table_plan: TablePlan) -> list[GeneratedRow]:
        left_pks = self.context.primary_keys.get(table_plan.left_table, [])
        right_pks = self.context.primary_keys.get(table_plan.right_table, [])
        counts = table_plan.per_left_counts

        if not right_pks:
            self.context.warn(f"{table_plan.table}: no rows in {table_plan.right_table} for m2m")

        rows = []
        row_index = 0
        capped = 0
        for idx, left_pk in enumerate(left_pks):
            count = counts[idx] if idx < len(counts) else 0
            if right_pks and count > len(right_pks):
                capped += 1
            selected = self.context.sampler.sample(right_pks, min(count, len(right_pks)))
            for right_pk in selected:
                row = self.generate_row(state, row_index)
                assign_fk_values(row, table_plan.left_fk, left_pk)
                assign_fk_values(row, table_plan.right_fk, right_pk)
                rows.append(self._finish_row(state, row))
                row_index += 1

        if capped:
            self.context.warn(
                f"{table_plan.table}: {capped} {table_plan.left_table} row(s) requested more "
                f"{table_plan.right_table} rows than the {len(right_pks)} available; capped"
            )
        return rows

    def _finish_row(self, state: _TableState, row: GeneratedRow) -> GeneratedRow:
        for constraint in fix_relational_constraints(row, state.checks.relational):
            state.unrepaired[str(constraint)] += 1
        return row

    # ------------------------------------------------------------------ #
    #  Rows
    # ------------------------------------------------------------------ #

    def generate_row(self, state: _TableState, row_index: int) -> GeneratedRow:
        """Resolve every column in declared order, then apply rules."""
        row: GeneratedRow = {}
        primary_key = state.schema.primary_key
        for col_name, column in state.schema.columns.items():
            is_pk = column.is_primary_key or col_name in primary_key
            row[col_name] = self._resolve_column(state, column, is_pk, row_index)
        self._apply_rules(state, row, row_index)
        return row

    def _resolve_column(
        self,
        state: _TableState,
        column: ColumnSpec,
        is_pk: bool,
        row_index: int,
    ) -> Any:
        sampler = self.context.sampler
        override = state.scenario.overrides.get(column.name)
        distribution = state.scenario.distributions.get(column.name)

        if override is not None and override.has_fixed:
            value = copy.deepcopy(override.fixed)
        elif override is not None and override.one_of is not None:
            value = sampler.pick(override.one_of)
        elif override is not None and override.value_range is not None:
            low, high = override.value_range.min, override.value_range.max
            if is_integer_type(column.db_type):
                value = sampler.randint(low, high)
            else:
                value = sampler.uniform(low, high)
        elif distribution is not None:
            value = sampler.weighted_pick(distribution)
        elif column.enum_values:
            value = sampler.pick(column.enum_values)
        else:
            value = generate_default_value(
                self.context,
                ColumnRequest(column, row_index, is_pk, state.checks.ranges.get(column.name)),
            )

        if (
            override is not None
            and override.null_rate is not None
            and column.nullable
            and sampler.bernoulli(override.null_rate)
        ):
            value = None

        if (
            value is not None
            and column.nullable
            and not is_pk
            and override is None
            and sampler.bernoulli(self.context.config.ambient_null_rate)
        ):
            value = None

        return value

    def _apply_rules(self, state: _TableState, row: GeneratedRow, row_index: int) -> None:
        for rule in state.scenario.rules:
            if not matches_condition(row, rule.condition):
                continue
            for col_name, value in rule.assignments.items():
                if isinstance(value, str) and value == AUTO_NOT_NULL:
                    column = state.schema.columns.get(col_name)
                    if column is None:
                        logger.debug(f"Rule targets unknown column {state.schema.name}.{col_name}")
                        continue
                    row[col_name] = generate_default_value(
                        self.context,
                        ColumnRequest(column, row_index, False, state.checks.ranges.get(col_name)),
                    )
                else:
                    row[col_name] = value


def generate_rows(
    schema: SchemaModel,
    scenario: Scenario,
    plan: GenerationPlan,
    context: GenerationContext,
) -> GeneratedData:
    return RowSynthesizer(schema, scenario, plan, context).synthesize()
