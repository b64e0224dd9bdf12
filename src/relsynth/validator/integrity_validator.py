"""Integrity validator — checks generated data against the schema's constraints.

Runs after generation over pandas DataFrames:
- primary keys are unique and non-null
- non-nullable columns hold no nulls
- every foreign-key tuple exists among the referenced table's keys
- range and relational check constraints hold
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

from relsynth.generator.constraints import parse_table_checks, validate_relational_constraints
from relsynth.source_loader.base import ForeignKeySpec, SchemaModel, TableSchema

logger = logging.getLogger(__name__)


@dataclass
class IntegrityCheckResult:
    """Outcome of one integrity check on one table."""

    table: str
    check: str
    passed: bool
    violations: int
    total_rows: int
    column: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "check": self.check,
            "column": self.column,
            "passed": self.passed,
            "violations": self.violations,
            "total_rows": self.total_rows,
        }


def _key_tuples(df: pd.DataFrame, columns: list[str]) -> set[tuple]:
    subset = df[columns].dropna()
    return set(subset.itertuples(index=False, name=None))


class IntegrityValidator:
    """Validates generated data against a SchemaModel."""

    def __init__(self, schema: SchemaModel):
        self.schema = schema

    def validate(self, data: dict[str, list[dict[str, Any]]]) -> list[IntegrityCheckResult]:
        frames = {
            name: pd.DataFrame.from_records(rows, columns=list(self.schema.tables[name].columns))
            for name, rows in data.items()
            if name in self.schema.tables
        }

        results: list[IntegrityCheckResult] = []
        for table_name, df in frames.items():
            table = self.schema.tables[table_name]
            results.extend(self._check_primary_key(table, df))
            results.extend(self._check_not_null(table, df))
            for fk in table.foreign_keys:
                result = self._check_foreign_key(table, fk, df, frames)
                if result is not None:
                    results.append(result)
            results.extend(self._check_constraints(table, df, data[table_name]))

        failed = [r for r in results if not r.passed]
        logger.info(f"Integrity: {len(results) - len(failed)}/{len(results)} checks passed")
        for r in failed:
            logger.warning(f"Integrity {r.table}.{r.check}: {r.violations}/{r.total_rows} rows")
        return results

    def _check_primary_key(self, table: TableSchema, df: pd.DataFrame) -> list[IntegrityCheckResult]:
        if not table.primary_key:
            return []
        pk = list(table.primary_key)
        label = ",".join(pk)
        null_count = int(df[pk].isna().any(axis=1).sum())
        dup_count = int(df[pk].duplicated().sum())
        return [
            IntegrityCheckResult(table.name, "pk_not_null", null_count == 0, null_count, len(df), label),
            IntegrityCheckResult(table.name, "pk_unique", dup_count == 0, dup_count, len(df), label),
        ]

    def _check_not_null(self, table: TableSchema, df: pd.DataFrame) -> list[IntegrityCheckResult]:
        results = []
        for col_name, column in table.columns.items():
            if column.nullable or col_name in table.primary_key:
                continue
            null_count = int(df[col_name].isna().sum())
            results.append(IntegrityCheckResult(
                table=table.name,
                check="not_null",
                passed=null_count == 0,
                violations=null_count,
                total_rows=len(df),
                column=col_name,
            ))
        return results

    def _check_foreign_key(
        self,
        table: TableSchema,
        fk: ForeignKeySpec,
        df: pd.DataFrame,
        frames: dict[str, pd.DataFrame],
    ) -> Optional[IntegrityCheckResult]:
        ref_df = frames.get(fk.ref_table)
        if ref_df is None:
            logger.debug(f"Skipping FK {fk.constraint_name}: {fk.ref_table} not generated")
            return None

        parent_keys = _key_tuples(ref_df, list(fk.ref_columns))
        child = df[list(fk.columns)].dropna()
        orphans = sum(1 for key in child.itertuples(index=False, name=None) if key not in parent_keys)
        return IntegrityCheckResult(
            table=table.name,
            check=f"fk:{fk.constraint_name}",
            passed=orphans == 0,
            violations=orphans,
            total_rows=len(df),
            column=",".join(fk.columns),
        )

    def _check_constraints(
        self,
        table: TableSchema,
        df: pd.DataFrame,
        rows: list[dict[str, Any]],
    ) -> list[IntegrityCheckResult]:
        if not table.checks:
            return []
        parsed = parse_table_checks(c.expression for c in table.checks)
        results = []

        for col_name, bound in parsed.ranges.items():
            if col_name not in df.columns:
                continue
            numeric = pd.to_numeric(df[col_name], errors="coerce")
            below = pd.Series(False, index=df.index)
            above = pd.Series(False, index=df.index)
            if bound.min is not None:
                below = numeric < bound.min if bound.min_inclusive else numeric <= bound.min
            if bound.max is not None:
                above = numeric > bound.max if bound.max_inclusive else numeric >= bound.max
            out_of_range = int((below | above).sum())
            results.append(IntegrityCheckResult(
                table=table.name,
                check="range",
                passed=out_of_range == 0,
                violations=out_of_range,
                total_rows=len(df),
                column=col_name,
            ))

        for constraint in parsed.relational:
            violated = sum(1 for row in rows if validate_relational_constraints(row, [constraint]))
            results.append(IntegrityCheckResult(
                table=table.name,
                check=f"relational:{constraint}",
                passed=violated == 0,
                violations=violated,
                total_rows=len(rows),
                column=constraint.left_column,
            ))
        return results
