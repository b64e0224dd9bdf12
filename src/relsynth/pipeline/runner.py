"""Generation runner — orchestrates the full relsynth workflow in process.

Takes a schema and scenario, builds a per-run generation context, then runs
each stage in order:
  Plan → Generate

A dry run stops after planning so callers can inspect the resolved table
order and row counts without materializing any rows.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import pandas as pd

from relsynth.config import GeneratorConfig, get_config
from relsynth.errors import GenerationError
from relsynth.generator.context import GenerationContext
from relsynth.generator.planner import GenerationPlan, PlanBuilder
from relsynth.generator.row_synthesizer import GeneratedData, RowSynthesizer
from relsynth.source_loader.base import SchemaModel
from relsynth.source_loader.scenario import Scenario

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    """Generation run status."""

    PENDING = "pending"
    PLANNING = "planning"
    GENERATING = "generating"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class GenerationResult:
    """Complete result of a generation run."""

    status: GenerationStatus
    seed: Optional[int] = None
    dry_run: bool = False
    table_order: list[str] = field(default_factory=list)
    plan: Optional[GenerationPlan] = None
    data: GeneratedData = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    total_duration_seconds: float = 0.0
    error: Optional[str] = None
    exception: Optional[GenerationError] = field(default=None, repr=False)

    @property
    def total_rows(self) -> int:
        return sum(len(rows) for rows in self.data.values())

    def plan_summary(self) -> list[dict]:
        """Resolved mode and row count per table, in generation order."""
        return self.plan.summary() if self.plan else []

    def raise_for_status(self) -> None:
        """Re-raise the stored error of a failed run."""
        if self.status == GenerationStatus.FAILED and self.exception is not None:
            raise self.exception

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {
            "status": self.status.value,
            "seed": self.seed,
            "dry_run": self.dry_run,
            "table_order": list(self.table_order),
            "tables": self.plan_summary(),
            "rows_generated": self.total_rows,
            "warnings": list(self.warnings),
            "total_duration_seconds": round(self.total_duration_seconds, 3),
            "error": self.error,
        }

    def to_dataframes(self, schema: SchemaModel) -> dict[str, pd.DataFrame]:
        """Generated rows as DataFrames, columns in schema declaration order."""
        frames = {}
        for table_name in self.table_order:
            columns = list(schema.tables[table_name].columns)
            rows = self.data.get(table_name, [])
            frames[table_name] = pd.DataFrame.from_records(rows, columns=columns)
        return frames


class GenerationRunner:
    """Runs plan and row synthesis for one schema/scenario pair per call.

    Each call builds its own GenerationContext, so a runner can be reused
    across scenarios without carrying state between them.
    """

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or get_config()

    def plan(
        self,
        schema: SchemaModel,
        scenario: Scenario,
        anchor: Optional[datetime] = None,
    ) -> tuple[GenerationPlan, GenerationContext]:
        """Resolve table order and row counts. Raises GenerationError."""
        context = GenerationContext.create(
            seed=scenario.seed,
            lookback_days=scenario.lookback_days,
            anchor=anchor,
            config=self.config,
        )
        plan = PlanBuilder(schema, scenario).build(context)
        return plan, context

    def run(
        self,
        schema: SchemaModel,
        scenario: Scenario,
        dry_run: bool = False,
        anchor: Optional[datetime] = None,
        on_status_change: Optional[Callable[[GenerationStatus, str], None]] = None,
    ) -> GenerationResult:
        """Execute planning and, unless dry_run, row synthesis.

        Args:
            schema: Table definitions and key constraints.
            scenario: Count modes and value shaping per table.
            dry_run: Stop after planning.
            anchor: End of the date window; defaults to midnight UTC today.
            on_status_change: Optional callback for status updates.

        Returns:
            GenerationResult; failures are reported with status FAILED and
            no generated data.
        """
        start_time = time.time()
        result = GenerationResult(status=GenerationStatus.PENDING, dry_run=dry_run)

        def update_status(status: GenerationStatus, message: str = ""):
            result.status = status
            logger.info(f"Generation [{status.value}]: {message}")
            if on_status_change:
                on_status_change(status, message)

        try:
            # ---- Stage 1: Plan ---- #
            update_status(GenerationStatus.PLANNING, f"Planning {len(scenario.tables)} tables")
            plan, context = self.plan(schema, scenario, anchor=anchor)
            result.seed = plan.seed
            result.plan = plan
            result.table_order = list(plan.table_order)

            if dry_run:
                result.warnings = list(context.warnings)
                result.total_duration_seconds = time.time() - start_time
                update_status(GenerationStatus.COMPLETE, f"Dry run: {plan.total_rows} rows planned")
                return result

            # ---- Stage 2: Generate ---- #
            update_status(GenerationStatus.GENERATING, f"Generating {plan.total_rows} rows")
            data = RowSynthesizer(schema, scenario, plan, context).synthesize()

            # ---- Complete ---- #
            result.data = data
            result.warnings = list(context.warnings)
            result.total_duration_seconds = time.time() - start_time
            update_status(
                GenerationStatus.COMPLETE,
                f"{result.total_rows} rows in {result.total_duration_seconds:.2f}s (seed {plan.seed})",
            )

        except GenerationError as e:
            result.status = GenerationStatus.FAILED
            result.error = str(e)
            result.exception = e
            result.data = {}
            result.total_duration_seconds = time.time() - start_time
            logger.error(f"Generation failed: {e}")
            if on_status_change:
                on_status_change(GenerationStatus.FAILED, str(e))

        return result


def generate(
    schema: SchemaModel,
    scenario: Scenario,
    anchor: Optional[datetime] = None,
    config: Optional[GeneratorConfig] = None,
) -> GeneratedData:
    """Generate all scenario tables, raising on any failure."""
    result = GenerationRunner(config).run(schema, scenario, anchor=anchor)
    result.raise_for_status()
    return result.data
