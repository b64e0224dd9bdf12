"""Data fidelity validator — generated values vs. the scenario's declared shape.

Validates that generated columns follow the statistical shape the scenario
asked for: weighted distributions (chi-square goodness of fit) and configured
null rates (absolute tolerance).
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

from scipy import stats

from relsynth.config import GeneratorConfig, get_config
from relsynth.source_loader.scenario import Scenario

logger = logging.getLogger(__name__)


@dataclass
class ColumnFidelityResult:
    """Fidelity result for a single column."""

    table_name: str
    column_name: str
    score: float  # 0.0 to 1.0
    checks: dict[str, bool] = field(default_factory=dict)
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(self.checks.values())


class DistributionFidelityValidator:
    """Validates generated data against scenario distributions and null rates.

    Column-level checks:
    - Distribution goodness of fit (chi-square over positive-weight values)
    - Zero-weight values never generated
    - Null ratio within tolerance of the configured null rate

    Columns whose distribution is shadowed by an override are not checked
    for distribution fit, since overrides take priority during generation.
    """

    def __init__(self, scenario: Scenario, config: Optional[GeneratorConfig] = None):
        self.scenario = scenario
        self.config = config or get_config()

    def validate(self, data: dict[str, list[dict[str, Any]]]) -> list[ColumnFidelityResult]:
        results = []
        for table_name, table_scenario in self.scenario.tables.items():
            rows = data.get(table_name)
            if rows is None:
                continue

            columns = list(table_scenario.distributions)
            columns += [
                c for c, o in table_scenario.overrides.items()
                if o.null_rate is not None and c not in columns
            ]
            for col_name in columns:
                results.append(self._validate_column(table_name, col_name, rows))

        failed = [r for r in results if not r.passed]
        logger.info(f"Fidelity: {len(results) - len(failed)}/{len(results)} columns within tolerance")
        return results

    def _validate_column(
        self, table_name: str, col_name: str, rows: list[dict[str, Any]]
    ) -> ColumnFidelityResult:
        table_scenario = self.scenario.tables[table_name]
        override = table_scenario.overrides.get(col_name)
        weights = table_scenario.distributions.get(col_name)
        values = [row.get(col_name) for row in rows]

        checks = {}
        details = {}

        # Distribution fit
        shadowed = override is not None and (
            override.has_fixed or override.one_of is not None or override.value_range is not None
        )
        if weights and not shadowed:
            observed = Counter(v for v in values if v is not None)
            positive = [k for k, w in weights.items() if w > 0]
            zero_weight_hits = sum(observed[k] for k, w in weights.items() if w <= 0)
            unexpected = sum(n for v, n in observed.items() if v not in weights)
            checks["declared_values_only"] = zero_weight_hits == 0 and unexpected == 0
            details["zero_weight_hits"] = zero_weight_hits
            details["unexpected_values"] = unexpected

            n = sum(observed[k] for k in positive)
            if n > 0 and len(positive) > 1:
                total_weight = sum(weights[k] for k in positive)
                f_obs = [observed[k] for k in positive]
                f_exp = [n * weights[k] / total_weight for k in positive]
                statistic, p_value = stats.chisquare(f_obs, f_exp)
                checks["distribution"] = bool(p_value >= self.config.distribution_p_threshold)
                details["chi_square"] = round(float(statistic), 4)
                details["p_value"] = round(float(p_value), 6)
                details["observed"] = dict(zip(positive, f_obs))

        # Null ratio check
        if override is not None and override.null_rate is not None:
            null_ratio = sum(1 for v in values if v is None) / len(values) if values else 0.0
            checks["null_ratio"] = abs(null_ratio - override.null_rate) <= self.config.null_rate_tolerance
            details["null_ratio_expected"] = override.null_rate
            details["null_ratio_actual"] = round(null_ratio, 4)

        # Score: fraction of checks that passed
        passed = sum(1 for v in checks.values() if v)
        score = passed / len(checks) if checks else 1.0

        return ColumnFidelityResult(
            table_name=table_name,
            column_name=col_name,
            score=score,
            checks=checks,
            details=details,
        )
