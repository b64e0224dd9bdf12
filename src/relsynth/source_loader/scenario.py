"""Scenario types — how many rows each table gets and how values are shaped.

Each table scenario selects one count mode (fixed count, per-parent, or
many-to-many). The selection is resolved by the plan builder, which raises
when a table declares none or several.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from relsynth.errors import MissingCountModeError, MultipleCountModesError

# Rule assignment value meaning "synthesize a guaranteed non-null value"
AUTO_NOT_NULL = "__AUTO_NOT_NULL__"


@dataclass
class PerParentSpec:
    """One-to-many: each parent row yields between min and max child rows."""

    parent: str
    fk: list[str]
    min: int
    max: int


@dataclass
class M2MSide:
    table: str
    fk: list[str]


@dataclass
class M2MSpec:
    """Bridge table: each left row links to between min and max right rows."""

    left: M2MSide
    right: M2MSide
    min: int
    max: int


@dataclass
class ValueRange:
    min: float
    max: float


@dataclass
class ColumnOverride:
    """Per-column override. At most one of fixed / one_of / value_range is meaningful."""

    fixed: Any = None
    has_fixed: bool = False
    one_of: Optional[list[Any]] = None
    value_range: Optional[ValueRange] = None
    null_rate: Optional[float] = None


@dataclass
class Rule:
    """Coherence rule: when every condition matches, apply the assignments."""

    assignments: dict[str, Any]
    condition: dict[str, Any] = field(default_factory=dict)


@dataclass
class TableScenario:
    count: Optional[int] = None
    per_parent: Optional[PerParentSpec] = None
    m2m: Optional[M2MSpec] = None
    distributions: dict[str, dict[Any, float]] = field(default_factory=dict)
    overrides: dict[str, ColumnOverride] = field(default_factory=dict)
    rules: list[Rule] = field(default_factory=list)

    def count_mode(self, table: str) -> str:
        """Return the single configured count mode name."""
        modes = [
            name
            for name, value in (("count", self.count), ("perParent", self.per_parent), ("m2m", self.m2m))
            if value is not None
        ]
        if not modes:
            raise MissingCountModeError(table)
        if len(modes) > 1:
            raise MultipleCountModesError(table, modes)
        return modes[0]


@dataclass
class Scenario:
    """A complete scenario. Table order is the caller-supplied order."""

    tables: dict[str, TableScenario] = field(default_factory=dict)
    seed: Optional[int] = None
    lookback_days: Optional[int] = None
