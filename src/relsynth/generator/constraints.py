"""Check-constraint parsing and repair.

Handles the two conjunct shapes that matter for generation:
- range clauses:      qty >= 1 AND qty <= 90
- relational clauses: reserved <= on_hand

Expressions are split on top-level AND only. Any conjunct containing OR,
function calls, IN lists or other combinators is skipped.
"""

from __future__ import annotations

import logging
import operator
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

logger = logging.getLogger(__name__)

_IDENT = r'"?([a-z_][a-z0-9_]*)"?'
_NUMBER = r"(-?\d+(?:\.\d+)?)"

RANGE_PATTERN = re.compile(rf"^{_IDENT}\s*(>=|<=|>|<|=)\s*{_NUMBER}$", re.IGNORECASE)
RELATIONAL_PATTERN = re.compile(rf"^{_IDENT}\s*(<=|>=|<>|!=|<|>|=)\s*{_IDENT}$", re.IGNORECASE)

# Postgres renders operands as (price)::numeric or (0)::numeric in constraint definitions
CAST_PATTERN = re.compile(r"::\s*[a-z_][a-z0-9_]*(?:\s+precision|\s+varying)?", re.IGNORECASE)
PAREN_LITERAL_PATTERN = re.compile(r"\(\s*(-?\d+(?:\.\d+)?)\s*\)")
PAREN_IDENT_PATTERN = re.compile(r"(?<![a-z0-9_])\(\s*(\"?[a-z_][a-z0-9_]*\"?)\s*\)", re.IGNORECASE)
BETWEEN_PATTERN = re.compile(
    rf"{_IDENT}\s+BETWEEN\s+{_NUMBER}\s+AND\s+{_NUMBER}", re.IGNORECASE
)

COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "<=": operator.le,
    ">=": operator.ge,
    "<": operator.lt,
    ">": operator.gt,
    "=": operator.eq,
    "!=": operator.ne,
}


@dataclass
class RangeBound:
    """Accumulated numeric bounds for one column."""

    column: str
    min: Optional[float] = None
    max: Optional[float] = None
    min_inclusive: bool = True
    max_inclusive: bool = True

    def tighten_min(self, value: float, inclusive: bool) -> None:
        if (
            self.min is None
            or value > self.min
            or (value == self.min and not inclusive)
        ):
            self.min = value
            self.min_inclusive = inclusive

    def tighten_max(self, value: float, inclusive: bool) -> None:
        if (
            self.max is None
            or value < self.max
            or (value == self.max and not inclusive)
        ):
            self.max = value
            self.max_inclusive = inclusive

    @property
    def effective_min(self) -> Optional[float]:
        return self.lower_edge(1)

    @property
    def effective_max(self) -> Optional[float]:
        return self.upper_edge(1)

    def lower_edge(self, step: float) -> Optional[float]:
        """Lower end, moved in by `step` when exclusive."""
        if self.min is None:
            return None
        return self.min if self.min_inclusive else self.min + step

    def upper_edge(self, step: float) -> Optional[float]:
        """Upper end, moved in by `step` when exclusive."""
        if self.max is None:
            return None
        return self.max if self.max_inclusive else self.max - step

    def contains(self, value: float) -> bool:
        if self.min is not None:
            if value < self.min or (value == self.min and not self.min_inclusive):
                return False
        if self.max is not None:
            if value > self.max or (value == self.max and not self.max_inclusive):
                return False
        return True


@dataclass(frozen=True)
class RelationalConstraint:
    left_column: str
    operator: str
    right_column: str

    def __str__(self) -> str:
        return f"{self.left_column} {self.operator} {self.right_column}"

    def is_satisfied(self, left: Any, right: Any) -> bool:
        return COMPARATORS[self.operator](left, right)


@dataclass
class ParsedCheckConstraint:
    ranges: dict[str, RangeBound] = field(default_factory=dict)
    relational: list[RelationalConstraint] = field(default_factory=list)
    raw: str = ""

    def merge(self, other: ParsedCheckConstraint) -> None:
        """Fold another parsed constraint into this one (table-level view)."""
        for column, bound in other.ranges.items():
            target = self.ranges.setdefault(column, RangeBound(column=column))
            if bound.min is not None:
                target.tighten_min(bound.min, bound.min_inclusive)
            if bound.max is not None:
                target.tighten_max(bound.max, bound.max_inclusive)
        self.relational.extend(other.relational)
        self.raw = " AND ".join(r for r in (self.raw, other.raw) if r)


def _strip_outer_parens(expr: str) -> str:
    """Remove parentheses that wrap the whole expression, repeatedly."""
    expr = expr.strip()
    while expr.startswith("(") and expr.endswith(")"):
        depth = 0
        for i, char in enumerate(expr):
            if char == "(":
                depth += 1
            elif char == ")":
                depth -= 1
            if depth == 0 and i < len(expr) - 1:
                # The first paren closes before the end; it does not wrap everything
                return expr
        expr = expr[1:-1].strip()
    return expr


def split_by_and(expr: str) -> list[str]:
    """Split on top-level AND, respecting parenthesis depth."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    i = 0
    upper = expr.upper()
    while i < len(expr):
        char = expr[i]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and upper.startswith(" AND ", i):
            parts.append("".join(current).strip())
            current = []
            i += 5
            continue
        current.append(char)
        i += 1
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def normalize_expression(expression: str) -> str:
    expr = CAST_PATTERN.sub("", expression)
    expr = PAREN_LITERAL_PATTERN.sub(r"\1", expr)
    expr = PAREN_IDENT_PATTERN.sub(r"\1", expr)
    expr = BETWEEN_PATTERN.sub(r"\1 >= \2 AND \1 <= \3", expr)
    return _strip_outer_parens(re.sub(r"\s+", " ", expr))


def parse_check_constraint(expression: str) -> ParsedCheckConstraint:
    """Extract range bounds and relational comparisons from one expression."""
    parsed = ParsedCheckConstraint(raw=expression)

    for part in split_by_and(normalize_expression(expression)):
        clause = _strip_outer_parens(part)

        range_match = RANGE_PATTERN.match(clause)
        if range_match:
            column, op, value_text = range_match.groups()
            value = float(value_text)
            bound = parsed.ranges.setdefault(column, RangeBound(column=column))
            if op == ">=":
                bound.tighten_min(value, True)
            elif op == ">":
                bound.tighten_min(value, False)
            elif op == "<=":
                bound.tighten_max(value, True)
            elif op == "<":
                bound.tighten_max(value, False)
            else:
                bound.tighten_min(value, True)
                bound.tighten_max(value, True)
            continue

        rel_match = RELATIONAL_PATTERN.match(clause)
        if rel_match:
            left, op, right = rel_match.groups()
            parsed.relational.append(
                RelationalConstraint(left_column=left, operator="!=" if op == "<>" else op, right_column=right)
            )
            continue

        logger.debug(f"Skipping unsupported check clause: {clause}")

    return parsed


def parse_table_checks(expressions: Iterable[str]) -> ParsedCheckConstraint:
    """Parse and merge every check constraint declared on a table."""
    merged = ParsedCheckConstraint()
    for expression in expressions:
        merged.merge(parse_check_constraint(expression))
    return merged


def apply_range_bounds(
    bound: Optional[RangeBound],
    default_min: float,
    default_max: float,
    step: float = 1,
) -> tuple[float, float]:
    """Narrow a default [min, max] band by a column's extracted bound.

    Exclusive bounds become inclusive by +/-`step` (1 for an integer
    domain). When the constraint lies entirely outside the default band the
    constraint's own bounds are used, keeping the band width on an open side.
    """
    if bound is None:
        return default_min, default_max

    low_bound, high_bound = bound.lower_edge(step), bound.upper_edge(step)
    low = max(default_min, low_bound) if low_bound is not None else default_min
    high = min(default_max, high_bound) if high_bound is not None else default_max
    if low <= high:
        return low, high

    width = default_max - default_min
    if low_bound is not None and high_bound is not None:
        low, high = low_bound, high_bound
    elif low_bound is not None:
        low, high = low_bound, low_bound + width
    else:
        low, high = high_bound - width, high_bound

    if low > high:
        # Contradictory constraint; nothing satisfies it
        return low, low
    return low, high


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_relational_constraints(
    row: dict[str, Any],
    constraints: Iterable[RelationalConstraint],
) -> list[RelationalConstraint]:
    """Return the constraints the row violates. Non-numeric operands are skipped."""
    violations = []
    for constraint in constraints:
        left = row.get(constraint.left_column)
        right = row.get(constraint.right_column)
        if not (_is_number(left) and _is_number(right)):
            continue
        if not constraint.is_satisfied(left, right):
            violations.append(constraint)
    return violations


def fix_relational_constraints(
    row: dict[str, Any],
    constraints: Iterable[RelationalConstraint],
) -> list[RelationalConstraint]:
    """Repair violations in place by adjusting the left operand.

    Returns the violations that have no repair rule (= and !=); those rows
    are left unchanged.
    """
    unrepaired = []
    for constraint in constraints:
        left = row.get(constraint.left_column)
        right = row.get(constraint.right_column)
        if not (_is_number(left) and _is_number(right)):
            continue
        if constraint.is_satisfied(left, right):
            continue

        if constraint.operator in ("<=", ">="):
            row[constraint.left_column] = right
        elif constraint.operator == "<":
            row[constraint.left_column] = max(0, right - 1)
        elif constraint.operator == ">":
            row[constraint.left_column] = right + 1
        else:
            unrepaired.append(constraint)
    return unrepaired
