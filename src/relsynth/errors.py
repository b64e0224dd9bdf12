"""Exception hierarchy for relational test data generation.

Every failure aborts the whole generation run; callers decide whether to
exit the process. No partial table output is returned alongside an error.
"""

from __future__ import annotations

from typing import Iterable


class GenerationError(Exception):
    """Base class for all generation failures."""


class SchemaError(GenerationError):
    """The schema document is structurally inconsistent."""


class DocumentError(GenerationError):
    """A schema or scenario document could not be read or decoded."""


class CyclicDependencyError(GenerationError):
    """The foreign-key graph over the scenario tables has no topological order."""

    def __init__(self, tables: Iterable[str]):
        self.tables = list(tables)
        super().__init__(
            f"Circular dependency detected involving tables: {', '.join(self.tables)}"
        )


class CountModeError(GenerationError):
    """A table scenario does not resolve to exactly one count mode."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"Table {table}: {message}")


class MissingCountModeError(CountModeError):
    def __init__(self, table: str):
        super().__init__(table, "no count mode specified (expected one of: count, perParent, m2m)")


class MultipleCountModesError(CountModeError):
    def __init__(self, table: str, modes: Iterable[str]):
        self.modes = list(modes)
        super().__init__(
            table,
            f"multiple count modes specified ({', '.join(self.modes)}); "
            "provide exactly one of: count, perParent, m2m",
        )


class FkMismatchError(GenerationError):
    """Scenario FK columns do not correspond to a declared foreign key."""

    def __init__(
        self,
        table: str,
        ref_table: str,
        requested: list[str],
        available: list[list[str]],
    ):
        self.table = table
        self.ref_table = ref_table
        self.requested = list(requested)
        self.available = [list(cols) for cols in available]
        available_text = ", ".join(f"[{', '.join(cols)}]" for cols in self.available) or "none"
        super().__init__(
            f"Table {table}: FK columns [{', '.join(self.requested)}] -> {ref_table} "
            f"do not match any FK constraint. Available FKs to {ref_table}: {available_text}"
        )


class EmptyWeightMapError(GenerationError, ValueError):
    """A weighted pick was attempted over a map with no positive weight."""


class EmptyPickSourceError(GenerationError, ValueError):
    """A uniform pick was attempted over zero candidates."""


class UnrepairableConstraintError(GenerationError):
    """A relational check constraint is violated and has no repair rule."""

    def __init__(self, table: str, constraint: str, violations: int):
        self.table = table
        self.constraint = constraint
        self.violations = violations
        super().__init__(
            f"Table {table}: {violations} row(s) violate '{constraint}' "
            "and the operator has no repair rule"
        )
