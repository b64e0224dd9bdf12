"""Schema types consumed by the generator.

A SchemaModel is produced by an external introspection step (or loaded from a
schema document) and is read-only for the whole run. Column dictionaries keep
declaration order, which is also the per-row generation order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from relsynth.errors import SchemaError

# Default expressions that are filled in by the database itself
DB_GENERATED_PATTERNS = [
    re.compile(r"^nextval\(", re.IGNORECASE),
    re.compile(r"^gen_random_uuid\(\)", re.IGNORECASE),
    re.compile(r"^uuid_generate_v[14]\(\)", re.IGNORECASE),
]


@dataclass
class ColumnSpec:
    """A single column of a table."""

    name: str
    db_type: str
    nullable: bool = True
    default_expr: Optional[str] = None
    is_primary_key: bool = False
    enum_values: list[str] = field(default_factory=list)

    @property
    def has_default(self) -> bool:
        return self.default_expr is not None

    @property
    def is_db_generated(self) -> bool:
        """True when the default is a sequence or UUID generator."""
        if not self.default_expr:
            return False
        return any(p.search(self.default_expr) for p in DB_GENERATED_PATTERNS)


@dataclass
class ForeignKeySpec:
    """A (possibly composite) foreign key; columns pair positionally with ref_columns."""

    constraint_name: str
    columns: list[str]
    ref_table: str
    ref_columns: list[str]

    def __post_init__(self):
        if len(self.columns) != len(self.ref_columns):
            raise SchemaError(
                f"Foreign key {self.constraint_name}: {len(self.columns)} column(s) "
                f"but {len(self.ref_columns)} referenced column(s)"
            )


@dataclass
class UniqueSpec:
    columns: list[str]
    constraint_name: str = ""


@dataclass
class IndexSpec:
    name: str
    columns: list[str] = field(default_factory=list)
    unique: bool = False
    predicate: Optional[str] = None


@dataclass
class CheckSpec:
    """A check constraint; expression is the raw text without the CHECK keyword."""

    expression: str
    constraint_name: str = ""


@dataclass
class TableSchema:
    """A table with its columns and constraints."""

    name: str
    columns: dict[str, ColumnSpec] = field(default_factory=dict)
    primary_key: list[str] = field(default_factory=list)
    foreign_keys: list[ForeignKeySpec] = field(default_factory=list)
    uniques: list[UniqueSpec] = field(default_factory=list)
    indexes: list[IndexSpec] = field(default_factory=list)
    checks: list[CheckSpec] = field(default_factory=list)

    def foreign_keys_to(self, ref_table: str) -> list[ForeignKeySpec]:
        return [fk for fk in self.foreign_keys if fk.ref_table == ref_table]


@dataclass
class SchemaModel:
    """Complete relational schema."""

    dialect: str = "postgres"
    tables: dict[str, TableSchema] = field(default_factory=dict)
