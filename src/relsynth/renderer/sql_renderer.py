"""SQL renderer — generated rows as PostgreSQL INSERT statements.

Output is a single transaction. Tables appear in generation order so every
referenced row is inserted before the rows that point at it.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional

from relsynth.config import get_config
from relsynth.source_loader.base import SchemaModel

logger = logging.getLogger(__name__)


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_string(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _array_element(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return _array_literal(value)
    text = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _array_literal(values: Iterable[Any]) -> str:
    return "{" + ",".join(_array_element(v) for v in values) + "}"


def format_value(value: Any) -> str:
    """Render one Python value as a SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        return quote_string(json.dumps(value, default=str))
    if isinstance(value, (list, tuple)):
        return quote_string(_array_literal(value))
    return quote_string(str(value))


class SQLRenderer:
    """Renders generated data for one schema.

    Columns follow schema declaration order. Rows are batched into
    multi-row INSERT statements of at most `batch_size` rows.
    """

    def __init__(self, schema: SchemaModel, batch_size: Optional[int] = None):
        self.schema = schema
        self.batch_size = batch_size or get_config().sql_batch_size
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    def render_table(self, table_name: str, rows: list[dict[str, Any]]) -> list[str]:
        """INSERT statements for one table; empty when there are no rows."""
        if not rows:
            return []

        columns = list(self.schema.tables[table_name].columns)
        column_list = ", ".join(quote_identifier(c) for c in columns)
        target = quote_identifier(table_name)

        statements = []
        for start in range(0, len(rows), self.batch_size):
            batch = rows[start:start + self.batch_size]
            values = ",\n".join(
                "  (" + ", ".join(format_value(row.get(c)) for c in columns) + ")"
                for row in batch
            )
            statements.append(f"INSERT INTO {target} ({column_list}) VALUES\n{values};")
        return statements

    def render(self, data: dict[str, list[dict[str, Any]]], table_order: Iterable[str]) -> str:
        """Full script: BEGIN, inserts in table order, COMMIT."""
        lines = ["BEGIN;"]
        rendered_tables = 0
        for table_name in table_order:
            statements = self.render_table(table_name, data.get(table_name, []))
            if not statements:
                continue
            lines.append("")
            lines.append(f"-- {table_name}: {len(data[table_name])} rows")
            lines.extend(statements)
            rendered_tables += 1
        lines.append("")
        lines.append("COMMIT;")

        logger.info(f"Rendered INSERT statements for {rendered_tables} tables")
        return "\n".join(lines) + "\n"
