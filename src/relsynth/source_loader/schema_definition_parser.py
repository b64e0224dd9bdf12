"""Schema and scenario document parsers — handle JSON, YAML, or decoded dicts.

Documents are coerced into the dataclasses in base.py / scenario.py. No
grammar validation happens here; structural problems the generator cannot
work around surface later as generation errors.

Accepts two schema flavors for foreign keys:
1. Composite entries: {"constraintName", "columns": [...], "refTable", "refColumns": [...]}
2. Introspection rows: {"constraintName", "column", "refTable", "refColumn"}, one per
   FK column; rows sharing a constraint name are grouped in row order.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from relsynth.errors import DocumentError
from relsynth.source_loader.base import (
    CheckSpec,
    ColumnSpec,
    ForeignKeySpec,
    IndexSpec,
    SchemaModel,
    TableSchema,
    UniqueSpec,
)
from relsynth.source_loader.scenario import (
    ColumnOverride,
    M2MSide,
    M2MSpec,
    PerParentSpec,
    Rule,
    Scenario,
    TableScenario,
    ValueRange,
)

Document = Union[str, dict]


def _load_document(content: Document) -> dict:
    """Decode JSON or YAML text; dicts pass through."""
    if isinstance(content, dict):
        return content
    stripped = content.strip()
    try:
        if stripped.startswith("{") or stripped.startswith("["):
            data = json.loads(stripped)
        else:
            data = yaml.safe_load(stripped)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise DocumentError(f"Cannot decode document: {e}") from e
    if not isinstance(data, dict):
        raise DocumentError("Document root must be a mapping")
    return data


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class SchemaDefinitionParser:
    """Parses schema documents into a SchemaModel."""

    CHECK_PREFIX = re.compile(r"^\s*CHECK\s*", re.IGNORECASE)

    def parse(self, content: Document) -> SchemaModel:
        data = _load_document(content)
        raw_tables = data.get("tables", {})
        if isinstance(raw_tables, list):
            raw_tables = {t.get("name", ""): t for t in raw_tables}

        tables: dict[str, TableSchema] = {}
        for name, t in raw_tables.items():
            tables[name] = self._parse_table(t.get("name", name), t)

        return SchemaModel(dialect=data.get("dialect", "postgres"), tables=tables)

    def _parse_table(self, name: str, t: dict) -> TableSchema:
        primary_key = _as_list(t.get("primaryKey", t.get("primary_key")))

        raw_columns = t.get("columns", {})
        if isinstance(raw_columns, list):
            raw_columns = {c.get("name", ""): c for c in raw_columns}

        columns: dict[str, ColumnSpec] = {}
        for col_name, c in raw_columns.items():
            col_name = c.get("name", col_name)
            columns[col_name] = ColumnSpec(
                name=col_name,
                db_type=c.get("dbType", c.get("db_type", c.get("type", "text"))),
                nullable=c.get("isNullable", c.get("nullable", True)),
                default_expr=c.get("defaultExpr", c.get("default_expr")),
                is_primary_key=c.get("isPrimaryKey", c.get("is_primary_key", col_name in primary_key)),
                enum_values=list(c.get("enumValues", c.get("enum_values")) or []),
            )

        # Columns flagged as PK but absent from an explicit key list still count
        if not primary_key:
            primary_key = [c.name for c in columns.values() if c.is_primary_key]
        for col_name in primary_key:
            if col_name in columns:
                columns[col_name].is_primary_key = True

        return TableSchema(
            name=name,
            columns=columns,
            primary_key=primary_key,
            foreign_keys=self._parse_foreign_keys(name, t.get("foreignKeys", t.get("foreign_keys", []))),
            uniques=[
                UniqueSpec(
                    columns=_as_list(u.get("columns")),
                    constraint_name=u.get("constraintName", u.get("constraint_name", "")),
                )
                for u in t.get("uniques", [])
            ],
            indexes=[
                IndexSpec(
                    name=i.get("name", i.get("indexName", "")),
                    columns=_as_list(i.get("columns")),
                    unique=i.get("unique", i.get("isUnique", False)),
                    predicate=i.get("predicate", i.get("where")),
                )
                for i in t.get("indexes", [])
            ],
            checks=[self._parse_check(c) for c in t.get("checks", t.get("checkConstraints", []))],
        )

    def _parse_foreign_keys(self, table_name: str, raw_fks: list[dict]) -> list[ForeignKeySpec]:
        grouped: dict[str, dict] = {}
        for idx, fk in enumerate(raw_fks):
            name = fk.get("constraintName", fk.get("constraint_name")) or f"{table_name}_fk_{idx}"
            entry = grouped.setdefault(
                name,
                {"columns": [], "ref_table": fk.get("refTable", fk.get("ref_table", "")), "ref_columns": []},
            )
            entry["columns"].extend(_as_list(fk.get("columns", fk.get("column"))))
            entry["ref_columns"].extend(_as_list(fk.get("refColumns", fk.get("refColumn", fk.get("ref_columns")))))

        return [
            ForeignKeySpec(
                constraint_name=name,
                columns=entry["columns"],
                ref_table=entry["ref_table"],
                ref_columns=entry["ref_columns"],
            )
            for name, entry in grouped.items()
        ]

    def _parse_check(self, raw: Union[str, dict]) -> CheckSpec:
        if isinstance(raw, str):
            return CheckSpec(expression=self.CHECK_PREFIX.sub("", raw).strip())
        expression = raw.get("expression", raw.get("definition", ""))
        return CheckSpec(
            expression=self.CHECK_PREFIX.sub("", expression).strip(),
            constraint_name=raw.get("constraintName", raw.get("constraint_name", "")),
        )


class ScenarioParser:
    """Parses single- or multi-scenario documents into a Scenario."""

    def parse(self, content: Document, name: Optional[str] = None) -> Scenario:
        data = _load_document(content)

        if "tables" in data and isinstance(data["tables"], dict):
            return self._parse_scenario(data)

        # Multi-scenario file: scenario name -> scenario
        names = [k for k, v in data.items() if isinstance(v, dict) and "tables" in v]
        if not names:
            raise DocumentError("No scenarios found in document")
        selected = name or names[0]
        if selected not in names:
            raise DocumentError(f'Scenario "{selected}" not found. Available: {", ".join(names)}')
        return self._parse_scenario(data[selected])

    def _parse_scenario(self, data: dict) -> Scenario:
        time_block = data.get("time") or {}
        return Scenario(
            tables={name: self._parse_table(t or {}) for name, t in data["tables"].items()},
            seed=data.get("seed"),
            lookback_days=time_block.get("n"),
        )

    def _parse_table(self, t: dict) -> TableScenario:
        per_parent = None
        if t.get("perParent") is not None:
            pp = t["perParent"]
            per_parent = PerParentSpec(
                parent=pp["parent"], fk=_as_list(pp["fk"]), min=pp["min"], max=pp["max"]
            )

        m2m = None
        if t.get("m2m") is not None:
            m = t["m2m"]
            per_left = m.get("perLeft", m)
            m2m = M2MSpec(
                left=M2MSide(table=m["left"]["table"], fk=_as_list(m["left"]["fk"])),
                right=M2MSide(table=m["right"]["table"], fk=_as_list(m["right"]["fk"])),
                min=per_left["min"],
                max=per_left["max"],
            )

        return TableScenario(
            count=t.get("count"),
            per_parent=per_parent,
            m2m=m2m,
            distributions={col: dict(weights) for col, weights in (t.get("distributions") or {}).items()},
            overrides={
                col: self._parse_override(o)
                for col, o in (t.get("columns", t.get("overrides")) or {}).items()
            },
            rules=[
                Rule(assignments=dict(r.get("set", {})), condition=dict(r.get("if") or {}))
                for r in t.get("rules") or []
            ],
        )

    def _parse_override(self, o: dict) -> ColumnOverride:
        value_range = None
        if o.get("range") is not None:
            value_range = ValueRange(min=o["range"]["min"], max=o["range"]["max"])
        return ColumnOverride(
            fixed=o.get("fixed"),
            has_fixed="fixed" in o,
            one_of=o.get("oneOf", o.get("one_of")),
            value_range=value_range,
            null_rate=o.get("nullRate", o.get("null_rate")),
        )


def _read(path: Union[str, Path]) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentError(f"Cannot read {path}: {e}") from e


def load_schema(path: Union[str, Path]) -> SchemaModel:
    """Read a schema document from disk."""
    return SchemaDefinitionParser().parse(_read(path))


def load_scenario(path: Union[str, Path], name: Optional[str] = None) -> Scenario:
    """Read a scenario document from disk, selecting `name` in multi-scenario files."""
    return ScenarioParser().parse(_read(path), name=name)
