"""Tests for the Source Loader: schema and scenario documents."""

import json

import pytest

from relsynth.errors import DocumentError, SchemaError
from relsynth.source_loader import (
    AUTO_NOT_NULL,
    ColumnSpec,
    ForeignKeySpec,
    ScenarioParser,
    SchemaDefinitionParser,
    load_scenario,
    load_schema,
)

INTROSPECTED_SCHEMA = {
    "dialect": "postgres",
    "tables": [
        {
            "name": "order_lines",
            "columns": [
                {"name": "order_id", "dbType": "int4", "isNullable": False},
                {"name": "line_no", "dbType": "int2", "isNullable": False},
                {"name": "sku", "dbType": "varchar(32)", "isNullable": False},
                {"name": "qty", "dbType": "int4", "isNullable": False, "defaultExpr": "1"},
                {"name": "row_id", "dbType": "uuid", "defaultExpr": "gen_random_uuid()"},
            ],
            "primaryKey": ["order_id", "line_no"],
            "foreignKeys": [
                {"constraintName": "ol_sku_fkey", "column": "sku", "refTable": "skus", "refColumn": "code"},
                {"constraintName": "ol_order_fkey", "column": "order_id", "refTable": "orders", "refColumn": "id"},
            ],
            "uniques": [{"constraintName": "ol_row_uq", "columns": ["row_id"]}],
            "indexes": [{"name": "ol_open_idx", "columns": ["sku"], "where": "qty > 0"}],
            "checks": [
                "CHECK ((qty > 0))",
                {"constraintName": "qty_cap", "expression": "CHECK (qty <= 1000)"},
            ],
        },
    ],
}

SCENARIO_YAML = """
seed: 11
time:
  mode: last_n_days
  n: 30
tables:
  organizations:
    count: 5
  users:
    perParent:
      parent: organizations
      fk: org_id
      min: 1
      max: 3
    distributions:
      status:
        active: 8
        disabled: 2
    columns:
      role:
        oneOf: [admin, member]
      score:
        range: {min: 0, max: 10}
        nullRate: 0.2
      nickname:
        fixed: null
    rules:
      - if: {status: disabled}
        set: {disabled_at: __AUTO_NOT_NULL__}
  memberships:
    m2m:
      left: {table: users, fk: user_id}
      right: {table: groups, fk: [group_id]}
      perLeft: {min: 0, max: 2}
"""


class TestSchemaDefinitionParser:

    def setup_method(self):
        self.schema = SchemaDefinitionParser().parse(INTROSPECTED_SCHEMA)
        self.table = self.schema.tables["order_lines"]

    def test_tables_from_list(self):
        assert list(self.schema.tables) == ["order_lines"]
        assert self.schema.dialect == "postgres"

    def test_columns_keep_declaration_order(self):
        assert list(self.table.columns) == ["order_id", "line_no", "sku", "qty", "row_id"]

    def test_composite_primary_key(self):
        assert self.table.primary_key == ["order_id", "line_no"]
        assert self.table.columns["line_no"].is_primary_key
        assert not self.table.columns["sku"].is_primary_key

    def test_column_defaults(self):
        assert self.table.columns["qty"].has_default
        assert not self.table.columns["qty"].is_db_generated
        assert self.table.columns["row_id"].is_db_generated
        assert self.table.columns["row_id"].nullable

    def test_introspection_fk_rows(self):
        assert [fk.constraint_name for fk in self.table.foreign_keys] == ["ol_sku_fkey", "ol_order_fkey"]
        assert self.table.foreign_keys_to("orders")[0].columns == ["order_id"]

    def test_fk_rows_grouped_by_constraint(self):
        schema = SchemaDefinitionParser().parse({
            "tables": {"child": {
                "columns": {"a": {"dbType": "int4"}, "b": {"dbType": "int4"}},
                "foreignKeys": [
                    {"constraintName": "child_parent_fkey", "column": "a", "refTable": "parent", "refColumn": "x"},
                    {"constraintName": "child_parent_fkey", "column": "b", "refTable": "parent", "refColumn": "y"},
                ],
            }},
        })
        fks = schema.tables["child"].foreign_keys
        assert len(fks) == 1
        assert (fks[0].columns, fks[0].ref_columns) == (["a", "b"], ["x", "y"])

    def test_uniques_indexes_checks(self):
        assert self.table.uniques[0].columns == ["row_id"]
        assert self.table.indexes[0].predicate == "qty > 0"
        assert [c.expression for c in self.table.checks] == ["((qty > 0))", "(qty <= 1000)"]
        assert self.table.checks[1].constraint_name == "qty_cap"

    def test_json_text(self):
        schema = SchemaDefinitionParser().parse(json.dumps(INTROSPECTED_SCHEMA))
        assert list(schema.tables["order_lines"].columns)[0] == "order_id"

    def test_yaml_text(self):
        schema = SchemaDefinitionParser().parse(
            "tables:\n  t:\n    columns:\n      id: {type: int8, nullable: false}\n    primary_key: [id]\n"
        )
        column = schema.tables["t"].columns["id"]
        assert column.db_type == "int8"
        assert not column.nullable
        assert column.is_primary_key

    def test_fk_length_mismatch(self):
        with pytest.raises(SchemaError):
            ForeignKeySpec(constraint_name="bad", columns=["a", "b"], ref_table="p", ref_columns=["x"])

    def test_undecodable_document(self):
        with pytest.raises(DocumentError):
            SchemaDefinitionParser().parse("{not json")

    def test_non_mapping_document(self):
        with pytest.raises(DocumentError):
            SchemaDefinitionParser().parse("- a\n- b\n")


class TestScenarioParser:

    def setup_method(self):
        self.scenario = ScenarioParser().parse(SCENARIO_YAML)

    def test_seed_and_time_window(self):
        assert self.scenario.seed == 11
        assert self.scenario.lookback_days == 30

    def test_table_order_preserved(self):
        assert list(self.scenario.tables) == ["organizations", "users", "memberships"]

    def test_per_parent_fk_normalized(self):
        pp = self.scenario.tables["users"].per_parent
        assert (pp.parent, pp.fk, pp.min, pp.max) == ("organizations", ["org_id"], 1, 3)

    def test_m2m(self):
        m2m = self.scenario.tables["memberships"].m2m
        assert (m2m.left.table, m2m.left.fk) == ("users", ["user_id"])
        assert (m2m.right.table, m2m.right.fk) == ("groups", ["group_id"])
        assert (m2m.min, m2m.max) == (0, 2)

    def test_distributions(self):
        assert self.scenario.tables["users"].distributions == {"status": {"active": 8, "disabled": 2}}

    def test_overrides(self):
        overrides = self.scenario.tables["users"].overrides
        assert overrides["role"].one_of == ["admin", "member"]
        assert (overrides["score"].value_range.min, overrides["score"].value_range.max) == (0, 10)
        assert overrides["score"].null_rate == 0.2
        assert overrides["nickname"].has_fixed and overrides["nickname"].fixed is None
        assert not overrides["role"].has_fixed

    def test_rules(self):
        rule = self.scenario.tables["users"].rules[0]
        assert rule.condition == {"status": "disabled"}
        assert rule.assignments == {"disabled_at": AUTO_NOT_NULL}

    def test_missing_time_block(self):
        scenario = ScenarioParser().parse({"tables": {"t": {"count": 1}}})
        assert scenario.lookback_days is None
        assert scenario.seed is None

    def test_multi_scenario_default_first(self):
        doc = {"small": {"seed": 1, "tables": {"t": {"count": 1}}},
               "large": {"seed": 2, "tables": {"t": {"count": 1000}}}}
        assert ScenarioParser().parse(doc).seed == 1
        assert ScenarioParser().parse(doc, name="large").tables["t"].count == 1000

    def test_multi_scenario_unknown_name(self):
        doc = {"small": {"tables": {"t": {"count": 1}}}}
        with pytest.raises(DocumentError) as exc:
            ScenarioParser().parse(doc, name="huge")
        assert "Available: small" in str(exc.value)

    def test_no_scenarios(self):
        with pytest.raises(DocumentError):
            ScenarioParser().parse({"description": "nothing here"})


class TestLoadFromDisk:

    def test_load_schema_and_scenario(self, tmp_path):
        schema_path = tmp_path / "schema.json"
        schema_path.write_text(json.dumps(INTROSPECTED_SCHEMA))
        scenario_path = tmp_path / "scenario.yaml"
        scenario_path.write_text(SCENARIO_YAML)

        assert "order_lines" in load_schema(schema_path).tables
        assert load_scenario(str(scenario_path)).seed == 11

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentError):
            load_schema(tmp_path / "absent.json")


class TestColumnSpec:

    def test_sequence_default_is_db_generated(self):
        column = ColumnSpec(name="id", db_type="int8", default_expr="nextval('t_id_seq'::regclass)")
        assert column.is_db_generated

    def test_no_default(self):
        assert not ColumnSpec(name="x", db_type="text").has_default
