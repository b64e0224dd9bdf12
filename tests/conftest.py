"""Shared schema and scenario fixtures."""

from datetime import datetime, timezone

import pytest

from relsynth.config import GeneratorConfig
from relsynth.generator.context import GenerationContext
from relsynth.source_loader.schema_definition_parser import ScenarioParser, SchemaDefinitionParser

ANCHOR = datetime(2024, 6, 1, tzinfo=timezone.utc)

ORG_USERS_SCHEMA = {
    "dialect": "postgres",
    "tables": {
        "organizations": {
            "columns": {
                "id": {"dbType": "int4", "isNullable": False},
                "name": {"dbType": "text", "isNullable": False},
            },
            "primaryKey": ["id"],
        },
        "users": {
            "columns": {
                "id": {"dbType": "int4", "isNullable": False},
                "org_id": {"dbType": "int4", "isNullable": False},
                "email": {"dbType": "varchar", "isNullable": False},
                "status": {"dbType": "text", "isNullable": False},
                "created_at": {"dbType": "timestamptz", "isNullable": False},
            },
            "primaryKey": ["id"],
            "foreignKeys": [
                {
                    "constraintName": "users_org_id_fkey",
                    "columns": ["org_id"],
                    "refTable": "organizations",
                    "refColumns": ["id"],
                },
            ],
        },
    },
}

ORG_USERS_SCENARIO = {
    "seed": 42,
    "tables": {
        "organizations": {"count": 3},
        "users": {
            "perParent": {"parent": "organizations", "fk": "org_id", "min": 2, "max": 2},
        },
    },
}

SHOP_SCHEMA = {
    "tables": {
        "products": {
            "columns": {
                "id": {"dbType": "int4", "isNullable": False},
                "title": {"dbType": "text", "isNullable": False},
                "price": {"dbType": "numeric", "isNullable": False},
            },
            "primaryKey": ["id"],
            "checks": ["CHECK (((price)::numeric > (0)::numeric))"],
        },
        "tags": {
            "columns": {
                "id": {"dbType": "int4", "isNullable": False},
                "label": {"dbType": "text", "isNullable": False},
            },
            "primaryKey": ["id"],
        },
        "product_tags": {
            "columns": {
                "product_id": {"dbType": "int4", "isNullable": False},
                "tag_id": {"dbType": "int4", "isNullable": False},
            },
            "primaryKey": ["product_id", "tag_id"],
            "foreignKeys": [
                {"constraintName": "pt_product_fkey", "column": "product_id",
                 "refTable": "products", "refColumn": "id"},
                {"constraintName": "pt_tag_fkey", "column": "tag_id",
                 "refTable": "tags", "refColumn": "id"},
            ],
        },
        "inventory": {
            "columns": {
                "id": {"dbType": "int8", "isNullable": False},
                "product_id": {"dbType": "int4", "isNullable": False},
                "on_hand": {"dbType": "int4", "isNullable": False},
                "reserved": {"dbType": "int4", "isNullable": False},
                "reorder_days": {"dbType": "int4", "isNullable": False},
            },
            "primaryKey": ["id"],
            "foreignKeys": [
                {"constraintName": "inventory_product_fkey", "columns": ["product_id"],
                 "refTable": "products", "refColumns": ["id"]},
            ],
            "checks": [
                "reorder_days >= 1 AND reorder_days <= 90",
                "reserved <= on_hand",
            ],
        },
    },
}

SHOP_SCENARIO = {
    "seed": 7,
    "tables": {
        "products": {"count": 8},
        "tags": {"count": 5},
        "product_tags": {
            "m2m": {
                "left": {"table": "products", "fk": "product_id"},
                "right": {"table": "tags", "fk": "tag_id"},
                "perLeft": {"min": 1, "max": 3},
            },
        },
        "inventory": {
            "perParent": {"parent": "products", "fk": ["product_id"], "min": 1, "max": 3},
        },
    },
}


@pytest.fixture
def config():
    return GeneratorConfig()


@pytest.fixture
def org_users_schema():
    return SchemaDefinitionParser().parse(ORG_USERS_SCHEMA)


@pytest.fixture
def org_users_scenario():
    return ScenarioParser().parse(ORG_USERS_SCENARIO)


@pytest.fixture
def shop_schema():
    return SchemaDefinitionParser().parse(SHOP_SCHEMA)


@pytest.fixture
def shop_scenario():
    return ScenarioParser().parse(SHOP_SCENARIO)


@pytest.fixture
def make_context(config):
    """Factory for a fresh context with a fixed anchor."""

    def _make(seed=42, lookback_days=None):
        return GenerationContext.create(
            seed=seed, lookback_days=lookback_days, anchor=ANCHOR, config=config
        )

    return _make


@pytest.fixture
def anchor():
    return ANCHOR
