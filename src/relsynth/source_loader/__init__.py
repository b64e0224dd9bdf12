"""Source Loader — schema and scenario documents into typed models."""

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
    AUTO_NOT_NULL,
    ColumnOverride,
    M2MSide,
    M2MSpec,
    PerParentSpec,
    Rule,
    Scenario,
    TableScenario,
    ValueRange,
)
from relsynth.source_loader.schema_definition_parser import (
    ScenarioParser,
    SchemaDefinitionParser,
    load_scenario,
    load_schema,
)
