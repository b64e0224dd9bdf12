"""Generator — planning and row synthesis over a schema and scenario."""

from relsynth.generator.constraints import (
    ParsedCheckConstraint,
    RangeBound,
    RelationalConstraint,
    apply_range_bounds,
    fix_relational_constraints,
    parse_check_constraint,
    parse_table_checks,
    validate_relational_constraints,
)
from relsynth.generator.context import GenerationContext
from relsynth.generator.distribution_sampler import DistributionSampler
from relsynth.generator.planner import (
    CountMode,
    GenerationPlan,
    PlanBuilder,
    TablePlan,
    build_plan,
)
from relsynth.generator.relationship_preserver import (
    FkEdge,
    RelationshipPreserver,
    assign_fk_values,
    build_fk_edges,
    extract_pk,
    toposort,
)
from relsynth.generator.row_synthesizer import RowSynthesizer, generate_rows
from relsynth.generator.value_generators import (
    ColumnRequest,
    generate_default_value,
    generate_text_by_pattern,
)
