"""relsynth — seeded, referentially consistent relational test data."""

from relsynth.config import GeneratorConfig, get_config, set_config
from relsynth.errors import GenerationError
from relsynth.pipeline.runner import (
    GenerationResult,
    GenerationRunner,
    GenerationStatus,
    generate,
)
from relsynth.source_loader import load_scenario, load_schema

__version__ = "0.1.0"
