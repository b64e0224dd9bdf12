"""Central configuration for relational test data generation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class GeneratorConfig:
    """Configuration for the generator.

    Reads from environment variables with RELSYNTH_ prefix, or accepts
    explicit values. A config is read-only for the duration of a run.
    """

    # Row synthesis
    ambient_null_rate: float = 0.05
    default_lookback_days: int = 90
    faker_locale: str = "en_US"
    strict_constraints: bool = False

    # SQL rendering
    sql_batch_size: int = 500

    # Validation thresholds
    distribution_p_threshold: float = 0.001
    null_rate_tolerance: float = 0.05

    @classmethod
    def from_env(cls) -> GeneratorConfig:
        """Load configuration from environment variables."""
        return cls(
            ambient_null_rate=float(os.getenv("RELSYNTH_AMBIENT_NULL_RATE", "0.05")),
            default_lookback_days=int(os.getenv("RELSYNTH_LOOKBACK_DAYS", "90")),
            faker_locale=os.getenv("RELSYNTH_FAKER_LOCALE", "en_US"),
            strict_constraints=_env_bool("RELSYNTH_STRICT_CONSTRAINTS", False),
            sql_batch_size=int(os.getenv("RELSYNTH_SQL_BATCH_SIZE", "500")),
            distribution_p_threshold=float(os.getenv("RELSYNTH_DISTRIBUTION_P", "0.001")),
            null_rate_tolerance=float(os.getenv("RELSYNTH_NULL_RATE_TOLERANCE", "0.05")),
        )


_config: Optional[GeneratorConfig] = None


def get_config() -> GeneratorConfig:
    """Get or create the singleton configuration."""
    global _config
    if _config is None:
        _config = GeneratorConfig.from_env()
    return _config


def set_config(config: GeneratorConfig) -> None:
    """Override the global configuration."""
    global _config
    _config = config
