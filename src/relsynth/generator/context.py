"""Per-run generation context.

One GenerationContext is built per run and passed explicitly to the plan
builder and row synthesizer. It owns every piece of mutable run state, so
independent runs never interfere with each other.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from faker import Faker

from relsynth.config import GeneratorConfig, get_config
from relsynth.generator.distribution_sampler import DistributionSampler

logger = logging.getLogger(__name__)


def default_anchor() -> datetime:
    """Midnight UTC of the current day."""
    now = datetime.now(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass
class GenerationContext:
    """Explicit run state: random sources, time window, and accumulated keys."""

    seed: int
    sampler: DistributionSampler
    faker: Faker
    anchor: datetime
    lookback_days: int
    config: GeneratorConfig
    row_counts: dict[str, int] = field(default_factory=dict)
    primary_keys: dict[str, list[Any]] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        seed: Optional[int] = None,
        lookback_days: Optional[int] = None,
        anchor: Optional[datetime] = None,
        config: Optional[GeneratorConfig] = None,
    ) -> GenerationContext:
        config = config or get_config()
        sampler = DistributionSampler(seed)

        faker = Faker(config.faker_locale)
        faker.seed_instance(sampler.seed)

        if anchor is None:
            anchor = default_anchor()
        elif anchor.tzinfo is None:
            anchor = anchor.replace(tzinfo=timezone.utc)

        return cls(
            seed=sampler.seed,
            sampler=sampler,
            faker=faker,
            anchor=anchor,
            lookback_days=lookback_days or config.default_lookback_days,
            config=config,
        )

    @property
    def window_start(self) -> datetime:
        return self.anchor - timedelta(days=self.lookback_days)

    def warn(self, message: str) -> None:
        """Record a non-fatal condition and log it. Repeats are dropped."""
        if message in self.warnings:
            return
        logger.warning(message)
        self.warnings.append(message)
