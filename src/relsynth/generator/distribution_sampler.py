"""Seeded sampling primitives shared by the plan builder and row synthesizer.

Every draw consumes the same underlying uniform stream, so the sequence of
calls (not just the seed) determines the output. Callers must keep their
draw order stable for generated data to stay reproducible.
"""

from __future__ import annotations

import math
import time
from typing import Any, Mapping, Optional, Sequence, TypeVar

import numpy as np

from relsynth.errors import EmptyPickSourceError, EmptyWeightMapError

T = TypeVar("T")

_SEED_MODULUS = 2**64


class DistributionSampler:
    """Deterministic random source for one generation run.

    Wraps a numpy Generator seeded from the scenario seed (or wall-clock
    milliseconds when absent). All derived operations draw from
    `random()`, one uniform value in [0, 1) per call.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = int(seed) if seed is not None else int(time.time() * 1000)
        self.rng = np.random.default_rng(self.seed % _SEED_MODULUS)

    def random(self) -> float:
        """Next uniform value in [0, 1)."""
        return float(self.rng.random())

    def randint(self, low: float, high: float) -> int:
        """Integer in [low, high] inclusive. Fractional bounds round inward."""
        low, high = math.ceil(low), max(math.ceil(low), math.floor(high))
        return math.floor(self.random() * (high - low + 1)) + low

    def uniform(self, low: float, high: float) -> float:
        """Float in [low, high)."""
        return self.random() * (high - low) + low

    def pick(self, items: Sequence[T]) -> T:
        """Uniform element pick."""
        if len(items) == 0:
            raise EmptyPickSourceError("Cannot pick from an empty sequence")
        return items[math.floor(self.random() * len(items))]

    def weighted_pick(self, weights: Mapping[Any, float]) -> Any:
        """Weighted pick over an insertion-ordered weight map.

        One draw r = u * total selects the first key whose half-open
        interval [cumulative, cumulative + weight) contains r. Zero-weight
        keys are never selected.
        """
        entries = list(weights.items())
        total = sum(w for _, w in entries if w > 0)
        if total <= 0:
            raise EmptyWeightMapError("Total weight must be positive")

        r = self.random() * total
        last_positive = None
        for key, weight in entries:
            if weight <= 0:
                continue
            if r < weight:
                return key
            r -= weight
            last_positive = key

        # Floating-point fall-through
        return last_positive

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """Fisher-Yates shuffle; returns a new list."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = math.floor(self.random() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def bernoulli(self, probability: float = 0.5) -> bool:
        return self.random() < probability

    def sample(self, items: Sequence[T], n: int) -> list[T]:
        """Pick n distinct elements (by position) without replacement.

        When n covers the whole pool the pool is returned in order without
        consuming any draws.
        """
        if n >= len(items):
            return list(items)

        result: list[T] = []
        used: set[int] = set()
        while len(result) < n:
            idx = math.floor(self.random() * len(items))
            if idx not in used:
                used.add(idx)
                result.append(items[idx])
        return result
