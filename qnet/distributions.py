# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# distributions.py
# -----------------------------------------------------------------------------
# Purpose:
#   Random variate generation for inter-arrival and service times:
#   exponential ("Poisson process"), deterministic, uniform, Erlang-k and
#   trace replay.
#
# Design notes:
#   - All draws go through one VariateGenerator owning a private
#     random.Random, so a seed reproduces a whole run.
#   - TRACE returns the mean unchanged; trace values are supplied by callers.
#
# Usage:
#   gen = VariateGenerator(seed=7)
#   gen.sample(DistributionType.ERLANG, mean=4.0, shape=3)
# -----------------------------------------------------------------------------

from __future__ import annotations
import random
from enum import Enum
from typing import Optional, Union

class DistributionType(str, Enum):
    POISSON = "Poisson"
    DETERMINISTIC = "Deterministic"
    UNIFORM = "Uniform"
    ERLANG = "Erlang"
    TRACE = "Trace"

def parse_distribution(value: Union[str, DistributionType, None]) -> DistributionType:
    """Accept an enum, its exchange value ("Erlang") or its member name ("ERLANG")."""
    if value is None:
        return DistributionType.POISSON
    if isinstance(value, DistributionType):
        return value
    text = str(value).strip()
    for member in DistributionType:
        if text == member.value or text.upper() == member.name:
            return member
    raise ValueError(f"Unknown distribution {value!r}")

def squared_cv(dist: DistributionType, shape: int = 2) -> float:
    """Squared coefficient of variation of a distribution family."""
    if dist is DistributionType.DETERMINISTIC or dist is DistributionType.TRACE:
        return 0.0
    if dist is DistributionType.UNIFORM:
        return 1.0 / 3.0
    if dist is DistributionType.ERLANG:
        return 1.0 / shape
    return 1.0

class VariateGenerator:
    """Seedable source of every random number the engine consumes.

    Parameters
    ----------
    seed : int, optional
        Seed for a fresh random.Random.
    rng : random.Random, optional
        An existing generator to draw from instead (takes precedence).
    """
    def __init__(self, seed: Optional[int] = None, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random(seed)

    def uniform(self) -> float:
        return self.rng.random()

    def bernoulli(self, p: float) -> bool:
        return self.rng.random() < p

    def exponential(self, rate: float) -> float:
        if rate <= 0:
            raise ValueError(f"Exponential rate must be positive, got {rate}")
        return self.rng.expovariate(rate)

    def sample(self, dist: DistributionType, mean: float, shape: int = 2) -> float:
        if mean <= 0:
            raise ValueError(f"Distribution mean must be positive, got {mean}")
        if dist is DistributionType.DETERMINISTIC or dist is DistributionType.TRACE:
            return mean
        if dist is DistributionType.UNIFORM:
            return self.rng.random() * 2.0 * mean
        if dist is DistributionType.ERLANG:
            k = int(shape)
            if k < 1:
                raise ValueError(f"Erlang shape must be >= 1, got {shape}")
            rate = k / mean
            return sum(self.exponential(rate) for _ in range(k))
        return self.exponential(1.0 / mean)
