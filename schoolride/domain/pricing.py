"""
Default fare policies  (Strategy Pattern)
=========================================

A parent may submit a price with the ride request.  When none is given
the configured policy decides the fare:

* ``FixedFare``      -- always the configured default (150.0)
* ``RandomizedFare`` -- uniform draw in ``[minimum, maximum]``, rounded to cents

Callers must not assume the stored price equals any estimate computed on
the client.
"""

from __future__ import annotations

import math
import random
from abc import ABC, abstractmethod
from typing import Optional

from .errors import ValidationError


# ── Strategy hierarchy ────────────────────────────────────────────────


class FarePolicy(ABC):
    @abstractmethod
    def default_fare(self) -> float: ...


class FixedFare(FarePolicy):
    def __init__(self, amount: float = 150.0):
        if amount <= 0:
            raise ValueError("Fixed fare must be positive")
        self.amount = amount

    def default_fare(self) -> float:
        return self.amount


class RandomizedFare(FarePolicy):
    def __init__(
        self,
        minimum: float = 120.0,
        maximum: float = 180.0,
        rng: Optional[random.Random] = None,
    ):
        if minimum <= 0 or maximum < minimum:
            raise ValueError("Randomized fare needs 0 < minimum <= maximum")
        self.minimum = minimum
        self.maximum = maximum
        self.rng = rng or random.Random()

    def default_fare(self) -> float:
        return round(self.rng.uniform(self.minimum, self.maximum), 2)


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """Resolves the price stored on a new ride request."""

    def __init__(self, policy: FarePolicy):
        self.policy = policy

    @classmethod
    def from_settings(cls, settings) -> "PricingEngine":
        if settings.fare_policy == "randomized":
            return cls(
                RandomizedFare(
                    settings.randomized_fare_min, settings.randomized_fare_max
                )
            )
        if settings.fare_policy != "fixed":
            raise ValueError(f"Unknown fare policy: {settings.fare_policy}")
        return cls(FixedFare(settings.default_fare))

    def resolve_price(self, requested: Optional[float]) -> float:
        if requested is None:
            return self.policy.default_fare()
        if not math.isfinite(requested) or requested <= 0:
            raise ValidationError("Price must be greater than zero", field="price")
        return round(float(requested), 2)
