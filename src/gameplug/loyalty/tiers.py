"""Tier multipliers and tier ranking. Pure functions.

Tier ladder (rank / earn multiplier):

    free    0  x1.0
    silver  1  x1.5
    gold    2  x2.0

"none" as a requirement means no gate.
"""

from __future__ import annotations

import math

TIERS = ("free", "silver", "gold")
PAID_TIERS = ("silver", "gold")

TIER_MULTIPLIERS: dict[str, float] = {"free": 1, "silver": 1.5, "gold": 2}
TIER_RANKS: dict[str, int] = {"free": 0, "silver": 1, "gold": 2, "none": 0}


def get_tier_multiplier(tier: str | None) -> float:
    """Earn multiplier for a tier; unknown tiers earn at x1."""
    return TIER_MULTIPLIERS.get(tier or "", 1)


def tier_rank(tier: str | None) -> int:
    return TIER_RANKS.get(tier or "", 0)


def meets_tier(current: str, required: str | None) -> bool:
    """True if ``current`` satisfies a ``required`` tier gate."""
    if not required or required == "none":
        return True
    return tier_rank(current) >= tier_rank(required)


def round_points(value: float) -> int:
    """Round to the nearest integer, halves away from zero (1.5 -> 2, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def apply_multiplier(amount: int, tier: str | None) -> int:
    """Final earned amount after the tier multiplier."""
    return round_points(amount * get_tier_multiplier(tier))
