"""Weighted drop selection for pack openings. Pure functions.

Roulette-wheel selection: each drop owns ``weight / total_weight`` of the
probability mass regardless of its position or rarity label. The draw runs on
the server with a CSPRNG (``secrets.randbelow``) so results cannot be predicted
or replayed from earlier outcomes. Tests inject a seeded ``randbelow``.
"""

from __future__ import annotations

import secrets
from collections.abc import Callable, Sequence
from typing import Any

RandBelow = Callable[[int], int]

DROP_TYPES = ("points", "coupon", "gift_card", "product", "nothing")
RARITIES = ("common", "rare", "epic", "legendary")


def total_weight(drops: Sequence[dict[str, Any]]) -> int:
    return sum(int(d.get("weight", 0)) for d in drops)


def validate_drop_table(drops: Sequence[dict[str, Any]]) -> None:
    """Raise ValueError unless the drop table can be drawn from."""
    if not drops:
        raise ValueError("Drop table is empty")
    for drop in drops:
        if int(drop.get("weight", 0)) < 0:
            raise ValueError("Drop weights must be non-negative")
    if total_weight(drops) <= 0:
        raise ValueError("Drop table has no probability mass")


def select_drop(
    drops: Sequence[dict[str, Any]],
    randbelow: RandBelow = secrets.randbelow,
) -> dict[str, Any]:
    """Pick one drop with probability proportional to its weight.

    Draws ``r`` uniformly in ``[0, total)`` and returns the first drop whose
    cumulative weight exceeds ``r``. Zero-weight drops are never selected.
    """
    validate_drop_table(drops)
    r = randbelow(total_weight(drops))

    cumulative = 0
    for drop in drops:
        cumulative += int(drop.get("weight", 0))
        if r < cumulative:
            return drop
    return drops[-1]  # unreachable while r < total


def generate_coupon_code(prefix: str = "GP-") -> str:
    """Prefix + 8 uppercase hex chars (32 random bits); not checked against prior codes."""
    return prefix + secrets.token_hex(4).upper()
