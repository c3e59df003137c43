"""Admin-tunable loyalty constants backed by the loyalty_config table."""

from __future__ import annotations

import math
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.config import get_settings
from gameplug.db.models import LoyaltyConfig, utcnow
from gameplug.loyalty.errors import InvalidInputError

POINTS_PER_EURO = "points_per_euro"
SIGNUP_BONUS_POINTS = "signup_bonus_points"
DAILY_LOGIN_POINTS = "daily_login_points"

# Keys read by the earning flows: key -> whether the value must be whole
_NUMERIC_KEYS = {POINTS_PER_EURO: False, SIGNUP_BONUS_POINTS: True, DAILY_LOGIN_POINTS: True}


def default_config() -> list[dict[str, Any]]:
    """Seed rows for the tunables, using settings as the initial values."""
    settings = get_settings()
    return [
        {
            "key": POINTS_PER_EURO,
            "value": settings.default_points_per_euro,
            "description": "Points earned per €1 spent",
        },
        {
            "key": SIGNUP_BONUS_POINTS,
            "value": settings.default_signup_bonus_points,
            "description": "Points awarded on registration",
        },
        {
            "key": DAILY_LOGIN_POINTS,
            "value": settings.default_daily_login_points,
            "description": "Base points for daily login",
        },
    ]


def check_config_value(key: str, value: Any) -> Any:
    """Validate a value for one of the earning keys; other keys pass through.

    Returns the value normalised (whole floats become ints). Raises
    InvalidInputError for non-numeric, negative or non-finite values, and for
    fractions where whole points are required.
    """
    if key not in _NUMERIC_KEYS:
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise InvalidInputError(f"{key} must be a number")
    if value < 0:
        raise InvalidInputError(f"{key} must not be negative")
    if _NUMERIC_KEYS[key]:
        if isinstance(value, float) and not value.is_integer():
            raise InvalidInputError(f"{key} must be a whole number of points")
        return int(value)
    return value


async def get_config_value(db: AsyncSession, key: str, fallback: Any) -> Any:
    """Return the stored value for ``key`` or ``fallback`` if unset."""
    cfg = await db.get(LoyaltyConfig, key)
    return cfg.value if cfg is not None else fallback


async def set_config_value(
    db: AsyncSession,
    key: str,
    value: Any,
    description: str | None = None,
) -> LoyaltyConfig:
    """Upsert one key. Flushes; the caller commits."""
    value = check_config_value(key, value)
    cfg = await db.get(LoyaltyConfig, key)
    if cfg is None:
        cfg = LoyaltyConfig(key=key, value=value, description=description or "", updated_at=utcnow())
        db.add(cfg)
    else:
        cfg.value = value
        if description is not None:
            cfg.description = description
        cfg.updated_at = utcnow()
    await db.flush()
    return cfg


async def list_config(db: AsyncSession) -> list[LoyaltyConfig]:
    result = await db.execute(select(LoyaltyConfig).order_by(LoyaltyConfig.key))
    return list(result.scalars().all())
