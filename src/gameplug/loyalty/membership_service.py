"""Membership tiers: descriptors and points-priced upgrades."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.config import get_settings
from gameplug.database import atomic
from gameplug.db.models import Membership, utcnow
from gameplug.loyalty.errors import InvalidInputError, NotFoundError
from gameplug.loyalty.ledger_service import effective_tier, get_or_create_balance, spend_points
from gameplug.loyalty.tiers import PAID_TIERS
from gameplug.notifications.service import notify_best_effort

logger = logging.getLogger(__name__)


async def get_membership(db: AsyncSession, user_id: str) -> dict[str, Any]:
    tiers = (
        await db.execute(
            select(Membership).where(Membership.enabled.is_(True)).order_by(Membership.price.asc())
        )
    ).scalars().all()
    bal = await get_or_create_balance(db, user_id)
    current_tier, expires_at = effective_tier(bal)
    await db.commit()
    return {"current_tier": current_tier, "tier_expires_at": expires_at, "tiers": list(tiers)}


async def upgrade_tier(
    db: AsyncSession,
    user_id: str,
    tier: str,
    *,
    redis: object | None = None,
) -> dict[str, Any]:
    """Buy ``tier`` for the configured duration, paying its price in points."""
    if tier not in PAID_TIERS:
        raise InvalidInputError("Invalid tier")

    async with atomic(db):
        membership = (
            await db.execute(
                select(Membership).where(Membership.tier == tier, Membership.enabled.is_(True))
            )
        ).scalar_one_or_none()
        if membership is None:
            raise NotFoundError("Membership tier not found")

        await spend_points(
            db,
            user_id,
            membership.price,
            "tier_bonus",
            f"Upgraded to {membership.name}",
            {"tier": tier},
        )
        bal = await get_or_create_balance(db, user_id, for_update=True)
        bal.tier = tier
        bal.tier_expires_at = utcnow() + timedelta(days=get_settings().tier_duration_days)
        await db.flush()

        name = membership.name
        expires_at = bal.tier_expires_at
        balance = bal.points

    logger.info("User %s upgraded to %s until %s", user_id, tier, expires_at)

    await notify_best_effort(
        db,
        user_id,
        "loyalty_tier",
        f"Welcome to {name}!",
        f"Your {tier} membership is active until {expires_at:%Y-%m-%d}.",
        {"tier": tier},
        redis,
    )
    return {
        "message": f"Upgraded to {name}!",
        "tier": tier,
        "expires_at": expires_at,
        "balance": balance,
    }
