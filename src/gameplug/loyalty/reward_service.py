"""Reward catalog and redemption."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.config import get_settings
from gameplug.database import atomic
from gameplug.db.models import Redemption, Reward, utcnow
from gameplug.loyalty.draw import generate_coupon_code
from gameplug.loyalty.errors import (
    InsufficientPointsError,
    NotFoundError,
    OutOfStockError,
    TierRequiredError,
)
from gameplug.loyalty.ledger_service import get_or_create_balance, spend_points
from gameplug.loyalty.tiers import meets_tier
from gameplug.notifications.service import notify_best_effort

logger = logging.getLogger(__name__)

REWARD_TYPES = ("coupon", "gift_card", "product", "points_boost")
CODE_REWARD_TYPES = ("coupon", "gift_card")


async def list_rewards(db: AsyncSession) -> list[Reward]:
    """Enabled rewards, cheapest first."""
    result = await db.execute(
        select(Reward).where(Reward.enabled.is_(True)).order_by(Reward.points_cost.asc(), Reward.id.asc())
    )
    return list(result.scalars().all())


async def _take_stock(db: AsyncSession, reward_id: int) -> None:
    """Decrement finite stock by one, or raise OutOfStockError if none is left."""
    result = await db.execute(
        update(Reward)
        .where(Reward.id == reward_id, Reward.stock > 0)
        .values(stock=Reward.stock - 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise OutOfStockError()


async def redeem_reward(
    db: AsyncSession,
    user_id: str,
    reward_id: int,
    *,
    redis: object | None = None,
) -> dict[str, Any]:
    """Redeem a reward: spend its cost, take one unit of stock, issue a code.

    Checks run in order: existence, tier, points, stock. Spend, stock decrement
    and the redemption row commit together.
    """
    async with atomic(db):
        reward = await db.get(Reward, reward_id, populate_existing=True)
        if reward is None or not reward.enabled:
            raise NotFoundError("Reward not found or disabled")

        bal = await get_or_create_balance(db, user_id, for_update=True)
        if not meets_tier(bal.tier, reward.tier_required):
            raise TierRequiredError(reward.tier_required)
        if bal.points < reward.points_cost:
            raise InsufficientPointsError(required=reward.points_cost, current=bal.points)

        if reward.stock != -1:
            await _take_stock(db, reward.id)

        await spend_points(
            db,
            user_id,
            reward.points_cost,
            "redeem_reward",
            f"Redeemed: {reward.name}",
            {"reward_id": reward.id},
        )

        coupon_code = None
        if reward.type in CODE_REWARD_TYPES:
            coupon_code = generate_coupon_code(get_settings().coupon_code_prefix)

        redemption = Redemption(
            user_id=user_id,
            reward_id=reward.id,
            points_spent=reward.points_cost,
            status="completed",
            coupon_code=coupon_code,
            redemption_metadata={"reward_name": reward.name, "reward_type": reward.type},
        )
        db.add(redemption)
        await db.flush()

        summary = {
            "redemption_id": redemption.id,
            "reward": {
                "id": reward.id,
                "name": reward.name,
                "type": reward.type,
                "discount_percent": reward.discount_percent,
                "discount_amount": reward.discount_amount,
            },
            "points_spent": reward.points_cost,
            "coupon_code": coupon_code,
            "balance": bal.points,
        }

    logger.info("User %s redeemed reward %s for %d points", user_id, reward_id, summary["points_spent"])

    message = f"You redeemed {summary['reward']['name']}."
    if coupon_code:
        message += f" Your code: {coupon_code}"
    await notify_best_effort(
        db,
        user_id,
        "loyalty_reward",
        "Reward redeemed!",
        message,
        {"reward_id": reward_id, "coupon_code": coupon_code},
        redis,
    )
    return summary


async def list_redemptions(db: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """Newest-first redemptions with the current reward summary, if it still exists."""
    result = await db.execute(
        select(Redemption)
        .where(Redemption.user_id == user_id)
        .order_by(Redemption.created_at.desc(), Redemption.id.desc())
    )
    rows = result.scalars().unique().all()
    return [
        {
            "id": r.id,
            "reward_id": r.reward_id,
            "reward": (
                {"id": r.reward.id, "name": r.reward.name, "type": r.reward.type, "image": r.reward.image}
                if r.reward is not None
                else None
            ),
            "points_spent": r.points_spent,
            "status": r.status,
            "coupon_code": r.coupon_code,
            "metadata": r.redemption_metadata,
            "created_at": r.created_at,
        }
        for r in rows
    ]
