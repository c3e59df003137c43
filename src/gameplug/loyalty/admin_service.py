"""Admin operations: point grants, catalog CRUD, stats."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.database import atomic
from gameplug.db.models import (
    LoyaltyBalance,
    Membership,
    Pack,
    PackOpening,
    PointsTransaction,
    Quest,
    Redemption,
    Reward,
)
from gameplug.loyalty.draw import DROP_TYPES, validate_drop_table
from gameplug.loyalty.errors import InvalidInputError, NotFoundError
from gameplug.loyalty.ledger_service import LedgerEntry, add_points
from gameplug.loyalty.tiers import PAID_TIERS

logger = logging.getLogger(__name__)


async def grant_points(
    db: AsyncSession,
    admin_id: str,
    user_id: str,
    amount: int,
    reason: str | None = None,
) -> LedgerEntry:
    """Credit (positive) or debit (negative) a user's points by hand.

    Positive grants are ``earn`` entries, so the tier multiplier applies.
    Negative grants are floored at zero balance rather than rejected.
    """
    if not user_id or not amount:
        raise InvalidInputError("user_id and amount required")

    async with atomic(db):
        entry = await add_points(
            db,
            user_id,
            amount,
            "earn" if amount > 0 else "spend",
            "admin_grant",
            reason or "Admin adjustment",
            {"admin_id": admin_id},
        )

    logger.info("Admin %s granted %d points to user %s", admin_id, entry.transaction.amount, user_id)
    return entry


# ---------------------------------------------------------------------------
# Catalog CRUD
# ---------------------------------------------------------------------------


def check_drop_table(drops: list[dict[str, Any]]) -> None:
    for drop in drops:
        if drop.get("type") not in DROP_TYPES:
            raise InvalidInputError(f"Invalid drop type: {drop.get('type')}")
    try:
        validate_drop_table(drops)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc


async def _update(db: AsyncSession, obj: Any, fields: dict[str, Any]) -> Any:
    for name, value in fields.items():
        setattr(obj, name, value)
    await db.commit()
    await db.refresh(obj)
    return obj


async def _create(db: AsyncSession, obj: Any) -> Any:
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


async def list_all_rewards(db: AsyncSession) -> list[Reward]:
    result = await db.execute(select(Reward).order_by(Reward.created_at.desc(), Reward.id.desc()))
    return list(result.scalars().all())


async def create_reward(db: AsyncSession, fields: dict[str, Any]) -> Reward:
    return await _create(db, Reward(**fields))


async def update_reward(db: AsyncSession, reward_id: int, fields: dict[str, Any]) -> Reward:
    reward = await db.get(Reward, reward_id)
    if reward is None:
        raise NotFoundError("Not found")
    return await _update(db, reward, fields)


async def delete_reward(db: AsyncSession, reward_id: int) -> None:
    reward = await db.get(Reward, reward_id)
    if reward is None:
        raise NotFoundError("Not found")
    await db.delete(reward)
    await db.commit()


async def list_all_quests(db: AsyncSession) -> list[Quest]:
    result = await db.execute(select(Quest).order_by(Quest.sort_order.asc(), Quest.id.asc()))
    return list(result.scalars().all())


async def create_quest(db: AsyncSession, fields: dict[str, Any]) -> Quest:
    return await _create(db, Quest(**fields))


async def update_quest(db: AsyncSession, quest_id: int, fields: dict[str, Any]) -> Quest:
    quest = await db.get(Quest, quest_id)
    if quest is None:
        raise NotFoundError("Not found")
    return await _update(db, quest, fields)


async def list_all_packs(db: AsyncSession) -> list[Pack]:
    result = await db.execute(select(Pack).order_by(Pack.created_at.desc(), Pack.id.desc()))
    return list(result.scalars().all())


async def create_pack(db: AsyncSession, fields: dict[str, Any]) -> Pack:
    check_drop_table(fields.get("drops") or [])
    return await _create(db, Pack(**fields))


async def update_pack(db: AsyncSession, pack_id: int, fields: dict[str, Any]) -> Pack:
    if "drops" in fields:
        check_drop_table(fields["drops"] or [])
    pack = await db.get(Pack, pack_id)
    if pack is None:
        raise NotFoundError("Not found")
    return await _update(db, pack, fields)


async def list_memberships(db: AsyncSession) -> list[Membership]:
    result = await db.execute(select(Membership).order_by(Membership.price.asc()))
    return list(result.scalars().all())


async def upsert_membership(db: AsyncSession, fields: dict[str, Any]) -> Membership:
    tier = fields.get("tier")
    if tier not in PAID_TIERS:
        raise InvalidInputError("Invalid tier")
    membership = (
        await db.execute(select(Membership).where(Membership.tier == tier))
    ).scalar_one_or_none()
    if membership is None:
        return await _create(db, Membership(**fields))
    return await _update(db, membership, fields)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def loyalty_stats(db: AsyncSession) -> dict[str, Any]:
    totals = (
        await db.execute(
            select(
                func.coalesce(func.sum(LoyaltyBalance.points), 0),
                func.coalesce(func.sum(LoyaltyBalance.lifetime_points), 0),
                func.count(LoyaltyBalance.id),
            )
        )
    ).one()

    async def count(model: type) -> int:
        return (await db.execute(select(func.count()).select_from(model))).scalar_one()

    top = (
        await db.execute(
            select(LoyaltyBalance)
            .order_by(LoyaltyBalance.lifetime_points.desc(), LoyaltyBalance.id.asc())
            .limit(5)
        )
    ).scalars().all()

    return {
        "total_points_in_circulation": int(totals[0]),
        "total_lifetime_points_earned": int(totals[1]),
        "users_with_points": int(totals[2]),
        "total_transactions": await count(PointsTransaction),
        "total_redemptions": await count(Redemption),
        "total_pack_openings": await count(PackOpening),
        "top_users": [
            {
                "user_id": b.user_id,
                "points": b.points,
                "lifetime_points": b.lifetime_points,
                "tier": b.tier,
            }
            for b in top
        ],
    }
