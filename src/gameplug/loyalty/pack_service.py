"""Pack opening: spend, weighted draw, realise the drop, record the opening.

Opening a pack is one unit of work:
1. Load the enabled pack
2. Lock the user's balance and check the tier gate
3. Validate the drop table before any spend
4. Spend the pack cost (conditional decrement under the lock)
5. Draw one drop with the CSPRNG
6. Realise it (points credit, coupon code, product reference, or nothing)
7. Insert the pack_openings row

Any failure after the spend rolls the spend back with everything else.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.config import get_settings
from gameplug.database import atomic
from gameplug.db.models import Pack, PackOpening
from gameplug.loyalty.draw import RandBelow, generate_coupon_code, select_drop, validate_drop_table
from gameplug.loyalty.errors import InvalidInputError, NotFoundError, TierRequiredError
from gameplug.loyalty.ledger_service import add_points, get_or_create_balance, spend_points
from gameplug.loyalty.tiers import meets_tier
from gameplug.notifications.service import notify_best_effort

logger = logging.getLogger(__name__)

DEFAULT_POINTS_DROP = 50
NOTHING_LABEL = "Better luck next time!"


async def list_packs(db: AsyncSession) -> list[dict[str, Any]]:
    """Enabled packs with their drop tables, weights stripped."""
    result = await db.execute(
        select(Pack).where(Pack.enabled.is_(True)).order_by(Pack.points_cost.asc(), Pack.id.asc())
    )
    return [
        {
            "id": pack.id,
            "name": pack.name,
            "description": pack.description,
            "image": pack.image,
            "points_cost": pack.points_cost,
            "tier_required": pack.tier_required,
            "drops": [
                {k: v for k, v in drop.items() if k != "weight"}
                for drop in pack.drops or []
            ],
        }
        for pack in result.scalars().all()
    ]


async def _realise_drop(
    db: AsyncSession,
    user_id: str,
    pack: Pack,
    drop: dict[str, Any],
) -> dict[str, Any]:
    drop_type = drop.get("type", "nothing")
    result: dict[str, Any] = {
        "type": drop_type,
        "rarity": drop.get("rarity", "common"),
        "label": drop.get("label", ""),
        "value": None,
    }

    if drop_type == "points":
        amount = int(drop.get("points_amount") or DEFAULT_POINTS_DROP)
        entry = await add_points(
            db,
            user_id,
            amount,
            "earn",
            "pack_open",
            f"Pack reward: {drop.get('label') or f'{amount} Points'}",
            {"pack_id": pack.id},
        )
        result["value"] = entry.transaction.amount
    elif drop_type in ("coupon", "gift_card"):
        result["value"] = generate_coupon_code(get_settings().coupon_code_prefix)
        result["discount_percent"] = drop.get("discount_percent") or 0
        result["discount_amount"] = drop.get("discount_amount") or 0
    elif drop_type == "product":
        result["value"] = drop.get("product_id")
    else:
        result["type"] = "nothing"
        result["label"] = result["label"] or NOTHING_LABEL

    return result


async def open_pack(
    db: AsyncSession,
    user_id: str,
    pack_id: int,
    *,
    redis: object | None = None,
    randbelow: RandBelow = secrets.randbelow,
) -> dict[str, Any]:
    """Open a pack for ``user_id``. Returns the realised result and the new balance."""
    async with atomic(db):
        pack = await db.get(Pack, pack_id)
        if pack is None or not pack.enabled:
            raise NotFoundError("Pack not found or disabled")

        bal = await get_or_create_balance(db, user_id, for_update=True)
        if not meets_tier(bal.tier, pack.tier_required):
            raise TierRequiredError(pack.tier_required)

        drops = list(pack.drops or [])
        try:
            validate_drop_table(drops)
        except ValueError as exc:
            raise InvalidInputError(f"Pack is misconfigured: {exc}") from exc

        await spend_points(
            db,
            user_id,
            pack.points_cost,
            "pack_open",
            f"Opened pack: {pack.name}",
            {"pack_id": pack.id},
        )

        drop = select_drop(drops, randbelow)
        result = await _realise_drop(db, user_id, pack, drop)

        opening = PackOpening(
            user_id=user_id,
            pack_id=pack.id,
            points_spent=pack.points_cost,
            result=result,
        )
        db.add(opening)
        await db.flush()

        opening_id = opening.id
        pack_name = pack.name
        points_spent = pack.points_cost
        balance = bal.points

    logger.info(
        "User %s opened pack %s: %s/%s", user_id, pack_id, result["type"], result["rarity"]
    )

    if result["type"] != "nothing":
        await notify_best_effort(
            db,
            user_id,
            "loyalty_reward",
            f"{pack_name} opened!",
            f"You got: {result['label'] or result['type']}",
            {"pack_id": pack_id, "result": result},
            redis,
        )

    return {
        "opening_id": opening_id,
        "pack_name": pack_name,
        "points_spent": points_spent,
        "result": result,
        "balance": balance,
    }


async def get_pack_history(
    db: AsyncSession,
    user_id: str,
    limit: int | None = None,
) -> list[dict[str, Any]]:
    """Newest-first openings for a user, with the pack name where the pack still exists."""
    limit = limit or get_settings().pack_history_limit
    result = await db.execute(
        select(PackOpening)
        .where(PackOpening.user_id == user_id)
        .order_by(PackOpening.created_at.desc(), PackOpening.id.desc())
        .limit(limit)
    )
    return [
        {
            "id": row.id,
            "pack_id": row.pack_id,
            "pack_name": row.pack.name if row.pack is not None else None,
            "points_spent": row.points_spent,
            "result": row.result,
            "created_at": row.created_at,
        }
        for row in result.scalars().unique().all()
    ]
