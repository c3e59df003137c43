"""Quest listing and one-shot quest completion."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.database import atomic
from gameplug.db.models import Quest, UserQuest, utcnow
from gameplug.loyalty.errors import AlreadyCompletedError, NotFoundError
from gameplug.loyalty.ledger_service import add_points, get_or_create_balance
from gameplug.notifications.service import notify_best_effort

logger = logging.getLogger(__name__)

QUEST_TYPES = (
    "social_follow",
    "share_product",
    "write_review",
    "complete_profile",
    "first_purchase",
    "streak_login",
    "custom",
)


async def list_quests_with_progress(db: AsyncSession, user_id: str) -> list[dict[str, Any]]:
    """Enabled quests in display order, merged with the user's progress."""
    quests = (
        await db.execute(
            select(Quest).where(Quest.enabled.is_(True)).order_by(Quest.sort_order.asc(), Quest.id.asc())
        )
    ).scalars().all()

    progress_rows = (
        await db.execute(select(UserQuest).where(UserQuest.user_id == user_id))
    ).scalars().all()
    progress = {uq.quest_id: uq for uq in progress_rows}

    items = []
    for q in quests:
        uq = progress.get(q.id)
        items.append({
            "id": q.id,
            "title": q.title,
            "description": q.description,
            "type": q.type,
            "reward_points": q.reward_points,
            "icon": q.icon,
            "sort_order": q.sort_order,
            "metadata": q.quest_metadata,
            "completed": uq.completed if uq else False,
            "completed_at": uq.completed_at if uq else None,
            "progress": uq.progress if uq else 0,
        })
    return items


async def complete_quest(
    db: AsyncSession,
    user_id: str,
    quest_id: int,
    *,
    redis: object | None = None,
) -> dict[str, Any]:
    """Mark a quest complete and credit its reward points, at most once per user."""
    try:
        async with atomic(db):
            quest = await db.get(Quest, quest_id)
            if quest is None or not quest.enabled:
                raise NotFoundError("Quest not found or disabled")

            # Serialises completions for this user
            await get_or_create_balance(db, user_id, for_update=True)

            uq = (
                await db.execute(
                    select(UserQuest)
                    .where(UserQuest.user_id == user_id, UserQuest.quest_id == quest_id)
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()
            if uq is not None and uq.completed:
                raise AlreadyCompletedError()

            now = utcnow()
            if uq is None:
                uq = UserQuest(user_id=user_id, quest_id=quest_id)
                db.add(uq)
            uq.completed = True
            uq.completed_at = now
            uq.progress = 100
            uq.updated_at = now
            await db.flush()

            entry = await add_points(
                db,
                user_id,
                quest.reward_points,
                "earn",
                "quest",
                f"Quest completed: {quest.title}",
                {"quest_id": quest.id},
            )
            title = quest.title
            earned = entry.transaction.amount
            balance = entry.balance.points
    except IntegrityError as exc:
        raise AlreadyCompletedError() from exc

    logger.info("User %s completed quest %s (+%d)", user_id, quest_id, earned)

    await notify_best_effort(
        db,
        user_id,
        "loyalty_points",
        "Quest completed!",
        f"{title}: +{earned} points",
        {"quest_id": quest_id, "points": earned},
        redis,
    )
    return {"quest_id": quest_id, "points_earned": earned, "balance": balance}
