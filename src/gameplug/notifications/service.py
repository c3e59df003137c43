"""In-app notification sink.

Notifications are:
1. Persisted in the database
2. Pushed to the user over Redis pub/sub (``ws:user:{user_id}``) when Redis is available

Loyalty flows call :func:`notify_best_effort` only after their own unit of work
has committed. Delivery failures are logged and dropped; they never undo or fail
the points mutation that triggered them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.db.models import Notification, utcnow
from gameplug.loyalty.errors import UpstreamFailure

logger = logging.getLogger(__name__)

VALID_TYPES = {"loyalty_points", "loyalty_reward", "loyalty_tier", "welcome", "system"}


async def push_notification_to_user(redis: Any | None, notification: Notification) -> bool:
    """Publish to ws:user:{user_id}. Returns False when Redis is absent or the publish fails."""
    if redis is None:
        return False

    payload = {
        "event": "notification",
        "data": {
            "id": str(notification.id),
            "type": notification.type,
            "title": notification.title,
            "message": notification.message,
            "data": notification.data,
            "timestamp": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
        },
    }
    try:
        await redis.publish(f"ws:user:{notification.user_id}", json.dumps(payload))
    except Exception:
        logger.warning("Failed to push notification via ws:user:%s", notification.user_id, exc_info=True)
        return False
    return True


async def create_notification(
    db: AsyncSession,
    user_id: str,
    type_: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
) -> Notification:
    """Persist a notification. Flushes; the caller commits and then pushes."""
    if type_ not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}")

    notification = Notification(
        user_id=user_id,
        type=type_,
        title=title,
        message=message,
        data=data or {},
        created_at=utcnow(),
    )
    db.add(notification)
    await db.flush()
    return notification


async def notify_best_effort(
    db: AsyncSession,
    user_id: str,
    type_: str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    redis: Any | None = None,
) -> Notification | None:
    """Persist and commit a notification, then push it; log and swallow any failure.

    Must be called after the triggering unit of work has committed, since a
    failure here rolls back the session.
    """
    try:
        try:
            notification = await create_notification(db, user_id, type_, title, message, data)
            await db.commit()
        except Exception as exc:
            raise UpstreamFailure("Notification delivery failed") from exc
    except UpstreamFailure:
        logger.warning("Failed to deliver %s notification to user %s", type_, user_id, exc_info=True)
        await db.rollback()
        return None

    await push_notification_to_user(redis, notification)
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    limit: int = 30,
) -> dict[str, Any]:
    """Newest-first notifications with total and unread counts."""
    total = (
        await db.execute(
            select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
        )
    ).scalar_one()
    unread = (
        await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        )
    ).scalar_one()
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "notifications": list(result.scalars().all()),
        "total": total,
        "unread_count": unread,
        "page": page,
        "limit": limit,
    }


async def mark_read(db: AsyncSession, user_id: str, notification_id: int) -> bool:
    """Mark one of the user's notifications read. Returns False if it does not exist."""
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        return False
    notification.read = True
    await db.commit()
    return True


async def mark_all_read(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
    )
    await db.commit()
    return result.rowcount or 0
