"""Notification endpoints for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.auth.dependencies import CurrentUser, get_current_user
from gameplug.dependencies import get_db
from gameplug.loyalty.errors import NotFoundError
from gameplug.notifications import service
from gameplug.notifications.schemas import NotificationListResponse, NotificationResponse

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationListResponse:
    data = await service.list_notifications(db, user.user_id, page=page, limit=limit)
    data["notifications"] = [NotificationResponse.model_validate(n) for n in data["notifications"]]
    return NotificationListResponse(**data)


@router.post("/read-all")
async def mark_all_read(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, int]:
    return {"updated": await service.mark_all_read(db, user.user_id)}


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    if not await service.mark_read(db, user.user_id, notification_id):
        raise NotFoundError("Notification not found")
    return {"read": True}
