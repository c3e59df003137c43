"""Notification sink tests: persistence, push, best-effort failure handling."""

from __future__ import annotations

import json
import logging
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from gameplug.db.models import Notification
from gameplug.loyalty.earn_service import claim_signup_bonus
from gameplug.loyalty.ledger_service import get_or_create_balance
from gameplug.notifications.service import (
    list_notifications,
    mark_all_read,
    mark_read,
    notify_best_effort,
)


class TestNotifyBestEffort:
    """Delivery problems never surface to the caller."""

    @pytest.mark.asyncio
    async def test_persists_and_pushes(self, db_session):
        redis = AsyncMock()
        notification = await notify_best_effort(
            db_session, "u1", "loyalty_points", "Points!", "+10", {"points": 10}, redis
        )
        assert notification is not None

        redis.publish.assert_awaited_once()
        channel, payload = redis.publish.await_args.args
        assert channel == "ws:user:u1"
        assert json.loads(payload)["data"]["title"] == "Points!"

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_notification(self, db_session, caplog):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")

        with caplog.at_level(logging.WARNING):
            notification = await notify_best_effort(db_session, "u1", "system", "Hi", "msg", redis=redis)

        assert notification is not None
        rows = (await db_session.execute(select(Notification))).scalars().all()
        assert len(rows) == 1
        assert "Failed to push notification" in caplog.text

    @pytest.mark.asyncio
    async def test_persist_failure_is_swallowed(self, db_session, caplog):
        with caplog.at_level(logging.WARNING):
            result = await notify_best_effort(db_session, "u1", "not-a-type", "Hi", "msg")

        assert result is None
        assert "Failed to deliver" in caplog.text

    @pytest.mark.asyncio
    async def test_points_survive_notification_failure(self, db_session):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")

        result = await claim_signup_bonus(db_session, "u1", redis=redis)
        assert result["earned"] == 100

        bal = await get_or_create_balance(db_session, "u1", for_update=True)
        assert bal.points == 100


class TestReadState:
    @pytest.mark.asyncio
    async def test_list_and_mark_read(self, db_session):
        first = await notify_best_effort(db_session, "u1", "system", "One", "1")
        await notify_best_effort(db_session, "u1", "system", "Two", "2")
        await notify_best_effort(db_session, "u2", "system", "Other", "x")

        data = await list_notifications(db_session, "u1")
        assert data["total"] == 2
        assert data["unread_count"] == 2

        assert await mark_read(db_session, "u1", first.id) is True
        assert await mark_read(db_session, "u2", first.id) is False
        assert (await list_notifications(db_session, "u1"))["unread_count"] == 1

        assert await mark_all_read(db_session, "u1") == 1
        assert (await list_notifications(db_session, "u1"))["unread_count"] == 0
