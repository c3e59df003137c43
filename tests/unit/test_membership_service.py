"""Membership upgrade tests."""

from __future__ import annotations

from datetime import timedelta

import pytest

from gameplug.db.models import Membership, utcnow
from gameplug.loyalty.errors import InsufficientPointsError, InvalidInputError, NotFoundError
from gameplug.loyalty.ledger_service import add_points, get_or_create_balance
from gameplug.loyalty.membership_service import get_membership, upgrade_tier


async def _memberships(db) -> None:
    db.add_all([
        Membership(tier="silver", name="GamePlus Silver", price=500, points_multiplier=1.5),
        Membership(tier="gold", name="GamePlus Gold", price=1200, points_multiplier=2.0, enabled=False),
    ])
    await db.commit()


class TestUpgradeTier:
    """Tiers are bought with points for a fixed duration."""

    @pytest.mark.asyncio
    async def test_upgrade_to_silver(self, db_session):
        await _memberships(db_session)
        await add_points(db_session, "u1", 600, "bonus", "admin_grant")
        await db_session.commit()

        before = utcnow()
        result = await upgrade_tier(db_session, "u1", "silver")

        assert result["tier"] == "silver"
        assert result["balance"] == 100
        expires = result["expires_at"]
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=before.tzinfo)
        assert timedelta(days=29) < expires - before <= timedelta(days=30, minutes=1)

    @pytest.mark.asyncio
    async def test_upgraded_tier_multiplies_earnings(self, db_session):
        await _memberships(db_session)
        await add_points(db_session, "u1", 500, "bonus", "admin_grant")
        await db_session.commit()
        await upgrade_tier(db_session, "u1", "silver")

        entry = await add_points(db_session, "u1", 100, "earn", "purchase")
        assert entry.transaction.amount == 150

    @pytest.mark.asyncio
    async def test_not_enough_points(self, db_session):
        await _memberships(db_session)
        with pytest.raises(InsufficientPointsError):
            await upgrade_tier(db_session, "u1", "silver")
        bal = await get_or_create_balance(db_session, "u1", for_update=True)
        assert bal.tier == "free"

    @pytest.mark.asyncio
    async def test_invalid_tier(self, db_session):
        with pytest.raises(InvalidInputError):
            await upgrade_tier(db_session, "u1", "platinum")

    @pytest.mark.asyncio
    async def test_disabled_tier(self, db_session):
        await _memberships(db_session)
        with pytest.raises(NotFoundError):
            await upgrade_tier(db_session, "u1", "gold")


class TestGetMembership:
    @pytest.mark.asyncio
    async def test_lists_enabled_tiers(self, db_session):
        await _memberships(db_session)
        data = await get_membership(db_session, "u1")
        assert data["current_tier"] == "free"
        assert [t.tier for t in data["tiers"]] == ["silver"]
