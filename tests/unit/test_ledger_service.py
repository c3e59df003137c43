"""Points ledger tests: multipliers, clamping, snapshots, locking helpers."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from gameplug.db.models import LoyaltyBalance, PointsTransaction, utcnow
from gameplug.loyalty.errors import InsufficientPointsError, InvalidInputError
from gameplug.loyalty.ledger_service import (
    add_points,
    effective_tier,
    get_history,
    get_or_create_balance,
    has_idempotency_key,
    spend_points,
)


async def _set_tier(db, user_id: str, tier: str, expires_in: timedelta | None = None) -> None:
    bal = await get_or_create_balance(db, user_id)
    bal.tier = tier
    bal.tier_expires_at = utcnow() + expires_in if expires_in is not None else None
    await db.commit()


class TestGetOrCreateBalance:
    """Lazy balance creation."""

    @pytest.mark.asyncio
    async def test_creates_zero_balance(self, db_session):
        bal = await get_or_create_balance(db_session, "u1")
        assert bal.points == 0
        assert bal.lifetime_points == 0
        assert bal.tier == "free"
        assert bal.streak_days == 0

    @pytest.mark.asyncio
    async def test_is_idempotent(self, db_session):
        await get_or_create_balance(db_session, "u1")
        await get_or_create_balance(db_session, "u1", for_update=True)
        await db_session.commit()

        count = (
            await db_session.execute(
                select(func.count()).select_from(LoyaltyBalance).where(LoyaltyBalance.user_id == "u1")
            )
        ).scalar_one()
        assert count == 1

    @pytest.mark.asyncio
    async def test_expired_tier_lapses_when_locked(self, db_session):
        await _set_tier(db_session, "u1", "gold", expires_in=timedelta(days=-1))

        bal = await get_or_create_balance(db_session, "u1", for_update=True)
        assert bal.tier == "free"
        assert bal.tier_expires_at is None

    @pytest.mark.asyncio
    async def test_active_tier_kept(self, db_session):
        await _set_tier(db_session, "u1", "silver", expires_in=timedelta(days=10))

        bal = await get_or_create_balance(db_session, "u1", for_update=True)
        assert bal.tier == "silver"

    @pytest.mark.asyncio
    async def test_unlocked_read_reports_lapse_without_writing(self, db_session):
        await _set_tier(db_session, "u1", "gold", expires_in=timedelta(days=-1))

        bal = await get_or_create_balance(db_session, "u1")
        assert effective_tier(bal) == ("free", None)
        assert bal.tier == "gold"
        assert bal.tier_expires_at is not None

    @pytest.mark.asyncio
    async def test_effective_tier_keeps_active_tier(self, db_session):
        await _set_tier(db_session, "u1", "silver", expires_in=timedelta(days=3))

        bal = await get_or_create_balance(db_session, "u1")
        tier, expires_at = effective_tier(bal)
        assert tier == "silver"
        assert expires_at is not None


class TestAddPoints:
    """add_points applies multipliers to earn only and floors at zero."""

    @pytest.mark.asyncio
    async def test_earn_free_tier(self, db_session):
        entry = await add_points(db_session, "u1", 100, "earn", "purchase")
        assert entry.transaction.amount == 100
        assert entry.balance.points == 100
        assert entry.balance.lifetime_points == 100

    @pytest.mark.asyncio
    async def test_earn_gold_doubles(self, db_session):
        await _set_tier(db_session, "u1", "gold")
        entry = await add_points(db_session, "u1", 100, "earn", "purchase")
        assert entry.transaction.amount == 200
        assert entry.balance.points == 200

    @pytest.mark.asyncio
    async def test_earn_silver_rounds(self, db_session):
        await _set_tier(db_session, "u1", "silver")
        entry = await add_points(db_session, "u1", 15, "earn", "quest")
        assert entry.transaction.amount == 23

    @pytest.mark.asyncio
    async def test_bonus_ignores_multiplier(self, db_session):
        await _set_tier(db_session, "u1", "gold")
        entry = await add_points(db_session, "u1", 100, "bonus", "admin_grant")
        assert entry.transaction.amount == 100

    @pytest.mark.asyncio
    async def test_debit_floors_at_zero(self, db_session):
        await add_points(db_session, "u1", 30, "bonus", "admin_grant")
        entry = await add_points(db_session, "u1", -100, "spend", "admin_grant")
        assert entry.balance.points == 0
        assert entry.transaction.balance == 0
        assert entry.transaction.amount == -100

    @pytest.mark.asyncio
    async def test_lifetime_never_decreases(self, db_session):
        await add_points(db_session, "u1", 80, "earn", "purchase")
        entry = await add_points(db_session, "u1", -50, "spend", "pack_open")
        assert entry.balance.lifetime_points == 80
        assert entry.balance.points == 30

    @pytest.mark.asyncio
    async def test_snapshot_matches_balance_after_each_entry(self, db_session):
        await add_points(db_session, "u1", 40, "earn", "purchase")
        await add_points(db_session, "u1", -15, "spend", "pack_open")
        await add_points(db_session, "u1", 5, "refund", "refund")
        await db_session.commit()

        txs = (
            await db_session.execute(
                select(PointsTransaction)
                .where(PointsTransaction.user_id == "u1")
                .order_by(PointsTransaction.id)
            )
        ).scalars().all()
        assert [t.balance for t in txs] == [40, 25, 30]
        bal = await get_or_create_balance(db_session, "u1")
        assert bal.points == txs[-1].balance

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("amount", "type_"),
        [(-5, "earn"), (-5, "bonus"), (-5, "refund"), (5, "spend"), (5, "expire")],
    )
    async def test_sign_must_match_type(self, db_session, amount, type_):
        with pytest.raises(InvalidInputError):
            await add_points(db_session, "u1", amount, type_, "admin_grant")

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, db_session):
        with pytest.raises(InvalidInputError):
            await add_points(db_session, "u1", 5, "gift", "admin_grant")

    @pytest.mark.asyncio
    async def test_unknown_source_rejected(self, db_session):
        with pytest.raises(InvalidInputError):
            await add_points(db_session, "u1", 5, "earn", "lottery")


class TestSpendPoints:
    """Conditional decrement under the row lock."""

    @pytest.mark.asyncio
    async def test_spend_records_negative_amount(self, db_session):
        await add_points(db_session, "u1", 150, "bonus", "admin_grant")
        entry = await spend_points(db_session, "u1", 100, "redeem_reward", "Redeemed")
        assert entry.transaction.type == "spend"
        assert entry.transaction.amount == -100
        assert entry.balance.points == 50

    @pytest.mark.asyncio
    async def test_insufficient_points(self, db_session):
        await add_points(db_session, "u1", 99, "bonus", "admin_grant")
        with pytest.raises(InsufficientPointsError) as exc_info:
            await spend_points(db_session, "u1", 100, "pack_open")
        assert exc_info.value.required == 100
        assert exc_info.value.current == 99
        assert exc_info.value.extra == {"required": 100, "current": 99}

    @pytest.mark.asyncio
    async def test_exact_balance_can_be_spent(self, db_session):
        await add_points(db_session, "u1", 100, "bonus", "admin_grant")
        entry = await spend_points(db_session, "u1", 100, "pack_open")
        assert entry.balance.points == 0

    @pytest.mark.asyncio
    async def test_negative_cost_rejected(self, db_session):
        with pytest.raises(InvalidInputError):
            await spend_points(db_session, "u1", -1, "pack_open")


class TestHistoryAndKeys:
    """History paging and idempotency key lookup."""

    @pytest.mark.asyncio
    async def test_history_newest_first(self, db_session):
        for amount in (10, 20, 30):
            await add_points(db_session, "u1", amount, "earn", "purchase")
        await add_points(db_session, "u2", 99, "earn", "purchase")
        await db_session.commit()

        page1 = await get_history(db_session, "u1", page=1, limit=2)
        assert page1["total"] == 3
        assert page1["pages"] == 2
        assert [t.amount for t in page1["transactions"]] == [30, 20]

        page2 = await get_history(db_session, "u1", page=2, limit=2)
        assert [t.amount for t in page2["transactions"]] == [10]

    @pytest.mark.asyncio
    async def test_idempotency_key_lookup(self, db_session):
        assert not await has_idempotency_key(db_session, "signup:u1")
        await add_points(db_session, "u1", 100, "earn", "signup", idempotency_key="signup:u1")
        assert await has_idempotency_key(db_session, "signup:u1")
