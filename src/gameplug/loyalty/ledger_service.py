"""Points ledger: the single source of truth for every point mutation.

Every mutation:
1. Locks (or lazily creates) the user's balance row with SELECT ... FOR UPDATE
2. Applies the tier multiplier for ``earn`` entries
3. Updates points / lifetime points, flooring points at zero
4. Appends a transaction carrying the post-mutation balance snapshot

All of it happens inside the caller's database transaction; callers commit
(or roll back) the whole unit of work.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.db.models import LoyaltyBalance, PointsTransaction, utcnow
from gameplug.loyalty.errors import InsufficientPointsError, InvalidInputError
from gameplug.loyalty.tiers import apply_multiplier

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = frozenset({"earn", "spend", "expire", "refund", "bonus"})
CREDIT_TYPES = frozenset({"earn", "bonus", "refund"})
DEBIT_TYPES = frozenset({"spend", "expire"})

SOURCES = frozenset({
    "purchase",
    "signup",
    "daily_login",
    "quest",
    "pack_open",
    "redeem_reward",
    "admin_grant",
    "tier_bonus",
    "referral",
    "expiration",
    "refund",
})


@dataclass
class LedgerEntry:
    """Result of one ledger mutation."""

    balance: LoyaltyBalance
    transaction: PointsTransaction


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def _insert_ignoring_conflicts(db: AsyncSession, user_id: str) -> Any:
    dialect = db.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
    now = utcnow()
    return (
        insert(LoyaltyBalance)
        .values(
            user_id=user_id,
            points=0,
            lifetime_points=0,
            tier="free",
            streak_days=0,
            created_at=now,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["user_id"])
    )


async def get_or_create_balance(
    db: AsyncSession,
    user_id: str,
    *,
    for_update: bool = False,
) -> LoyaltyBalance:
    """Get the user's balance row, creating it on first access.

    With ``for_update=True`` the row is re-read under a row lock, so no other
    mutation for the same user can interleave until the caller's transaction
    ends. A paid tier past its expiry lapses to free at that point.
    """
    stmt = select(LoyaltyBalance).where(LoyaltyBalance.user_id == user_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)

    bal = (await db.execute(stmt)).scalar_one_or_none()
    if bal is None:
        # Concurrent first accesses race on the unique user_id; the loser is a no-op
        await db.execute(_insert_ignoring_conflicts(db, user_id))
        bal = (await db.execute(stmt.execution_options(populate_existing=True))).scalar_one()

    if for_update and tier_has_lapsed(bal):
        logger.info("Tier %s lapsed for user %s", bal.tier, user_id)
        bal.tier = "free"
        bal.tier_expires_at = None

    return bal


def tier_has_lapsed(bal: LoyaltyBalance) -> bool:
    return (
        bal.tier != "free"
        and bal.tier_expires_at is not None
        and _as_utc(bal.tier_expires_at) <= utcnow()
    )


def effective_tier(bal: LoyaltyBalance) -> tuple[str, datetime | None]:
    """Tier and expiry as a read sees them.

    A lapsed tier reads as free without writing; the next locked mutation
    persists the lapse.
    """
    if tier_has_lapsed(bal):
        return "free", None
    return bal.tier, bal.tier_expires_at


def _check_sign(amount: int, type_: str) -> None:
    if type_ not in TRANSACTION_TYPES:
        raise InvalidInputError(f"Invalid transaction type: {type_}")
    if type_ in CREDIT_TYPES and amount < 0:
        raise InvalidInputError(f"'{type_}' transactions require a non-negative amount")
    if type_ in DEBIT_TYPES and amount > 0:
        raise InvalidInputError(f"'{type_}' transactions require a non-positive amount")


async def _apply(
    db: AsyncSession,
    bal: LoyaltyBalance,
    amount: int,
    type_: str,
    source: str,
    description: str,
    metadata: dict[str, Any] | None,
    idempotency_key: str | None,
) -> LedgerEntry:
    final_amount = apply_multiplier(amount, bal.tier) if type_ == "earn" else amount

    bal.points += final_amount
    if final_amount > 0:
        bal.lifetime_points += final_amount
    if bal.points < 0:
        bal.points = 0
    bal.updated_at = utcnow()

    tx = PointsTransaction(
        user_id=bal.user_id,
        type=type_,
        amount=final_amount,
        balance=bal.points,
        source=source,
        description=description,
        tx_metadata=metadata or {},
        idempotency_key=idempotency_key,
        created_at=utcnow(),
    )
    db.add(tx)
    await db.flush()

    logger.info(
        "Ledger %s/%s user=%s amount=%d balance=%d",
        type_, source, bal.user_id, final_amount, bal.points,
    )
    return LedgerEntry(balance=bal, transaction=tx)


async def add_points(
    db: AsyncSession,
    user_id: str,
    amount: int,
    type_: str,
    source: str,
    description: str = "",
    metadata: dict[str, Any] | None = None,
    *,
    idempotency_key: str | None = None,
) -> LedgerEntry:
    """Apply a signed point mutation and append its transaction.

    ``earn`` amounts are multiplied by the tier multiplier; all other types are
    applied as given. Points never go below zero: an oversized debit is floored
    silently, so callers that must not overdraw use :func:`spend_points`.
    """
    _check_sign(amount, type_)
    if source not in SOURCES:
        raise InvalidInputError(f"Invalid transaction source: {source}")

    bal = await get_or_create_balance(db, user_id, for_update=True)
    return await _apply(db, bal, amount, type_, source, description, metadata, idempotency_key)


async def spend_points(
    db: AsyncSession,
    user_id: str,
    cost: int,
    source: str,
    description: str = "",
    metadata: dict[str, Any] | None = None,
) -> LedgerEntry:
    """Conditionally debit ``cost`` points: the sufficiency check and the debit share one row lock.

    Raises InsufficientPointsError when the locked balance is below ``cost``.
    """
    if cost < 0:
        raise InvalidInputError("Cost must be non-negative")
    if source not in SOURCES:
        raise InvalidInputError(f"Invalid transaction source: {source}")

    bal = await get_or_create_balance(db, user_id, for_update=True)
    if bal.points < cost:
        raise InsufficientPointsError(required=cost, current=bal.points)
    return await _apply(db, bal, -cost, "spend", source, description, metadata, None)


async def has_idempotency_key(db: AsyncSession, key: str) -> bool:
    result = await db.execute(
        select(PointsTransaction.id).where(PointsTransaction.idempotency_key == key)
    )
    return result.first() is not None


async def get_history(
    db: AsyncSession,
    user_id: str,
    page: int = 1,
    limit: int = 20,
) -> dict[str, Any]:
    """Newest-first transaction history for a user."""
    total_result = await db.execute(
        select(func.count()).select_from(PointsTransaction).where(PointsTransaction.user_id == user_id)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(PointsTransaction)
        .where(PointsTransaction.user_id == user_id)
        .order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "transactions": list(result.scalars().all()),
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if limit else 0,
    }
