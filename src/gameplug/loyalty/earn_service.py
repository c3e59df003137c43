"""Earning flows: daily login streak, purchase points, signup bonus."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.config import get_settings
from gameplug.database import atomic
from gameplug.loyalty.config_service import (
    DAILY_LOGIN_POINTS,
    POINTS_PER_EURO,
    SIGNUP_BONUS_POINTS,
    get_config_value,
)
from gameplug.loyalty.errors import AlreadyClaimedError, InvalidInputError
from gameplug.loyalty.ledger_service import add_points, get_or_create_balance, has_idempotency_key
from gameplug.loyalty.tiers import round_points
from gameplug.notifications.service import notify_best_effort

logger = logging.getLogger(__name__)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def streak_bonus(streak_days: int) -> int:
    """+N points per consecutive day, capped."""
    settings = get_settings()
    return min(streak_days * settings.daily_streak_bonus_per_day, settings.daily_streak_bonus_cap)


def next_streak(last_login: str | None, today: date, current_streak: int) -> int:
    """Continue the streak if the last claim was exactly yesterday, otherwise restart at 1."""
    yesterday = (today - timedelta(days=1)).isoformat()
    return current_streak + 1 if last_login == yesterday else 1


def purchase_key(user_id: str, order_id: str) -> str:
    return f"purchase:{user_id}:{order_id}"


def signup_key(user_id: str) -> str:
    return f"signup:{user_id}"


async def daily_login(
    db: AsyncSession,
    user_id: str,
    *,
    today: date | None = None,
    redis: object | None = None,
) -> dict[str, Any]:
    """Claim today's login reward (UTC calendar day)."""
    today = today or utc_today()
    today_str = today.isoformat()

    async with atomic(db):
        bal = await get_or_create_balance(db, user_id, for_update=True)
        if bal.daily_login_date == today_str:
            raise AlreadyClaimedError("Already claimed today")

        bal.streak_days = next_streak(bal.daily_login_date, today, bal.streak_days)
        bal.daily_login_date = today_str

        base = await get_config_value(db, DAILY_LOGIN_POINTS, get_settings().default_daily_login_points)
        points = int(base) + streak_bonus(bal.streak_days)

        entry = await add_points(
            db,
            user_id,
            points,
            "earn",
            "daily_login",
            f"Daily login (Day {bal.streak_days} streak)",
            {"streak_days": bal.streak_days},
        )
        streak = bal.streak_days
        credited = entry.transaction.amount
        balance = entry.balance.points

    await notify_best_effort(
        db,
        user_id,
        "loyalty_points",
        "Daily Login Reward",
        f"+{credited} points! Day {streak} streak bonus.",
        {"points": credited, "streak_days": streak},
        redis,
    )
    return {
        "points": points,
        "credited": credited,
        "streak_days": streak,
        "balance": balance,
        "message": f"+{credited} points! ({streak} day streak)",
    }


async def earn_from_purchase(
    db: AsyncSession,
    user_id: str,
    order_id: str,
    amount: float,
    *,
    redis: object | None = None,
) -> dict[str, Any]:
    """Credit points for a completed order, once per (user, order)."""
    if not order_id:
        raise InvalidInputError("order_id and amount required")
    if amount is None or amount <= 0:
        raise InvalidInputError("amount must be positive")

    key = purchase_key(user_id, order_id)
    try:
        async with atomic(db):
            await get_or_create_balance(db, user_id, for_update=True)
            if await has_idempotency_key(db, key):
                raise AlreadyClaimedError("Points already awarded for this order")

            ratio = await get_config_value(db, POINTS_PER_EURO, get_settings().default_points_per_euro)
            points = round_points(amount * float(ratio))
            entry = await add_points(
                db,
                user_id,
                points,
                "earn",
                "purchase",
                f"Purchase reward (€{amount:.2f})",
                {"order_id": order_id},
                idempotency_key=key,
            )
            earned = entry.transaction.amount
            balance = entry.balance.points
    except IntegrityError as exc:
        raise AlreadyClaimedError("Points already awarded for this order") from exc

    await notify_best_effort(
        db,
        user_id,
        "loyalty_points",
        "Points Earned!",
        f"You earned {earned} points from your purchase of €{amount:.2f}.",
        {"points": earned, "order_id": order_id},
        redis,
    )
    return {"earned": earned, "balance": balance}


async def claim_signup_bonus(
    db: AsyncSession,
    user_id: str,
    *,
    redis: object | None = None,
) -> dict[str, Any]:
    """One-time welcome bonus."""
    key = signup_key(user_id)
    try:
        async with atomic(db):
            await get_or_create_balance(db, user_id, for_update=True)
            if await has_idempotency_key(db, key):
                raise AlreadyClaimedError("Signup bonus already claimed")

            bonus = await get_config_value(
                db, SIGNUP_BONUS_POINTS, get_settings().default_signup_bonus_points
            )
            entry = await add_points(
                db,
                user_id,
                int(bonus),
                "earn",
                "signup",
                "Welcome bonus for joining Game Plug!",
                idempotency_key=key,
            )
            earned = entry.transaction.amount
            balance = entry.balance.points
    except IntegrityError as exc:
        raise AlreadyClaimedError("Signup bonus already claimed") from exc

    await notify_best_effort(
        db,
        user_id,
        "welcome",
        "Welcome to Game Plug!",
        f"You received {earned} bonus points for signing up. Start exploring!",
        {"points": earned},
        redis,
    )
    return {
        "earned": earned,
        "balance": balance,
        "message": f"Welcome! You earned {earned} bonus points!",
    }
