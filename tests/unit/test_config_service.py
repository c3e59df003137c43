"""Loyalty config store tests."""

from __future__ import annotations

import pytest

from gameplug.db.models import LoyaltyConfig
from gameplug.loyalty.config_service import (
    DAILY_LOGIN_POINTS,
    POINTS_PER_EURO,
    SIGNUP_BONUS_POINTS,
    check_config_value,
    get_config_value,
    list_config,
    set_config_value,
)
from gameplug.loyalty.errors import InvalidInputError


class TestCheckConfigValue:
    """Earning keys must hold values the earning flows can credit."""

    @pytest.mark.parametrize("value", ["ten", None, True, [10], {"v": 10}, float("nan"), float("inf")])
    @pytest.mark.parametrize("key", [POINTS_PER_EURO, SIGNUP_BONUS_POINTS, DAILY_LOGIN_POINTS])
    def test_non_numbers_rejected(self, key, value):
        with pytest.raises(InvalidInputError):
            check_config_value(key, value)

    @pytest.mark.parametrize("key", [POINTS_PER_EURO, SIGNUP_BONUS_POINTS, DAILY_LOGIN_POINTS])
    def test_negative_rejected(self, key):
        with pytest.raises(InvalidInputError, match="negative"):
            check_config_value(key, -100)

    def test_points_keys_need_whole_numbers(self):
        with pytest.raises(InvalidInputError, match="whole"):
            check_config_value(DAILY_LOGIN_POINTS, 2.5)
        assert check_config_value(SIGNUP_BONUS_POINTS, 50.0) == 50
        assert isinstance(check_config_value(SIGNUP_BONUS_POINTS, 50.0), int)

    def test_ratio_may_be_fractional(self):
        assert check_config_value(POINTS_PER_EURO, 1.5) == 1.5
        assert check_config_value(POINTS_PER_EURO, 0) == 0

    def test_other_keys_pass_through(self):
        assert check_config_value("banner_text", "Double points weekend!") == "Double points weekend!"


class TestSetConfigValue:
    @pytest.mark.asyncio
    async def test_invalid_value_not_stored(self, db_session):
        with pytest.raises(InvalidInputError):
            await set_config_value(db_session, DAILY_LOGIN_POINTS, "ten")
        assert await db_session.get(LoyaltyConfig, DAILY_LOGIN_POINTS) is None

    @pytest.mark.asyncio
    async def test_upsert_keeps_description(self, db_session):
        await set_config_value(db_session, SIGNUP_BONUS_POINTS, 100, "Welcome bonus")
        await set_config_value(db_session, SIGNUP_BONUS_POINTS, 150)
        await db_session.commit()

        assert await get_config_value(db_session, SIGNUP_BONUS_POINTS, None) == 150
        rows = await list_config(db_session)
        assert [(c.key, c.description) for c in rows] == [(SIGNUP_BONUS_POINTS, "Welcome bonus")]

    @pytest.mark.asyncio
    async def test_fallback_when_unset(self, db_session):
        assert await get_config_value(db_session, POINTS_PER_EURO, 10) == 10
