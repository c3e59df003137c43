"""Default seeding tests."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from gameplug.db.models import LoyaltyConfig, Membership, Pack, Quest, Reward
from gameplug.loyalty.config_service import get_config_value, set_config_value
from gameplug.loyalty.draw import validate_drop_table
from gameplug.loyalty.seed import PACK_SEED_DATA, seed_defaults


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


class TestSeedDefaults:
    @pytest.mark.asyncio
    async def test_seeds_empty_database(self, db_session):
        seeded = await seed_defaults(db_session)
        assert seeded == {"config": 3, "quests": 6, "rewards": 5, "packs": 3, "memberships": 2}
        assert await get_config_value(db_session, "points_per_euro", None) == 10

    @pytest.mark.asyncio
    async def test_is_idempotent(self, db_session):
        await seed_defaults(db_session)
        second = await seed_defaults(db_session)

        assert second == {"config": 0, "quests": 0, "rewards": 0, "packs": 0, "memberships": 0}
        assert await _count(db_session, Quest) == 6
        assert await _count(db_session, Reward) == 5
        assert await _count(db_session, Pack) == 3
        assert await _count(db_session, Membership) == 2
        assert await _count(db_session, LoyaltyConfig) == 3

    @pytest.mark.asyncio
    async def test_keeps_tuned_config(self, db_session):
        await set_config_value(db_session, "points_per_euro", 3)
        await db_session.commit()

        seeded = await seed_defaults(db_session)
        assert seeded["config"] == 2
        assert await get_config_value(db_session, "points_per_euro", None) == 3
        assert await get_config_value(db_session, "signup_bonus_points", None) == 100

    @pytest.mark.asyncio
    async def test_does_not_touch_existing_catalog(self, db_session):
        db_session.add(Quest(title="Custom", type="custom", reward_points=1))
        await db_session.commit()

        seeded = await seed_defaults(db_session)
        assert seeded["quests"] == 0
        assert await _count(db_session, Quest) == 1

    def test_seed_packs_have_drawable_tables(self):
        for pack in PACK_SEED_DATA:
            validate_drop_table(pack["drops"])
        assert [sum(d["weight"] for d in p["drops"]) for p in PACK_SEED_DATA] == [100, 100, 100]
