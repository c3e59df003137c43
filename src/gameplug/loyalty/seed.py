"""Default loyalty catalog: config keys, quests, rewards, packs, memberships."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.db.models import LoyaltyConfig, Membership, Pack, Quest, Reward
from gameplug.loyalty.config_service import default_config, set_config_value

logger = logging.getLogger(__name__)

QUEST_SEED_DATA: list[dict] = [
    {
        "title": "Complete Your Profile",
        "description": "Fill in all profile fields",
        "type": "complete_profile",
        "reward_points": 50,
        "icon": "\U0001f464",
        "sort_order": 1,
    },
    {
        "title": "Make Your First Purchase",
        "description": "Buy any product from the store",
        "type": "first_purchase",
        "reward_points": 100,
        "icon": "\U0001f6d2",
        "sort_order": 2,
    },
    {
        "title": "7-Day Login Streak",
        "description": "Log in for 7 consecutive days",
        "type": "streak_login",
        "reward_points": 200,
        "icon": "\U0001f525",
        "sort_order": 3,
        "quest_metadata": {"required_days": 7},
    },
    {
        "title": "Write a Review",
        "description": "Leave a review on any product",
        "type": "write_review",
        "reward_points": 75,
        "icon": "⭐",
        "sort_order": 4,
    },
    {
        "title": "Share a Product",
        "description": "Share any product link on social media",
        "type": "share_product",
        "reward_points": 50,
        "icon": "\U0001f4e4",
        "sort_order": 5,
    },
    {
        "title": "Follow Us on Twitter",
        "description": "Follow @GamePlug on Twitter",
        "type": "social_follow",
        "reward_points": 30,
        "icon": "\U0001f426",
        "sort_order": 6,
        "quest_metadata": {"url": "https://twitter.com/gameplug"},
    },
]

REWARD_SEED_DATA: list[dict] = [
    {
        "name": "5% Discount Coupon",
        "description": "5% off your next purchase",
        "type": "coupon",
        "points_cost": 200,
        "discount_percent": 5,
        "image": "\U0001f3f7️",
    },
    {
        "name": "10% Discount Coupon",
        "description": "10% off your next purchase",
        "type": "coupon",
        "points_cost": 400,
        "discount_percent": 10,
        "image": "\U0001f3ab",
    },
    {
        "name": "€5 Gift Card",
        "description": "€5 credit for the store",
        "type": "gift_card",
        "points_cost": 500,
        "discount_amount": 5,
        "image": "\U0001f4b3",
    },
    {
        "name": "€10 Gift Card",
        "description": "€10 credit for the store",
        "type": "gift_card",
        "points_cost": 900,
        "discount_amount": 10,
        "image": "\U0001f48e",
    },
    {
        "name": "Mystery Game Key",
        "description": "A random game key from our collection",
        "type": "product",
        "points_cost": 1500,
        "image": "\U0001f3ae",
        "stock": 50,
    },
]

PACK_SEED_DATA: list[dict] = [
    {
        "name": "Starter Pack",
        "description": "A basic pack with common rewards",
        "image": "\U0001f4e6",
        "points_cost": 100,
        "drops": [
            {"type": "points", "rarity": "common", "weight": 50, "points_amount": 20, "label": "20 Points"},
            {"type": "points", "rarity": "common", "weight": 30, "points_amount": 50, "label": "50 Points"},
            {"type": "coupon", "rarity": "rare", "weight": 15, "discount_percent": 5, "label": "5% Coupon"},
            {"type": "coupon", "rarity": "epic", "weight": 4, "discount_percent": 15, "label": "15% Coupon"},
            {"type": "nothing", "rarity": "common", "weight": 1, "label": "Empty..."},
        ],
    },
    {
        "name": "Premium Pack",
        "description": "Higher chances for rare rewards",
        "image": "\U0001f381",
        "points_cost": 300,
        "drops": [
            {"type": "points", "rarity": "common", "weight": 30, "points_amount": 50, "label": "50 Points"},
            {"type": "points", "rarity": "rare", "weight": 25, "points_amount": 150, "label": "150 Points"},
            {"type": "coupon", "rarity": "rare", "weight": 20, "discount_percent": 10, "label": "10% Coupon"},
            {"type": "coupon", "rarity": "epic", "weight": 15, "discount_percent": 25, "label": "25% Coupon"},
            {"type": "gift_card", "rarity": "epic", "weight": 8, "discount_amount": 5, "label": "€5 Gift Card"},
            {"type": "gift_card", "rarity": "legendary", "weight": 2, "discount_amount": 20, "label": "€20 Gift Card"},
        ],
    },
    {
        "name": "Legendary Pack",
        "description": "The ultimate pack: legendary drops await!",
        "image": "\U0001f451",
        "points_cost": 750,
        "tier_required": "silver",
        "drops": [
            {"type": "points", "rarity": "rare", "weight": 25, "points_amount": 200, "label": "200 Points"},
            {"type": "points", "rarity": "epic", "weight": 20, "points_amount": 500, "label": "500 Points"},
            {"type": "coupon", "rarity": "epic", "weight": 20, "discount_percent": 30, "label": "30% Coupon"},
            {"type": "gift_card", "rarity": "epic", "weight": 15, "discount_amount": 10, "label": "€10 Gift Card"},
            {"type": "gift_card", "rarity": "legendary", "weight": 10, "discount_amount": 50, "label": "€50 Gift Card"},
            {"type": "product", "rarity": "legendary", "weight": 5, "label": "Mystery Game Key"},
            {"type": "points", "rarity": "legendary", "weight": 5, "points_amount": 2000, "label": "JACKPOT 2000 Points!"},
        ],
    },
]

MEMBERSHIP_SEED_DATA: list[dict] = [
    {
        "tier": "silver",
        "name": "GamePlus Silver",
        "price": 500,
        "yearly_price": 5000,
        "points_multiplier": 1.5,
        "perks": ["1.5x points on purchases", "Access to Premium Packs", "Monthly bonus points"],
    },
    {
        "tier": "gold",
        "name": "GamePlus Gold",
        "price": 1200,
        "yearly_price": 12000,
        "points_multiplier": 2.0,
        "perks": [
            "2x points on purchases",
            "Access to Legendary Packs",
            "Exclusive rewards",
            "Priority support",
            "Monthly mega bonus",
        ],
    },
]


async def _is_empty(db: AsyncSession, model: type) -> bool:
    count = (await db.execute(select(func.count()).select_from(model))).scalar_one()
    return count == 0


async def seed_defaults(db: AsyncSession) -> dict[str, int]:
    """Insert missing config keys; insert catalog rows only into empty tables.

    Runs on every startup, so values an admin has tuned are never overwritten.
    Returns the number of rows written per table.
    """
    seeded = {"config": 0, "quests": 0, "rewards": 0, "packs": 0, "memberships": 0}

    for row in default_config():
        if await db.get(LoyaltyConfig, row["key"]) is None:
            await set_config_value(db, row["key"], row["value"], row["description"])
            seeded["config"] += 1

    for key, model, data in (
        ("quests", Quest, QUEST_SEED_DATA),
        ("rewards", Reward, REWARD_SEED_DATA),
        ("packs", Pack, PACK_SEED_DATA),
        ("memberships", Membership, MEMBERSHIP_SEED_DATA),
    ):
        if await _is_empty(db, model):
            db.add_all([model(**item) for item in data])
            seeded[key] = len(data)

    await db.commit()
    logger.info("Seeded loyalty defaults: %s", seeded)
    return seeded
