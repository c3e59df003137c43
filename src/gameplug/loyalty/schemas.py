"""Pydantic request/response models for loyalty endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TierName = Literal["free", "silver", "gold"]
TierRequirement = Literal["free", "silver", "gold", "none"]
RewardType = Literal["coupon", "gift_card", "product", "points_boost"]
QuestType = Literal[
    "social_follow",
    "share_product",
    "write_review",
    "complete_profile",
    "first_purchase",
    "streak_login",
    "custom",
]
DropType = Literal["points", "coupon", "gift_card", "product", "nothing"]
Rarity = Literal["common", "rare", "epic", "legendary"]


# --- Balance & history ---


class BalanceResponse(BaseModel):
    points: int
    lifetime_points: int
    tier: str
    tier_expires_at: datetime | None = None
    multiplier: float
    streak_days: int
    daily_login_date: str | None = None


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: str
    amount: int
    balance: int
    source: str
    description: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="tx_metadata")
    created_at: datetime


class HistoryResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    page: int
    pages: int


# --- Earning ---


class DailyLoginResponse(BaseModel):
    points: int
    credited: int
    streak_days: int
    balance: int
    message: str


class PurchaseEarnRequest(BaseModel):
    order_id: str | None = None
    amount: float | None = None


class EarnResponse(BaseModel):
    earned: int
    balance: int
    message: str | None = None


# --- Rewards ---


class RewardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    type: str
    points_cost: int
    discount_percent: float
    discount_amount: float
    product_id: str | None = None
    image: str
    stock: int
    enabled: bool
    tier_required: str


class RedeemResponse(BaseModel):
    redemption_id: int
    reward: dict[str, Any]
    points_spent: int
    coupon_code: str | None = None
    balance: int


class RedemptionResponse(BaseModel):
    id: int
    reward_id: int | None = None
    reward: dict[str, Any] | None = None
    points_spent: int
    status: str
    coupon_code: str | None = None
    metadata: dict[str, Any] = {}
    created_at: datetime


# --- Quests ---


class QuestProgressResponse(BaseModel):
    id: int
    title: str
    description: str
    type: str
    reward_points: int
    icon: str
    sort_order: int
    metadata: dict[str, Any] = {}
    completed: bool
    completed_at: datetime | None = None
    progress: int


class QuestCompleteResponse(BaseModel):
    quest_id: int
    points_earned: int
    balance: int


# --- Packs ---


class PackResponse(BaseModel):
    id: int
    name: str
    description: str
    image: str
    points_cost: int
    tier_required: str
    drops: list[dict[str, Any]]


class DropResult(BaseModel):
    type: str
    rarity: str
    label: str
    value: Any = None
    discount_percent: float | None = None
    discount_amount: float | None = None


class PackOpenResponse(BaseModel):
    opening_id: int
    pack_name: str
    points_spent: int
    result: DropResult
    balance: int


class PackHistoryEntry(BaseModel):
    id: int
    pack_id: int | None = None
    pack_name: str | None = None
    points_spent: int
    result: dict[str, Any]
    created_at: datetime


# --- Membership ---


class MembershipTierResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tier: str
    name: str
    price: int
    yearly_price: int
    points_multiplier: float
    perks: list[str]
    enabled: bool


class MembershipResponse(BaseModel):
    current_tier: str
    tier_expires_at: datetime | None = None
    tiers: list[MembershipTierResponse]


class UpgradeRequest(BaseModel):
    tier: str


class UpgradeResponse(BaseModel):
    message: str
    tier: str
    expires_at: datetime
    balance: int


# --- Admin ---


class GrantPointsRequest(BaseModel):
    user_id: str | None = None
    amount: int = 0
    reason: str | None = None


class GrantPointsResponse(BaseModel):
    balance: int
    transaction: TransactionResponse


class ConfigEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    value: Any
    description: str
    updated_at: datetime | None = None


class ConfigUpsertRequest(BaseModel):
    key: str = Field(min_length=1, max_length=64)
    value: Any
    description: str | None = None


class RewardCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str = ""
    type: RewardType
    points_cost: int = Field(ge=0)
    discount_percent: float = Field(default=0, ge=0, le=100)
    discount_amount: float = Field(default=0, ge=0)
    product_id: str | None = None
    image: str = ""
    stock: int = Field(default=-1, ge=-1)
    enabled: bool = True
    tier_required: TierRequirement = "none"


class RewardUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    type: RewardType | None = None
    points_cost: int | None = Field(default=None, ge=0)
    discount_percent: float | None = Field(default=None, ge=0, le=100)
    discount_amount: float | None = Field(default=None, ge=0)
    product_id: str | None = None
    image: str | None = None
    stock: int | None = Field(default=None, ge=-1)
    enabled: bool | None = None
    tier_required: TierRequirement | None = None


class QuestCreate(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str = ""
    type: QuestType = "custom"
    reward_points: int = Field(ge=0)
    icon: str = "\U0001f3af"
    enabled: bool = True
    sort_order: int = 0
    metadata: dict[str, Any] = {}


class QuestUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    type: QuestType | None = None
    reward_points: int | None = Field(default=None, ge=0)
    icon: str | None = None
    enabled: bool | None = None
    sort_order: int | None = None
    metadata: dict[str, Any] | None = None


class AdminQuestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    type: str
    reward_points: int
    icon: str
    enabled: bool
    sort_order: int
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="quest_metadata")


class DropEntry(BaseModel):
    type: DropType
    rarity: Rarity = "common"
    weight: int = Field(ge=0)
    points_amount: int | None = Field(default=None, ge=0)
    discount_percent: float | None = Field(default=None, ge=0, le=100)
    discount_amount: float | None = Field(default=None, ge=0)
    product_id: str | None = None
    label: str = ""


class PackCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str = ""
    image: str = ""
    points_cost: int = Field(ge=0)
    enabled: bool = True
    tier_required: TierRequirement = "none"
    drops: list[DropEntry] = Field(min_length=1)


class PackUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=128)
    description: str | None = None
    image: str | None = None
    points_cost: int | None = Field(default=None, ge=0)
    enabled: bool | None = None
    tier_required: TierRequirement | None = None
    drops: list[DropEntry] | None = None


class AdminPackResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    image: str
    points_cost: int
    enabled: bool
    tier_required: str
    drops: list[dict[str, Any]]


class MembershipUpsert(BaseModel):
    tier: Literal["silver", "gold"]
    name: str = Field(min_length=1, max_length=64)
    price: int = Field(ge=0)
    yearly_price: int = Field(default=0, ge=0)
    points_multiplier: float = Field(default=1.0, gt=0)
    perks: list[str] = []
    enabled: bool = True


class TopUser(BaseModel):
    user_id: str
    points: int
    lifetime_points: int
    tier: str


class StatsResponse(BaseModel):
    total_points_in_circulation: int
    total_lifetime_points_earned: int
    users_with_points: int
    total_transactions: int
    total_redemptions: int
    total_pack_openings: int
    top_users: list[TopUser]


class SeedResponse(BaseModel):
    seeded: dict[str, int]
