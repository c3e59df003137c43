"""Loyalty API endpoints for signed-in users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.auth.dependencies import CurrentUser, get_current_user
from gameplug.dependencies import get_db, get_redis_dep
from gameplug.loyalty import (
    earn_service,
    ledger_service,
    membership_service,
    pack_service,
    quest_service,
    reward_service,
)
from gameplug.loyalty.schemas import (
    BalanceResponse,
    DailyLoginResponse,
    EarnResponse,
    HistoryResponse,
    MembershipResponse,
    PackHistoryEntry,
    PackOpenResponse,
    PackResponse,
    PurchaseEarnRequest,
    QuestCompleteResponse,
    QuestProgressResponse,
    RedeemResponse,
    RedemptionResponse,
    RewardResponse,
    TransactionResponse,
    UpgradeRequest,
    UpgradeResponse,
)
from gameplug.loyalty.tiers import get_tier_multiplier

router = APIRouter(prefix="/api/v1/loyalty", tags=["Loyalty"])


# ── Points & balance ──


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> BalanceResponse:
    bal = await ledger_service.get_or_create_balance(db, user.user_id)
    tier, tier_expires_at = ledger_service.effective_tier(bal)
    response = BalanceResponse(
        points=bal.points,
        lifetime_points=bal.lifetime_points,
        tier=tier,
        tier_expires_at=tier_expires_at,
        multiplier=get_tier_multiplier(tier),
        streak_days=bal.streak_days,
        daily_login_date=bal.daily_login_date,
    )
    await db.commit()
    return response


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> HistoryResponse:
    data = await ledger_service.get_history(db, user.user_id, page=page, limit=limit)
    return HistoryResponse(
        transactions=[TransactionResponse.model_validate(tx) for tx in data["transactions"]],
        total=data["total"],
        page=data["page"],
        pages=data["pages"],
    )


# ── Earning ──


@router.post("/daily-login", response_model=DailyLoginResponse)
async def daily_login(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> DailyLoginResponse:
    return DailyLoginResponse(**await earn_service.daily_login(db, user.user_id, redis=redis))


@router.post("/earn-purchase", response_model=EarnResponse)
async def earn_purchase(
    body: PurchaseEarnRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> EarnResponse:
    result = await earn_service.earn_from_purchase(
        db, user.user_id, body.order_id or "", body.amount or 0, redis=redis
    )
    return EarnResponse(**result)


@router.post("/signup-bonus", response_model=EarnResponse)
async def signup_bonus(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> EarnResponse:
    return EarnResponse(**await earn_service.claim_signup_bonus(db, user.user_id, redis=redis))


# ── Rewards ──


@router.get("/rewards", response_model=list[RewardResponse])
async def list_rewards(
    _user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[RewardResponse]:
    return [RewardResponse.model_validate(r) for r in await reward_service.list_rewards(db)]


@router.post("/rewards/{reward_id}/redeem", response_model=RedeemResponse)
async def redeem_reward(
    reward_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> RedeemResponse:
    return RedeemResponse(**await reward_service.redeem_reward(db, user.user_id, reward_id, redis=redis))


@router.get("/redemptions", response_model=list[RedemptionResponse])
async def list_redemptions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[RedemptionResponse]:
    return [RedemptionResponse(**r) for r in await reward_service.list_redemptions(db, user.user_id)]


# ── Quests ──


@router.get("/quests", response_model=list[QuestProgressResponse])
async def list_quests(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[QuestProgressResponse]:
    items = await quest_service.list_quests_with_progress(db, user.user_id)
    return [QuestProgressResponse(**q) for q in items]


@router.post("/quests/{quest_id}/complete", response_model=QuestCompleteResponse)
async def complete_quest(
    quest_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> QuestCompleteResponse:
    return QuestCompleteResponse(**await quest_service.complete_quest(db, user.user_id, quest_id, redis=redis))


# ── Packs ──


@router.get("/packs", response_model=list[PackResponse])
async def list_packs(
    _user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[PackResponse]:
    return [PackResponse(**p) for p in await pack_service.list_packs(db)]


@router.get("/packs/history", response_model=list[PackHistoryEntry])
async def pack_history(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[PackHistoryEntry]:
    return [PackHistoryEntry(**row) for row in await pack_service.get_pack_history(db, user.user_id)]


@router.post("/packs/{pack_id}/open", response_model=PackOpenResponse)
async def open_pack(
    pack_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> PackOpenResponse:
    return PackOpenResponse(**await pack_service.open_pack(db, user.user_id, pack_id, redis=redis))


# ── Membership ──


@router.get("/membership", response_model=MembershipResponse)
async def get_membership(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MembershipResponse:
    data = await membership_service.get_membership(db, user.user_id)
    return MembershipResponse.model_validate(data, from_attributes=True)


@router.post("/membership/upgrade", response_model=UpgradeResponse)
async def upgrade_membership(
    body: UpgradeRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    redis: object | None = Depends(get_redis_dep),
) -> UpgradeResponse:
    return UpgradeResponse(**await membership_service.upgrade_tier(db, user.user_id, body.tier, redis=redis))
