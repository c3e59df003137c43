"""Admin loyalty endpoints. Every route requires role == "admin"."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from gameplug.auth.dependencies import CurrentUser, require_admin
from gameplug.database import atomic
from gameplug.dependencies import get_db
from gameplug.loyalty import admin_service, config_service
from gameplug.loyalty.schemas import (
    AdminPackResponse,
    AdminQuestResponse,
    ConfigEntry,
    ConfigUpsertRequest,
    GrantPointsRequest,
    GrantPointsResponse,
    MembershipTierResponse,
    MembershipUpsert,
    PackCreate,
    PackUpdate,
    QuestCreate,
    QuestUpdate,
    RewardCreate,
    RewardResponse,
    RewardUpdate,
    SeedResponse,
    StatsResponse,
    TransactionResponse,
)
from gameplug.loyalty.seed import seed_defaults

router = APIRouter(
    prefix="/api/v1/loyalty/admin",
    tags=["Loyalty Admin"],
    dependencies=[Depends(require_admin)],
)


def _quest_fields(body: QuestCreate | QuestUpdate) -> dict:
    fields = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if "metadata" in fields:
        fields["quest_metadata"] = fields.pop("metadata") or {}
    return fields


@router.get("/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_db)) -> StatsResponse:
    return StatsResponse(**await admin_service.loyalty_stats(db))


@router.post("/seed", response_model=SeedResponse)
async def seed(db: AsyncSession = Depends(get_db)) -> SeedResponse:
    return SeedResponse(seeded=await seed_defaults(db))


@router.post("/grant-points", response_model=GrantPointsResponse)
async def grant_points(
    body: GrantPointsRequest,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> GrantPointsResponse:
    entry = await admin_service.grant_points(db, admin.user_id, body.user_id or "", body.amount, body.reason)
    return GrantPointsResponse(
        balance=entry.balance.points,
        transaction=TransactionResponse.model_validate(entry.transaction),
    )


# ── Config ──


@router.get("/config", response_model=list[ConfigEntry])
async def get_config(db: AsyncSession = Depends(get_db)) -> list[ConfigEntry]:
    return [ConfigEntry.model_validate(c) for c in await config_service.list_config(db)]


@router.post("/config", response_model=ConfigEntry)
async def set_config(body: ConfigUpsertRequest, db: AsyncSession = Depends(get_db)) -> ConfigEntry:
    async with atomic(db):
        cfg = await config_service.set_config_value(db, body.key, body.value, body.description)
        response = ConfigEntry.model_validate(cfg)
    return response


# ── Rewards ──


@router.get("/rewards", response_model=list[RewardResponse])
async def list_rewards(db: AsyncSession = Depends(get_db)) -> list[RewardResponse]:
    return [RewardResponse.model_validate(r) for r in await admin_service.list_all_rewards(db)]


@router.post("/rewards", response_model=RewardResponse, status_code=201)
async def create_reward(body: RewardCreate, db: AsyncSession = Depends(get_db)) -> RewardResponse:
    reward = await admin_service.create_reward(db, body.model_dump())
    return RewardResponse.model_validate(reward)


@router.put("/rewards/{reward_id}", response_model=RewardResponse)
async def update_reward(
    reward_id: int,
    body: RewardUpdate,
    db: AsyncSession = Depends(get_db),
) -> RewardResponse:
    fields = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k == "product_id"
    }
    reward = await admin_service.update_reward(db, reward_id, fields)
    return RewardResponse.model_validate(reward)


@router.delete("/rewards/{reward_id}")
async def delete_reward(reward_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, str]:
    await admin_service.delete_reward(db, reward_id)
    return {"detail": "Deleted"}


# ── Quests ──


@router.get("/quests", response_model=list[AdminQuestResponse])
async def list_quests(db: AsyncSession = Depends(get_db)) -> list[AdminQuestResponse]:
    return [AdminQuestResponse.model_validate(q) for q in await admin_service.list_all_quests(db)]


@router.post("/quests", response_model=AdminQuestResponse, status_code=201)
async def create_quest(body: QuestCreate, db: AsyncSession = Depends(get_db)) -> AdminQuestResponse:
    quest = await admin_service.create_quest(db, _quest_fields(body))
    return AdminQuestResponse.model_validate(quest)


@router.put("/quests/{quest_id}", response_model=AdminQuestResponse)
async def update_quest(
    quest_id: int,
    body: QuestUpdate,
    db: AsyncSession = Depends(get_db),
) -> AdminQuestResponse:
    quest = await admin_service.update_quest(db, quest_id, _quest_fields(body))
    return AdminQuestResponse.model_validate(quest)


# ── Packs ──


@router.get("/packs", response_model=list[AdminPackResponse])
async def list_packs(db: AsyncSession = Depends(get_db)) -> list[AdminPackResponse]:
    return [AdminPackResponse.model_validate(p) for p in await admin_service.list_all_packs(db)]


@router.post("/packs", response_model=AdminPackResponse, status_code=201)
async def create_pack(body: PackCreate, db: AsyncSession = Depends(get_db)) -> AdminPackResponse:
    pack = await admin_service.create_pack(db, body.model_dump(exclude_none=True))
    return AdminPackResponse.model_validate(pack)


@router.put("/packs/{pack_id}", response_model=AdminPackResponse)
async def update_pack(
    pack_id: int,
    body: PackUpdate,
    db: AsyncSession = Depends(get_db),
) -> AdminPackResponse:
    fields = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    if "drops" in fields:
        fields["drops"] = [d.model_dump(exclude_none=True) for d in body.drops or []]
    pack = await admin_service.update_pack(db, pack_id, fields)
    return AdminPackResponse.model_validate(pack)


# ── Memberships ──


@router.get("/memberships", response_model=list[MembershipTierResponse])
async def list_memberships(db: AsyncSession = Depends(get_db)) -> list[MembershipTierResponse]:
    return [MembershipTierResponse.model_validate(m) for m in await admin_service.list_memberships(db)]


@router.post("/memberships", response_model=MembershipTierResponse)
async def upsert_membership(body: MembershipUpsert, db: AsyncSession = Depends(get_db)) -> MembershipTierResponse:
    membership = await admin_service.upsert_membership(db, body.model_dump())
    return MembershipTierResponse.model_validate(membership)
