from __future__ import annotations

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from app.api.errors import to_http_exception
from app.assets.models import Asset, AssetDetails, AssetStatus
from app.dependencies.auth import AdminUser, CurrentUser
from app.dependencies.services import AssetRegistryDep
from app.errors import SupportError
from app.users.models import Role, User

router = APIRouter(prefix="/assets", tags=["assets"])


class AssetWriteRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    branch_id: int
    brand: str | None = Field(default=None, max_length=255)
    model: str | None = Field(default=None, max_length=255)
    device_type: str | None = Field(default=None, max_length=255)
    serial_number: str | None = Field(default=None, max_length=255)
    purchase_date: date | None = None
    warranty_expiry: date | None = None

    def to_details(self) -> AssetDetails:
        return AssetDetails(**self.model_dump())


class AssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    branch_id: int
    status: AssetStatus
    repair_count: int
    brand: str | None
    model: str | None
    device_type: str | None
    serial_number: str | None
    purchase_date: date | None
    warranty_expiry: date | None


class RepairRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: int
    ticket_id: int | None
    action_taken: str
    repair_date: date
    cost: Decimal


class RepairHistoryResponse(BaseModel):
    asset_id: int
    total_cost: Decimal
    records: list[RepairRecordResponse]


def _ensure_branch_access(branch_id: int, user: User) -> None:
    if user.has_role(Role.ADMIN) or user.branch_id == branch_id:
        return
    raise HTTPException(status_code=403, detail="Insufficient permissions")


async def _visible_asset(registry: AssetRegistryDep, asset_id: int, user: User) -> Asset:
    asset = await registry.find_by_id(asset_id)
    if asset is None:
        raise HTTPException(status_code=404, detail=f"Asset {asset_id} not found")
    _ensure_branch_access(asset.branch_id, user)
    return asset


@router.get("", response_model=list[AssetResponse])
async def list_assets(
    registry: AssetRegistryDep,
    user: CurrentUser,
    branch_id: int | None = Query(default=None),
) -> list[AssetResponse]:
    if branch_id is None and not user.has_role(Role.ADMIN):
        branch_id = user.branch_id
        if branch_id is None:
            return []

    if branch_id is None:
        assets = await registry.list_assets()
    else:
        _ensure_branch_access(branch_id, user)
        assets = await registry.find_by_branch(branch_id)
    return [AssetResponse.model_validate(asset) for asset in assets]


@router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def register_asset(
    payload: AssetWriteRequest,
    registry: AssetRegistryDep,
    user: AdminUser,
) -> AssetResponse:
    try:
        asset = await registry.register(payload.to_details())
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return AssetResponse.model_validate(asset)


@router.get("/{asset_id}", response_model=AssetResponse)
async def get_asset(asset_id: int, registry: AssetRegistryDep, user: CurrentUser) -> AssetResponse:
    return AssetResponse.model_validate(await _visible_asset(registry, asset_id, user))


@router.put("/{asset_id}", response_model=AssetResponse)
async def update_asset(
    asset_id: int,
    payload: AssetWriteRequest,
    registry: AssetRegistryDep,
    user: AdminUser,
) -> AssetResponse:
    try:
        asset = await registry.update_details(asset_id, payload.to_details())
    except SupportError as exc:
        raise to_http_exception(exc) from exc
    return AssetResponse.model_validate(asset)


@router.get("/{asset_id}/repairs", response_model=RepairHistoryResponse)
async def get_repair_history(
    asset_id: int,
    registry: AssetRegistryDep,
    user: CurrentUser,
) -> RepairHistoryResponse:
    await _visible_asset(registry, asset_id, user)
    records = await registry.repair_history(asset_id)
    return RepairHistoryResponse(
        asset_id=asset_id,
        total_cost=await registry.total_repair_cost(asset_id),
        records=[RepairRecordResponse.model_validate(record) for record in records],
    )
