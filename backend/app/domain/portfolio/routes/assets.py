from __future__ import annotations

import datetime as dt
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.security.auth import Actor
from app.core.security.dependencies import get_actor, require_admin
from app.domain.portfolio.enums import AssetType
from app.domain.portfolio.schemas.assets import (
    AssetCreate,
    AssetOut,
    AssetUpdate,
    PerformanceSnapshotOut,
    PerformanceUpdate,
)
from app.domain.portfolio.services import lifecycle
from app.shared.pagination import PageParams, page_params
from app.shared.responses import Envelope, PageEnvelope, ok, paginated


router = APIRouter(prefix="/assets", tags=["Assets"])


@router.get("", response_model=PageEnvelope[AssetOut])
def list_assets(
    pages: PageParams = Depends(page_params),
    search: str | None = Query(default=None, max_length=100),
    asset_type: AssetType | Literal["All"] | None = Query(default=None, alias="type"),
    is_listed: bool | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items, total = lifecycle.list_assets(
        db,
        page=pages.page,
        limit=pages.limit,
        search=search,
        asset_type=None if asset_type == "All" else asset_type,
        is_listed=is_listed,
    )
    return paginated(
        [AssetOut.model_validate(a) for a in items],
        page=pages.page,
        limit=pages.limit,
        total=total,
        message="Assets retrieved successfully",
    )


@router.get("/type/{asset_type}", response_model=Envelope[list[AssetOut]])
def list_assets_by_type(
    asset_type: AssetType,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items = lifecycle.list_assets_by_type(db, asset_type=asset_type)
    return ok([AssetOut.model_validate(a) for a in items], "Assets retrieved successfully")


@router.get("/{asset_id}", response_model=Envelope[AssetOut])
def get_asset(
    asset_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    asset = lifecycle.get_asset(db, asset_id=asset_id)
    return ok(AssetOut.model_validate(asset), "Asset retrieved successfully")


@router.get("/{asset_id}/performance-history", response_model=Envelope[list[PerformanceSnapshotOut]])
def get_performance_history(
    asset_id: uuid.UUID,
    start_date: dt.datetime | None = Query(default=None),
    end_date: dt.datetime | None = Query(default=None),
    limit: int | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    snapshots = lifecycle.get_performance_history(
        db,
        asset_id=asset_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
    )
    return ok(
        [PerformanceSnapshotOut.model_validate(s) for s in snapshots],
        "Performance history retrieved successfully",
    )


@router.post("", response_model=Envelope[AssetOut], status_code=status.HTTP_201_CREATED)
def create_asset(
    payload: AssetCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    asset = lifecycle.create_asset(
        db,
        name=payload.name,
        asset_type=payload.asset_type,
        initial_performance=payload.current_performance,
    )
    return ok(AssetOut.model_validate(asset), "Asset created successfully")


@router.put("/{asset_id}", response_model=Envelope[AssetOut])
def update_asset(
    asset_id: uuid.UUID,
    payload: AssetUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    asset = lifecycle.update_asset(db, asset_id=asset_id, changes=payload.model_dump(exclude_unset=True))
    return ok(AssetOut.model_validate(asset), "Asset updated successfully")


@router.patch("/{asset_id}/performance", response_model=Envelope[AssetOut])
def update_asset_performance(
    asset_id: uuid.UUID,
    payload: PerformanceUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    asset = lifecycle.update_performance(db, asset_id=asset_id, percentage_change=payload.percentage_change)
    return ok(AssetOut.model_validate(asset), "Asset performance updated successfully")


@router.delete("/{asset_id}", response_model=Envelope[None])
def delete_asset(
    asset_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    lifecycle.delete_asset(db, asset_id=asset_id)
    return ok(None, "Asset deleted successfully")
