from __future__ import annotations

import datetime as dt
import uuid
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.core.audit import log_audit_event
from app.core.db.session import unit_of_work
from app.core.logging import get_logger
from app.domain.portfolio.enums import AssetType
from app.domain.portfolio.models.assets import Asset, AssetPerformanceSnapshot
from app.domain.portfolio.models.investments import Investment
from app.shared.exceptions import AssetNotFound, ValidationError
from app.shared.utils import as_utc, sa_model_to_dict, utcnow

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "asset_type", "is_listed"})


def get_asset(db: Session, *, asset_id: uuid.UUID) -> Asset:
    asset = db.get(Asset, asset_id)
    if asset is None:
        raise AssetNotFound(details={"asset_id": str(asset_id)})
    return asset


def list_assets(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
    asset_type: AssetType | None = None,
    is_listed: bool | None = None,
) -> tuple[list[Asset], int]:
    stmt = select(Asset)
    if search:
        stmt = stmt.where(Asset.name.icontains(search, autoescape=True))
    if asset_type is not None:
        stmt = stmt.where(Asset.asset_type == asset_type)
    if is_listed is not None:
        stmt = stmt.where(Asset.is_listed.is_(is_listed))

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    stmt = (
        stmt.order_by(Asset.created_at.desc(), Asset.name.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all()), total


def list_assets_by_type(db: Session, *, asset_type: AssetType) -> list[Asset]:
    stmt = select(Asset).where(Asset.asset_type == asset_type).order_by(Asset.name.asc())
    return list(db.execute(stmt).scalars().all())


def _record_snapshot(db: Session, *, asset: Asset, at: dt.datetime) -> AssetPerformanceSnapshot:
    snapshot = AssetPerformanceSnapshot(asset_id=asset.id, date=at, percentage_change=asset.current_performance)
    db.add(snapshot)
    return snapshot


def create_asset(
    db: Session,
    *,
    name: str,
    asset_type: AssetType,
    initial_performance: float = 0.0,
) -> Asset:
    now = utcnow()
    with unit_of_work(db):
        asset = Asset(
            name=name,
            asset_type=asset_type,
            current_performance=initial_performance,
            is_listed=True,
            last_updated=now,
        )
        db.add(asset)
        db.flush()
        _record_snapshot(db, asset=asset, at=now)
        db.flush()

    db.refresh(asset)
    logger.info("asset.created", asset_id=str(asset.id), asset_type=asset.asset_type.value)
    log_audit_event(
        action="asset.created",
        entity_type="Asset",
        entity_id=asset.id,
        before=None,
        after=sa_model_to_dict(asset),
    )
    return asset


def update_asset(db: Session, *, asset_id: uuid.UUID, changes: dict[str, Any]) -> Asset:
    """Metadata-only update; performance changes go through update_performance."""
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError("Unsupported asset fields", details={"fields": sorted(unknown)})
    nulls = [key for key, value in changes.items() if value is None]
    if nulls:
        raise ValidationError("Asset fields cannot be null", details={"fields": sorted(nulls)})

    with unit_of_work(db):
        asset = get_asset(db, asset_id=asset_id)
        before = sa_model_to_dict(asset)
        for key, value in changes.items():
            setattr(asset, key, value)
        asset.last_updated = utcnow()
        db.flush()

    db.refresh(asset)
    logger.info("asset.updated", asset_id=str(asset.id), fields=sorted(changes))
    log_audit_event(
        action="asset.updated",
        entity_type="Asset",
        entity_id=asset.id,
        before=before,
        after=sa_model_to_dict(asset),
    )
    return asset


def update_performance(db: Session, *, asset_id: uuid.UUID, percentage_change: float) -> Asset:
    now = utcnow()
    with unit_of_work(db):
        asset = get_asset(db, asset_id=asset_id)
        previous = asset.current_performance
        asset.current_performance = percentage_change
        asset.last_updated = now
        _record_snapshot(db, asset=asset, at=now)
        db.flush()

    db.refresh(asset)
    logger.info(
        "asset.performance_updated",
        asset_id=str(asset.id),
        previous=previous,
        current=asset.current_performance,
    )
    log_audit_event(
        action="asset.performance_updated",
        entity_type="Asset",
        entity_id=asset.id,
        before={"current_performance": previous},
        after={"current_performance": asset.current_performance, "last_updated": asset.last_updated},
    )
    return asset


def delete_asset(db: Session, *, asset_id: uuid.UUID) -> None:
    """Remove the asset together with its snapshots and every position held in it."""
    with unit_of_work(db):
        asset = get_asset(db, asset_id=asset_id)
        before = sa_model_to_dict(asset)
        snapshots = db.execute(
            delete(AssetPerformanceSnapshot).where(AssetPerformanceSnapshot.asset_id == asset_id)
        ).rowcount
        investments = db.execute(delete(Investment).where(Investment.asset_id == asset_id)).rowcount
        db.delete(asset)
        db.flush()

    logger.info(
        "asset.deleted",
        asset_id=str(asset_id),
        snapshots_removed=snapshots,
        investments_removed=investments,
    )
    log_audit_event(
        action="asset.deleted",
        entity_type="Asset",
        entity_id=asset_id,
        before=before,
        after=None,
    )


def get_performance_history(
    db: Session,
    *,
    asset_id: uuid.UUID,
    start_date: dt.datetime | None = None,
    end_date: dt.datetime | None = None,
    limit: int | None = None,
) -> list[AssetPerformanceSnapshot]:
    start = as_utc(start_date) if start_date else None
    end = as_utc(end_date) if end_date else None
    if start and end and start > end:
        raise ValidationError(
            "start_date must not be after end_date",
            details={"start_date": start.isoformat(), "end_date": end.isoformat()},
        )
    if limit is not None and limit < 1:
        raise ValidationError("limit must be a positive integer", details={"limit": limit})

    get_asset(db, asset_id=asset_id)

    stmt = select(AssetPerformanceSnapshot).where(AssetPerformanceSnapshot.asset_id == asset_id)
    if start:
        stmt = stmt.where(AssetPerformanceSnapshot.date >= start)
    if end:
        stmt = stmt.where(AssetPerformanceSnapshot.date <= end)
    stmt = stmt.order_by(AssetPerformanceSnapshot.date.desc())
    if limit is not None:
        stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())
