from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db.base import Base, IdMixin, TimestampMixin
from app.domain.portfolio.enums import AssetType
from app.shared.utils import utcnow


class Asset(Base, IdMixin, TimestampMixin):
    """
    Catalog entry users can hold positions in.

    current_performance is the asset's lifetime performance index in percent
    (0 = unchanged since inception). Every change to it is mirrored by an
    AssetPerformanceSnapshot written in the same transaction.
    """

    __tablename__ = "assets"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    asset_type: Mapped[AssetType] = mapped_column(
        Enum(AssetType, name="asset_type_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        index=True,
    )
    current_performance: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_listed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_updated: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class AssetPerformanceSnapshot(Base, IdMixin):
    """Append-only history of an asset's performance index."""

    __tablename__ = "asset_performance_snapshots"

    asset_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("assets.id", ondelete="CASCADE"), index=True)
    date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    percentage_change: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (Index("ix_asset_performance_snapshots_asset_date", "asset_id", "date"),)
