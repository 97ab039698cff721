from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.base import Base, IdMixin, TimestampMixin
from app.domain.portfolio.models.assets import Asset


class Investment(Base, IdMixin, TimestampMixin):
    """
    A user's single position in one asset.

    investment_date is the most recent contribution and
    asset_performance_at_investment the asset's performance when the position
    was opened or last restaked. Current value is never stored.
    """

    __tablename__ = "investments"

    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    asset_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("assets.id", ondelete="CASCADE"), index=True)

    invested_amount: Mapped[float] = mapped_column(Float, nullable=False)
    investment_date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    asset_performance_at_investment: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    # Optimistic concurrency: a stale restake fails with StaleDataError instead of overwriting.
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    asset: Mapped[Asset] = relationship(lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("user_id", "asset_id", name="uq_investments_user_asset"),
        CheckConstraint("invested_amount >= 0", name="ck_investments_invested_amount_non_negative"),
        Index("ix_investments_user_date", "user_id", "investment_date"),
    )
