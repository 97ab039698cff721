from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.security.auth import Actor
from app.domain.portfolio.enums import AssetType
from app.domain.portfolio.models.assets import Asset
from app.domain.portfolio.models.investments import Investment
from app.domain.portfolio.services.valuation import compute_gain_percentage, value_position


@dataclass
class AllocationSlice:
    asset_type: AssetType
    invested: float = 0.0
    current_value: float = 0.0
    share: float = 0.0


@dataclass
class PortfolioSummary:
    total_invested: float = 0.0
    total_current_value: float = 0.0
    total_gain: float = 0.0
    gain_percentage: float = 0.0
    position_count: int = 0
    allocation: list[AllocationSlice] = field(default_factory=list)


def summarize_portfolio(db: Session, *, actor: Actor) -> PortfolioSummary:
    """
    Totals and per-type allocation of the actor's positions (every position for admins).

    Shares are percentages of the total current value and are only computed
    while that total is positive; otherwise every share is 0.
    """
    stmt = select(Investment, Asset).join(Asset, Investment.asset_id == Asset.id)
    if not actor.is_admin:
        stmt = stmt.where(Investment.user_id == actor.user_id)
    rows = db.execute(stmt).all()

    slices = {asset_type: AllocationSlice(asset_type=asset_type) for asset_type in AssetType}
    summary = PortfolioSummary(position_count=len(rows))
    for investment, asset in rows:
        valuation = value_position(investment, asset)
        bucket = slices[asset.asset_type]
        bucket.invested += valuation.invested_amount
        bucket.current_value += valuation.current_value
        summary.total_invested += valuation.invested_amount
        summary.total_current_value += valuation.current_value

    summary.total_gain = summary.total_current_value - summary.total_invested
    summary.gain_percentage = compute_gain_percentage(summary.total_invested, summary.total_current_value)

    for bucket in slices.values():
        if bucket.invested == 0 and bucket.current_value == 0:
            continue
        if summary.total_current_value > 0:
            bucket.share = bucket.current_value / summary.total_current_value * 100
        summary.allocation.append(bucket)
    return summary
