"""
Position valuation against an asset's performance index.

Performance values are percentages on the asset's own lifetime index, so a
position's return is the drift of that index since the position's baseline:

    current_value = invested_amount * (1 + (current - baseline) / 100)

Values are not floored at zero; a drift below -100 produces a negative value.
Nothing here touches the database.
"""

from __future__ import annotations

from dataclasses import dataclass

from app.domain.portfolio.models.assets import Asset
from app.domain.portfolio.models.investments import Investment


@dataclass(frozen=True)
class PositionValuation:
    invested_amount: float
    baseline_performance: float
    current_performance: float
    current_value: float
    gain: float
    gain_percentage: float


def compute_current_value(invested_amount: float, baseline_performance: float, current_performance: float) -> float:
    delta = current_performance - baseline_performance
    return invested_amount * (1 + delta / 100)


def compute_gain(invested_amount: float, current_value: float) -> float:
    return current_value - invested_amount


def compute_gain_percentage(invested_amount: float, current_value: float) -> float:
    if invested_amount == 0:
        return 0.0
    return (current_value - invested_amount) / invested_amount * 100


def value_position(investment: Investment, asset: Asset | None = None) -> PositionValuation:
    if asset is None:
        asset = investment.asset
    current_value = compute_current_value(
        investment.invested_amount,
        investment.asset_performance_at_investment,
        asset.current_performance,
    )
    return PositionValuation(
        invested_amount=investment.invested_amount,
        baseline_performance=investment.asset_performance_at_investment,
        current_performance=asset.current_performance,
        current_value=current_value,
        gain=compute_gain(investment.invested_amount, current_value),
        gain_percentage=compute_gain_percentage(investment.invested_amount, current_value),
    )
