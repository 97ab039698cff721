from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import asdict

from pydantic import BaseModel, ConfigDict, Field

from app.domain.portfolio.enums import AssetType
from app.domain.portfolio.models.investments import Investment
from app.domain.portfolio.services.summary import PortfolioSummary
from app.domain.portfolio.services.valuation import value_position


class InvestmentCreate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    asset_id: uuid.UUID
    invested_amount: float = Field(ge=0)
    investment_date: dt.datetime | None = None
    # Admin only: place the position on behalf of another user.
    user_id: uuid.UUID | None = None


class InvestmentUpdate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False, extra="forbid")

    invested_amount: float | None = Field(default=None, ge=0)
    investment_date: dt.datetime | None = None


class AssetBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    asset_type: AssetType
    current_performance: float
    is_listed: bool


class InvestmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    asset_id: uuid.UUID
    invested_amount: float
    investment_date: dt.datetime
    asset_performance_at_investment: float
    current_value: float
    gain: float
    gain_percentage: float
    asset: AssetBrief
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_model(cls, investment: Investment) -> "InvestmentOut":
        valuation = value_position(investment)
        return cls(
            id=investment.id,
            user_id=investment.user_id,
            asset_id=investment.asset_id,
            invested_amount=investment.invested_amount,
            investment_date=investment.investment_date,
            asset_performance_at_investment=investment.asset_performance_at_investment,
            current_value=valuation.current_value,
            gain=valuation.gain,
            gain_percentage=valuation.gain_percentage,
            asset=AssetBrief.model_validate(investment.asset),
            created_at=investment.created_at,
            updated_at=investment.updated_at,
        )


class AllocationOut(BaseModel):
    asset_type: AssetType
    invested: float
    current_value: float
    share: float


class PortfolioSummaryOut(BaseModel):
    total_invested: float
    total_current_value: float
    total_gain: float
    gain_percentage: float
    position_count: int
    allocation: list[AllocationOut]

    @classmethod
    def from_summary(cls, summary: PortfolioSummary) -> "PortfolioSummaryOut":
        return cls.model_validate(asdict(summary))
