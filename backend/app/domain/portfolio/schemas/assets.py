from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel, ConfigDict, Field

from app.domain.portfolio.enums import AssetType


class AssetCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    name: str = Field(min_length=2, max_length=100)
    asset_type: AssetType
    current_performance: float = 0.0


class AssetUpdate(BaseModel):
    """Metadata only. Performance is changed through PATCH /assets/{id}/performance."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: str | None = Field(default=None, min_length=2, max_length=100)
    asset_type: AssetType | None = None
    is_listed: bool | None = None


class PerformanceUpdate(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    percentage_change: float


class AssetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    asset_type: AssetType
    current_performance: float
    is_listed: bool
    last_updated: dt.datetime
    created_at: dt.datetime
    updated_at: dt.datetime


class PerformanceSnapshotOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    asset_id: uuid.UUID
    date: dt.datetime
    percentage_change: float
