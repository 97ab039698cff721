from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.security.auth import Actor
from app.core.security.dependencies import get_actor, require_admin
from app.domain.portfolio.schemas.investments import (
    InvestmentCreate,
    InvestmentOut,
    InvestmentUpdate,
    PortfolioSummaryOut,
)
from app.domain.portfolio.services import positions
from app.domain.portfolio.services.summary import summarize_portfolio
from app.shared.exceptions import Forbidden
from app.shared.pagination import PageParams, page_params
from app.shared.responses import Envelope, PageEnvelope, ok, paginated


router = APIRouter(prefix="/investments", tags=["Investments"])


@router.get("", response_model=PageEnvelope[InvestmentOut])
def list_investments(
    pages: PageParams = Depends(page_params),
    asset_id: uuid.UUID | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    items, total = positions.list_investments(
        db,
        actor=actor,
        page=pages.page,
        limit=pages.limit,
        asset_id=asset_id,
        user_id=user_id,
    )
    return paginated(
        [InvestmentOut.from_model(i) for i in items],
        page=pages.page,
        limit=pages.limit,
        total=total,
        message="Investments retrieved successfully",
    )


# Declared before /{investment_id} so "summary" is not parsed as an id.
@router.get("/summary", response_model=Envelope[PortfolioSummaryOut])
def get_portfolio_summary(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    summary = summarize_portfolio(db, actor=actor)
    return ok(PortfolioSummaryOut.from_summary(summary), "Portfolio summary retrieved successfully")


@router.get("/{investment_id}", response_model=Envelope[InvestmentOut])
def get_investment(
    investment_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    investment = positions.get_investment(db, investment_id=investment_id, actor=actor)
    return ok(InvestmentOut.from_model(investment), "Investment retrieved successfully")


@router.post("", response_model=Envelope[InvestmentOut], status_code=status.HTTP_201_CREATED)
def create_investment(
    payload: InvestmentCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_actor),
):
    owner_id = actor.user_id
    if payload.user_id is not None and payload.user_id != owner_id:
        if not actor.is_admin:
            raise Forbidden("Only admins can invest on behalf of another user")
        owner_id = payload.user_id

    investment = positions.submit_investment(
        db,
        user_id=owner_id,
        asset_id=payload.asset_id,
        amount=payload.invested_amount,
        investment_date=payload.investment_date,
    )
    return ok(InvestmentOut.from_model(investment), "Investment created successfully")


@router.put("/{investment_id}", response_model=Envelope[InvestmentOut])
def update_investment(
    investment_id: uuid.UUID,
    payload: InvestmentUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    investment = positions.update_investment(
        db,
        investment_id=investment_id,
        invested_amount=payload.invested_amount,
        investment_date=payload.investment_date,
    )
    return ok(InvestmentOut.from_model(investment), "Investment updated successfully")


@router.delete("/{investment_id}", response_model=Envelope[None])
def delete_investment(
    investment_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    positions.delete_investment(db, investment_id=investment_id)
    return ok(None, "Investment deleted successfully")
