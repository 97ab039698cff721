from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.audit import log_audit_event
from app.core.config import settings
from app.core.db.models import User
from app.core.db.session import unit_of_work
from app.core.logging import get_logger
from app.core.security.auth import Actor
from app.domain.portfolio.models.assets import Asset
from app.domain.portfolio.models.investments import Investment
from app.shared.exceptions import (
    AssetNotFound,
    AssetNotListed,
    Conflict,
    Forbidden,
    InvestmentNotFound,
    UserNotFound,
    ValidationError,
)
from app.shared.utils import as_utc, sa_model_to_dict, utcnow

logger = get_logger(__name__)


def _validate_amount(amount: float) -> None:
    if amount < 0:
        raise ValidationError("Investment amount cannot be negative", details={"invested_amount": amount})


def _find_position(db: Session, *, user_id: uuid.UUID, asset_id: uuid.UUID) -> Investment | None:
    stmt = select(Investment).where(Investment.user_id == user_id, Investment.asset_id == asset_id)
    return db.execute(stmt).scalars().first()


def _apply_submission(
    db: Session,
    *,
    user_id: uuid.UUID,
    asset_id: uuid.UUID,
    amount: float,
    investment_date: dt.datetime,
) -> tuple[Investment, dict | None]:
    asset = db.get(Asset, asset_id)
    if asset is None:
        raise AssetNotFound(details={"asset_id": str(asset_id)})
    if not asset.is_listed:
        raise AssetNotListed(details={"asset_id": str(asset_id)})

    position = _find_position(db, user_id=user_id, asset_id=asset_id)
    if position is None:
        position = Investment(
            user_id=user_id,
            asset_id=asset_id,
            invested_amount=amount,
            investment_date=investment_date,
            asset_performance_at_investment=asset.current_performance,
        )
        db.add(position)
        db.flush()
        return position, None

    before = sa_model_to_dict(position)
    # A restake behaves like withdrawing the principal and reinvesting the sum at
    # today's index: the baseline moves and any unrealized gain is dropped.
    position.invested_amount = position.invested_amount + amount
    position.investment_date = investment_date
    position.asset_performance_at_investment = asset.current_performance
    db.flush()
    return position, before


def submit_investment(
    db: Session,
    *,
    user_id: uuid.UUID,
    asset_id: uuid.UUID,
    amount: float,
    investment_date: dt.datetime | None = None,
) -> Investment:
    """
    Open a position in a listed asset or add to the existing one.

    At most one position exists per (user, asset). A concurrent writer on the
    same position surfaces as StaleDataError (version check) or IntegrityError
    (unique key); the whole submission is then re-run against fresh state.
    """
    _validate_amount(amount)
    when = as_utc(investment_date) if investment_date else utcnow()

    if db.get(User, user_id) is None:
        raise UserNotFound(details={"user_id": str(user_id)})

    attempts = max(1, settings.restake_max_retries)
    for attempt in range(1, attempts + 1):
        try:
            with unit_of_work(db):
                position, before = _apply_submission(
                    db,
                    user_id=user_id,
                    asset_id=asset_id,
                    amount=amount,
                    investment_date=when,
                )
        except (StaleDataError, IntegrityError) as e:
            logger.warning(
                "investment.submit_conflict",
                user_id=str(user_id),
                asset_id=str(asset_id),
                attempt=attempt,
                max_attempts=attempts,
                error=type(e).__name__,
            )
            if attempt == attempts:
                raise Conflict(
                    "Position was modified concurrently, please retry",
                    details={"user_id": str(user_id), "asset_id": str(asset_id)},
                ) from e
            continue
        break

    db.refresh(position)
    action = "investment.created" if before is None else "investment.restaked"
    logger.info(
        action,
        investment_id=str(position.id),
        user_id=str(user_id),
        asset_id=str(asset_id),
        amount=amount,
        invested_amount=position.invested_amount,
    )
    log_audit_event(
        action=action,
        entity_type="Investment",
        entity_id=position.id,
        before=before,
        after=sa_model_to_dict(position),
    )
    return position


def get_investment(db: Session, *, investment_id: uuid.UUID, actor: Actor) -> Investment:
    investment = db.get(Investment, investment_id)
    if investment is None:
        raise InvestmentNotFound(details={"investment_id": str(investment_id)})
    if not actor.is_admin and investment.user_id != actor.user_id:
        raise Forbidden("Not authorized to access this investment")
    return investment


def list_investments(
    db: Session,
    *,
    actor: Actor,
    page: int,
    limit: int,
    asset_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
) -> tuple[list[Investment], int]:
    """Viewers only ever see their own positions; the user filter applies to admins."""
    stmt = select(Investment)
    if actor.is_admin:
        if user_id is not None:
            stmt = stmt.where(Investment.user_id == user_id)
    else:
        stmt = stmt.where(Investment.user_id == actor.user_id)
    if asset_id is not None:
        stmt = stmt.where(Investment.asset_id == asset_id)

    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    stmt = stmt.order_by(Investment.investment_date.desc()).offset((page - 1) * limit).limit(limit)
    return list(db.execute(stmt).scalars().unique().all()), total


def update_investment(
    db: Session,
    *,
    investment_id: uuid.UUID,
    invested_amount: float | None = None,
    investment_date: dt.datetime | None = None,
) -> Investment:
    if invested_amount is not None:
        _validate_amount(invested_amount)

    with unit_of_work(db):
        investment = db.get(Investment, investment_id)
        if investment is None:
            raise InvestmentNotFound(details={"investment_id": str(investment_id)})
        before = sa_model_to_dict(investment)
        if invested_amount is not None:
            investment.invested_amount = invested_amount
        if investment_date is not None:
            investment.investment_date = as_utc(investment_date)
        db.flush()

    db.refresh(investment)
    logger.info("investment.updated", investment_id=str(investment.id))
    log_audit_event(
        action="investment.updated",
        entity_type="Investment",
        entity_id=investment.id,
        before=before,
        after=sa_model_to_dict(investment),
    )
    return investment


def delete_investment(db: Session, *, investment_id: uuid.UUID) -> None:
    with unit_of_work(db):
        investment = db.get(Investment, investment_id)
        if investment is None:
            raise InvestmentNotFound(details={"investment_id": str(investment_id)})
        before = sa_model_to_dict(investment)
        db.delete(investment)
        db.flush()

    logger.info("investment.deleted", investment_id=str(investment_id))
    log_audit_event(
        action="investment.deleted",
        entity_type="Investment",
        entity_id=investment_id,
        before=before,
        after=None,
    )
