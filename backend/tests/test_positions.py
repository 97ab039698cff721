from __future__ import annotations

import datetime as dt
import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.security.auth import Actor
from app.domain.portfolio.models.assets import AssetPerformanceSnapshot
from app.domain.portfolio.models.investments import Investment
from app.domain.portfolio.services import lifecycle, positions
from app.domain.portfolio.services.valuation import value_position
from app.shared.enums import Role
from app.shared.exceptions import (
    AssetNotFound,
    AssetNotListed,
    Conflict,
    Forbidden,
    InvestmentNotFound,
    UserNotFound,
    ValidationError,
)


def _count_investments(db) -> int:
    return db.execute(select(func.count()).select_from(Investment)).scalar_one()


def _count_snapshots(db) -> int:
    return db.execute(select(func.count()).select_from(AssetPerformanceSnapshot)).scalar_one()


def _actor(user) -> Actor:
    return Actor(actor_id=str(user.id), role=user.role)


def test_first_investment_records_baseline(db_session, viewer_user, make_asset):
    asset = make_asset(performance=12.5)

    inv = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=1000.0)

    assert inv.invested_amount == 1000.0
    assert inv.asset_performance_at_investment == 12.5
    assert inv.version == 1
    assert value_position(inv).current_value == pytest.approx(1000.0)


def test_restake_sums_principal_and_resets_baseline(db_session, viewer_user, make_asset):
    asset = make_asset()
    first = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=10000.0)

    lifecycle.update_performance(db_session, asset_id=asset.id, percentage_change=20.0)
    db_session.refresh(first)
    assert value_position(first).current_value == pytest.approx(12000.0)

    later = dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc)
    merged = positions.submit_investment(
        db_session,
        user_id=viewer_user.id,
        asset_id=asset.id,
        amount=5000.0,
        investment_date=later,
    )

    assert merged.id == first.id
    assert merged.invested_amount == pytest.approx(15000.0)
    assert merged.asset_performance_at_investment == 20.0
    assert merged.investment_date.replace(tzinfo=None) == later.replace(tzinfo=None)
    assert merged.version == 2
    # Unrealized gain on the earlier principal is not carried over.
    assert value_position(merged).current_value == pytest.approx(15000.0)

    lifecycle.update_performance(db_session, asset_id=asset.id, percentage_change=30.0)
    db_session.refresh(merged)
    assert value_position(merged).current_value == pytest.approx(16500.0)
    assert _count_investments(db_session) == 1


def test_positions_are_per_user(db_session, viewer_user, other_viewer, make_asset):
    asset = make_asset()
    a = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=100.0)
    b = positions.submit_investment(db_session, user_id=other_viewer.id, asset_id=asset.id, amount=200.0)

    assert a.id != b.id
    assert _count_investments(db_session) == 2


def test_unlisted_asset_blocks_new_and_additional_investment(db_session, viewer_user, other_viewer, make_asset):
    asset = make_asset(performance=5.0)
    held = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=100.0)
    lifecycle.update_asset(db_session, asset_id=asset.id, changes={"is_listed": False})
    snapshots_before = _count_snapshots(db_session)

    with pytest.raises(AssetNotListed) as exc:
        positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=50.0)
    assert exc.value.code == "ASSET_NOT_LISTED"
    assert exc.value.message == "This asset is not available for investment"

    with pytest.raises(AssetNotListed):
        positions.submit_investment(db_session, user_id=other_viewer.id, asset_id=asset.id, amount=50.0)

    db_session.refresh(held)
    assert held.invested_amount == 100.0
    assert _count_investments(db_session) == 1
    assert _count_snapshots(db_session) == snapshots_before

    # Existing positions are still valued against live performance.
    lifecycle.update_performance(db_session, asset_id=asset.id, percentage_change=15.0)
    db_session.refresh(held)
    assert value_position(held).current_value == pytest.approx(110.0)


def test_missing_asset_and_user(db_session, viewer_user, make_asset):
    make_asset()
    snapshots_before = _count_snapshots(db_session)

    with pytest.raises(AssetNotFound) as exc:
        positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=uuid.uuid4(), amount=10.0)
    assert exc.value.message == "Asset not found"

    with pytest.raises(UserNotFound):
        positions.submit_investment(db_session, user_id=uuid.uuid4(), asset_id=uuid.uuid4(), amount=10.0)
    assert _count_investments(db_session) == 0
    assert _count_snapshots(db_session) == snapshots_before


def test_negative_amount_is_rejected(db_session, viewer_user, make_asset):
    asset = make_asset()
    with pytest.raises(ValidationError):
        positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=-1.0)
    assert _count_investments(db_session) == 0


def test_zero_amount_is_accepted(db_session, viewer_user, make_asset):
    asset = make_asset()
    inv = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=0.0)
    assert inv.invested_amount == 0.0
    assert value_position(inv).gain_percentage == 0.0


def test_stale_position_is_retried(db_session, viewer_user, make_asset, monkeypatch):
    asset = make_asset()
    original = positions._apply_submission
    calls = {"n": 0}

    def flaky(db, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise StaleDataError("position changed underneath us")
        return original(db, **kwargs)

    monkeypatch.setattr(positions, "_apply_submission", flaky)

    inv = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=250.0)

    assert calls["n"] == 2
    assert inv.invested_amount == 250.0
    assert _count_investments(db_session) == 1


def test_persistent_conflict_gives_up(db_session, viewer_user, make_asset, monkeypatch):
    asset = make_asset()
    calls = {"n": 0}

    def always_conflicts(db, **kwargs):
        calls["n"] += 1
        raise IntegrityError("INSERT INTO investments", {}, Exception("duplicate key"))

    monkeypatch.setattr(positions, "_apply_submission", always_conflicts)
    monkeypatch.setattr(settings, "restake_max_retries", 2)

    with pytest.raises(Conflict):
        positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=250.0)
    assert calls["n"] == 2
    assert _count_investments(db_session) == 0


def test_get_investment_enforces_ownership(db_session, viewer_user, other_viewer, admin_user, make_asset):
    asset = make_asset()
    inv = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=100.0)

    assert positions.get_investment(db_session, investment_id=inv.id, actor=_actor(viewer_user)).id == inv.id
    assert positions.get_investment(db_session, investment_id=inv.id, actor=_actor(admin_user)).id == inv.id
    with pytest.raises(Forbidden):
        positions.get_investment(db_session, investment_id=inv.id, actor=_actor(other_viewer))
    with pytest.raises(InvestmentNotFound):
        positions.get_investment(db_session, investment_id=uuid.uuid4(), actor=_actor(admin_user))


def test_list_investments_scopes_viewers(db_session, viewer_user, other_viewer, admin_user, make_asset):
    a1 = make_asset(name="Alpha")
    a2 = make_asset(name="Beta")
    base = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=a1.id, amount=1.0, investment_date=base)
    positions.submit_investment(
        db_session,
        user_id=viewer_user.id,
        asset_id=a2.id,
        amount=2.0,
        investment_date=base + dt.timedelta(days=1),
    )
    positions.submit_investment(db_session, user_id=other_viewer.id, asset_id=a1.id, amount=3.0, investment_date=base)

    mine, total = positions.list_investments(db_session, actor=_actor(viewer_user), page=1, limit=10)
    assert total == 2
    assert [i.invested_amount for i in mine] == [2.0, 1.0]

    # A viewer's user filter is ignored.
    mine_again, total = positions.list_investments(
        db_session, actor=_actor(viewer_user), page=1, limit=10, user_id=other_viewer.id
    )
    assert total == 2

    everything, total = positions.list_investments(db_session, actor=_actor(admin_user), page=1, limit=10)
    assert total == 3

    by_asset, total = positions.list_investments(
        db_session, actor=_actor(admin_user), page=1, limit=10, asset_id=a1.id
    )
    assert total == 2
    assert {i.asset_id for i in by_asset} == {a1.id}

    by_user, total = positions.list_investments(
        db_session, actor=_actor(admin_user), page=1, limit=10, user_id=other_viewer.id
    )
    assert total == 1

    page_two, total = positions.list_investments(db_session, actor=_actor(admin_user), page=2, limit=2)
    assert total == 3
    assert len(page_two) == 1


def test_update_investment_keeps_baseline(db_session, viewer_user, make_asset):
    asset = make_asset(performance=10.0)
    inv = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=100.0)

    updated = positions.update_investment(db_session, investment_id=inv.id, invested_amount=250.0)

    assert updated.invested_amount == 250.0
    assert updated.asset_performance_at_investment == 10.0
    with pytest.raises(ValidationError):
        positions.update_investment(db_session, investment_id=inv.id, invested_amount=-5.0)
    with pytest.raises(InvestmentNotFound):
        positions.update_investment(db_session, investment_id=uuid.uuid4(), invested_amount=1.0)


def test_delete_investment(db_session, viewer_user, make_asset):
    asset = make_asset()
    inv = positions.submit_investment(db_session, user_id=viewer_user.id, asset_id=asset.id, amount=100.0)

    positions.delete_investment(db_session, investment_id=inv.id)

    assert _count_investments(db_session) == 0
    with pytest.raises(InvestmentNotFound):
        positions.delete_investment(db_session, investment_id=inv.id)


def test_actor_role_property(viewer_user):
    assert _actor(viewer_user).role == Role.VIEWER
    assert not _actor(viewer_user).is_admin
