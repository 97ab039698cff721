from __future__ import annotations

import os
import sys
import json
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import Session, sessionmaker

# Make `backend/` importable regardless of pytest import mode.
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.core.config import settings
from app.core.db.base import Base
from app.core.db.models import User
from app.core.db.session import get_db, import_model_modules
from app.core.security.passwords import hash_password
from app.domain.portfolio.enums import AssetType
from app.domain.portfolio.services import lifecycle
from app.main import create_app
from app.shared.enums import Env, Role

# Ensure model modules are imported so Base.metadata is complete.
import_model_modules()

TEST_PASSWORD = "Secret123"


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(bind=db_engine, autoflush=False, autocommit=False, class_=Session)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    settings.env = Env.dev
    app = create_app()

    def _override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    settings.env = Env.dev


def _make_user(db: Session, *, name: str, email: str, role: Role) -> User:
    user = User(name=name, email=email, password_hash=hash_password(TEST_PASSWORD), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, name="Admin User", email="admin@altfolio.io", role=Role.ADMIN)


@pytest.fixture()
def viewer_user(db_session: Session) -> User:
    return _make_user(db_session, name="Vera Viewer", email="vera@altfolio.io", role=Role.VIEWER)


@pytest.fixture()
def other_viewer(db_session: Session) -> User:
    return _make_user(db_session, name="Omar Other", email="omar@altfolio.io", role=Role.VIEWER)


def actor_headers(user: User) -> dict[str, str]:
    return {settings.dev_actor_header: json.dumps({"actor_id": str(user.id), "role": user.role.value})}


@pytest.fixture()
def admin_headers(admin_user: User) -> dict[str, str]:
    return actor_headers(admin_user)


@pytest.fixture()
def viewer_headers(viewer_user: User) -> dict[str, str]:
    return actor_headers(viewer_user)


@pytest.fixture()
def make_asset(db_session: Session) -> Callable[..., object]:
    def _make(name: str = "Acme Seed Round", asset_type: AssetType = AssetType.STARTUP, performance: float = 0.0):
        return lifecycle.create_asset(db_session, name=name, asset_type=asset_type, initial_performance=performance)

    return _make
