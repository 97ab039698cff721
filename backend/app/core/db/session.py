from __future__ import annotations

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from functools import lru_cache
import importlib

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.db.base import Base


MODEL_MODULES = (
    "app.core.db.models",
    "app.domain.portfolio.models.assets",
    "app.domain.portfolio.models.investments",
)


def import_model_modules() -> None:
    for module_name in MODEL_MODULES:
        importlib.import_module(module_name)


@lru_cache(maxsize=1)
def get_engine():
    # Lazy init so importing the app never needs a reachable database.
    engine = create_engine(settings.database_url, pool_pre_ping=True)
    import_model_modules()
    Base.metadata.create_all(bind=engine)
    return engine


def get_session_local() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, class_=Session)


def get_db() -> Generator[Session, None, None]:
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """
    All writes made inside the block commit together or not at all.

    Any exception rolls the session back and propagates unchanged.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
