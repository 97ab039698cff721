from __future__ import annotations

import uuid

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.audit import log_audit_event
from app.core.db.models import User
from app.core.db.session import unit_of_work
from app.core.logging import get_logger
from app.core.security.passwords import hash_password, verify_password
from app.shared.enums import Role
from app.shared.exceptions import Conflict, NotAuthorized, UserNotFound
from app.shared.utils import sa_model_to_dict

logger = get_logger(__name__)


def get_user_by_email(db: Session, *, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.lower())
    return db.execute(stmt).scalars().first()


def register_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: Role = Role.VIEWER,
) -> User:
    if get_user_by_email(db, email=email) is not None:
        raise Conflict("User already exists", details={"field": "email", "value": email})

    try:
        with unit_of_work(db):
            user = User(name=name, email=email.lower(), password_hash=hash_password(password), role=role)
            db.add(user)
            db.flush()
    except IntegrityError as e:
        raise Conflict("User already exists", details={"field": "email", "value": email}) from e

    db.refresh(user)
    logger.info("user.registered", user_id=str(user.id), role=user.role.value)
    after = sa_model_to_dict(user)
    after.pop("password_hash", None)
    log_audit_event(action="user.registered", entity_type="User", entity_id=user.id, before=None, after=after)
    return user


def authenticate_user(db: Session, *, email: str, password: str) -> User:
    user = get_user_by_email(db, email=email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("user.login_failed", email=email.lower())
        raise NotAuthorized("Invalid email or password")
    logger.info("user.logged_in", user_id=str(user.id))
    return user


def get_user(db: Session, *, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFound(details={"user_id": str(user_id)})
    return user


def list_users(
    db: Session,
    *,
    page: int,
    limit: int,
    search: str | None = None,
) -> tuple[list[User], int]:
    stmt = select(User)
    if search:
        stmt = stmt.where(
            or_(
                User.name.icontains(search, autoescape=True),
                User.email.icontains(search, autoescape=True),
            )
        )
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
    stmt = stmt.order_by(User.created_at.desc(), User.email.asc()).offset((page - 1) * limit).limit(limit)
    return list(db.execute(stmt).scalars().all()), total


def ensure_admin(db: Session, *, name: str, email: str, password: str) -> User:
    """Return the admin with this email, creating it (or promoting the user) if needed."""
    user = get_user_by_email(db, email=email)
    if user is None:
        return register_user(db, name=name, email=email, password=password, role=Role.ADMIN)
    if user.role != Role.ADMIN:
        with unit_of_work(db):
            user.role = Role.ADMIN
        db.refresh(user)
        logger.info("user.promoted", user_id=str(user.id))
    return user
