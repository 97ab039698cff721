from __future__ import annotations

import datetime as dt
import json
import uuid
from dataclasses import dataclass
from typing import Any

import jwt
from sqlalchemy.orm import Session
from starlette.requests import Request

from app.core.config import settings
from app.core.db.models import User
from app.shared.enums import Env, Role
from app.shared.exceptions import NotAuthorized
from app.shared.utils import utcnow


@dataclass(frozen=True)
class Actor:
    actor_id: str
    role: Role

    @property
    def user_id(self) -> uuid.UUID:
        return uuid.UUID(self.actor_id)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def _parse_dev_actor_header(raw: str) -> Actor:
    """
    DEV ONLY: X-DEV-ACTOR header payload as JSON.

    Example:
      {"actor_id":"7b0c...","role":"admin"}
    """
    try:
        payload = json.loads(raw)
        actor_id = str(uuid.UUID(str(payload["actor_id"])))
        role = Role(payload.get("role", Role.VIEWER.value))
    except (ValueError, KeyError, TypeError) as e:
        raise NotAuthorized("Malformed dev actor header") from e
    return Actor(actor_id=actor_id, role=role)


def _get_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization")
    if not auth:
        return None
    if not auth.lower().startswith("bearer "):
        return None
    return auth.split(" ", 1)[1].strip()


def issue_access_token(user: User, *, now: dt.datetime | None = None) -> str:
    issued_at = now or utcnow()
    claims = {
        "sub": str(user.id),
        "role": user.role.value,
        "iat": issued_at,
        "exp": issued_at + dt.timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise NotAuthorized("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise NotAuthorized("Invalid token") from e


def actor_from_request(request: Request, db: Session) -> Actor:
    # DEV shortcut (only when ENV=dev)
    if settings.env == Env.dev:
        raw = request.headers.get(settings.dev_actor_header)
        if raw:
            return _parse_dev_actor_header(raw)

    token = _get_bearer_token(request)
    if not token:
        raise NotAuthorized("Missing bearer token")

    claims = decode_access_token(token)
    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError as e:
        raise NotAuthorized("Invalid token") from e

    # Role comes from the stored user so a demotion takes effect before token expiry.
    user = db.get(User, user_id)
    if user is None:
        raise NotAuthorized("User no longer exists")
    return Actor(actor_id=str(user.id), role=user.role)
