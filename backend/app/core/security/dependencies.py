from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.middleware.audit import set_actor
from app.core.security.auth import Actor, actor_from_request
from app.shared.enums import Role
from app.shared.exceptions import Forbidden


def get_actor(request: Request, db: Session = Depends(get_db)) -> Actor:
    actor = actor_from_request(request, db)
    set_actor(actor.actor_id, actor.role.value)
    return actor


def require_roles(*required: Role) -> Callable[[Actor], Actor]:
    required_set = set(required)

    def _dep(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role == Role.ADMIN:
            return actor
        if actor.role not in required_set:
            raise Forbidden("Insufficient role")
        return actor

    return _dep


def require_admin() -> Callable[[Actor], Actor]:
    return require_roles(Role.ADMIN)
