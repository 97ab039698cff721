from __future__ import annotations

from dataclasses import dataclass

from structlog import contextvars


@dataclass(frozen=True)
class ActorContext:
    actor_id: str
    role: str


def set_request_id(request_id: str) -> None:
    contextvars.bind_contextvars(request_id=request_id)


def set_actor(actor_id: str, role: str) -> None:
    contextvars.bind_contextvars(actor_id=actor_id, actor_role=role)


def clear_request_context() -> None:
    contextvars.clear_contextvars()


def get_request_id() -> str | None:
    ctx = contextvars.get_contextvars()
    v = ctx.get("request_id")
    return str(v) if v is not None else None


def get_actor_context() -> ActorContext | None:
    ctx = contextvars.get_contextvars()
    actor_id = ctx.get("actor_id")
    if actor_id is None:
        return None
    return ActorContext(actor_id=str(actor_id), role=str(ctx.get("actor_role", "")))
