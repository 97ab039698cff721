from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum
from typing import Any

from app.core.logging import get_logger
from app.core.middleware.audit import get_actor_context, get_request_id

logger = get_logger("audit")


def _json_safe(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_json_safe(v) for v in value]
    return str(value)


def log_audit_event(
    *,
    action: str,
    entity_type: str,
    entity_id: str | uuid.UUID,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
) -> dict[str, Any]:
    """
    Emit an audit record to the structured log.

    Mutations are traced in the log stream only; no audit table is kept.
    Returns the emitted payload so callers and tests can inspect it.
    """
    actor = get_actor_context()
    payload = {
        "action": action,
        "entity_type": entity_type,
        "entity_id": str(entity_id),
        "actor_id": actor.actor_id if actor else "system",
        "actor_role": actor.role if actor else None,
        "request_id": get_request_id() or "unknown",
        "before": _json_safe(before),
        "after": _json_safe(after),
    }
    logger.info("audit", **payload)
    return payload
