from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum

from sqlalchemy import inspect


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def sa_model_to_dict(obj) -> dict:
    """Shallow column-only serialization for audit before/after snapshots."""
    mapper = inspect(obj)
    data: dict = {}
    for attr in mapper.mapper.column_attrs:
        key = attr.key
        val = getattr(obj, key)
        if isinstance(val, uuid.UUID):
            data[key] = str(val)
        elif isinstance(val, (dt.date, dt.datetime)):
            data[key] = val.isoformat()
        elif isinstance(val, Decimal):
            data[key] = str(val)
        elif isinstance(val, Enum):
            data[key] = val.value
        else:
            data[key] = val
    return data
