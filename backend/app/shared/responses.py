from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel

from app.shared.pagination import PaginationMeta, pagination_meta


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    status: Literal["success"] = "success"
    message: str | None = None
    data: T | None = None


class PageEnvelope(BaseModel, Generic[T]):
    status: Literal["success"] = "success"
    message: str | None = None
    data: list[T]
    pagination: PaginationMeta


class ErrorBody(BaseModel):
    code: str
    details: Any | None = None


class ErrorEnvelope(BaseModel):
    status: Literal["error"] = "error"
    message: str
    error: ErrorBody


def ok(data: Any = None, message: str | None = None) -> Envelope:
    return Envelope(message=message, data=data)


def paginated(items: list, *, page: int, limit: int, total: int, message: str | None = None) -> PageEnvelope:
    return PageEnvelope(message=message, data=items, pagination=pagination_meta(page, limit, total))


def error_body(code: str, message: str, details: Any | None = None) -> dict[str, Any]:
    envelope = ErrorEnvelope(message=message, error=ErrorBody(code=code, details=details))
    return envelope.model_dump(exclude_none=True)
