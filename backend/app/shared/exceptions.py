from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base error for domain/application exceptions."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    @property
    def is_operational(self) -> bool:
        return self.status_code < 500


class NotAuthorized(AppError):
    """Raised when the caller cannot be identified."""

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class Forbidden(AppError):
    """Raised when the actor lacks the role or ownership for a resource."""

    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFound(AppError):
    """Raised when entity is missing."""

    status_code = 404
    code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found"


class AssetNotFound(NotFound):
    default_message = "Asset not found"


class InvestmentNotFound(NotFound):
    default_message = "Investment not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class InvalidState(AppError):
    """Raised when an entity exists but its state forbids the operation."""

    status_code = 400
    code = "INVALID_STATE"
    default_message = "Operation not allowed in the current state"


class AssetNotListed(InvalidState):
    code = "ASSET_NOT_LISTED"
    default_message = "This asset is not available for investment"


class Conflict(AppError):
    status_code = 409
    code = "DUPLICATE_ENTRY"
    default_message = "Resource already exists"


class ValidationError(AppError):
    """Raised for domain-level validation beyond schema validation."""

    status_code = 422
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"
