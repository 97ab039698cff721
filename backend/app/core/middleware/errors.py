from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger
from app.shared.exceptions import AppError
from app.shared.responses import error_body

logger = get_logger(__name__)

_HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "RESOURCE_NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "DUPLICATE_ENTRY",
    422: "VALIDATION_ERROR",
}


def _validation_details(exc: RequestValidationError) -> dict:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg"), "type": err.get("type")})
    return {"errors": errors}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.is_operational:
        logger.warning("request.failed", code=exc.code, status_code=exc.status_code, message=exc.message)
    else:
        logger.error("request.failed", code=exc.code, status_code=exc.status_code, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message, exc.details))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _validation_details(exc)
    logger.warning("request.invalid", errors=details["errors"])
    return JSONResponse(status_code=422, content=error_body("VALIDATION_ERROR", "Validation failed", details))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request.unhandled_error", path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error_body("INTERNAL_SERVER_ERROR", "An unexpected error occurred"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
