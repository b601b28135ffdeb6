"""Global exception handlers.

Every error response uses one envelope:
``{"success": false, "error": {"code", "message", "details?"}}``.
Per-operation sync failures never get here; they travel inside the push
results. What does get here is request-level: a malformed envelope, a
failed auth check, or an upload-completion error.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from siteguard.config import settings
from siteguard.core.exceptions import (
    AttachmentReconciliationError,
    EntityNotFound,
    SyncError,
    VersionConflict,
)

logger = logging.getLogger(__name__)

# Most specific first
_SYNC_ERROR_STATUS: tuple[tuple[type[SyncError], int, str], ...] = (
    (EntityNotFound, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (VersionConflict, status.HTTP_409_CONFLICT, "CONFLICT"),
    (AttachmentReconciliationError, status.HTTP_409_CONFLICT, "CONFLICT"),
)


def error_body(code: str, message: str, details: list | None = None) -> dict:
    error: dict = {"code": code, "message": message}
    if details:
        error["details"] = details
    return {"success": False, "error": error}


def _respond(status_code: int, code: str, message: str, details: list | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(code, message, details))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _respond(exc.status_code, f"HTTP_{exc.status_code}", message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """A malformed envelope rejects the whole request; nothing is applied."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", "Invalid value"),
            "type": err.get("type", "value_error"),
        }
        for err in exc.errors()
    ]
    logger.info("Rejected %s %s: %d validation errors", request.method, request.url.path, len(details))
    return _respond(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed. Check the details for specific field errors.",
        details,
    )


async def sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
    for exc_type, status_code, code in _SYNC_ERROR_STATUS:
        if isinstance(exc, exc_type):
            return _respond(status_code, code, str(exc))
    return _respond(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", str(exc))


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return _respond(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", str(exc))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    message = f"Database error: {exc}" if settings.DEBUG else "A database error occurred. Please try again later."
    return _respond(status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR", message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    message = f"Internal error: {exc}" if settings.DEBUG else "An unexpected error occurred. Please try again later."
    return _respond(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SyncError, sync_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
