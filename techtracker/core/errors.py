from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, ProgrammingError, SQLAlchemyError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("techtracker.errors")

STORAGE_NOT_CONFIGURED = "Database connection is not configured: set DATABASE_URL."
STORAGE_UNREACHABLE = "Could not reach the database. Check DATABASE_URL and the server logs."
STORAGE_SCHEMA_MISSING = "Required tables were not found in the database. Run the schema migration."


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


class TrackerError(Exception):
    """Base class for every failure the API reports on purpose."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "unexpected_error"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(TrackerError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class AuthenticationError(TrackerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class AuthorizationError(TrackerError):
    """Valid actor, but the action is not theirs to take.

    ``reason`` is ``wrong_role`` or ``protected_target``; both map to 403.
    """

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"

    def __init__(self, message: str, *, reason: str) -> None:
        super().__init__(message, details={"reason": reason})
        self.reason = reason


class NotFoundError(TrackerError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(TrackerError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class StorageUnavailableError(TrackerError):
    code = "storage_unavailable"


def storage_error_message(exc: SQLAlchemyError) -> str:
    """Pick the configuration hint that matches a low-level storage failure."""

    text = str(getattr(exc, "orig", None) or exc).lower()
    if "no such table" in text or "does not exist" in text or "undefined" in text:
        return STORAGE_SCHEMA_MISSING
    return STORAGE_UNREACHABLE


def _field_message(error: dict[str, Any]) -> str:
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(loc)
    if error.get("type") == "json_invalid":
        return "Request body is not valid JSON"
    message = error.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


async def tracker_error_handler(request: Request, exc: TrackerError):
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    messages = [_field_message(error) for error in errors]
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        code="validation_error",
        message="; ".join(messages) or "Validation failed",
        details={"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors]},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    return ErrorEnvelope(status_code=exc.status_code, code="http_error", message=message, headers=exc.headers)


async def storage_exception_handler(request: Request, exc: SQLAlchemyError):
    if isinstance(exc, IntegrityError):
        return ErrorEnvelope(
            status_code=status.HTTP_409_CONFLICT,
            code="conflict",
            message="A unique constraint was violated.",
        )
    logger.error("storage.failed", exc_info=exc, extra={"extra_data": {"path": request.url.path}})
    if isinstance(exc, (OperationalError, ProgrammingError, DBAPIError)):
        message = storage_error_message(exc)
        return ErrorEnvelope(status_code=500, code="storage_unavailable", message=message)
    return ErrorEnvelope(status_code=500, code="unexpected_error", message="Unexpected storage failure.")


async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.error("request.failed", exc_info=exc, extra={"extra_data": {"path": request.url.path}})
    return ErrorEnvelope(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        code="unexpected_error",
        message="An unexpected error occurred.",
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(TrackerError, tracker_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)
