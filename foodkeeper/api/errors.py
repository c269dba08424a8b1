"""
Application Errors
Exception types raised by services and the handlers that turn them into JSON.

Every error response has the same shape:
    {"error": code, "message": str, "details": optional, "timestamp": iso}
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ============================================================================
# Exception Types
# ============================================================================

class AppError(Exception):
    """Error with an explicit HTTP status code"""

    code = "app_error"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def details(self) -> Optional[Any]:
        return None


class ValidationError(AppError):
    """Field-keyed validation failure (400)"""

    code = "validation_error"

    def __init__(self, message: str = "Validation failed", errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.errors = errors or {}

    @property
    def details(self) -> Dict[str, List[str]]:
        return self.errors


class NotFoundError(AppError):
    code = "not_found"

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    code = "conflict"

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message, status.HTTP_409_CONFLICT)


# ============================================================================
# Infrastructure Error Translation
# ============================================================================

_UNIQUE_MARKERS = ("unique constraint", "duplicate", "already exists")
_FOREIGN_KEY_MARKERS = ("foreign key",)
_UNAVAILABLE_MARKERS = ("unable to open", "database is locked", "connection", "disk i/o error")


def translate_database_error(exc: SQLAlchemyError) -> AppError:
    """
    Map a driver error onto an AppError by inspecting its message text.

    unique/duplicate -> 409, foreign key -> 400,
    connection problems -> 503, anything else -> 500
    """
    text = str(getattr(exc, "orig", None) or exc).lower()

    if any(marker in text for marker in _UNIQUE_MARKERS):
        return ConflictError("Resource already exists")
    if any(marker in text for marker in _FOREIGN_KEY_MARKERS):
        return AppError("Referenced resource does not exist", status.HTTP_400_BAD_REQUEST)
    if any(marker in text for marker in _UNAVAILABLE_MARKERS):
        return AppError("Database temporarily unavailable", status.HTTP_503_SERVICE_UNAVAILABLE)
    return AppError("A database error occurred. Please try again later.")


def _http_error_code(status_code: int) -> str:
    return {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        429: "rate_limit_exceeded",
        503: "service_unavailable",
    }.get(status_code, "http_error")


def error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {
        "error": error,
        "message": message,
        "timestamp": datetime.utcnow().isoformat(),
    }
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def validation_details(exc: Union[RequestValidationError, PydanticValidationError]) -> Dict[str, List[str]]:
    """Collapse pydantic error list into {field: [messages]}"""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error["loc"] if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        errors.setdefault(field, []).append(error["msg"])
    return errors


# ============================================================================
# Exception Handlers
# ============================================================================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle errors raised explicitly by services."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors."""
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "validation_error",
        "Request validation failed",
        validation_details(exc),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(
        exc.status_code,
        _http_error_code(exc.status_code),
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle database errors."""
    translated = translate_database_error(exc)
    logger.error(f"Database error ({translated.status_code}): {exc}", exc_info=translated.status_code >= 500)
    return error_response(translated.status_code, "database_error", translated.message)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred. Please contact support.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
