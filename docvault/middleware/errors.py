from __future__ import annotations

from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvault.core.errors import ErrorKind, VaultError
from docvault.core.logging import get_logger

logger = get_logger(__name__)

_STATUS_KIND = {
    status.HTTP_400_BAD_REQUEST: ErrorKind.VALIDATION,
    status.HTTP_401_UNAUTHORIZED: ErrorKind.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorKind.ACCESS_DENIED,
    status.HTTP_404_NOT_FOUND: ErrorKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ErrorKind.CONFLICT,
}


def _debug_enabled(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings and settings.debug_mode)


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    kind: ErrorKind,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render the shared error envelope."""
    content: dict[str, Any] = {
        "error": {
            "code": code,
            "type": kind.value,
            "message": message,
            "request_id": getattr(request.state, "request_id", None),
        }
    }
    if details is not None:
        content["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _log_context(request: Request, exc: Exception) -> dict[str, Any]:
    return {
        "error_type": type(exc).__name__,
        "error_message": str(exc),
        "endpoint": request.url.path,
        "method": request.method,
    }


async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
    """Map domain errors to their HTTP status; internal failures stay opaque."""
    headers = None
    if exc.kind is ErrorKind.UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    if exc.kind is ErrorKind.INTERNAL:
        logger.error("Internal error", extra=_log_context(request, exc), exc_info=exc)
        details = str(exc) if _debug_enabled(request) else None
        message = exc.message if exc.status_code else "Internal server error"
        return _error_response(
            request, exc.http_status, exc.code, exc.kind, message, details, headers
        )

    return _error_response(request, exc.http_status, exc.code, exc.kind, exc.message, None, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions (unknown routes, wrong methods) with the same envelope."""
    kind = _STATUS_KIND.get(exc.status_code, ErrorKind.INTERNAL)
    return _error_response(
        request,
        exc.status_code,
        f"http_{exc.status_code}",
        kind,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with detailed field information."""
    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error["type"],
            "loc": error["loc"],
            "msg": error["msg"],
        }
        # ctx may hold exception instances
        if "ctx" in error:
            error_dict["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error_dict)

    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "request_validation_error",
        ErrorKind.VALIDATION,
        "Validation error",
        errors,
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Handle database integrity constraint violations that escaped a service."""
    logger.error("Database integrity error", extra=_log_context(request, exc))

    exc_str = str(exc.orig) if exc.orig else str(exc)
    lowered = exc_str.lower()
    if "unique" in lowered or "duplicate" in lowered:
        message = "A record with this value already exists"
    elif "foreign key" in lowered:
        message = "Referenced record does not exist"
    elif "not null" in lowered:
        message = "Required field is missing"
    else:
        message = "Database constraint violation"

    details = exc_str if _debug_enabled(request) else None
    return _error_response(
        request, status.HTTP_409_CONFLICT, "integrity_error", ErrorKind.CONFLICT, message, details
    )


async def data_error_handler(request: Request, exc: DataError) -> JSONResponse:
    logger.error("Database data error", extra=_log_context(request, exc))

    details = None
    if _debug_enabled(request):
        details = str(exc.orig) if exc.orig else str(exc)
    return _error_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "data_error",
        ErrorKind.VALIDATION,
        "Invalid data format or type",
        details,
    )


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database operational error", extra=_log_context(request, exc))

    details = None
    if _debug_enabled(request):
        details = str(exc.orig) if exc.orig else str(exc)
    return _error_response(
        request,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "database_unavailable",
        ErrorKind.INTERNAL,
        "Database service temporarily unavailable",
        details,
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Fallback for database errors without a dedicated handler."""
    logger.error("Database error", extra=_log_context(request, exc))

    details = str(exc) if _debug_enabled(request) else None
    return _error_response(
        request,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "database_error",
        ErrorKind.INTERNAL,
        "Database error occurred",
        details,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error", extra=_log_context(request, exc))
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        ErrorKind.INTERNAL,
        "Internal server error",
    )
