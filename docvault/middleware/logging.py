"""Request logging middleware with structured output."""

from __future__ import annotations

import re
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from docvault.api.deps import get_request_identity
from docvault.core.logging import clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)

# Unversioned prefixes still served for older clients
LEGACY_PREFIXES = ("/auth", "/documents", "/shared", "/health", "/version")

# Caller supplied request ids are echoed back only when they look like ids
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(header_value: str | None) -> str:
    if header_value and _REQUEST_ID_PATTERN.match(header_value):
        return header_value
    return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request id and logs one line per request.

    Successful requests to health and metrics endpoints are not logged.
    """

    QUIET_PATHS = {"/health", "/health/live", "/health/ready", "/metrics"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Keep a caller supplied id so traces can be joined across services
        request_id = resolve_request_id(request.headers.get("x-request-id"))
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        start_time = time.perf_counter()
        client_host = request.client.host if request.client else "unknown"
        path = request.url.path

        try:
            response = await call_next(request)

            # Bound by the authentication gate once the token is verified
            identity = get_request_identity(request)
            if identity is not None:
                set_request_context(user_id=str(identity.user_id))

            log_context = {
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                "client_ip": client_host,
            }
            if path not in self.QUIET_PATHS:
                log_context["user_agent"] = request.headers.get("user-agent", "unknown")

            if response.status_code >= 500:
                logger.error("Request failed", extra=log_context)
            elif response.status_code >= 400:
                logger.warning("Request error", extra=log_context)
            elif path not in self.QUIET_PATHS:
                logger.info("Request completed", extra=log_context)

            response.headers["X-Request-ID"] = request_id
            if path.startswith(LEGACY_PREFIXES):
                response.headers["X-API-Deprecation"] = (
                    f"This route is deprecated. Use /v1{path} instead."
                )
                response.headers["X-API-Version"] = "legacy"
            else:
                response.headers["X-API-Version"] = "1"
            return response

        except Exception as exc:
            logger.exception(
                "Request raised exception",
                extra={
                    "method": request.method,
                    "path": path,
                    "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                    "client_ip": client_host,
                    "error_type": type(exc).__name__,
                },
            )
            raise

        finally:
            clear_request_context()
