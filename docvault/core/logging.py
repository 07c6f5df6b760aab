"""Structured logging for the Document Vault API.

Every record carries the standard fields (timestamp, level, logger, message)
plus the request context bound by the request middleware and the
authentication gate:

- ``request_id``: set per request by ``RequestLoggingMiddleware``
- ``user_id``: set once the bearer token has been verified

Output is JSON lines by default, or a compact text format for local work.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any

from pythonjsonlogger.json import JsonFormatter

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)

_logging_configured = False

# Third-party loggers that are too chatty at INFO
_NOISY_LOGGERS = ("uvicorn.access", "uvicorn.error", "httpx", "httpcore", "passlib")


def _context_fields() -> dict[str, str]:
    fields = {}
    request_id = request_id_var.get()
    if request_id:
        fields["request_id"] = request_id
    user_id = user_id_var.get()
    if user_id:
        fields["user_id"] = user_id
    return fields


class StructuredJsonFormatter(JsonFormatter):
    """JSON formatter adding standard fields and the request context."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        # Explicit extra= values win over the ambient context
        for key, value in _context_fields().items():
            log_record.setdefault(key, value)

        if record.exc_info and record.exc_info[0]:
            log_record["error_type"] = record.exc_info[0].__name__


class StructuredTextFormatter(logging.Formatter):
    """Human readable formatter for development."""

    def format(self, record: logging.LogRecord) -> str:
        context = _context_fields()
        parts = []
        if "request_id" in context:
            parts.append(f"req={context['request_id'][:8]}")
        if "user_id" in context:
            parts.append(f"user={context['user_id']}")
        prefix = f"[{' '.join(parts)}] " if parts else ""

        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        line = f"{timestamp} {record.levelname:8} {record.name}: {prefix}{record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return StructuredJsonFormatter(fmt="%(timestamp)s %(level)s %(name)s %(message)s")
    return StructuredTextFormatter()


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    stream: IO[str] | None = None,
) -> None:
    """Install the structured handler on the root logger.

    Subsequent calls are no-ops so that rebuilding the app (tests, workers)
    does not stack handlers.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: 'json' for JSON lines, 'text' for readable output
        stream: Target stream, stdout by default
    """
    global _logging_configured

    if _logging_configured:
        return

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(build_formatter(log_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_context(request_id: str | None = None, user_id: str | None = None) -> None:
    """Bind request tracing fields for the current context."""
    if request_id is not None:
        request_id_var.set(request_id)
    if user_id is not None:
        user_id_var.set(user_id)


def clear_request_context() -> None:
    request_id_var.set(None)
    user_id_var.set(None)
