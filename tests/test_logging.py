"""Tests for structured logging."""

from __future__ import annotations

import json
import logging
import uuid
from io import StringIO

import pytest
from fastapi.testclient import TestClient

from docvault.core.logging import (
    StructuredJsonFormatter,
    StructuredTextFormatter,
    build_formatter,
    clear_request_context,
    set_request_context,
)
from docvault.middleware.logging import resolve_request_id


@pytest.fixture
def capture():
    """Attach a formatter to a dedicated logger and return (logger, stream)."""
    handlers = []

    def _capture(formatter: logging.Formatter, name: str):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(formatter)
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
        handlers.append((logger, handler))
        return logger, stream

    yield _capture

    for logger, handler in handlers:
        logger.removeHandler(handler)
        logger.propagate = True
    clear_request_context()


class TestStructuredJsonFormatter:
    def test_basic_fields(self, capture) -> None:
        logger, stream = capture(StructuredJsonFormatter(), "test_json_basic")
        logger.info("Test message")

        entry = json.loads(stream.getvalue().strip())
        assert "timestamp" in entry
        assert entry["level"] == "INFO"
        assert entry["logger"] == "test_json_basic"
        assert entry["message"] == "Test message"

    def test_extra_fields(self, capture) -> None:
        logger, stream = capture(StructuredJsonFormatter(), "test_json_extra")
        logger.info("Document uploaded", extra={"document_id": "abc", "size": 12})

        entry = json.loads(stream.getvalue().strip())
        assert entry["document_id"] == "abc"
        assert entry["size"] == 12

    def test_request_context(self, capture) -> None:
        logger, stream = capture(StructuredJsonFormatter(), "test_json_context")
        set_request_context(request_id="req-123", user_id="user-456")
        logger.info("With context")

        entry = json.loads(stream.getvalue().strip())
        assert entry["request_id"] == "req-123"
        assert entry["user_id"] == "user-456"

    def test_no_context_after_clear(self, capture) -> None:
        logger, stream = capture(StructuredJsonFormatter(), "test_json_cleared")
        set_request_context(request_id="req-123")
        clear_request_context()
        logger.info("Without context")

        entry = json.loads(stream.getvalue().strip())
        assert "request_id" not in entry
        assert "user_id" not in entry

    def test_exception_type(self, capture) -> None:
        logger, stream = capture(StructuredJsonFormatter(), "test_json_exc")
        try:
            raise ValueError("bad")
        except ValueError:
            logger.exception("Failed")

        entry = json.loads(stream.getvalue().strip())
        assert entry["error_type"] == "ValueError"


class TestStructuredTextFormatter:
    def test_text_line(self, capture) -> None:
        logger, stream = capture(StructuredTextFormatter(), "test_text")
        set_request_context(request_id="abcdefgh-1234", user_id="u1")
        logger.warning("Something happened")

        line = stream.getvalue().strip()
        assert "WARNING" in line
        assert "test_text" in line
        assert "[req=abcdefgh user=u1]" in line
        assert line.endswith("Something happened")


def test_build_formatter() -> None:
    assert isinstance(build_formatter("json"), StructuredJsonFormatter)
    assert isinstance(build_formatter("text"), StructuredTextFormatter)


def test_request_id_header(client: TestClient) -> None:
    response = client.get("/health")
    assert response.headers["X-Request-ID"]

    echoed = client.get("/health", headers={"X-Request-ID": "trace-me"})
    assert echoed.headers["X-Request-ID"] == "trace-me"


def test_error_envelope_carries_request_id(client: TestClient) -> None:
    response = client.get("/auth/me", headers={"X-Request-ID": "trace-401"})
    assert response.status_code == 401
    assert response.json()["error"]["request_id"] == "trace-401"


@pytest.mark.parametrize(
    "supplied",
    ["", "x" * 129, "bad id with spaces", "<script>", "a;b"],
)
def test_unsafe_request_ids_are_replaced(client: TestClient, supplied: str) -> None:
    response = client.get("/health", headers={"X-Request-ID": supplied})
    echoed = response.headers["X-Request-ID"]
    assert echoed != supplied
    assert uuid.UUID(echoed)


def test_resolve_request_id() -> None:
    assert resolve_request_id("trace-1.2:3_x") == "trace-1.2:3_x"
    assert resolve_request_id("a" * 128) == "a" * 128
    assert uuid.UUID(resolve_request_id(None))
    assert uuid.UUID(resolve_request_id("a" * 129))


def test_request_log_carries_authenticated_user(client: TestClient, capture) -> None:
    registered = client.post(
        "/v1/auth/register",
        json={"email": "alice@example.com", "password": "password123", "name": "Alice"},
    ).json()
    _, stream = capture(StructuredJsonFormatter(), "docvault.middleware.logging")

    response = client.get(
        "/v1/auth/me", headers={"Authorization": f"Bearer {registered['access_token']}"}
    )
    assert response.status_code == 200

    entries = [json.loads(line) for line in stream.getvalue().splitlines()]
    completed = [entry for entry in entries if entry["message"] == "Request completed"]
    assert completed[-1]["user_id"] == response.json()["id"]
