"""Tests for Prometheus metrics endpoint."""

from __future__ import annotations

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from docvault.middleware.metrics import normalize_path


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]

    content = response.text
    assert "http_requests_total" in content
    assert "http_request_duration_seconds" in content
    assert "docvault_info" in content


def test_metrics_contains_business_gauges(client: TestClient) -> None:
    client.post(
        "/auth/register",
        json={"email": "alice@example.com", "password": "password123", "name": "Alice"},
    )
    response = client.get("/metrics")
    content = response.text

    assert "users_total 1.0" in content
    assert "documents_total" in content
    assert "shares_active" in content
    assert "db_health_status 1.0" in content


def test_login_attempts_are_counted(client: TestClient) -> None:
    client.post(
        "/auth/register",
        json={"email": "alice@example.com", "password": "password123", "name": "Alice"},
    )
    failures = _sample("login_attempts_total", {"status": "failure"})
    successes = _sample("login_attempts_total", {"status": "success"})

    client.post("/auth/login", json={"email": "alice@example.com", "password": "wrong-one"})
    client.post("/auth/login", json={"email": "alice@example.com", "password": "password123"})

    assert _sample("login_attempts_total", {"status": "failure"}) == failures + 1
    assert _sample("login_attempts_total", {"status": "success"}) == successes + 1


def test_token_verifications_are_counted(client: TestClient) -> None:
    invalid = _sample("token_verifications_total", {"result": "invalid"})
    client.get("/auth/me", headers={"Authorization": "Bearer garbage"})
    assert _sample("token_verifications_total", {"result": "invalid"}) == invalid + 1


def test_http_requests_use_normalized_paths(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/documents/{id}", "status": "401"}
    before = _sample("http_requests_total", labels)

    client.get("/documents/6f1c1f8e-2a55-4f63-9d87-3c1b1d0f6b11")

    assert _sample("http_requests_total", labels) == before + 1


def test_metrics_excluded_from_own_metrics(client: TestClient) -> None:
    for _ in range(3):
        client.get("/metrics")
    labels = {"method": "GET", "endpoint": "/metrics", "status": "200"}
    assert _sample("http_requests_total", labels) == 0


def test_normalize_path() -> None:
    assert (
        normalize_path(
            "/v1/documents/6f1c1f8e-2a55-4f63-9d87-3c1b1d0f6b11"
            "/shares/0b9c7a4e-1111-2222-3333-444455556666"
        )
        == "/v1/documents/{id}/shares/{id}"
    )
    assert normalize_path("/v1/documents") == "/v1/documents"
    assert normalize_path("/items/42") == "/items/{id}"
