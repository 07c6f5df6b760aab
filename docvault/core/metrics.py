"""Prometheus metrics definitions for the Document Vault API."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Info

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info("docvault", "Document Vault application information")

# =============================================================================
# HTTP Metrics
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 7.5, 10.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests currently being processed",
    ["method", "endpoint"],
)

# =============================================================================
# Database Metrics
# =============================================================================

DB_HEALTH_STATUS = Gauge(
    "db_health_status",
    "Database health status (1 = healthy, 0 = unhealthy)",
)

# =============================================================================
# Identity Metrics
# =============================================================================

LOGIN_ATTEMPTS_TOTAL = Counter(
    "login_attempts_total",
    "Total number of login attempts",
    ["status"],  # success, failure
)

REGISTRATIONS_TOTAL = Counter(
    "registrations_total",
    "Total number of registration attempts",
    ["status"],  # success, conflict
)

TOKEN_VERIFICATIONS_TOTAL = Counter(
    "token_verifications_total",
    "Total number of identity token verifications",
    ["result"],  # valid, invalid, expired
)

# =============================================================================
# Document Metrics
# =============================================================================

USERS_TOTAL = Gauge("users_total", "Total number of registered users")

DOCUMENTS_TOTAL = Gauge(
    "documents_total",
    "Total number of documents",
    ["state"],  # active, deleted
)

SHARES_ACTIVE = Gauge(
    "shares_active",
    "Number of unexpired document shares",
    ["permission"],  # view, edit
)

DOCUMENT_OPERATIONS_TOTAL = Counter(
    "document_operations_total",
    "Total number of document operations",
    ["operation"],  # upload, download, rename, delete, share, unshare, summarize
)

ACCESS_DECISIONS_TOTAL = Counter(
    "access_decisions_total",
    "Authorization decisions by outcome",
    ["result", "level"],  # result: allowed/denied, level: owner/edit/view/none
)

BLOB_CLEANUP_FAILURES_TOTAL = Counter(
    "blob_cleanup_failures_total",
    "Best-effort content removals that failed",
    ["reason"],  # delete, rollback
)


def init_app_info(version: str = "0.1.0") -> None:
    """Initialize application info metric."""
    APP_INFO.info({"version": version, "service": "docvault"})
