from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from docvault.api.routers import auth, documents, health, metrics, shared
from docvault.core.config import Settings, get_settings
from docvault.core.errors import VaultError
from docvault.core.logging import configure_logging, get_logger
from docvault.core.metrics import init_app_info
from docvault.db.session import create_tables, init_engine
from docvault.middleware import errors, logging
from docvault.middleware.metrics import PrometheusMiddleware
from docvault.services.token_service import TokenService
from docvault.storage.blob_store import LocalBlobStore

tags_metadata = [
    {"name": "meta", "description": "Health and metadata endpoints"},
    {"name": "auth", "description": "Registration, login and profile"},
    {"name": "documents", "description": "Document upload, download and sharing"},
    {"name": "metrics", "description": "Prometheus metrics"},
]


def build_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    configure_logging(log_level=settings.log_level, log_format=settings.log_format)
    logger = get_logger(__name__)
    logger.info(
        "Starting Document Vault",
        extra={"version": settings.api_version, "log_format": settings.log_format},
    )

    app = FastAPI(
        title=settings.project_name,
        version=settings.api_version,
        openapi_tags=tags_metadata,
        description="""
## Document Vault API

Upload documents and share them with other users, with view or edit
permission and an optional expiry.

### Authentication

Protected endpoints require a token in the `Authorization` header:

```
Authorization: Bearer <your-jwt-token>
```

Get a token from `POST /auth/register` or `POST /auth/login`. Tokens are
valid for 24 hours.
        """,
    )

    init_engine(settings.database_url)

    app.state.settings = settings
    app.state.token_service = TokenService(settings.jwt_secret, settings.jwt_algorithm)
    app.state.blob_store = LocalBlobStore(settings.upload_dir)
    # Replaced in tests to stub the summarization endpoint
    app.state.summarizer_transport = None

    # First added = innermost
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(logging.RequestLoggingMiddleware)

    app.add_exception_handler(VaultError, errors.vault_error_handler)
    app.add_exception_handler(StarletteHTTPException, errors.http_exception_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_exception_handler)
    # Specific database errors before generic SQLAlchemyError
    app.add_exception_handler(IntegrityError, errors.integrity_error_handler)
    app.add_exception_handler(DataError, errors.data_error_handler)
    app.add_exception_handler(OperationalError, errors.operational_error_handler)
    app.add_exception_handler(SQLAlchemyError, errors.database_exception_handler)
    app.add_exception_handler(Exception, errors.general_exception_handler)

    # Prometheus metrics endpoint (no auth, no versioning)
    app.include_router(metrics.router)

    for router in (health.router, auth.router, documents.router, shared.router):
        app.include_router(router, prefix="/v1")

    # Legacy unversioned routes
    for router in (health.router, auth.router, documents.router, shared.router):
        app.include_router(router, deprecated=True)

    init_app_info(settings.api_version)

    @app.on_event("startup")
    def _create_tables() -> None:
        if settings.auto_create_tables:
            create_tables()

    return app


def run() -> None:
    """Console entry point; serves the app with uvicorn."""
    import uvicorn

    uvicorn.run("docvault.main:build_app", factory=True, host="0.0.0.0", port=8000)
