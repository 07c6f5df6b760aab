from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docvault.api import deps
from docvault.core import security
from docvault.core.config import Settings
from docvault.core.logging import get_logger
from docvault.db.session import get_db
from docvault.storage.blob_store import LocalBlobStore

logger = get_logger(__name__)

router = APIRouter(tags=["meta"])


class HealthStatus(BaseModel):
    status: str
    timestamp: datetime
    version: str


class DetailedHealthStatus(HealthStatus):
    database: str
    storage: str


@router.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@router.get("/health/live", response_model=HealthStatus)
def liveness_probe(settings: Settings = Depends(deps.get_app_settings)) -> HealthStatus:
    """Returns 200 while the process is running."""
    return HealthStatus(status="healthy", timestamp=security.utcnow(), version=settings.api_version)


@router.get("/health/ready", response_model=DetailedHealthStatus)
def readiness_probe(
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(deps.get_blob_store),
    settings: Settings = Depends(deps.get_app_settings),
) -> DetailedHealthStatus:
    """Checks database connectivity and that the upload directory is writable."""
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as exc:
        logger.warning("Database health check failed", extra={"error": str(exc)})
        db_status = "unhealthy"

    storage_status = "healthy" if store.healthy() else "unhealthy"
    if storage_status != "healthy":
        logger.warning("Storage health check failed", extra={"upload_dir": str(store.root)})

    overall = "healthy" if db_status == storage_status == "healthy" else "unhealthy"
    return DetailedHealthStatus(
        status=overall,
        timestamp=security.utcnow(),
        version=settings.api_version,
        database=db_status,
        storage=storage_status,
    )


@router.get("/version")
def version(settings: Settings = Depends(deps.get_app_settings)) -> dict[str, str]:
    return {"version": settings.api_version}
