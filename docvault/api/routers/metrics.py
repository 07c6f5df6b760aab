"""Prometheus metrics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docvault.core.logging import get_logger
from docvault.core.metrics import DB_HEALTH_STATUS, DOCUMENTS_TOTAL, SHARES_ACTIVE, USERS_TOTAL
from docvault.db import models
from docvault.db.session import get_db
from docvault.services.access_service import active_share_clause

logger = get_logger(__name__)

router = APIRouter(tags=["metrics"])


def update_business_metrics(db: Session) -> None:
    """Refresh the gauges that are computed from the database."""
    try:
        USERS_TOTAL.set(db.execute(select(func.count(models.User.id))).scalar() or 0)

        active = db.execute(
            select(func.count(models.Document.id)).where(models.Document.deleted_at.is_(None))
        ).scalar()
        deleted = db.execute(
            select(func.count(models.Document.id)).where(models.Document.deleted_at.is_not(None))
        ).scalar()
        DOCUMENTS_TOTAL.labels(state="active").set(active or 0)
        DOCUMENTS_TOTAL.labels(state="deleted").set(deleted or 0)

        for permission in models.SharePermission:
            SHARES_ACTIVE.labels(permission=permission.value).set(0)
        share_counts = db.execute(
            select(models.DocumentShare.permission, func.count(models.DocumentShare.id))
            .where(active_share_clause())
            .group_by(models.DocumentShare.permission)
        ).all()
        for permission, count in share_counts:
            SHARES_ACTIVE.labels(permission=permission.value).set(count)

        DB_HEALTH_STATUS.set(1)
    except SQLAlchemyError:
        DB_HEALTH_STATUS.set(0)
        raise


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics",
    description="Returns metrics in Prometheus text format",
)
def get_metrics(db: Session = Depends(get_db)) -> PlainTextResponse:
    try:
        update_business_metrics(db)
    except SQLAlchemyError:
        # Still export what is in memory
        logger.warning("Failed to refresh database metrics", exc_info=True)

    return PlainTextResponse(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
