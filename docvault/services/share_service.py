from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import case, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from docvault.core import security
from docvault.core.errors import InvalidInput, InvalidPermission, ShareNotFound
from docvault.core.logging import get_logger
from docvault.core.metrics import DOCUMENT_OPERATIONS_TOTAL
from docvault.db import models
from docvault.schemas import share as share_schema
from docvault.services import access_service, document_service, user_service
from docvault.services.access_service import AccessLevel

logger = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _parse_permission(permission: models.SharePermission | str) -> models.SharePermission:
    try:
        return models.SharePermission(permission)
    except ValueError as exc:
        raise InvalidPermission() from exc


def _as_utc(value: datetime | None) -> datetime | None:
    """Normalize to aware UTC; naive values are taken to already be UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _owned_document(db: Session, document_id: uuid.UUID, owner_id: uuid.UUID) -> models.Document:
    document = document_service.get_document(db, document_id)
    access_service.require_access(db, document, owner_id, AccessLevel.OWNER)
    return document


def _upsert_share(
    db: Session,
    document_id: uuid.UUID,
    shared_by_id: uuid.UUID,
    shared_with_id: uuid.UUID,
    permission: models.SharePermission,
    expires_at: datetime | None,
) -> None:
    """Insert the share or update the recipient's existing one in one statement.

    Permission and granter are always overwritten. Without a new expiry an
    active share keeps its own, while an expired one becomes permanent.
    """
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    if insert is None:
        raise NotImplementedError(
            f"Share upsert is not supported on {db.get_bind().dialect.name}"
        )

    table = models.DocumentShare.__table__
    stmt = insert(table).values(
        id=uuid.uuid4(),
        document_id=document_id,
        shared_by_id=shared_by_id,
        shared_with_id=shared_with_id,
        permission=permission,
        expires_at=expires_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.document_id, table.c.shared_with_id],
        set_={
            "permission": stmt.excluded.permission,
            "expires_at": func.coalesce(
                stmt.excluded.expires_at,
                case((table.c.expires_at > security.utcnow(), table.c.expires_at), else_=None),
            ),
            "shared_by_id": stmt.excluded.shared_by_id,
        },
    )
    db.execute(stmt)
    db.commit()


def _share_rows(db: Session, *conditions) -> list[share_schema.ShareRead]:
    stmt = (
        select(models.DocumentShare, models.User.email, models.User.name)
        .join(models.User, models.DocumentShare.shared_with_id == models.User.id)
        .where(*conditions)
        .order_by(models.DocumentShare.created_at, models.User.email)
    )
    return [
        share_schema.ShareRead(
            id=share.id,
            document_id=share.document_id,
            shared_with_id=share.shared_with_id,
            shared_with_email=email,
            shared_with_name=name,
            permission=share.permission,
            expires_at=share.expires_at,
            created_at=share.created_at,
        )
        for share, email, name in db.execute(stmt).all()
    ]


def share_document(
    db: Session,
    document_id: uuid.UUID,
    owner_id: uuid.UUID,
    recipient_email: str,
    permission: models.SharePermission | str,
    expires_at: datetime | None = None,
) -> share_schema.ShareRead:
    """Grant ``recipient_email`` access to a document, replacing any earlier grant.

    Re-sharing with the same recipient overwrites permission and granter, and
    the expiry when one is given; there is never more than one share per
    (document, recipient).
    """
    document = _owned_document(db, document_id, owner_id)
    level = _parse_permission(permission)
    recipient = user_service.get_user_by_email(db, recipient_email)

    if recipient.id == owner_id:
        raise InvalidInput("Cannot share a document with yourself")

    expires_at = _as_utc(expires_at)
    if expires_at is not None and expires_at <= security.utcnow():
        raise InvalidInput("Expiry must be in the future")

    _upsert_share(db, document.id, owner_id, recipient.id, level, expires_at)

    DOCUMENT_OPERATIONS_TOTAL.labels(operation="share").inc()
    logger.info(
        "Document shared",
        extra={
            "document_id": str(document.id),
            "target_user_id": str(recipient.id),
            "permission": level.value,
        },
    )

    shares = _share_rows(
        db,
        models.DocumentShare.document_id == document.id,
        models.DocumentShare.shared_with_id == recipient.id,
    )
    return shares[0]


def remove_share(
    db: Session,
    document_id: uuid.UUID,
    owner_id: uuid.UUID,
    recipient_id: uuid.UUID,
) -> None:
    document = _owned_document(db, document_id, owner_id)

    stmt = delete(models.DocumentShare).where(
        models.DocumentShare.document_id == document.id,
        models.DocumentShare.shared_with_id == recipient_id,
        access_service.active_share_clause(),
    ).execution_options(synchronize_session=False)
    result = db.execute(stmt)
    db.commit()
    if result.rowcount == 0:
        raise ShareNotFound()

    DOCUMENT_OPERATIONS_TOTAL.labels(operation="unshare").inc()
    logger.info(
        "Document share removed",
        extra={"document_id": str(document.id), "target_user_id": str(recipient_id)},
    )


def list_document_shares(
    db: Session, document_id: uuid.UUID, owner_id: uuid.UUID
) -> list[share_schema.ShareRead]:
    """Active shares of a document, visible to its owner only."""
    document = _owned_document(db, document_id, owner_id)
    return _share_rows(
        db,
        models.DocumentShare.document_id == document.id,
        access_service.active_share_clause(),
    )


def purge_expired_shares(db: Session, now: datetime | None = None) -> int:
    """Delete shares whose expiry has passed and return how many were removed.

    Expired shares are already ignored by every read, so this only reclaims
    rows.
    """
    now = _as_utc(now) or security.utcnow()
    stmt = delete(models.DocumentShare).where(
        models.DocumentShare.expires_at.is_not(None),
        models.DocumentShare.expires_at <= now,
    ).execution_options(synchronize_session=False)
    result = db.execute(stmt)
    db.commit()

    if result.rowcount:
        logger.info("Purged expired shares", extra={"count": result.rowcount})
    return result.rowcount
