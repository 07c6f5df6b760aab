from __future__ import annotations

import uuid
from pathlib import Path
from typing import BinaryIO

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docvault.core import security
from docvault.core.errors import DocumentNotFound, StorageError
from docvault.core.logging import get_logger
from docvault.core.metrics import BLOB_CLEANUP_FAILURES_TOTAL, DOCUMENT_OPERATIONS_TOTAL
from docvault.db import models
from docvault.schemas import document as document_schema
from docvault.services import access_service
from docvault.services.access_service import Access, AccessLevel
from docvault.storage.blob_store import LocalBlobStore
from docvault.utils import files, pagination

logger = get_logger(__name__)


def get_document(db: Session, document_id: uuid.UUID) -> models.Document:
    document = db.get(models.Document, document_id)
    if not document or document.deleted_at is not None:
        raise DocumentNotFound()
    return document


def can_access(db: Session, document_id: uuid.UUID, user_id: uuid.UUID) -> Access:
    """Answer whether ``user_id`` may see ``document_id`` and at which level.

    Raises DocumentNotFound for unknown or deleted documents.
    """
    return access_service.can_access(db, get_document(db, document_id), user_id)


def create_document(
    db: Session,
    store: LocalBlobStore,
    owner_id: uuid.UUID,
    filename: str | None,
    content_type: str | None,
    stream: BinaryIO,
    name: str | None = None,
    max_bytes: int | None = None,
) -> models.Document:
    """Store uploaded content and register its metadata.

    The blob is written first. If the metadata cannot be committed the blob is
    removed again so no content is left without a registry entry.
    """
    mime_type = files.validate_content_type(content_type)
    original_name = files.sanitize_filename(filename)
    display_name = files.sanitize_filename(name) if name and name.strip() else original_name

    document_id = uuid.uuid4()
    storage_key = uuid.uuid4().hex
    size = store.put(storage_key, stream, max_bytes=max_bytes)

    document = models.Document(
        id=document_id,
        owner_id=owner_id,
        name=display_name,
        original_name=original_name,
        size=size,
        mime_type=mime_type,
        storage_key=storage_key,
    )
    db.add(document)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        _discard_blob(store, storage_key, reason="rollback")
        raise StorageError("Failed to save document metadata") from exc
    db.refresh(document)

    DOCUMENT_OPERATIONS_TOTAL.labels(operation="upload").inc()
    logger.info(
        "Document uploaded",
        extra={"document_id": str(document.id), "size": size, "mime_type": mime_type},
    )
    return document


def _discard_blob(store: LocalBlobStore, storage_key: str, reason: str) -> None:
    """Best-effort blob removal; failures are logged and counted, never raised."""
    try:
        store.delete(storage_key)
    except StorageError:
        BLOB_CLEANUP_FAILURES_TOTAL.labels(reason=reason).inc()
        logger.warning(
            "Failed to remove document content",
            extra={"storage_key": storage_key, "reason": reason},
            exc_info=True,
        )


def _page(
    items: list,
    total: int,
    page: int,
    per_page: int,
) -> dict:
    return {
        "data": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": pagination.total_pages(total, per_page),
    }


def list_owned_documents(
    db: Session,
    owner_id: uuid.UUID,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Page through the caller's live documents, newest first."""
    page, per_page = pagination.clamp_pagination(page, per_page)

    stmt = select(models.Document).where(
        models.Document.owner_id == owner_id,
        models.Document.deleted_at.is_(None),
    )
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar() or 0

    stmt = (
        stmt.order_by(models.Document.created_at.desc(), models.Document.id)
        .offset(pagination.offset_for(page, per_page))
        .limit(per_page)
    )
    documents = db.execute(stmt).scalars().all()
    items = [document_schema.DocumentRead.model_validate(doc) for doc in documents]
    return _page(items, total, page, per_page)


def list_shared_documents(
    db: Session,
    user_id: uuid.UUID,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Page through documents shared with ``user_id`` through an active share."""
    page, per_page = pagination.clamp_pagination(page, per_page)

    stmt = (
        select(
            models.Document,
            models.User.name,
            models.DocumentShare.permission,
            models.DocumentShare.expires_at,
        )
        .join(models.DocumentShare, models.DocumentShare.document_id == models.Document.id)
        .join(models.User, models.User.id == models.Document.owner_id)
        .where(
            models.DocumentShare.shared_with_id == user_id,
            models.Document.deleted_at.is_(None),
            access_service.active_share_clause(),
        )
    )
    total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar() or 0

    stmt = (
        stmt.order_by(models.DocumentShare.created_at.desc(), models.Document.id)
        .offset(pagination.offset_for(page, per_page))
        .limit(per_page)
    )
    items = []
    for document, owner_name, permission, expires_at in db.execute(stmt).all():
        data = document_schema.DocumentRead.model_validate(document).model_dump()
        items.append(
            document_schema.SharedDocumentRead(
                **data,
                owner_name=owner_name,
                permission=permission,
                expires_at=expires_at,
            )
        )
    return _page(items, total, page, per_page)


def describe_document(
    db: Session, document_id: uuid.UUID, caller_id: uuid.UUID
) -> document_schema.DocumentDetail:
    document = get_document(db, document_id)
    access = access_service.require_access(db, document, caller_id, AccessLevel.VIEW)
    data = document_schema.DocumentRead.model_validate(document).model_dump()
    return document_schema.DocumentDetail(**data, access_level=access.level)


def rename_document(
    db: Session, document_id: uuid.UUID, caller_id: uuid.UUID, new_name: str
) -> models.Document:
    document = get_document(db, document_id)
    access_service.require_access(db, document, caller_id, AccessLevel.EDIT)

    document.name = files.sanitize_filename(new_name)
    db.add(document)
    db.commit()
    db.refresh(document)

    DOCUMENT_OPERATIONS_TOTAL.labels(operation="rename").inc()
    logger.info("Document renamed", extra={"document_id": str(document.id)})
    return document


def delete_document(
    db: Session, store: LocalBlobStore, document_id: uuid.UUID, caller_id: uuid.UUID
) -> None:
    """Soft-delete a document, then try to remove its content.

    The soft delete is what makes the document disappear; a failed content
    removal only leaves an orphaned blob behind.
    """
    document = get_document(db, document_id)
    access_service.require_access(db, document, caller_id, AccessLevel.OWNER)

    document.deleted_at = security.utcnow()
    db.add(document)
    db.commit()

    DOCUMENT_OPERATIONS_TOTAL.labels(operation="delete").inc()
    logger.info("Document deleted", extra={"document_id": str(document.id)})

    _discard_blob(store, document.storage_key, reason="delete")


def open_document(
    db: Session, store: LocalBlobStore, document_id: uuid.UUID, caller_id: uuid.UUID
) -> tuple[models.Document, Path]:
    document = get_document(db, document_id)
    access_service.require_access(db, document, caller_id, AccessLevel.VIEW)

    path = store.path(document.storage_key)
    DOCUMENT_OPERATIONS_TOTAL.labels(operation="download").inc()
    return document, path
