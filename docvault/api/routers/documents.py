from __future__ import annotations

import uuid

import httpx
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from docvault.api import deps
from docvault.core.config import Settings
from docvault.core.errors import FileTooLarge
from docvault.db.session import get_db
from docvault.schemas import document as document_schema
from docvault.schemas import share as share_schema
from docvault.services import document_service, share_service, summary_service
from docvault.services.token_service import Identity
from docvault.utils import pagination
from docvault.storage.blob_store import LocalBlobStore

router = APIRouter(prefix="/documents", tags=["documents"])


def get_summarizer_transport(request: Request) -> httpx.BaseTransport | None:
    return getattr(request.app.state, "summarizer_transport", None)


@router.get("", response_model=document_schema.Page[document_schema.DocumentRead])
def list_documents(
    page: str | None = None,
    per_page: str | None = None,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    page_number, page_size = pagination.pagination_from_query(page, per_page)
    return document_service.list_owned_documents(db, identity.user_id, page_number, page_size)


@router.post(
    "", response_model=document_schema.DocumentRead, status_code=status.HTTP_201_CREATED
)
def upload_document(
    file: UploadFile = File(...),
    name: str | None = Form(default=None),
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(deps.get_blob_store),
    settings: Settings = Depends(deps.get_app_settings),
):
    # Reject early when the multipart part already reports its size
    if file.size is not None and file.size > settings.max_upload_size:
        raise FileTooLarge()

    return document_service.create_document(
        db,
        store,
        owner_id=identity.user_id,
        filename=file.filename,
        content_type=file.content_type,
        stream=file.file,
        name=name,
        max_bytes=settings.max_upload_size,
    )


@router.get("/{document_id}", response_model=document_schema.DocumentDetail)
def get_document(
    document_id: uuid.UUID,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    return document_service.describe_document(db, document_id, identity.user_id)


@router.patch("/{document_id}", response_model=document_schema.DocumentRead)
def rename_document(
    document_id: uuid.UUID,
    payload: document_schema.DocumentRename,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    return document_service.rename_document(db, document_id, identity.user_id, payload.name)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: uuid.UUID,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(deps.get_blob_store),
):
    document_service.delete_document(db, store, document_id, identity.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{document_id}/download")
def download_document(
    document_id: uuid.UUID,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(deps.get_blob_store),
):
    document, path = document_service.open_document(db, store, document_id, identity.user_id)
    return FileResponse(path, media_type=document.mime_type, filename=document.original_name)


@router.post(
    "/{document_id}/share",
    response_model=share_schema.ShareResult,
    status_code=status.HTTP_201_CREATED,
)
def share_document(
    document_id: uuid.UUID,
    payload: share_schema.ShareCreate,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    share = share_service.share_document(
        db,
        document_id,
        identity.user_id,
        payload.email,
        payload.permission,
        payload.expires_at,
    )
    return share_schema.ShareResult(share=share)


@router.get("/{document_id}/shares", response_model=list[share_schema.ShareRead])
def list_shares(
    document_id: uuid.UUID,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    return share_service.list_document_shares(db, document_id, identity.user_id)


@router.delete("/{document_id}/shares/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_share(
    document_id: uuid.UUID,
    user_id: uuid.UUID,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    share_service.remove_share(db, document_id, identity.user_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{document_id}/summary", response_model=document_schema.SummaryResponse)
def summarize_document(
    document_id: uuid.UUID,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(deps.get_blob_store),
    settings: Settings = Depends(deps.get_app_settings),
    transport: httpx.BaseTransport | None = Depends(get_summarizer_transport),
):
    return summary_service.summarize_document(
        db, store, settings, document_id, identity.user_id, transport=transport
    )
