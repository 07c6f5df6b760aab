from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from docvault.api import deps
from docvault.db.session import get_db
from docvault.schemas import document as document_schema
from docvault.services import document_service
from docvault.services.token_service import Identity
from docvault.utils import pagination

router = APIRouter(prefix="/shared", tags=["documents"])


@router.get("", response_model=document_schema.Page[document_schema.SharedDocumentRead])
def list_shared_with_me(
    page: str | None = None,
    per_page: str | None = None,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    """Documents other users shared with the caller through a share that has not expired."""
    page_number, page_size = pagination.pagination_from_query(page, per_page)
    return document_service.list_shared_documents(db, identity.user_id, page_number, page_size)
