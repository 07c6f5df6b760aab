from __future__ import annotations

import uuid
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from docvault.db.models import SharePermission

T = TypeVar("T")


class DocumentRead(BaseModel):
    """Public document metadata; the storage locator is never included."""

    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    original_name: str
    size: int
    mime_type: str
    encryption_algo: str
    is_encrypted: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DocumentDetail(DocumentRead):
    access_level: str  # owner, edit or view


class SharedDocumentRead(DocumentRead):
    owner_name: str
    permission: SharePermission
    expires_at: datetime | None = None


class DocumentRename(BaseModel):
    name: str = Field(min_length=1, max_length=1024)


class Page(BaseModel, Generic[T]):
    data: list[T]
    total: int
    page: int
    per_page: int
    total_pages: int


class SummaryResponse(BaseModel):
    document_id: uuid.UUID
    summary: str
    truncated: bool
