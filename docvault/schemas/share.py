from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from docvault.db.models import SharePermission


class ShareCreate(BaseModel):
    email: EmailStr
    permission: SharePermission
    expires_at: datetime | None = Field(
        default=None,
        description=(
            "When the grant lapses. Omitted on a re-share, an active grant keeps "
            "its current expiry."
        ),
    )


class ShareRead(BaseModel):
    id: uuid.UUID
    document_id: uuid.UUID
    shared_with_id: uuid.UUID
    shared_with_email: str
    shared_with_name: str
    permission: SharePermission
    expires_at: datetime | None = None
    created_at: datetime


class ShareResult(BaseModel):
    message: str = "Document shared successfully"
    share: ShareRead
