"""Authorization predicate for documents.

Every operation that reads or mutates a document asks ``can_access`` (usually
through ``require_access``); nothing else compares owners or permissions.
Expired shares are filtered out here, at read time, so they behave exactly
like shares that never existed.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import NamedTuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from docvault.core import security
from docvault.core.errors import AccessDenied
from docvault.core.metrics import ACCESS_DECISIONS_TOTAL
from docvault.db import models


class AccessLevel(str, Enum):
    OWNER = "owner"
    EDIT = "edit"
    VIEW = "view"


# owner > edit > view
ACCESS_RANK: dict[str, int] = {
    AccessLevel.VIEW.value: 1,
    AccessLevel.EDIT.value: 2,
    AccessLevel.OWNER.value: 3,
}


class Access(NamedTuple):
    allowed: bool
    level: str  # "" when not allowed


NO_ACCESS = Access(False, "")


def active_share_clause(now: datetime | None = None):
    """SQL condition selecting shares that have not expired."""
    now = now or security.utcnow()
    return or_(
        models.DocumentShare.expires_at.is_(None),
        models.DocumentShare.expires_at > now,
    )


def can_access(db: Session, document: models.Document, user_id: uuid.UUID) -> Access:
    if document.owner_id == user_id:
        access = Access(True, AccessLevel.OWNER.value)
    else:
        stmt = select(models.DocumentShare.permission).where(
            models.DocumentShare.document_id == document.id,
            models.DocumentShare.shared_with_id == user_id,
            active_share_clause(),
        )
        permission = db.execute(stmt).scalar_one_or_none()
        access = Access(True, permission.value) if permission else NO_ACCESS

    ACCESS_DECISIONS_TOTAL.labels(
        result="allowed" if access.allowed else "denied", level=access.level or "none"
    ).inc()
    return access


def has_at_least(access: Access, minimum: AccessLevel) -> bool:
    return access.allowed and ACCESS_RANK.get(access.level, 0) >= ACCESS_RANK[minimum.value]


def require_access(
    db: Session,
    document: models.Document,
    user_id: uuid.UUID,
    minimum: AccessLevel,
) -> Access:
    """Return the caller's access or raise AccessDenied if it ranks below ``minimum``."""
    access = can_access(db, document, user_id)
    if not has_at_least(access, minimum):
        raise AccessDenied()
    return access
