from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docvault.core import security
from docvault.core.errors import InvalidPassword, UserExists, UserNotFound
from docvault.core.logging import get_logger
from docvault.db import models

logger = get_logger(__name__)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def find_user_by_email(db: Session, email: str) -> models.User | None:
    stmt = select(models.User).where(models.User.email == _normalize_email(email))
    return db.execute(stmt).scalar_one_or_none()


def get_user_by_email(db: Session, email: str) -> models.User:
    user = find_user_by_email(db, email)
    if not user:
        raise UserNotFound()
    return user


def get_user(db: Session, user_id: uuid.UUID) -> models.User:
    user = db.get(models.User, user_id)
    if not user:
        raise UserNotFound()
    return user


def create_user(db: Session, email: str, password: str, name: str) -> models.User:
    if find_user_by_email(db, email):
        raise UserExists()

    user = models.User(
        email=_normalize_email(email),
        password_hash=security.get_password_hash(password),
        name=name.strip(),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise UserExists() from exc
    db.refresh(user)

    logger.info("User registered", extra={"target_user_id": str(user.id)})
    return user


def authenticate(db: Session, email: str, password: str) -> models.User:
    """Check a password login.

    Raises UserNotFound or InvalidPassword; the HTTP layer reports both the
    same way.
    """
    user = get_user_by_email(db, email)
    if not security.verify_password(password, user.password_hash):
        raise InvalidPassword()
    return user


def update_name(db: Session, user_id: uuid.UUID, name: str) -> models.User:
    user = get_user(db, user_id)
    user.name = name.strip()
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
