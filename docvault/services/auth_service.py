from __future__ import annotations

from sqlalchemy.orm import Session

from docvault.core.errors import InvalidCredentials, InvalidPassword, UserExists, UserNotFound
from docvault.core.logging import get_logger
from docvault.core.metrics import LOGIN_ATTEMPTS_TOTAL, REGISTRATIONS_TOTAL
from docvault.db import models
from docvault.schemas import auth as auth_schema
from docvault.schemas.user import UserRead
from docvault.services import user_service
from docvault.services.token_service import TokenService

logger = get_logger(__name__)


def _token_response(tokens: TokenService, user: models.User) -> auth_schema.AuthResponse:
    return auth_schema.AuthResponse(
        access_token=tokens.issue(user.id, user.email),
        expires_in=int(tokens.ttl.total_seconds()),
        user=UserRead.model_validate(user),
    )


def register(
    db: Session, tokens: TokenService, payload: auth_schema.RegisterRequest
) -> auth_schema.AuthResponse:
    try:
        user = user_service.create_user(db, payload.email, payload.password, payload.name)
    except UserExists:
        REGISTRATIONS_TOTAL.labels(status="conflict").inc()
        raise
    REGISTRATIONS_TOTAL.labels(status="success").inc()
    return _token_response(tokens, user)


def login(
    db: Session, tokens: TokenService, payload: auth_schema.LoginRequest
) -> auth_schema.AuthResponse:
    """Authenticate and issue a token.

    Unknown email and wrong password surface identically to the caller so the
    endpoint cannot be used to enumerate accounts; the log keeps the reason.
    """
    try:
        user = user_service.authenticate(db, payload.email, payload.password)
    except (UserNotFound, InvalidPassword) as exc:
        LOGIN_ATTEMPTS_TOTAL.labels(status="failure").inc()
        logger.info("Login failed", extra={"reason": exc.code})
        raise InvalidCredentials() from exc

    LOGIN_ATTEMPTS_TOTAL.labels(status="success").inc()
    logger.info("Login succeeded", extra={"target_user_id": str(user.id)})
    return _token_response(tokens, user)
