"""Request-scoped dependencies, including the authentication gate.

Every protected route depends on ``require_identity``. It reads the bearer
token, verifies it and binds the resulting ``Identity`` to the request before
any handler code runs; a request without a valid token never reaches the
handler.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request

from docvault.core.config import Settings
from docvault.core.errors import TokenError, Unauthorized
from docvault.core.logging import set_request_context
from docvault.services.token_service import Identity, TokenService
from docvault.storage.blob_store import LocalBlobStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_blob_store(request: Request) -> LocalBlobStore:
    return request.app.state.blob_store


def parse_bearer(authorization: str | None) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        raise Unauthorized("Missing authorization header")

    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise Unauthorized("Invalid authorization header format")
    if not parts[1]:
        raise Unauthorized("Missing bearer token")
    return parts[1]


async def require_identity(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    token = parse_bearer(authorization)
    try:
        identity = tokens.verify(token)
    except TokenError as exc:
        raise Unauthorized(exc.message) from exc

    request.state.identity = identity
    set_request_context(user_id=str(identity.user_id))
    return identity


def get_request_identity(request: Request) -> Identity | None:
    """Return the identity bound by ``require_identity``, or None if there is none."""
    identity = getattr(request.state, "identity", None)
    if not isinstance(identity, Identity):
        return None
    return identity
