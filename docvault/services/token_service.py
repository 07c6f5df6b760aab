"""Signed, stateless identity tokens.

A token binds a user id and email to a fixed 24 hour window. Nothing is
persisted: verification relies on the HMAC signature and the ``exp`` claim
only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from docvault.core import security
from docvault.core.errors import ExpiredToken, InvalidToken
from docvault.core.logging import get_logger
from docvault.core.metrics import TOKEN_VERIFICATIONS_TOTAL

logger = get_logger(__name__)

TOKEN_TTL = timedelta(hours=24)
SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
REQUIRED_CLAIMS = ["sub", "email", "iat", "nbf", "exp"]


@dataclass(frozen=True)
class Identity:
    """Verified caller identity bound to a request."""

    user_id: uuid.UUID
    email: str


class TokenService:
    """Issues and verifies HMAC-signed JWTs.

    The secret is always passed in explicitly so that each app instance (and
    each test) can run with its own key.

    ``issue_clock`` stamps ``iat``, ``nbf`` and ``exp`` on new tokens only;
    verification always checks ``exp`` against the wall clock.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issue_clock: Callable[[], datetime] = security.utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported token algorithm: {algorithm}")
        self._secret = secret
        self._algorithm = algorithm
        self._issue_clock = issue_clock

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def ttl(self) -> timedelta:
        return TOKEN_TTL

    def issue(self, user_id: uuid.UUID, email: str) -> str:
        issued_at = self._issue_clock()
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": issued_at + TOKEN_TTL,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Identity:
        """Return the identity encoded in ``token``.

        Raises:
            ExpiredToken: signature and structure are valid but the window has passed
            InvalidToken: anything else (empty, malformed, forged, wrong algorithm)
        """
        try:
            identity = self._decode(token)
        except ExpiredToken:
            TOKEN_VERIFICATIONS_TOTAL.labels(result="expired").inc()
            raise
        except InvalidToken:
            TOKEN_VERIFICATIONS_TOTAL.labels(result="invalid").inc()
            raise
        TOKEN_VERIFICATIONS_TOTAL.labels(result="valid").inc()
        return identity

    def _decode(self, token: str) -> Identity:
        if not token:
            raise InvalidToken()

        try:
            header = jwt.get_unverified_header(token)
        except InvalidTokenError as exc:
            raise InvalidToken() from exc

        # Reject "none" and any algorithm other than the configured one before
        # the payload is looked at
        if header.get("alg") != self._algorithm:
            logger.info(
                "Rejected token signed with unexpected algorithm",
                extra={"alg": header.get("alg")},
            )
            raise InvalidToken()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS},
                leeway=0,
            )
        except ExpiredSignatureError as exc:
            raise ExpiredToken() from exc
        except InvalidTokenError as exc:
            raise InvalidToken() from exc

        email = payload.get("email")
        if not isinstance(email, str) or not email:
            raise InvalidToken()
        try:
            user_id = uuid.UUID(str(payload["sub"]))
        except ValueError as exc:
            raise InvalidToken() from exc

        return Identity(user_id=user_id, email=email)
