"""Domain errors raised by the services layer.

Services never raise HTTP exceptions. Each error carries an ``ErrorKind`` and
the boundary handler in ``docvault.middleware.errors`` maps the kind to a fixed
HTTP status, so internal details never reach the caller.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    ACCESS_DENIED = "access_denied"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    INTERNAL = "internal"


KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 400,
    ErrorKind.INTERNAL: 500,
}


class VaultError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL
    code: str = "internal_error"
    message: str = "Internal server error"
    status_code: int | None = None

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return self.status_code or KIND_STATUS[self.kind]


# Not found


class UserNotFound(VaultError):
    kind = ErrorKind.NOT_FOUND
    code = "user_not_found"
    message = "User not found"


class DocumentNotFound(VaultError):
    kind = ErrorKind.NOT_FOUND
    code = "document_not_found"
    message = "Document not found"


class ShareNotFound(VaultError):
    kind = ErrorKind.NOT_FOUND
    code = "share_not_found"
    message = "Share not found"


# Authentication


class InvalidPassword(VaultError):
    kind = ErrorKind.UNAUTHORIZED
    code = "invalid_password"
    message = "Invalid password"


class InvalidCredentials(VaultError):
    """Outward signal for any failed login; hides which part was wrong."""

    kind = ErrorKind.UNAUTHORIZED
    code = "invalid_credentials"
    message = "Invalid email or password"


class TokenError(VaultError):
    kind = ErrorKind.UNAUTHORIZED
    code = "invalid_token"
    message = "Invalid token"


class InvalidToken(TokenError):
    pass


class ExpiredToken(TokenError):
    code = "expired_token"
    message = "Token has expired"


class Unauthorized(VaultError):
    kind = ErrorKind.UNAUTHORIZED
    code = "unauthorized"
    message = "Missing or invalid credentials"


# Authorization


class AccessDenied(VaultError):
    kind = ErrorKind.ACCESS_DENIED
    code = "access_denied"
    message = "You don't have access to this document"


# Conflict


class UserExists(VaultError):
    kind = ErrorKind.CONFLICT
    code = "user_exists"
    message = "A user with this email already exists"


# Validation


class InvalidInput(VaultError):
    kind = ErrorKind.VALIDATION
    code = "validation_error"
    message = "Invalid input"


class InvalidFilename(InvalidInput):
    code = "invalid_filename"
    message = "Invalid filename"


class InvalidContentType(InvalidInput):
    code = "invalid_content_type"
    message = "File type is not allowed"


class InvalidPermission(InvalidInput):
    code = "invalid_permission"
    message = "Permission must be 'view' or 'edit'"


class FileTooLarge(InvalidInput):
    code = "file_too_large"
    message = "File exceeds maximum allowed size"
    status_code = 413


# Internal


class StorageError(VaultError):
    code = "storage_error"


class BlobNotFound(StorageError):
    code = "content_missing"


class SummarizerUnavailable(VaultError):
    code = "summarizer_unavailable"
    message = "Summarization service is unavailable"
    status_code = 502
