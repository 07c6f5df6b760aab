"""Upload validation helpers: content-type allow-list and filename sanitizing."""

from __future__ import annotations

import os
import re

from docvault.core.errors import InvalidContentType, InvalidFilename

MAX_FILENAME_LENGTH = 255

ALLOWED_CONTENT_TYPES = frozenset(
    {
        # Documents
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-powerpoint",
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",
        # Text
        "text/plain",
        "text/csv",
        "text/markdown",
        "application/json",
        "application/xml",
        "text/xml",
        # Images
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
        # Archives
        "application/zip",
        "application/x-zip-compressed",
        "application/gzip",
        "application/x-tar",
    }
)

PDF_CONTENT_TYPE = "application/pdf"
DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Types whose bytes can be handed to the summarizer as text
TEXT_CONTENT_TYPES = frozenset(
    {
        "text/plain",
        "text/csv",
        "text/markdown",
        "application/json",
        "application/xml",
        "text/xml",
    }
)

_SEPARATORS = re.compile(r"[\\/]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def normalize_content_type(content_type: str | None) -> str:
    """Drop parameters such as ``; charset=utf-8`` and lower-case the type."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def validate_content_type(content_type: str | None) -> str:
    """Return the normalized type, or raise if it is not on the allow-list."""
    normalized = normalize_content_type(content_type)
    if normalized not in ALLOWED_CONTENT_TYPES:
        raise InvalidContentType(f"File type is not allowed: {normalized or 'unknown'}")
    return normalized


def sanitize_filename(filename: str | None) -> str:
    """Reduce ``filename`` to a safe base name.

    Directory components (either separator style), NUL and other control
    characters are removed. Names longer than 255 characters are cut while the
    extension is kept.

    Examples:
        sanitize_filename("../../../etc/passwd") -> "passwd"
        sanitize_filename("C:\\\\Users\\\\me\\\\report.pdf") -> "report.pdf"
    """
    if not filename:
        raise InvalidFilename()

    cleaned = _CONTROL_CHARS.sub("", filename)
    segments = [segment for segment in _SEPARATORS.split(cleaned) if segment.strip()]
    base = segments[-1].strip() if segments else ""

    if base in ("", ".", ".."):
        raise InvalidFilename()

    if len(base) > MAX_FILENAME_LENGTH:
        stem, ext = os.path.splitext(base)
        max_stem = MAX_FILENAME_LENGTH - len(ext)
        if max_stem < 1:
            raise InvalidFilename("Filename is too long")
        base = stem[:max_stem] + ext

    return base
