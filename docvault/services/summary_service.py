"""Document summaries through an external summarization endpoint.

The endpoint receives ``{"text": ...}`` and answers ``{"summary": ...}``.
Textual documents are read directly; PDF and Word documents have their text
extracted first. The text is truncated before it is sent.
"""

from __future__ import annotations

import uuid
import zipfile
from pathlib import Path

import docx
import httpx
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PyPdfError
from sqlalchemy.orm import Session

from docvault.core.config import Settings
from docvault.core.errors import InvalidInput, SummarizerUnavailable
from docvault.core.logging import get_logger
from docvault.core.metrics import DOCUMENT_OPERATIONS_TOTAL
from docvault.schemas import document as document_schema
from docvault.services import access_service, document_service
from docvault.services.access_service import AccessLevel
from docvault.storage.blob_store import LocalBlobStore
from docvault.utils import files

logger = get_logger(__name__)

# UTF-8 needs at most four bytes per character
_BYTES_PER_CHAR = 4


def extract_text(store: LocalBlobStore, storage_key: str, max_chars: int) -> tuple[str, bool]:
    """Return the leading text of a blob and whether it was cut short."""
    raw = store.read_bytes(storage_key, limit=max_chars * _BYTES_PER_CHAR + 1)
    text = raw.decode("utf-8", errors="replace")
    truncated = len(raw) > max_chars * _BYTES_PER_CHAR or len(text) > max_chars
    return text[:max_chars], truncated


def _extract_pdf(path: Path) -> str:
    try:
        reader = PdfReader(str(path))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError) as exc:
        logger.warning("PDF text extraction failed", extra={"error": str(exc)[:200]})
        raise InvalidInput("Could not extract text from PDF") from exc
    return "\n\n".join(text for text in pages if text.strip())


def _extract_docx(path: Path) -> str:
    try:
        document = docx.Document(str(path))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        logger.warning("DOCX text extraction failed", extra={"error": str(exc)[:200]})
        raise InvalidInput("Could not extract text from Word document") from exc
    return "\n\n".join(p.text for p in document.paragraphs if p.text.strip())


_EXTRACTORS = {
    files.PDF_CONTENT_TYPE: _extract_pdf,
    files.DOCX_CONTENT_TYPE: _extract_docx,
}


def extract_document_text(
    store: LocalBlobStore, storage_key: str, mime_type: str, max_chars: int
) -> tuple[str, bool]:
    """Text of a stored document cut to ``max_chars``, and whether it was cut.

    Raises:
        InvalidInput: the type carries no extractable text, or extraction failed
    """
    mime_type = files.normalize_content_type(mime_type)
    extractor = _EXTRACTORS.get(mime_type)
    if extractor is not None:
        text = extractor(store.path(storage_key))
        return text[:max_chars], len(text) > max_chars

    if mime_type in files.TEXT_CONTENT_TYPES or mime_type.startswith("text/"):
        return extract_text(store, storage_key, max_chars)

    raise InvalidInput("Only text, PDF and Word documents can be summarized")


def request_summary(
    settings: Settings,
    text: str,
    transport: httpx.BaseTransport | None = None,
) -> str:
    if not settings.summarizer_url:
        raise SummarizerUnavailable("Summarization is not configured")

    headers = {"Content-Type": "application/json"}
    if settings.summarizer_api_key:
        headers["Authorization"] = f"Bearer {settings.summarizer_api_key}"

    try:
        with httpx.Client(
            timeout=settings.summarizer_timeout_seconds, transport=transport
        ) as client:
            response = client.post(settings.summarizer_url, json={"text": text}, headers=headers)
        response.raise_for_status()
        summary = response.json().get("summary")
    except httpx.TimeoutException as exc:
        logger.warning("Summarizer request timed out")
        raise SummarizerUnavailable() from exc
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "Summarizer returned an error",
            extra={"status_code": exc.response.status_code},
        )
        raise SummarizerUnavailable() from exc
    except (httpx.RequestError, ValueError, AttributeError) as exc:
        logger.warning("Summarizer request failed", extra={"error": str(exc)[:200]})
        raise SummarizerUnavailable() from exc

    if not isinstance(summary, str) or not summary.strip():
        logger.warning("Summarizer response had no summary")
        raise SummarizerUnavailable()
    return summary.strip()


def summarize_document(
    db: Session,
    store: LocalBlobStore,
    settings: Settings,
    document_id: uuid.UUID,
    caller_id: uuid.UUID,
    transport: httpx.BaseTransport | None = None,
) -> document_schema.SummaryResponse:
    document = document_service.get_document(db, document_id)
    access_service.require_access(db, document, caller_id, AccessLevel.VIEW)

    text, truncated = extract_document_text(
        store, document.storage_key, document.mime_type, settings.summary_max_chars
    )
    if not text.strip():
        raise InvalidInput("Document has no text to summarize")

    summary = request_summary(settings, text, transport=transport)

    DOCUMENT_OPERATIONS_TOTAL.labels(operation="summarize").inc()
    logger.info(
        "Document summarized",
        extra={"document_id": str(document.id), "truncated": truncated},
    )
    return document_schema.SummaryResponse(
        document_id=document.id, summary=summary, truncated=truncated
    )
