from __future__ import annotations

import io
import json
import uuid

import docx
import httpx
import pytest
from fastapi.testclient import TestClient

from docvault.core.config import Settings
from docvault.core.errors import SummarizerUnavailable
from docvault.services import summary_service
from docvault.utils import files


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, email: str, name: str) -> str:
    response = client.post(
        "/auth/register", json={"email": email, "password": "password123", "name": name}
    )
    assert response.status_code == 201, response.text
    return response.json()["access_token"]


def upload(
    client: TestClient,
    token: str,
    content: bytes,
    content_type: str = "text/plain",
    filename: str = "doc.txt",
):
    response = client.post(
        "/documents",
        files={"file": (filename, content, content_type)},
        headers=auth_headers(token),
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


def build_pdf(text: str) -> bytes:
    """Single page PDF showing ``text`` in Helvetica."""
    content = f"BT /F1 24 Tf 72 720 Td ({text}) Tj ET".encode()
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n%s\nendstream" % (len(content), content),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n%s\nendobj\n" % (number, body)
    xref_at = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1,
        xref_at,
    )
    return bytes(out)


def build_docx(*paragraphs: str) -> bytes:
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def summarizer_settings(tmp_path) -> Settings:
    return Settings(
        upload_dir=str(tmp_path / "uploads"),
        summarizer_url="http://summarizer.test/summarize",
        summarizer_api_key="summary-key",
        summary_max_chars=50,
    )


@pytest.fixture
def summarizer_client(summarizer_settings):
    from docvault.main import build_app

    received: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        text = json.loads(request.content)["text"]
        return httpx.Response(200, json={"summary": f"{len(text)} chars summarized"})

    app = build_app(summarizer_settings)
    app.state.summarizer_transport = httpx.MockTransport(handler)
    with TestClient(app) as test_client:
        yield test_client, received


def test_summary_of_text_document(summarizer_client) -> None:
    client, received = summarizer_client
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(client, token, b"Short text to summarize.")

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["document_id"] == doc_id
    assert body["summary"] == "24 chars summarized"
    assert body["truncated"] is False

    assert len(received) == 1
    assert received[0].headers["Authorization"] == "Bearer summary-key"


def test_summary_truncates_long_text(summarizer_client) -> None:
    client, received = summarizer_client
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(client, token, b"a" * 500)

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 200
    assert response.json()["truncated"] is True
    assert json.loads(received[0].content)["text"] == "a" * 50


def test_summary_requires_view_access(summarizer_client) -> None:
    client, received = summarizer_client
    alice = register(client, "alice@example.com", "Alice")
    mallory = register(client, "mallory@example.com", "Mallory")
    doc_id = upload(client, alice, b"private")

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(mallory))
    assert response.status_code == 403
    assert received == []


def test_summary_rejects_binary_documents(summarizer_client) -> None:
    client, received = summarizer_client
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(client, token, b"\x89PNG....", content_type="image/png")

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 400
    assert received == []


def test_summary_without_configuration(client: TestClient) -> None:
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(client, token, b"some text")

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "summarizer_unavailable"


@pytest.mark.parametrize(
    "upstream",
    [
        httpx.Response(500, text="boom"),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"result": "wrong key"}),
        httpx.Response(200, json={"summary": "   "}),
        httpx.Response(200, json=["a", "list"]),
    ],
)
def test_request_summary_upstream_failures(summarizer_settings, upstream) -> None:
    transport = httpx.MockTransport(lambda request: upstream)
    with pytest.raises(SummarizerUnavailable):
        summary_service.request_summary(summarizer_settings, "text", transport=transport)


def test_request_summary_connection_error(summarizer_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(SummarizerUnavailable):
        summary_service.request_summary(
            summarizer_settings, "text", transport=httpx.MockTransport(handler)
        )


def test_summary_of_pdf_document(summarizer_client) -> None:
    client, received = summarizer_client
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(
        client,
        token,
        build_pdf("Quarterly revenue grew"),
        content_type="application/pdf",
        filename="report.pdf",
    )

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 200, response.text
    assert len(received) == 1
    assert "Quarterly revenue grew" in json.loads(received[0].content)["text"]


def test_summary_of_word_document(summarizer_client) -> None:
    client, received = summarizer_client
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(
        client,
        token,
        build_docx("Meeting notes", "Ship on Friday"),
        content_type=files.DOCX_CONTENT_TYPE,
        filename="notes.docx",
    )

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 200, response.text
    assert json.loads(received[0].content)["text"] == "Meeting notes\n\nShip on Friday"


@pytest.mark.parametrize(
    ("content_type", "filename"),
    [
        ("application/pdf", "broken.pdf"),
        (files.DOCX_CONTENT_TYPE, "broken.docx"),
    ],
)
def test_summary_rejects_unreadable_documents(summarizer_client, content_type, filename) -> None:
    client, received = summarizer_client
    token = register(client, "alice@example.com", "Alice")
    doc_id = upload(
        client, token, b"not really a document", content_type=content_type, filename=filename
    )

    response = client.post(f"/documents/{doc_id}/summary", headers=auth_headers(token))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "validation_error"
    assert received == []


def test_extract_document_text_truncates_word_documents(store) -> None:
    key = uuid.uuid4().hex
    store.put(key, io.BytesIO(build_docx("x" * 80)))

    text, truncated = summary_service.extract_document_text(
        store, key, files.DOCX_CONTENT_TYPE, 30
    )
    assert text == "x" * 30
    assert truncated is True
