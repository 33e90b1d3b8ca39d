"""HTTP tests for the document routes."""

from datetime import datetime, timezone

import aiofiles
import pytest

from docstore.routes.documents import _content_disposition

from tests.conftest import MAX_UPLOAD_BYTES, pdf_bytes


def _upload(client, data, filename="report.pdf", content_type="application/pdf"):
    return client.post("/api/documents/upload", files={"file": (filename, data, content_type)})


@pytest.mark.documents
def test_upload_list_download_delete_scenario(client):
    """Upload report.pdf, read it back, delete it, and confirm it is gone."""
    source = pdf_bytes(1000)

    response = _upload(client, source)
    assert response.status_code == 201
    assert response.json() == {"message": "Uploaded successfully", "id": 1}

    listed = client.get("/api/documents").json()
    assert len(listed) == 1
    assert listed[0]["id"] == 1
    assert listed[0]["original_filename"] == "report.pdf"
    assert listed[0]["size_bytes"] == 1000
    assert "created_at" in listed[0]
    assert "stored_name" not in listed[0]

    download = client.get("/api/documents/1/download")
    assert download.status_code == 200
    assert download.content == source
    assert download.headers["content-type"] == "application/pdf"
    assert download.headers["content-disposition"] == 'attachment; filename="report.pdf"'

    deleted = client.delete("/api/documents/1")
    assert deleted.status_code == 200
    assert deleted.json() == {"deleted": True}

    assert client.get("/api/documents").json() == []

    missing = client.get("/api/documents/1/download")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


@pytest.mark.documents
def test_list_is_newest_first(client):
    for name in ("first.pdf", "second.pdf", "third.pdf"):
        assert _upload(client, pdf_bytes(50), filename=name).status_code == 201

    names = [doc["original_filename"] for doc in client.get("/api/documents").json()]

    assert names == ["third.pdf", "second.pdf", "first.pdf"]


@pytest.mark.documents
def test_get_document_metadata(client):
    _upload(client, pdf_bytes(123))

    response = client.get("/api/documents/1")

    assert response.status_code == 200
    assert response.json()["size_bytes"] == 123
    assert client.get("/api/documents/2").status_code == 404


@pytest.mark.documents
def test_non_pdf_rejected(client, upload_dir):
    response = _upload(client, b"hello", filename="notes.txt", content_type="text/plain")

    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert list(upload_dir.iterdir()) == []
    assert client.get("/api/documents").json() == []


@pytest.mark.documents
def test_too_large_rejected(client, upload_dir):
    response = _upload(client, pdf_bytes(MAX_UPLOAD_BYTES + 1))

    assert response.status_code == 413
    assert response.json()["error"] == "upload_too_large"
    assert list(upload_dir.iterdir()) == []


@pytest.mark.documents
def test_delete_unknown_document(client):
    response = client.delete("/api/documents/7")

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.documents
def test_missing_blob_is_conflict_not_404(client, upload_dir):
    _upload(client, pdf_bytes(100))
    blob_path = next(upload_dir.iterdir())
    blob_path.unlink()

    response = client.get("/api/documents/1/download")

    assert response.status_code == 409
    assert response.json()["error"] == "inconsistent_state"


def test_content_disposition_escapes_non_ascii():
    assert _content_disposition("résumé.pdf") == "attachment; filename*=utf-8''r%C3%A9sum%C3%A9.pdf"
    assert _content_disposition("a\"b.pdf") == "attachment; filename*=utf-8''a%22b.pdf"


@pytest.mark.documents
def test_consistency_endpoint(client, upload_dir):
    _upload(client, pdf_bytes(20))
    (upload_dir / "1_deadbeef_stray.pdf").write_bytes(b"%PDF")

    body = client.get("/api/documents/consistency").json()

    assert body == {"missing_blobs": [], "orphan_blobs": ["1_deadbeef_stray.pdf"], "consistent": False}


@pytest.mark.documents
def test_unreadable_blob_reports_storage_read_error(client, monkeypatch):
    _upload(client, pdf_bytes(100))

    async def denied(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(aiofiles, "open", denied)

    response = client.get("/api/documents/1/download")

    assert response.status_code == 500
    assert response.json()["error"] == "storage_read_error"


@pytest.mark.documents
def test_tampered_record_cannot_be_deleted_as_bad_input(client, service):
    document_id = service.registry.create("x.pdf", "../escape.pdf", 10, datetime.now(timezone.utc))

    response = client.delete(f"/api/documents/{document_id}")

    assert response.status_code == 409
    assert response.json()["error"] == "inconsistent_state"
