"""Tests for /api/resume endpoints"""
from unittest.mock import AsyncMock

from roman.app.core.errors import BlobStorageError, ConfigurationError, ExtractionError

PDF_BYTES = b"%PDF-1.4 mock pdf content"


def _upload(client, auth_headers, name="resume.pdf", data=PDF_BYTES, **form):
    return client.post(
        "/api/resume/upload",
        headers=auth_headers,
        files={"file": (name, data, "application/pdf")},
        data=form,
    )


def test_resume_list_requires_auth(client):
    """Auth required: assert 401 without token."""
    r = client.get("/api/resume")
    assert r.status_code == 401


def test_resume_context_requires_auth(client):
    r = client.get("/api/resume/context")
    assert r.status_code == 401


def test_resume_list_empty(client, auth_headers):
    r = client.get("/api/resume", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == []


def test_upload_returns_active_resume(client, auth_headers, user_id):
    """First upload becomes the active resume and is titled from the filename."""
    r = _upload(client, auth_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["user_id"] == user_id
    assert data["active"] is True
    assert data["title"] == "resume"
    assert data["blob_id"]


def test_upload_rejects_unknown_extension(client, auth_headers, ai_client):
    r = _upload(client, auth_headers, name="resume.exe")
    assert r.status_code == 400
    ai_client.structure.assert_not_called()


def test_upload_rejects_empty_file(client, auth_headers):
    r = _upload(client, auth_headers, data=b"")
    assert r.status_code == 400


def test_upload_limit(client, auth_headers):
    for _ in range(3):
        assert _upload(client, auth_headers).status_code == 200
    r = _upload(client, auth_headers)
    assert r.status_code == 400
    assert "Resume limit reached" in r.json()["detail"]


def test_upload_extraction_error_is_422(client, auth_headers, mock_extract_text):
    mock_extract_text.side_effect = ExtractionError("Failed to extract PDF text: encrypted")
    r = _upload(client, auth_headers)
    assert r.status_code == 422


def test_context_404_without_resume(client, auth_headers):
    r = client.get("/api/resume/context", headers=auth_headers)
    assert r.status_code == 404


def test_context_of_active_resume(client, auth_headers, ai_client):
    """Context is served from the upload-time cache entry; no second AI call."""
    uploaded = _upload(client, auth_headers).json()
    r = client.get("/api/resume/context", headers=auth_headers)
    assert r.status_code == 200
    data = r.json()
    assert data["parsed_text"] == "John Doe Software Engineer"
    assert data["structured_data"]["name"] == "John Doe"
    assert data["file_type"] == "pdf"
    assert data["blob_id"] == uploaded["blob_id"]
    assert ai_client.structure.await_count == 1


def test_context_of_specific_resume(client, auth_headers):
    _upload(client, auth_headers)
    second = _upload(client, auth_headers).json()
    r = client.get(f"/api/resume/{second['id']}/context", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["blob_id"] == second["blob_id"]

    assert client.get("/api/resume/unknown/context", headers=auth_headers).status_code == 404


def test_import_from_url(client, auth_headers, fetcher):
    r = client.post(
        "/api/resume/from-url",
        headers=auth_headers,
        json={"file_url": "https://example.com/r.pdf", "title": "Imported"},
    )
    assert r.status_code == 200
    assert r.json()["file_url"] == "https://example.com/r.pdf"
    fetcher.fetch.assert_awaited_once_with("https://example.com/r.pdf")


def test_activate_resume(client, auth_headers):
    _upload(client, auth_headers)
    second = _upload(client, auth_headers).json()
    r = client.patch(f"/api/resume/{second['id']}/active", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["active"] is True

    listed = client.get("/api/resume", headers=auth_headers).json()
    assert listed[0]["id"] == second["id"]
    assert client.patch("/api/resume/missing/active", headers=auth_headers).status_code == 404


def test_replace_file(client, auth_headers):
    uploaded = _upload(client, auth_headers).json()
    r = client.put(
        f"/api/resume/{uploaded['id']}/file",
        headers=auth_headers,
        files={"file": ("new.pdf", b"%PDF-1.7 new", "application/pdf")},
    )
    assert r.status_code == 200
    assert r.json()["blob_id"] != uploaded["blob_id"]


def test_delete_resume(client, auth_headers):
    uploaded = _upload(client, auth_headers).json()
    r = client.delete(f"/api/resume/{uploaded['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json() == {"deleted": uploaded["id"]}
    assert client.get("/api/resume", headers=auth_headers).json() == []
    assert client.delete(f"/api/resume/{uploaded['id']}", headers=auth_headers).status_code == 404


def test_upload_storage_failure_is_502(client, auth_headers, services):
    services.pipeline.blob_store.store = AsyncMock(side_effect=BlobStorageError("S3 upload failed - AccessDenied: denied"))
    r = _upload(client, auth_headers)
    assert r.status_code == 502
    assert client.get("/api/resume", headers=auth_headers).json() == []


def test_replace_configuration_error_is_503(client, auth_headers, ai_client):
    _upload(client, auth_headers)
    ai_client.structure.side_effect = ConfigurationError("AI service configuration error: API key missing")
    resume_id = client.get("/api/resume", headers=auth_headers).json()[0]["id"]
    r = client.put(
        f"/api/resume/{resume_id}/file",
        headers=auth_headers,
        files={"file": ("new.pdf", b"%PDF-1.7 new", "application/pdf")},
    )
    assert r.status_code == 503
