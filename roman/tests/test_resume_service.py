"""Tests for resume record lifecycle (add, activate, replace, delete)"""
import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from roman.app.core.errors import AIStructuringError
from roman.app.models.resume import Resume
from roman.app.schemas.resume import ParseResult
from roman.app.services import resume_service
from roman.app.services.resume_cache import resume_cache_key
from roman.app.services.resume_service import ResumeLimitError

PDF_BYTES = b"%PDF-1.4 mock pdf content"


def _add(services, db, user_id, **kwargs):
    return asyncio.run(resume_service.add_resume(db, services.pipeline, user_id, PDF_BYTES, **kwargs))


def test_first_resume_is_active(services, db_session, user_id, fake_redis):
    first = _add(services, db_session, user_id, filename="cv.pdf", title="CV")
    second = _add(services, db_session, user_id)

    assert first.active is True
    assert second.active is False
    assert first.blob_id and first.parsed_text == "John Doe Software Engineer"
    assert first.structured_data["name"] == "John Doe"
    # cached under the record's final id
    assert resume_cache_key(user_id, first.id) in fake_redis.store


def test_set_as_active_on_add(services, db_session, user_id):
    first = _add(services, db_session, user_id)
    second = _add(services, db_session, user_id, set_as_active=True)
    db_session.refresh(first)
    assert first.active is False
    assert second.active is True


def test_resume_limit(services, db_session, user_id, ai_client):
    for _ in range(3):
        _add(services, db_session, user_id)
    with pytest.raises(ResumeLimitError, match="maximum of 3"):
        _add(services, db_session, user_id)
    assert ai_client.structure.await_count == 3


def test_failed_parse_creates_no_record(services, db_session, user_id, ai_client):
    ai_client.structure.side_effect = AIStructuringError("boom")
    with pytest.raises(AIStructuringError):
        _add(services, db_session, user_id)
    assert resume_service.list_resumes(db_session, user_id) == []


def test_add_from_url_keeps_source_url(services, db_session, user_id, fetcher):
    resume = asyncio.run(
        resume_service.add_resume_from_url(db_session, services.pipeline, user_id, "https://example.com/r.pdf")
    )
    fetcher.fetch.assert_awaited_once_with("https://example.com/r.pdf")
    assert resume.file_url == "https://example.com/r.pdf"
    assert resume.blob_id


def test_set_active_resume(services, db_session, user_id):
    first = _add(services, db_session, user_id)
    second = _add(services, db_session, user_id)
    resume_service.set_active_resume(db_session, user_id, second.id)
    db_session.refresh(first)
    assert first.active is False
    assert resume_service.get_active_resume(db_session, user_id).id == second.id

    with pytest.raises(LookupError):
        resume_service.set_active_resume(db_session, "other-user", second.id)


def test_list_active_first(services, db_session, user_id):
    a = _add(services, db_session, user_id)
    b = _add(services, db_session, user_id)
    resume_service.set_active_resume(db_session, user_id, b.id)
    ids = [r.id for r in resume_service.list_resumes(db_session, user_id)]
    assert ids == [b.id, a.id]


def test_replace_file_invalidates_and_swaps_blob(services, db_session, user_id, blob_store, ai_client):
    resume = _add(services, db_session, user_id)
    old_blob = resume.blob_id

    updated = asyncio.run(
        resume_service.replace_resume_file(db_session, services.pipeline, user_id, resume.id, b"%PDF-1.7 new")
    )
    assert updated.blob_id != old_blob
    assert asyncio.run(blob_store.describe(old_blob)) is None
    assert asyncio.run(blob_store.retrieve(updated.blob_id)) == b"%PDF-1.7 new"
    assert ai_client.structure.await_count == 2

    cached = asyncio.run(services.cache.get(user_id, resume.id))
    assert cached.blob_id == updated.blob_id


def test_delete_promotes_most_recent(services, db_session, user_id, blob_store, fake_redis):
    first = _add(services, db_session, user_id)
    older = _add(services, db_session, user_id)
    newer = _add(services, db_session, user_id)
    older.created_at = datetime.utcnow() - timedelta(days=2)
    newer.created_at = datetime.utcnow() - timedelta(days=1)
    db_session.commit()
    first_id, first_blob = first.id, first.blob_id

    deleted = asyncio.run(
        resume_service.delete_resume(db_session, services.blob_store, services.cache, user_id, first_id)
    )
    assert deleted is True
    assert resume_service.get_resume(db_session, first_id) is None
    assert asyncio.run(blob_store.describe(first_blob)) is None
    assert resume_cache_key(user_id, first_id) not in fake_redis.store
    assert resume_service.get_active_resume(db_session, user_id).id == newer.id


def test_delete_survives_blob_failure(services, db_session, user_id):
    resume = _add(services, db_session, user_id)
    failing_store = AsyncMock()
    failing_store.delete.side_effect = RuntimeError("S3 down")

    deleted = asyncio.run(
        resume_service.delete_resume(db_session, failing_store, services.cache, user_id, resume.id)
    )
    assert deleted is True
    assert db_session.query(Resume).count() == 0


def test_delete_unknown_or_foreign(services, db_session, user_id):
    resume = _add(services, db_session, user_id)
    assert asyncio.run(
        resume_service.delete_resume(db_session, services.blob_store, services.cache, "other", resume.id)
    ) is False
    assert asyncio.run(
        resume_service.delete_resume(db_session, services.blob_store, services.cache, user_id, "missing")
    ) is False


def test_conditional_parse_write_checks_current_blob(services, db_session, user_id):
    resume = _add(services, db_session, user_id)
    original_blob = resume.blob_id
    result = ParseResult(text="Jane Roe", structured_data={"name": "Jane Roe"}, file_type="pdf", blob_id=original_blob)

    assert resume_service.apply_parse_result_if_source(db_session, resume.id, "f" * 32, result) is False
    db_session.refresh(resume)
    assert resume.parsed_text == "John Doe Software Engineer"

    assert resume_service.apply_parse_result_if_source(db_session, resume.id, original_blob, result) is True
    db_session.refresh(resume)
    assert resume.parsed_text == "Jane Roe"
    assert resume.structured_data["name"] == "Jane Roe"

    assert resume_service.apply_parse_result_if_source(db_session, "missing", original_blob, result) is False
