"""
Resume service - single source of truth for resume records and their stored files.
Used by the resume API and the context resolver.

Invariant: a user has zero or one active resume; the first resume is active.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from roman.app.core.config import settings
from roman.app.core.logging_config import get_logger
from roman.app.models.resume import Resume, new_resume_id
from roman.app.schemas.resume import ParseResult, ResumeOwner
from roman.app.services.blob_storage import BlobStore
from roman.app.services.resume_cache import ResumeCache
from roman.app.services.resume_parser.pipeline import ResumeParsingPipeline

logger = get_logger("services.resume")


class ResumeLimitError(ValueError):
    pass


def get_resume(db: Session, resume_id: str) -> Resume | None:
    return db.query(Resume).filter(Resume.id == resume_id).first()


def get_user_resume(db: Session, user_id: str, resume_id: str) -> Resume | None:
    """Resume by id, only if owned by user_id."""
    return db.query(Resume).filter(Resume.id == resume_id, Resume.user_id == user_id).first()


def get_active_resume(db: Session, user_id: str) -> Resume | None:
    return db.query(Resume).filter(Resume.user_id == user_id, Resume.active.is_(True)).first()


def list_resumes(db: Session, user_id: str) -> list[Resume]:
    return (
        db.query(Resume)
        .filter(Resume.user_id == user_id)
        .order_by(Resume.active.desc(), Resume.created_at.desc())
        .all()
    )


def _deactivate_all(db: Session, user_id: str) -> None:
    db.query(Resume).filter(Resume.user_id == user_id).update(
        {Resume.active: False}, synchronize_session=False
    )


def set_active_resume(db: Session, user_id: str, resume_id: str) -> Resume:
    resume = get_user_resume(db, user_id, resume_id)
    if not resume:
        raise LookupError("Resume not found or does not belong to user")
    _deactivate_all(db, user_id)
    resume.active = True
    db.commit()
    db.refresh(resume)
    logger.info("Resume set as active user_id=%s resume_id=%s", user_id, resume_id)
    return resume


def apply_parse_result(db: Session, resume: Resume, result: ParseResult) -> Resume:
    """Copy a parse into the record's denormalized fields (and blob_id for migrated legacy rows)."""
    resume.blob_id = result.blob_id
    resume.parsed_text = result.text
    resume.structured_data = result.structured_data.model_dump(mode="json")
    db.commit()
    db.refresh(resume)
    return resume


def apply_parse_result_if_source(
    db: Session,
    resume_id: str,
    source_blob_id: str | None,
    result: ParseResult,
) -> bool:
    """
    Store a parse only while the record still points at the blob it was parsed from
    (source_blob_id None: a legacy URL record that has no blob yet).
    Returns False when the record moved to another source or was deleted meanwhile.
    """
    if source_blob_id is None:
        same_source = Resume.blob_id.is_(None)
    else:
        same_source = Resume.blob_id == source_blob_id
    updated = (
        db.query(Resume)
        .filter(Resume.id == resume_id, same_source)
        .update(
            {
                Resume.blob_id: result.blob_id,
                Resume.parsed_text: result.text,
                Resume.structured_data: result.structured_data.model_dump(mode="json"),
                Resume.updated_at: datetime.utcnow(),
            },
            synchronize_session=False,
        )
    )
    db.commit()
    return updated == 1


async def _create_resume(
    db: Session,
    pipeline: ResumeParsingPipeline,
    user_id: str,
    title: str | None,
    set_as_active: bool,
    parse,
    file_url: str | None = None,
) -> Resume:
    existing = db.query(Resume).filter(Resume.user_id == user_id).count()
    if existing >= settings.resume_limit_per_user:
        raise ResumeLimitError(
            f"Resume limit reached. You can have a maximum of {settings.resume_limit_per_user} resumes. "
            "Please delete an existing resume before adding a new one."
        )

    owner = ResumeOwner(user_id=user_id, resume_id=new_resume_id())
    result: ParseResult = await parse(owner)

    try:
        if set_as_active:
            _deactivate_all(db, user_id)
        resume = Resume(
            id=owner.resume_id,
            user_id=user_id,
            active=set_as_active or existing == 0,
            file_url=file_url,
            title=title,
            blob_id=result.blob_id,
            parsed_text=result.text,
            structured_data=result.structured_data.model_dump(mode="json"),
        )
        db.add(resume)
        db.commit()
        db.refresh(resume)
    except Exception:
        db.rollback()
        logger.exception("Resume save failed user_id=%s, discarding blob_id=%s", user_id, result.blob_id)
        await pipeline.cache.invalidate(owner.user_id, owner.resume_id)
        try:
            await pipeline.blob_store.delete(result.blob_id)
        except Exception as e:
            logger.warning("Failed to delete blob %s: %s", result.blob_id, e)
        raise

    logger.info("Resume added user_id=%s resume_id=%s active=%s", user_id, resume.id, resume.active)
    return resume


async def add_resume(
    db: Session,
    pipeline: ResumeParsingPipeline,
    user_id: str,
    data: bytes,
    filename: str | None = None,
    title: str | None = None,
    set_as_active: bool = False,
) -> Resume:
    """Store and parse an uploaded file, then persist the record."""
    async def parse(owner: ResumeOwner) -> ParseResult:
        return await pipeline.parse_from_bytes(data, owner=owner, filename=filename)

    return await _create_resume(db, pipeline, user_id, title, set_as_active, parse)


async def add_resume_from_url(
    db: Session,
    pipeline: ResumeParsingPipeline,
    user_id: str,
    file_url: str,
    title: str | None = None,
    set_as_active: bool = False,
) -> Resume:
    """Import a resume from a remote URL; the file is re-hosted in blob storage."""
    async def parse(owner: ResumeOwner) -> ParseResult:
        return await pipeline.parse_from_url(file_url, owner=owner)

    return await _create_resume(db, pipeline, user_id, title, set_as_active, parse, file_url=file_url)


async def replace_resume_file(
    db: Session,
    pipeline: ResumeParsingPipeline,
    user_id: str,
    resume_id: str,
    data: bytes,
    filename: str | None = None,
) -> Resume:
    """Swap the source file of an existing resume. Invalidates the cached parse."""
    resume = get_user_resume(db, user_id, resume_id)
    if not resume:
        raise LookupError("Resume not found or does not belong to user")

    old_blob_id = resume.blob_id
    await pipeline.cache.invalidate(user_id, resume_id)
    result = await pipeline.parse_from_bytes(
        data, owner=ResumeOwner(user_id=user_id, resume_id=resume_id), filename=filename
    )
    resume.file_url = None
    apply_parse_result(db, resume, result)

    if old_blob_id and old_blob_id != result.blob_id:
        try:
            await pipeline.blob_store.delete(old_blob_id)
        except Exception as e:
            logger.warning("Failed to delete replaced blob %s: %s", old_blob_id, e)

    logger.info("Resume file replaced user_id=%s resume_id=%s blob_id=%s", user_id, resume_id, result.blob_id)
    return resume


async def delete_resume(
    db: Session,
    blob_store: BlobStore,
    cache: ResumeCache,
    user_id: str,
    resume_id: str,
) -> bool:
    """
    Delete a resume: blob (best-effort), cache entry, then record.
    When the deleted resume was active, the most recent remaining one becomes active.
    Returns False if the resume does not exist for this user.
    """
    resume = get_user_resume(db, user_id, resume_id)
    if not resume:
        logger.info("Resume %s not found for user %s. Skipping delete.", resume_id, user_id)
        return False

    if resume.blob_id:
        try:
            await blob_store.delete(resume.blob_id)
            logger.info("Deleted blob %s for resume %s", resume.blob_id, resume_id)
        except Exception as e:
            logger.warning("Failed to delete blob %s: %s", resume.blob_id, e)
    await cache.invalidate(user_id, resume_id)

    was_active = bool(resume.active)
    db.delete(resume)
    db.flush()

    if was_active:
        most_recent = (
            db.query(Resume)
            .filter(Resume.user_id == user_id)
            .order_by(Resume.created_at.desc())
            .first()
        )
        if most_recent:
            most_recent.active = True
            logger.info("Set resume %s as active after deletion", most_recent.id)
    db.commit()
    logger.info("Resume %s deleted user_id=%s", resume_id, user_id)
    return True
