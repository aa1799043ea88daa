"""
Resume endpoints - upload/import, list, activate, replace, delete, and parsed context.
Files go to blob storage; parsing runs through the resume pipeline and is cached per resume.
"""
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from roman.app.core.config import ALLOWED_UPLOAD_EXTENSIONS, MAX_UPLOAD_BYTES
from roman.app.core.dependencies import get_current_user_id, get_db, get_services
from roman.app.core.errors import (
    AcquisitionError,
    AIStructuringError,
    BlobStorageError,
    ConfigurationError,
    ExtractionError,
    ResumeContextError,
)
from roman.app.core.logging_config import get_logger
from roman.app.schemas.resume import ResumeContext, ResumeFromUrlIn, ResumeOut
from roman.app.services import resume_service
from roman.app.services.container import ResumeServices
from roman.app.services.resume_service import ResumeLimitError

logger = get_logger("api.resume")
router = APIRouter()


def _to_http_error(exc: ResumeContextError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail="AI service configuration error. Please contact support.")
    if isinstance(exc, ExtractionError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, (AcquisitionError, AIStructuringError, BlobStorageError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


async def _read_upload(file: UploadFile, user_id: str) -> bytes:
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in ALLOWED_UPLOAD_EXTENSIONS:
        logger.warning(
            "Resume upload rejected - invalid file type user_id=%s filename=%s",
            user_id,
            file.filename,
        )
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type. Allowed: {', '.join(sorted(ALLOWED_UPLOAD_EXTENSIONS))}",
        )
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="File too large")
    return contents


@router.get("", response_model=list[ResumeOut])
def list_resumes(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """List user's resumes, active first."""
    return resume_service.list_resumes(db, user_id)


@router.post("/upload", response_model=ResumeOut)
async def upload_resume(
    file: UploadFile = File(...),
    title: str | None = Form(None),
    set_as_active: bool = Form(False),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    services: ResumeServices = Depends(get_services),
):
    """
    Upload a resume file (PDF, DOC, DOCX or image).

    Stores the original in blob storage, parses it with the AI structuring step
    and caches the parse. The first resume of a user becomes active.
    """
    logger.info("Resume upload started user_id=%s filename=%s", user_id, file.filename)
    contents = await _read_upload(file, user_id)
    try:
        resume = await resume_service.add_resume(
            db,
            services.pipeline,
            user_id,
            contents,
            filename=file.filename,
            title=title or Path(file.filename or "").stem or None,
            set_as_active=set_as_active,
        )
    except ResumeLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ResumeContextError as e:
        logger.exception("Resume upload failed user_id=%s", user_id)
        raise _to_http_error(e) from e
    return resume


@router.post("/from-url", response_model=ResumeOut)
async def import_resume_from_url(
    payload: ResumeFromUrlIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    services: ResumeServices = Depends(get_services),
):
    """Import a resume from a remote URL. The file is re-hosted in blob storage."""
    try:
        return await resume_service.add_resume_from_url(
            db,
            services.pipeline,
            user_id,
            payload.file_url,
            title=payload.title,
            set_as_active=payload.set_as_active,
        )
    except ResumeLimitError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ResumeContextError as e:
        logger.exception("Resume import failed user_id=%s", user_id)
        raise _to_http_error(e) from e


@router.get("/context", response_model=ResumeContext)
async def get_active_resume_context(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    services: ResumeServices = Depends(get_services),
):
    """Parsed context of the active resume."""
    try:
        ctx = await services.resolver.resolve_for_user(db, user_id)
    except ResumeContextError as e:
        raise _to_http_error(e) from e
    if ctx is None:
        raise HTTPException(status_code=404, detail="No resume found")
    return ctx


@router.get("/{resume_id}/context", response_model=ResumeContext)
async def get_resume_context(
    resume_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    services: ResumeServices = Depends(get_services),
):
    """Parsed context of a specific resume."""
    try:
        ctx = await services.resolver.resolve_for_resume(db, user_id, resume_id)
    except ResumeContextError as e:
        raise _to_http_error(e) from e
    if ctx is None:
        raise HTTPException(status_code=404, detail="Resume not found")
    return ctx


@router.patch("/{resume_id}/active", response_model=ResumeOut)
def activate_resume(
    resume_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return resume_service.set_active_resume(db, user_id, resume_id)
    except LookupError:
        raise HTTPException(status_code=404, detail="Resume not found")


@router.put("/{resume_id}/file", response_model=ResumeOut)
async def replace_resume_file(
    resume_id: str,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    services: ResumeServices = Depends(get_services),
):
    """Replace the source file of a resume; its cached parse is invalidated."""
    contents = await _read_upload(file, user_id)
    try:
        return await resume_service.replace_resume_file(
            db, services.pipeline, user_id, resume_id, contents, filename=file.filename
        )
    except LookupError:
        raise HTTPException(status_code=404, detail="Resume not found")
    except ResumeContextError as e:
        logger.exception("Resume replace failed user_id=%s resume_id=%s", user_id, resume_id)
        raise _to_http_error(e) from e


@router.delete("/{resume_id}")
async def delete_resume(
    resume_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    services: ResumeServices = Depends(get_services),
):
    """Delete a resume, its blob and its cached parse."""
    deleted = await resume_service.delete_resume(db, services.blob_store, services.cache, user_id, resume_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Resume not found")
    return {"deleted": resume_id}
