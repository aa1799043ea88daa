"""
Resume context resolution: which resume, then cache, then blob, then legacy URL.

Resolution order (first match wins):
1. target record (active resume, or explicit id owned by the user)
2. no record -> None
3. cached parse for (user_id, resume_id), only if it is for the record's current blob
4. record.blob_id -> parse from blob
5. record.file_url -> parse from URL (re-hosts the file; blob_id is back-filled)
6. neither -> None, logged as a data-integrity problem

A parse is written back only if the record still points at the source it was parsed
from. If the file was replaced meanwhile, resolution starts over from the new source.

Concurrent misses for the same (user_id, resume_id, source) share one in-flight parse.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from sqlalchemy.orm import Session

from roman.app.core.errors import DataIntegrityWarning
from roman.app.core.logging_config import get_logger
from roman.app.models.resume import Resume
from roman.app.schemas.resume import ParseResult, ResumeContext, ResumeOwner
from roman.app.services import resume_service
from roman.app.services.resume_cache import ResumeCache
from roman.app.services.resume_parser.pipeline import ResumeParsingPipeline

logger = get_logger("services.resume_context")

# Source changes tolerated during one resolution before giving up
MAX_SOURCE_CHANGES = 3


class ResumeContextResolver:
    def __init__(self, pipeline: ResumeParsingPipeline, cache: ResumeCache):
        self.pipeline = pipeline
        self.cache = cache
        self._inflight: dict[tuple[str, str, str], asyncio.Task] = {}

    async def resolve_for_user(self, db: Session, user_id: str) -> ResumeContext | None:
        logger.info("Getting resume context for user: %s", user_id)
        resume = resume_service.get_active_resume(db, user_id)
        if not resume:
            logger.info("No active resume found for user %s", user_id)
            return None
        return await self._resolve(db, user_id, resume)

    async def resolve_for_resume(self, db: Session, user_id: str, resume_id: str) -> ResumeContext | None:
        logger.info("Getting resume context for user: %s, resume: %s", user_id, resume_id)
        resume = resume_service.get_user_resume(db, user_id, resume_id)
        if not resume:
            logger.warning("Resume %s not found or does not belong to user %s", resume_id, user_id)
            return None
        return await self._resolve(db, user_id, resume)

    async def _resolve(self, db: Session, user_id: str, resume: Resume) -> ResumeContext | None:
        resume_id = resume.id
        for _ in range(MAX_SOURCE_CHANGES + 1):
            source_blob_id = resume.blob_id
            file_url = resume.file_url

            cached = await self.cache.get(user_id, resume_id)
            if cached is not None:
                if source_blob_id is None or cached.blob_id == source_blob_id:
                    logger.info("Using cached resume context for user %s, resume %s", user_id, resume_id)
                    return ResumeContext.from_parse_result(cached.to_parse_result())
                logger.info(
                    "Cached context is for another blob, reparsing resume_id=%s cached_blob_id=%s blob_id=%s",
                    resume_id,
                    cached.blob_id,
                    source_blob_id,
                )

            owner = ResumeOwner(user_id=user_id, resume_id=resume_id)
            if source_blob_id:
                logger.info("Parsing resume from blob %s for user %s, resume %s", source_blob_id, user_id, resume_id)
                result = await self._coalesced(
                    owner,
                    source_blob_id,
                    lambda: self.pipeline.parse_from_blob(source_blob_id, owner=owner),
                )
            elif file_url:
                logger.info("Parsing resume from URL for user %s, resume %s (legacy fallback)", user_id, resume_id)
                result = await self._coalesced(
                    owner,
                    file_url,
                    lambda: self.pipeline.parse_from_url(file_url, owner=owner),
                )
            else:
                logger.warning(
                    "%s: no valid source found for resume context user_id=%s resume_id=%s",
                    DataIntegrityWarning.__name__,
                    user_id,
                    resume_id,
                )
                return None

            try:
                stored = resume_service.apply_parse_result_if_source(db, resume_id, source_blob_id, result)
            except Exception as e:
                db.rollback()
                logger.warning("Failed to store parse on resume %s: %s", resume_id, e)
                return ResumeContext.from_parse_result(result)

            current = resume_service.get_user_resume(db, user_id, resume_id)
            if current is None:
                logger.info("Resume %s was deleted while parsing", resume_id)
                if source_blob_id is None:
                    await self._discard_unreferenced(result.blob_id)
                return None
            if stored or current.blob_id == result.blob_id:
                return ResumeContext.from_parse_result(result)

            logger.info(
                "Resume source changed while parsing, resolving again resume_id=%s parsed_blob_id=%s current_blob_id=%s",
                resume_id,
                result.blob_id,
                current.blob_id,
            )
            if source_blob_id is None:
                await self._discard_unreferenced(result.blob_id)
            resume = current

        logger.warning("Resume source kept changing, giving up user_id=%s resume_id=%s", user_id, resume_id)
        return None

    async def _discard_unreferenced(self, blob_id: str) -> None:
        """Remove a blob re-hosted from a URL that no record ended up pointing at."""
        try:
            await self.pipeline.blob_store.delete(blob_id)
            logger.info("Discarded unreferenced blob %s", blob_id)
        except Exception as e:
            logger.warning("Failed to discard blob %s: %s", blob_id, e)

    async def _coalesced(
        self,
        owner: ResumeOwner,
        source: str,
        parse: Callable[[], Awaitable[ParseResult]],
    ) -> ParseResult:
        key = (owner.user_id, owner.resume_id, source)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(parse())
            self._inflight[key] = task
            task.add_done_callback(lambda _t: self._inflight.pop(key, None))
        else:
            logger.info("Joining in-flight parse user_id=%s resume_id=%s", owner.user_id, owner.resume_id)
        return await asyncio.shield(task)
