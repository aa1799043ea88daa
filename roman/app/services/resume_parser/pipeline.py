"""
Resume parsing pipeline: bytes -> detect -> store blob -> extract -> AI structure -> cache.

Three entry points:
- parse_from_bytes: fresh upload, stores a new blob
- parse_from_url: downloads first, stores a new blob (migrates legacy URL resumes)
- parse_from_blob: reads an existing blob, never re-stores it

With an owner (user_id, resume_id) the cache is consulted first and a hit skips
all parsing work. Cache writes are best-effort.
"""
from __future__ import annotations

import asyncio
import re
import time
import uuid
from datetime import datetime, timezone

from roman.app.core.errors import AcquisitionError, ResumeContextError
from roman.app.core.logging_config import get_logger
from roman.app.schemas.resume import (
    CachedResumeData,
    ParseResult,
    ResumeOwner,
    StructuredResume,
)
from roman.app.services.blob_storage import BlobStore
from roman.app.services.resume_cache import ResumeCache
from roman.app.services.resume_parser.ai_client import AIStructuringClient
from roman.app.services.resume_parser.fetcher import RemoteFileFetcher
from roman.app.services.resume_parser.format_detector import (
    content_type_for,
    detect_file_type,
    extension_for,
)
from roman.app.services.resume_parser.text_extractors import extract_text

logger = get_logger("services.resume_parser.pipeline")

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse every whitespace run to one space and trim."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def generate_blob_filename(file_type: str) -> str:
    return f"resume_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}.{extension_for(file_type)}"


class ResumeParsingPipeline:
    def __init__(
        self,
        blob_store: BlobStore,
        cache: ResumeCache,
        ai_client: AIStructuringClient,
        fetcher: RemoteFileFetcher,
    ):
        self.blob_store = blob_store
        self.cache = cache
        self.ai_client = ai_client
        self.fetcher = fetcher

    async def parse_from_bytes(
        self,
        data: bytes,
        owner: ResumeOwner | None = None,
        filename: str | None = None,
        original_url: str | None = None,
    ) -> ParseResult:
        cached = await self._cached_result(owner)
        if cached is not None:
            return cached
        return await self._parse(data, owner, filename=filename, original_url=original_url)

    async def parse_from_url(self, url: str, owner: ResumeOwner | None = None) -> ParseResult:
        logger.info("Starting resume parsing from url=%s", url)
        cached = await self._cached_result(owner)
        if cached is not None:
            return cached
        data = await self.fetcher.fetch(url)
        return await self._parse(data, owner, original_url=url)

    async def parse_from_blob(self, blob_id: str, owner: ResumeOwner | None = None) -> ParseResult:
        logger.info("Starting resume parsing from blob_id=%s", blob_id)
        cached = await self._cached_result(owner, blob_id=blob_id)
        if cached is not None:
            return cached
        try:
            data = await self.blob_store.retrieve(blob_id)
        except ResumeContextError:
            raise
        except Exception as e:
            logger.error("Blob retrieval failed blob_id=%s error=%s", blob_id, e)
            raise AcquisitionError(f"Failed to retrieve blob {blob_id}: {e}") from e
        return await self._parse(data, owner, blob_id=blob_id)

    async def _cached_result(self, owner: ResumeOwner | None, blob_id: str | None = None) -> ParseResult | None:
        if owner is None:
            return None
        cached = await self.cache.get(owner.user_id, owner.resume_id)
        if cached is None:
            return None
        if blob_id is not None and cached.blob_id != blob_id:
            logger.info(
                "Cached entry is for a different blob, reparsing cached_blob_id=%s blob_id=%s",
                cached.blob_id,
                blob_id,
            )
            return None
        logger.info("Using cached resume data user_id=%s resume_id=%s", owner.user_id, owner.resume_id)
        return cached.to_parse_result()

    async def _parse(
        self,
        data: bytes,
        owner: ResumeOwner | None,
        blob_id: str | None = None,
        filename: str | None = None,
        original_url: str | None = None,
    ) -> ParseResult:
        file_type = detect_file_type(data)
        logger.info("Detected file type=%s size_bytes=%d", file_type, len(data))

        stored_here = blob_id is None
        if stored_here:
            blob = await self.blob_store.store(
                data,
                filename or generate_blob_filename(file_type),
                content_type_for(file_type),
                {
                    "user_id": owner.user_id if owner else None,
                    "resume_id": owner.resume_id if owner else None,
                    "original_url": original_url,
                },
            )
            blob_id = blob.id

        try:
            text = await asyncio.to_thread(extract_text, data, file_type)
            ai_output = await self.ai_client.structure(data if text is None else text, file_type)
        except Exception:
            if stored_here:
                await self._discard_blob(blob_id)
            raise

        result = ParseResult(
            text=normalize_text(ai_output.text),
            structured_data=StructuredResume.model_validate(ai_output.structured_data),
            file_type=file_type,
            blob_id=blob_id,
        )

        if owner is not None:
            await self.cache_result(owner, result)

        logger.info("Resume parsing completed chars=%d blob_id=%s", len(result.text), blob_id)
        return result

    async def cache_result(self, owner: ResumeOwner, result: ParseResult) -> None:
        try:
            await self.cache.put(
                owner.user_id,
                owner.resume_id,
                CachedResumeData(
                    parsed_text=result.text,
                    structured_data=result.structured_data,
                    file_type=result.file_type,
                    blob_id=result.blob_id,
                    extracted_at=datetime.now(timezone.utc),
                ),
            )
        except Exception as e:
            logger.error("Failed to cache resume data user_id=%s resume_id=%s error=%s", owner.user_id, owner.resume_id, e)

    async def _discard_blob(self, blob_id: str) -> None:
        """Remove a blob stored by a parse that then failed."""
        try:
            await self.blob_store.delete(blob_id)
            logger.info("Discarded blob after failed parse blob_id=%s", blob_id)
        except Exception as e:
            logger.warning("Failed to discard blob blob_id=%s error=%s", blob_id, e)
