"""
Cache for parsed resume data, keyed resume:parsed:{user_id}:{resume_id}.
Best-effort: read failures are misses, write/delete failures are logged only.
"""
from __future__ import annotations

from pydantic import ValidationError

from roman.app.core.config import RESUME_CACHE_KEY_PREFIX, settings
from roman.app.core.logging_config import get_logger
from roman.app.schemas.resume import CachedResumeData
from roman.app.utils.cache import RedisCache

logger = get_logger("services.resume_cache")


def resume_cache_key(user_id: str, resume_id: str) -> str:
    return f"{RESUME_CACHE_KEY_PREFIX}:{user_id}:{resume_id}"


class ResumeCache:
    def __init__(self, backend: RedisCache, ttl_seconds: int | None = None):
        self.backend = backend
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.resume_cache_ttl_seconds

    async def get(self, user_id: str, resume_id: str) -> CachedResumeData | None:
        key = resume_cache_key(user_id, resume_id)
        lookup = await self.backend.get(key)
        if lookup.status == "error":
            logger.warning("Cache unavailable, treating as miss user_id=%s resume_id=%s", user_id, resume_id)
            return None
        if not lookup.hit:
            logger.info("Cache miss user_id=%s resume_id=%s", user_id, resume_id)
            return None
        try:
            data = CachedResumeData.model_validate(lookup.value)
        except ValidationError as e:
            logger.warning("Discarding malformed cache entry key=%s error=%s", key, e)
            return None
        logger.info("Cache hit user_id=%s resume_id=%s", user_id, resume_id)
        return data

    async def put(self, user_id: str, resume_id: str, data: CachedResumeData) -> None:
        stored = await self.backend.set(
            resume_cache_key(user_id, resume_id),
            data.model_dump(mode="json"),
            ttl=self.ttl_seconds,
        )
        if stored:
            logger.info("Cached resume data user_id=%s resume_id=%s", user_id, resume_id)

    async def invalidate(self, user_id: str, resume_id: str) -> None:
        if await self.backend.delete(resume_cache_key(user_id, resume_id)):
            logger.info("Cache invalidated user_id=%s resume_id=%s", user_id, resume_id)
