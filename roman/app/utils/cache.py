"""
Redis cache utility - used for parsed resume data.
If Redis unavailable, caching is disabled and all ops no-op.

get() returns a CacheLookup so callers can tell a real miss from a backend fault;
both are treated as misses by the resume pipeline.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from roman.app.core.config import settings
from roman.app.core.errors import CacheError
from roman.app.core.logging_config import get_logger

logger = get_logger("utils.cache")


@dataclass(frozen=True)
class CacheLookup:
    status: Literal["hit", "miss", "error"]
    value: Any = None
    error: CacheError | None = None

    @property
    def hit(self) -> bool:
        return self.status == "hit"


MISS = CacheLookup("miss")


class RedisCache:
    """Thin async Redis wrapper. Pass `client` to inject a ready connection (tests)."""

    def __init__(self, url: str | None = None, client: Any = None, default_ttl: int | None = None):
        self._url = settings.redis_url if url is None else url
        self._client = client
        self._default_ttl = default_ttl if default_ttl is not None else settings.resume_cache_ttl_seconds

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self._url:
            logger.warning("redis_url not set, caching disabled")
            return
        try:
            from redis import asyncio as aioredis
            client = aioredis.Redis.from_url(
                self._url, encoding="utf-8", decode_responses=True
            )
            await client.ping()
            self._client = client
            logger.info("Redis connected, caching enabled")
        except Exception as e:
            logger.warning("Redis connect failed: %s, caching disabled", e)

    async def close(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("Redis close failed: %s", e)
        self._client = None

    async def get(self, key: str) -> CacheLookup:
        if not self._client:
            return MISS
        try:
            val = await self._client.get(key)
        except Exception as e:
            logger.error("Cache read failed key=%s error=%s", key, e)
            return CacheLookup("error", error=CacheError(str(e)))
        if not val:
            return MISS
        try:
            return CacheLookup("hit", json.loads(val))
        except (TypeError, ValueError) as e:
            logger.error("Cache value undecodable key=%s error=%s", key, e)
            return CacheLookup("error", error=CacheError(str(e)))

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Store value as JSON. Returns False (never raises) when the write did not happen."""
        if not self._client:
            return False
        ttl_val = ttl if ttl is not None else self._default_ttl
        try:
            await self._client.set(key, json.dumps(value), ex=ttl_val)
            return True
        except Exception as e:
            logger.error("Cache write failed key=%s error=%s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        if not self._client:
            return False
        try:
            await self._client.delete(key)
            return True
        except Exception as e:
            logger.error("Cache delete failed key=%s error=%s", key, e)
            return False
