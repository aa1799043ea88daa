"""
Service wiring. Built once at startup and stored on app.state.services.
"""
from __future__ import annotations

from dataclasses import dataclass

from roman.app.core.config import Settings, settings as default_settings
from roman.app.services.blob_storage import BlobStore, build_blob_store
from roman.app.services.resume_cache import ResumeCache
from roman.app.services.resume_context import ResumeContextResolver
from roman.app.services.resume_parser import (
    AIStructuringClient,
    RemoteFileFetcher,
    ResumeParsingPipeline,
)
from roman.app.utils.cache import RedisCache


@dataclass
class ResumeServices:
    redis: RedisCache
    cache: ResumeCache
    blob_store: BlobStore
    ai_client: AIStructuringClient
    fetcher: RemoteFileFetcher
    pipeline: ResumeParsingPipeline
    resolver: ResumeContextResolver

    async def startup(self) -> None:
        await self.redis.connect()

    async def shutdown(self) -> None:
        await self.redis.close()


def build_services(
    cfg: Settings | None = None,
    redis: RedisCache | None = None,
    blob_store: BlobStore | None = None,
    ai_client: AIStructuringClient | None = None,
    fetcher: RemoteFileFetcher | None = None,
) -> ResumeServices:
    cfg = cfg or default_settings
    redis = redis or RedisCache(cfg.redis_url, default_ttl=cfg.resume_cache_ttl_seconds)
    cache = ResumeCache(redis, ttl_seconds=cfg.resume_cache_ttl_seconds)
    blob_store = blob_store or build_blob_store(cfg)
    ai_client = ai_client or AIStructuringClient(cfg)
    fetcher = fetcher or RemoteFileFetcher(cfg)
    pipeline = ResumeParsingPipeline(blob_store, cache, ai_client, fetcher)
    return ResumeServices(
        redis=redis,
        cache=cache,
        blob_store=blob_store,
        ai_client=ai_client,
        fetcher=fetcher,
        pipeline=pipeline,
        resolver=ResumeContextResolver(pipeline, cache),
    )
