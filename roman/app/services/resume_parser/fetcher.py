"""
Remote file download for legacy URL-based resumes.
"""
from __future__ import annotations

import httpx

from roman.app.core.config import Settings, settings as default_settings
from roman.app.core.errors import AcquisitionError
from roman.app.core.logging_config import get_logger

logger = get_logger("services.resume_parser.fetcher")


class RemoteFileFetcher:
    def __init__(self, cfg: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg or default_settings
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        logger.info("Downloading file url=%s", url)
        try:
            async with httpx.AsyncClient(
                timeout=float(self.cfg.http_request_timeout),
                headers={"User-Agent": self.cfg.remote_fetch_user_agent},
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error("Download timed out url=%s", url)
            raise AcquisitionError(f"Failed to download file: timeout after {self.cfg.http_request_timeout}s") from e
        except httpx.HTTPError as e:
            logger.error("Download failed url=%s error=%s", url, e)
            raise AcquisitionError(f"Failed to download file: {e}") from e

        data = response.content
        logger.info("File downloaded url=%s size_bytes=%d", url, len(data))
        return data
