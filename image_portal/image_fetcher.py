"""
Image Fetcher — download a chosen source image.

Used by URL-mode ingestion once an admin has picked one of the discovered
candidates. A single attempt is made; the caller decides whether to retry.

Usage:
    fetcher = ImageFetcher()
    image = await fetcher.fetch_image(candidate.full_url)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import aiohttp

from image_portal import config
from image_portal.errors import IngestTransportError

logger = logging.getLogger("image-portal.image-fetcher")

DEFAULT_CONTENT_TYPE = "image/jpeg"


@dataclass(frozen=True)
class FetchedImage:
    data: bytes
    content_type: str


class ImageFetcher:
    """Fetch source images over HTTP."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: int = config.REQUEST_TIMEOUT,
    ):
        self._external_session = session
        self._own_session: Optional[aiohttp.ClientSession] = None
        self.timeout = timeout

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._external_session:
            return self._external_session
        if self._own_session is None or self._own_session.closed:
            self._own_session = aiohttp.ClientSession(
                headers={"User-Agent": config.USER_AGENT},
            )
        return self._own_session

    async def close(self):
        if self._own_session and not self._own_session.closed:
            await self._own_session.close()

    async def fetch_image(self, url: str) -> FetchedImage:
        """Download ``url`` and return its bytes and declared content type.

        Raises:
            ImageFetchError: On network errors, timeouts or non-2xx responses.
        """
        if not url:
            raise ImageFetchError("No source URL given")

        session = await self._get_session()
        try:
            async with session.get(
                url,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise ImageFetchError(f"Failed to download image (HTTP {resp.status}): {url}")
                data = await resp.read()
                content_type = resp.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ImageFetchError(f"Failed to download image: {e} for {url}") from e

        # Drop parameters such as "; charset=binary"
        content_type = content_type.split(";")[0].strip() or DEFAULT_CONTENT_TYPE
        logger.info("Downloaded %d bytes (%s) from %s", len(data), content_type, url)
        return FetchedImage(data=data, content_type=content_type)


class ImageFetchError(IngestTransportError):
    """Raised when the source image cannot be downloaded."""
    pass
