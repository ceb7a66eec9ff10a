"""
Wikimedia Commons client — search and per-file license resolution.

Discovery is best-effort: a failed search yields no hits, and a hit whose
image info cannot be fetched or whose license is not permissive yields no
candidate. Nothing here raises to the caller.

Usage:
    client = CommonsClient()
    hits = await client.search('"The Starry Night" "Vincent van Gogh"')
    resolution = await client.resolve(hits[0])
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import aiohttp

from image_portal import config
from image_portal.errors import DiscoveryTransportError, MetadataShapeError
from image_portal.licensing import UNKNOWN_LICENSE, is_permissive
from image_portal.models import ImageCandidate, Resolution, ResolutionStatus, SearchHit

logger = logging.getLogger("image-portal.wikimedia")


class CommonsClient:
    """Query the MediaWiki Action API of Wikimedia Commons."""

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        api_url: str = config.COMMONS_API_URL,
        timeout: int = config.REQUEST_TIMEOUT,
    ):
        self._external_session = session
        self._own_session: Optional[aiohttp.ClientSession] = None
        self.api_url = api_url
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

    async def _get_json(self, params: dict) -> dict:
        """GET the API with ``params`` and decode the JSON body.

        Raises:
            DiscoveryTransportError: On network errors, timeouts, non-2xx
                responses or an undecodable body.
        """
        session = await self._get_session()
        query = {"format": "json", "origin": "*", **params}
        try:
            async with session.get(
                self.api_url,
                params=query,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise DiscoveryTransportError(f"HTTP {resp.status} from {self.api_url}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise DiscoveryTransportError(str(exc) or type(exc).__name__) from exc

        if not isinstance(data, dict):
            raise DiscoveryTransportError("Unexpected JSON payload")
        return data

    async def search(self, term: str, limit: int = config.MAX_SEARCH_RESULTS * 2) -> list[SearchHit]:
        """Search the File namespace for ``term``, in upstream relevance order.

        Requests twice the candidate budget by default so that hits later
        rejected for licensing still leave enough candidates.
        """
        try:
            data = await self._get_json({
                "action": "query",
                "list": "search",
                "srsearch": term,
                "srnamespace": config.FILE_NAMESPACE,
                "srlimit": str(limit),
            })
        except DiscoveryTransportError as exc:
            logger.warning("Commons search failed for %r: %s", term, exc)
            return []

        query = data.get("query")
        raw_hits = query.get("search") if isinstance(query, dict) else None
        if not isinstance(raw_hits, list):
            raw_hits = []
        hits = [
            SearchHit(title=h["title"])
            for h in raw_hits
            if isinstance(h, dict) and isinstance(h.get("title"), str) and h["title"]
        ]

        if not hits:
            logger.info("No file pages found for search term: %s", term)
        return hits

    async def _fetch_image_info(self, title: str) -> tuple[dict, dict]:
        """Return the first imageinfo entry and its extmetadata for ``title``.

        Accepts ``pages`` keyed by page id or, as with ``formatversion=2``,
        as a list.

        Raises:
            DiscoveryTransportError: If the request fails.
            MetadataShapeError: If any level of the response has the wrong shape.
        """
        data = await self._get_json({
            "action": "query",
            "titles": title,
            "prop": "imageinfo",
            "iiprop": "url|extmetadata",
            "iiurlwidth": str(config.THUMBNAIL_WIDTH),
        })

        query = data.get("query")
        pages = query.get("pages") if isinstance(query, dict) else None
        if isinstance(pages, dict):
            pages = list(pages.values())
        if not isinstance(pages, list) or not pages or not isinstance(pages[0], dict):
            raise MetadataShapeError(f"No page returned for {title}")

        infos = pages[0].get("imageinfo")
        image_info = infos[0] if isinstance(infos, list) and infos else None
        ext_metadata = image_info.get("extmetadata") if isinstance(image_info, dict) else None

        if not isinstance(ext_metadata, dict) or not ext_metadata:
            raise MetadataShapeError(f"No imageinfo/extmetadata for {title}")
        return image_info, ext_metadata

    async def resolve(self, hit: SearchHit) -> Resolution:
        """Resolve one search hit into a candidate, or say why it has none."""
        try:
            image_info, ext_metadata = await self._fetch_image_info(hit.title)
        except DiscoveryTransportError as exc:
            logger.warning("Image info request failed for %s: %s", hit.title, exc)
            return Resolution(title=hit.title, status=ResolutionStatus.TRANSPORT_ERROR, detail=str(exc))
        except MetadataShapeError as exc:
            return Resolution(title=hit.title, status=ResolutionStatus.MISSING_METADATA, detail=str(exc))

        license_name = _metadata_value(ext_metadata, "LicenseShortName") or UNKNOWN_LICENSE

        if not is_permissive(license_name):
            return Resolution(
                title=hit.title,
                status=ResolutionStatus.REJECTED_LICENSE,
                detail=license_name,
            )

        candidate = ImageCandidate(
            page_url=_text(image_info.get("descriptionurl")),
            thumbnail_url=_text(image_info.get("thumburl")),
            full_url=_text(image_info.get("url")),
            license=license_name,
            title=hit.title,
        )
        return Resolution(title=hit.title, status=ResolutionStatus.RESOLVED, candidate=candidate)


def _text(value) -> str:
    return value if isinstance(value, str) else ""


def _metadata_value(ext_metadata: dict, key: str) -> str:
    """extmetadata entries are ``{"value": ...}`` objects; tolerate bare strings."""
    entry = ext_metadata.get(key)
    if isinstance(entry, dict):
        entry = entry.get("value")
    return _text(entry).strip()
