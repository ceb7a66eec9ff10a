"""
Candidate selection over concurrently resolved search hits.

Every hit of one search is resolved concurrently and joined before
filtering. ``asyncio.gather`` returns results in argument order, so the
surviving candidates follow the upstream relevance order no matter which
request finishes first.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Optional, Protocol, Sequence

from image_portal.config import MAX_SEARCH_RESULTS
from image_portal.models import ImageCandidate, Resolution, SearchHit

logger = logging.getLogger("image-portal.curation")


class Resolver(Protocol):
    async def resolve(self, hit: SearchHit) -> Resolution: ...


class Searcher(Resolver, Protocol):
    async def search(self, term: str) -> list[SearchHit]: ...


def build_search_term(title: str, author: Optional[str] = None) -> str:
    """Quote the artwork title and, when given, the author for an exact-phrase search."""
    term = f'"{title.strip()}"'
    if author and author.strip():
        term = f'{term} "{author.strip()}"'
    return term


async def resolve_all(hits: Sequence[SearchHit], resolver: Resolver) -> list[Resolution]:
    """Resolve every hit concurrently; one slow or failing hit never blocks the others."""
    if not hits:
        return []
    return list(await asyncio.gather(*(resolver.resolve(hit) for hit in hits)))


async def select_candidates(
    hits: Sequence[SearchHit],
    resolver: Resolver,
    limit: int = MAX_SEARCH_RESULTS,
) -> list[ImageCandidate]:
    """Return at most ``limit`` permissively-licensed candidates in hit order."""
    resolutions = await resolve_all(hits, resolver)

    outcome = Counter(r.status.value for r in resolutions)
    if resolutions:
        logger.info("Resolved %d hits: %s", len(resolutions), dict(outcome))

    candidates = [r.candidate for r in resolutions if r.ok]
    return candidates[:limit]


async def find_candidates(term: str, client: Searcher) -> list[ImageCandidate]:
    """Search Commons for ``term`` and return the selected candidates."""
    logger.info("Searching Commons for: %s", term)
    hits = await client.search(term)
    if not hits:
        return []
    return await select_candidates(hits, client)
