"""
Orphan reconciliation: find and delete images no question references.

An object becomes orphaned when a re-ingest replaces a question's image
(inline uploads get a fresh timestamped path) or when the record update
fails after a successful upload. This job compares the bucket listing
with the imageUrl values in Firestore.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import unquote, urlparse

from image_portal import config

logger = logging.getLogger("image-portal.orphans")

GCS_PUBLIC_HOST = "storage.googleapis.com"


def split_public_url(url: str) -> Optional[tuple[str, str]]:
    """``(bucket, path)`` for a GCS public URL, or None if not one.

    ``https://storage.googleapis.com/<bucket>/<path>`` -> ``(<bucket>, <path>)``
    """
    parsed = urlparse(url or "")
    if parsed.scheme != "https" or parsed.netloc != GCS_PUBLIC_HOST:
        return None

    bucket, _, encoded_path = parsed.path.lstrip("/").partition("/")
    if not bucket or not encoded_path:
        return None
    return bucket, unquote(encoded_path)


def path_from_public_url(url: str, bucket_name: Optional[str] = None) -> Optional[str]:
    """Object path inside the bucket for a GCS public URL, or None if not one."""
    parts = split_public_url(url)
    if parts is None:
        return None
    bucket, path = parts
    if bucket_name and bucket != bucket_name:
        logger.warning("URL does not belong to bucket %s: %s", bucket_name, url)
    return path


async def find_orphans(object_store, record_store, limit: int = 1000) -> list[str]:
    """Paths under the image prefix (scanning at most ``limit``) that no record references."""
    active: set[str] = set()
    async for url in record_store.image_urls():
        path = path_from_public_url(url, object_store.bucket_name)
        if path:
            active.add(path)
    logger.info("Found %d active image references in Firestore", len(active))

    paths = await object_store.list_paths(f"{config.IMAGE_PREFIX}/", limit)
    orphans = [p for p in paths if p not in active]
    logger.info("Scanned %d objects, %d orphaned", len(paths), len(orphans))
    return orphans


async def cleanup_orphans(object_store, record_store, limit: int = 1000, dry_run: bool = False) -> dict:
    """Delete orphaned objects. A failed delete is counted, not raised."""
    orphans = await find_orphans(object_store, record_store, limit)

    result = {
        "orphans": orphans,
        "dry_run": dry_run,
        "deleted": 0,
        "failed": {},
    }
    if dry_run or not orphans:
        return result

    for path in orphans:
        try:
            await object_store.delete(path)
            result["deleted"] += 1
        except Exception as exc:
            logger.error("Failed to delete %s: %s", path, exc)
            result["failed"][path] = str(exc)

    logger.info("Deleted %d orphan images, %d failures", result["deleted"], len(result["failed"]))
    return result
