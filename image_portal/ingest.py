"""
Artifact ingestion. Stores a chosen image and points its question at it.

Two entry points share one write path:

  ingest_from_url:            admin picked a discovered Commons candidate
  ingest_from_inline_payload: admin uploaded bytes as a data URI

Pipeline:
  1. Fetch (URL) or decode (data URI)          fatal on failure
  2. Watermark (data URI only, when asked)     failure logged, original kept
  3. Upload to GCS, public-read                fatal on failure
  4. Set imageUrl on the Firestore record      fatal, raises OrphanedObjectError
  5. Return the public URL

Step 4 can fail after step 3 succeeded. The uploaded object is then
unreferenced; OrphanedObjectError carries its path and URL so the caller
can retry the record update alone (``retry_record_update``) or leave it
for the orphan cleanup job.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable
from urllib.parse import urlparse

from image_portal import config
from image_portal.errors import (
    ForeignObjectUrlError,
    OrphanedObjectError,
    PayloadFormatError,
    StorageWriteError,
    WatermarkError,
)
from image_portal.image_fetcher import ImageFetcher
from image_portal.orphans import split_public_url
from image_portal.watermark import apply_watermark

logger = logging.getLogger("image-portal.ingest")

DATA_URI_RE = re.compile(r"^data:([a-zA-Z0-9]+/[a-zA-Z0-9\-.+]+);base64,")

DEFAULT_URL_EXTENSION = "jpg"
DEFAULT_PAYLOAD_EXTENSION = "png"


@dataclass(frozen=True)
class DecodedPayload:
    mime_type: str
    data: bytes

    @property
    def extension(self) -> str:
        return self.mime_type.split("/", 1)[1] or DEFAULT_PAYLOAD_EXTENSION


def decode_data_uri(encoded: str) -> DecodedPayload:
    """Split ``data:<type>/<subtype>;base64,<data>`` into MIME type and bytes.

    Raises:
        PayloadFormatError: If the header is missing or malformed, or the
            body is not valid base64.
    """
    match = DATA_URI_RE.match(encoded or "")
    if not match:
        raise PayloadFormatError("Invalid data URI format.")

    try:
        data = base64.b64decode(encoded[match.end():], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadFormatError(f"Invalid base64 image data: {exc}") from exc

    return DecodedPayload(mime_type=match.group(1), data=data)


def url_extension(source_url: str) -> str:
    """Extension of the URL's last path segment, ignoring the query string."""
    segment = urlparse(source_url).path.rsplit("/", 1)[-1]
    if "." not in segment:
        return DEFAULT_URL_EXTENSION
    return segment.rsplit(".", 1)[1] or DEFAULT_URL_EXTENSION


class ArtifactIngestor:
    """Download or decode an image, store it, and record its public URL."""

    def __init__(
        self,
        fetcher: ImageFetcher,
        object_store,
        record_store,
        prefix: str = config.IMAGE_PREFIX,
        watermark_path: Path = config.WATERMARK_PATH,
        clock: Callable[[], float] = time.time,
    ):
        self.fetcher = fetcher
        self.object_store = object_store
        self.record_store = record_store
        self.prefix = prefix.rstrip("/")
        self.watermark_path = watermark_path
        self._clock = clock

    async def ingest_from_url(self, source_url: str, entity_id: str) -> str:
        """Store the image at ``source_url`` as the picture for ``entity_id``."""
        logger.info("Processing image for question %s from URL: %s", entity_id, source_url)

        image = await self.fetcher.fetch_image(source_url)
        path = f"{self.prefix}/{entity_id}.{url_extension(source_url)}"

        return await self._store(entity_id, path, image.data, image.content_type)

    async def ingest_from_inline_payload(
        self,
        entity_id: str,
        encoded_payload: str,
        *,
        add_watermark: bool,
    ) -> str:
        """Store an uploaded data-URI image as the picture for ``entity_id``.

        ``add_watermark`` has no default; every caller states it.
        """
        payload = decode_data_uri(encoded_payload)
        logger.info("Starting upload for question %s (%s, %d bytes)", entity_id, payload.mime_type, len(payload.data))

        data = payload.data
        if add_watermark:
            loop = asyncio.get_running_loop()
            data = await loop.run_in_executor(None, self._watermarked, data)

        millis = int(self._clock() * 1000)
        path = f"{self.prefix}/{entity_id}_upload_{millis}.{payload.extension}"

        return await self._store(entity_id, path, data, payload.mime_type)

    async def retry_record_update(self, entity_id: str, public_url: str) -> str:
        """Re-run only the record update after an OrphanedObjectError.

        Raises:
            ForeignObjectUrlError: If ``public_url`` is not an object in the
                image bucket. The record is left untouched.
            OrphanedObjectError: If the record update fails again.
        """
        parts = split_public_url(public_url)
        if parts is None or parts[0] != self.object_store.bucket_name:
            raise ForeignObjectUrlError(
                f"Not an object in gs://{self.object_store.bucket_name}: {public_url}"
            )
        await self._update_record(entity_id, parts[1], public_url)
        return public_url

    def _watermarked(self, data: bytes) -> bytes:
        try:
            marked = apply_watermark(data, self.watermark_path)
        except WatermarkError as exc:
            logger.warning("Could not apply watermark, proceeding without it: %s", exc)
            return data
        logger.info("Applied watermark from %s", self.watermark_path)
        return marked

    async def _store(self, entity_id: str, path: str, data: bytes, content_type: str) -> str:
        try:
            public_url = await self.object_store.put(path, data, content_type, public=True)
        except Exception as exc:
            raise StorageWriteError(f"Failed to upload {path}: {exc}") from exc

        await self._update_record(entity_id, path, public_url)
        return public_url

    async def _update_record(self, entity_id: str, path: str, public_url: str) -> None:
        try:
            await self.record_store.update_field(entity_id, config.IMAGE_URL_FIELD, public_url)
        except Exception as exc:
            logger.error(
                "Record %s not updated; object %s is orphaned (%s): %s",
                entity_id, path, public_url, exc,
            )
            raise OrphanedObjectError(entity_id, path, public_url, exc) from exc

        logger.info("Firestore updated for question %s. URL: %s", entity_id, public_url)

