"""
GCS holds the image bytes, Firestore the question records.

The GCS client library is synchronous; every blob call is pushed to the
default executor so the event loop keeps serving requests.

Storage layout:
    gs://{IMAGE_BUCKET}/trivia_images/{question_id}.{ext}
    gs://{IMAGE_BUCKET}/trivia_images/{question_id}_upload_{millis}.{ext}
Records:
    Firestore `predefinedTriviaQuestions/{question_id}` -> imageUrl
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from google.cloud import firestore, storage

from image_portal import config

logger = logging.getLogger("image-portal.storage")


class ObjectStore:
    """Public image bucket."""

    def __init__(self, client: storage.Client, bucket_name: str = config.IMAGE_BUCKET):
        self._client = client
        self.bucket_name = bucket_name
        self._bucket = client.bucket(bucket_name)

    def _put_sync(self, path: str, data: bytes, content_type: str, public: bool) -> str:
        blob = self._bucket.blob(path)
        blob.upload_from_string(data, content_type=content_type)
        if public:
            blob.make_public()
        return blob.public_url

    async def put(self, path: str, data: bytes, content_type: str, public: bool = True) -> str:
        """Write ``data`` at ``path`` (overwriting) and return its public URL."""
        loop = asyncio.get_running_loop()
        url = await loop.run_in_executor(
            None, lambda: self._put_sync(path, data, content_type, public)
        )
        logger.info("Uploaded gs://%s/%s (%d bytes, %s)", self.bucket_name, path, len(data), content_type)
        return url

    async def list_paths(self, prefix: str, limit: int) -> list[str]:
        """Names of up to ``limit`` objects under ``prefix``."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: [b.name for b in self._client.list_blobs(self.bucket_name, prefix=prefix, max_results=limit)],
        )

    async def delete(self, path: str) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, lambda: self._bucket.blob(path).delete())


class RecordStore:
    """Firestore collection holding the trivia question records."""

    def __init__(self, db: firestore.AsyncClient, collection: str = config.QUESTIONS_COLLECTION):
        self._db = db
        self.collection = collection

    async def update_field(self, entity_id: str, field: str, value: str) -> None:
        """Set one field on an existing record.

        Raises:
            google.api_core.exceptions.NotFound: If the record does not exist.
        """
        await self._db.collection(self.collection).document(entity_id).update({field: value})

    async def image_urls(self, field: str = config.IMAGE_URL_FIELD) -> AsyncIterator[str]:
        """Yield every non-empty image URL stored in the collection."""
        query = self._db.collection(self.collection).where(field, ">", "")
        async for doc in query.stream():
            value = (doc.to_dict() or {}).get(field)
            if value:
                yield value
