"""
Error types for discovery and ingestion.

Discovery errors never leave the Commons client: they are folded into a
per-hit ``Resolution`` status. Ingestion errors are fatal and propagate
to the caller, who decides whether to retry.
"""

from __future__ import annotations


class DiscoveryTransportError(Exception):
    """Search or image-info request failed (network error or non-2xx)."""


class MetadataShapeError(Exception):
    """Image-info response lacks the imageinfo/extmetadata block."""


class WatermarkError(Exception):
    """Watermark asset could not be loaded or composited."""


class IngestError(Exception):
    """Base class for fatal ingestion failures."""


class PayloadFormatError(IngestError):
    """Inline payload is not a ``data:<type>/<subtype>;base64,`` string."""


class ForeignObjectUrlError(IngestError):
    """URL is not a public URL of an object in the image bucket."""


class IngestTransportError(IngestError):
    """Download of the chosen source image failed."""


class StorageWriteError(IngestError):
    """Upload to object storage failed. Nothing was written to the record."""


class MetadataWriteError(IngestError):
    """Updating the question record failed."""


class OrphanedObjectError(MetadataWriteError):
    """Object was uploaded but the record still points elsewhere.

    Carries enough to retry only the record update, or to let the orphan
    cleanup job reclaim the object later.
    """

    def __init__(self, entity_id: str, storage_path: str, public_url: str, cause: Exception):
        self.entity_id = entity_id
        self.storage_path = storage_path
        self.public_url = public_url
        self.cause = cause
        super().__init__(
            f"Uploaded {storage_path} but could not update record {entity_id}: {cause}"
        )
