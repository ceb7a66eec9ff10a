"""
Image Routes
=============
Find openly-licensed images for a trivia question and attach one.

POST /images/search                 — Commons candidates for a term or artwork
POST /images/{question_id}/from-url — Store a chosen candidate
POST /images/{question_id}/upload   — Store an uploaded data-URI image
POST /images/{question_id}/repair   — Retry the record update after an orphaned upload
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field, model_validator

from image_portal.auth import require_admin_key
from image_portal.config import MAX_SEARCH_RESULTS
from image_portal.curation import build_search_term, find_candidates
from image_portal.errors import (
    ForeignObjectUrlError,
    IngestError,
    IngestTransportError,
    OrphanedObjectError,
    PayloadFormatError,
    StorageWriteError,
)
from image_portal.models import ImageCandidate

logger = logging.getLogger("image-portal.images")

router = APIRouter(prefix="/images", tags=["images"], dependencies=[Depends(require_admin_key)])


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class SearchRequest(BaseModel):
    """Either a raw search term or an artwork title (plus optional author)."""
    term: Optional[str] = Field(default=None, description="Verbatim Commons search query")
    title: Optional[str] = Field(default=None, description="Artwork title, searched as an exact phrase")
    author: Optional[str] = Field(default=None, description="Artwork author, searched as an exact phrase")

    @model_validator(mode="after")
    def _term_or_title(self):
        if not (self.term and self.term.strip()) and not (self.title and self.title.strip()):
            raise ValueError("Provide a non-empty 'term' or 'title'")
        return self

    def search_term(self) -> str:
        if self.term and self.term.strip():
            return self.term
        return build_search_term(self.title, self.author)


class SearchResponse(BaseModel):
    term: str
    count: int
    max_results: int = MAX_SEARCH_RESULTS
    candidates: list[ImageCandidate]


class FromUrlRequest(BaseModel):
    source_url: str = Field(min_length=1, description="Full-resolution URL of the chosen candidate")


class UploadRequest(BaseModel):
    image_data_uri: str = Field(description="data:<type>/<subtype>;base64,<data>")
    add_watermark: bool = Field(description="Composite the site watermark before storing")


class RepairRequest(BaseModel):
    public_url: str = Field(min_length=1, description="public_url from the orphaned-object error")


class IngestResponse(BaseModel):
    question_id: str
    public_url: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ingest_http_error(exc: IngestError) -> HTTPException:
    if isinstance(exc, (PayloadFormatError, ForeignObjectUrlError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, OrphanedObjectError):
        return HTTPException(
            status_code=409,
            detail={
                "error": "Image stored but question record not updated",
                "question_id": exc.entity_id,
                "storage_path": exc.storage_path,
                "public_url": exc.public_url,
                "repair_url": f"/images/{exc.entity_id}/repair",
            },
        )
    if isinstance(exc, (IngestTransportError, StorageWriteError)):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail="Ingestion failed")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/search", response_model=SearchResponse)
async def search_images(body: SearchRequest, request: Request):
    """Search Commons and return up to 8 permissively-licensed candidates.

    Upstream failures degrade to an empty list rather than an error.
    """
    term = body.search_term()
    candidates = await find_candidates(term, request.state.commons)
    return SearchResponse(term=term, count=len(candidates), candidates=candidates)


@router.post("/{question_id}/from-url", response_model=IngestResponse)
async def ingest_from_url(question_id: str, body: FromUrlRequest, request: Request):
    """Download a chosen candidate and make it the question's image."""
    try:
        public_url = await request.state.ingestor.ingest_from_url(body.source_url, question_id)
    except IngestError as exc:
        raise _ingest_http_error(exc) from exc
    return IngestResponse(question_id=question_id, public_url=public_url)


@router.post("/{question_id}/upload", response_model=IngestResponse)
async def ingest_upload(question_id: str, body: UploadRequest, request: Request):
    """Store an uploaded image, optionally watermarked, as the question's image."""
    try:
        public_url = await request.state.ingestor.ingest_from_inline_payload(
            question_id,
            body.image_data_uri,
            add_watermark=body.add_watermark,
        )
    except IngestError as exc:
        raise _ingest_http_error(exc) from exc
    return IngestResponse(question_id=question_id, public_url=public_url)


@router.post("/{question_id}/repair", response_model=IngestResponse)
async def repair_record(question_id: str, body: RepairRequest, request: Request):
    """Point the question at an already-uploaded image."""
    try:
        public_url = await request.state.ingestor.retry_record_update(question_id, body.public_url)
    except IngestError as exc:
        raise _ingest_http_error(exc) from exc
    return IngestResponse(question_id=question_id, public_url=public_url)
