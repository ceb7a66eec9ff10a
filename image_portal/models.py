"""
Data types shared by discovery, curation and ingestion.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SearchHit(BaseModel):
    """A File-namespace page returned by the Commons search, in relevance order."""
    title: str


class ImageCandidate(BaseModel):
    """A discovered image whose license passed the allow-list."""
    page_url: str = Field(description="Commons file description page")
    thumbnail_url: str = Field(description="300px wide thumbnail")
    full_url: str = Field(description="Original full-resolution file")
    license: str = Field(description="License short name, e.g. 'CC BY-SA 4.0'")
    title: str = Field(description="File page title on Commons")


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    TRANSPORT_ERROR = "transport_error"
    MISSING_METADATA = "missing_metadata"
    REJECTED_LICENSE = "rejected_license"


class Resolution(BaseModel):
    """Outcome of resolving one search hit.

    Only ``RESOLVED`` carries a candidate. The other statuses all collapse
    to "no candidate" for callers, but stay distinguishable in tests and logs.
    """
    title: str
    status: ResolutionStatus
    candidate: Optional[ImageCandidate] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED and self.candidate is not None
