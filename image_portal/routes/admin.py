"""
Admin Routes
=============
Maintenance endpoints for the image bucket.

Protected by X-ADMIN-KEY header. Set ADMIN_API_KEY env var in Cloud Run.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from image_portal.auth import require_admin_key
from image_portal.orphans import cleanup_orphans, find_orphans

logger = logging.getLogger("image-portal.admin")

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


class CleanupRequest(BaseModel):
    limit: int = Field(default=1000, ge=1, le=10_000, description="Maximum number of objects to scan")
    dry_run: bool = Field(description="List what would be deleted without deleting")


@router.get("/orphans")
async def list_orphans(
    request: Request,
    limit: int = Query(default=1000, ge=1, le=10_000, description="Maximum number of objects to scan"),
):
    """Return images under the image prefix that no question references."""
    orphans = await find_orphans(request.state.object_store, request.state.record_store, limit)
    return {
        "count": len(orphans),
        "limit": limit,
        "orphans": orphans,
    }


@router.post("/orphans/cleanup")
async def delete_orphans(body: CleanupRequest, request: Request):
    """Delete unreferenced images. Run with dry_run first."""
    logger.info("Orphan cleanup requested: limit=%d dry_run=%s", body.limit, body.dry_run)
    result = await cleanup_orphans(
        request.state.object_store,
        request.state.record_store,
        limit=body.limit,
        dry_run=body.dry_run,
    )
    return {
        "count": len(result["orphans"]),
        **result,
    }
