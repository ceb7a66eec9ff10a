"""
Admin authentication for the Image Portal.

Every route is called by the trivia admin tools, so a single shared key
in the X-ADMIN-KEY header gates them. Set ADMIN_API_KEY in Cloud Run.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Header, HTTPException

from image_portal import config

logger = logging.getLogger("image-portal.auth")

MIN_KEY_LENGTH = 16


async def require_admin_key(x_admin_key: str = Header(alias="X-ADMIN-KEY", default="")):
    """Verify the admin API key is present and correct."""
    expected = config.ADMIN_API_KEY
    if not expected or len(expected) < MIN_KEY_LENGTH:
        raise HTTPException(
            status_code=503,
            detail="Image routes disabled: ADMIN_API_KEY not configured.",
        )
    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        logger.warning("Rejected request with invalid X-ADMIN-KEY")
        raise HTTPException(
            status_code=403,
            detail="Forbidden: invalid or missing X-ADMIN-KEY header.",
        )
