#!/usr/bin/env python3
"""
Image Portal MCP Server
========================
Model Context Protocol tools so question-authoring agents can look up
openly-licensed artwork images before a human picks one.

Run standalone:  python -m image_portal.mcp_server
Mounted by the FastAPI app at /mcp (streamable HTTP).

Tools provided:
  - find_candidate_images -- Search Wikimedia Commons, permissive licenses only
  - check_license         -- Test a license name against the allow-list

Ingestion is not exposed here; storing an image stays an admin action.
"""

from __future__ import annotations

import json
from typing import Optional

from fastmcp import FastMCP

from image_portal.config import MAX_SEARCH_RESULTS
from image_portal.curation import build_search_term, find_candidates
from image_portal.licensing import PERMISSIVE_LICENSES, is_permissive
from image_portal.wikimedia import CommonsClient

mcp = FastMCP(
    "image-portal",
    instructions=(
        "Find public-domain and Creative Commons images on Wikimedia Commons "
        "for trivia questions. find_candidate_images returns at most "
        f"{MAX_SEARCH_RESULTS} candidates in search relevance order, each with "
        "page, thumbnail and full-resolution URLs plus its license. Only "
        "public domain, PD-*, CC0 and CC BY* licenses are ever returned."
    ),
)


# ---------------------------------------------------------------------------
# Tool bodies
# ---------------------------------------------------------------------------


async def candidate_images(
    client: CommonsClient,
    title: Optional[str] = None,
    author: Optional[str] = None,
    term: Optional[str] = None,
) -> dict:
    """Search result for the tool; ``term`` wins over ``title``/``author``."""
    if term and term.strip():
        query = term
    elif title and title.strip():
        query = build_search_term(title, author)
    else:
        return {"error": "Provide 'title' or 'term'"}

    candidates = await find_candidates(query, client)
    return {
        "term": query,
        "count": len(candidates),
        "candidates": [c.model_dump() for c in candidates],
    }


def license_verdict(license_name: str) -> dict:
    return {
        "license": license_name,
        "permissive": is_permissive(license_name),
        "allow_list": list(PERMISSIVE_LICENSES),
    }


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
async def find_candidate_images(
    title: Optional[str] = None,
    author: Optional[str] = None,
    term: Optional[str] = None,
) -> str:
    """Search Wikimedia Commons for openly-licensed images.

    Args:
        title: Artwork or subject title, searched as an exact phrase.
        author: Optional author, searched as an exact phrase.
        term: Raw search query; used verbatim instead of title/author.

    Returns:
        JSON with the search term and the candidate list.
    """
    client = CommonsClient()
    try:
        result = await candidate_images(client, title, author, term)
    finally:
        await client.close()
    return json.dumps(result, indent=2)


@mcp.tool()
def check_license(license_name: str) -> str:
    """Check whether a license short name is accepted for storage.

    Args:
        license_name: e.g. "CC BY-SA 4.0", "Public domain", "All rights reserved".

    Returns:
        JSON with the verdict and the allow-list it was checked against.
    """
    return json.dumps(license_verdict(license_name))


if __name__ == "__main__":
    mcp.run()
