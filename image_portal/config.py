"""
Image Portal configuration.

All settings come from environment variables with production defaults,
read once at import time. Cloud Run injects them per revision.
"""

from __future__ import annotations

import os
from pathlib import Path

VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Google Cloud
# ---------------------------------------------------------------------------

GCP_PROJECT = os.environ.get("GCP_PROJECT", "trivia-image-portal")
FIRESTORE_DATABASE = os.environ.get("FIRESTORE_DATABASE", "(default)")
IMAGE_BUCKET = os.environ.get("IMAGE_BUCKET", "trivia-image-portal.appspot.com")

# GCS path: trivia_images/{question_id}.{ext}
IMAGE_PREFIX = os.environ.get("IMAGE_PREFIX", "trivia_images")
QUESTIONS_COLLECTION = os.environ.get("QUESTIONS_COLLECTION", "predefinedTriviaQuestions")
IMAGE_URL_FIELD = "imageUrl"

# ---------------------------------------------------------------------------
# Wikimedia Commons discovery
# ---------------------------------------------------------------------------

COMMONS_API_URL = os.environ.get("COMMONS_API_URL", "https://commons.wikimedia.org/w/api.php")
USER_AGENT = os.environ.get("USER_AGENT", "TriviaImagePortal/1.0 (image curation)")

MAX_SEARCH_RESULTS = 8
FILE_NAMESPACE = "6"
THUMBNAIL_WIDTH = 300
REQUEST_TIMEOUT = int(os.environ.get("REQUEST_TIMEOUT", "30"))

# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

WATERMARK_PATH = Path(
    os.environ.get("WATERMARK_PATH", str(Path(__file__).parent / "assets" / "watermark.png"))
)
WATERMARK_MARGIN = 16

ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY", "")
