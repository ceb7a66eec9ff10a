"""
Trivia Image Portal - FastAPI image curation service

Finds openly-licensed artwork images on Wikimedia Commons for trivia
questions, and stores the one an admin picks (or uploads) in GCS with
its public URL recorded on the question in Firestore.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

from fastapi import FastAPI, Request, Response
from google.cloud import firestore, storage

from image_portal import config
from image_portal.image_fetcher import ImageFetcher
from image_portal.ingest import ArtifactIngestor
from image_portal.routes.admin import router as admin_router
from image_portal.routes.images import router as images_router
from image_portal.storage import ObjectStore, RecordStore
from image_portal.wikimedia import CommonsClient

logger = logging.getLogger("image-portal")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")


# ---------------------------------------------------------------------------
# Shared clients (initialised at startup)
# ---------------------------------------------------------------------------


@dataclass
class Services:
    commons: CommonsClient
    ingestor: ArtifactIngestor
    object_store: ObjectStore
    record_store: RecordStore


services: Services | None = None


# ---------------------------------------------------------------------------
# MCP Server (streamable HTTP for Cloud Run hosting)
# ---------------------------------------------------------------------------


def create_mcp_app():
    """Create the MCP HTTP application, or None if it cannot be built."""
    try:
        from image_portal.mcp_server import mcp
        mcp_app = mcp.http_app(path="/", stateless_http=True)
        logger.info("MCP server created successfully")
        return mcp_app
    except Exception as e:
        logger.warning("MCP server creation failed: %s; MCP endpoint disabled", e)
        return None


# ---------------------------------------------------------------------------
# Application lifecycle
# ---------------------------------------------------------------------------

mcp_app = create_mcp_app()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise clients on startup, close them on shutdown."""
    global services
    logger.info("Initialising Firestore client for project=%s", config.GCP_PROJECT)
    db = firestore.AsyncClient(project=config.GCP_PROJECT, database=config.FIRESTORE_DATABASE)
    gcs = storage.Client(project=config.GCP_PROJECT)

    commons = CommonsClient()
    fetcher = ImageFetcher()
    object_store = ObjectStore(gcs, config.IMAGE_BUCKET)
    record_store = RecordStore(db, config.QUESTIONS_COLLECTION)
    services = Services(
        commons=commons,
        ingestor=ArtifactIngestor(fetcher, object_store, record_store),
        object_store=object_store,
        record_store=record_store,
    )

    logger.info(
        "Image Portal ready. bucket=%s collection=%s watermark=%s",
        config.IMAGE_BUCKET, config.QUESTIONS_COLLECTION, config.WATERMARK_PATH,
    )

    try:
        if mcp_app and getattr(mcp_app, "lifespan", None):
            async with mcp_app.lifespan(mcp_app):
                yield
        else:
            yield
    finally:
        logger.info("Shutting down Image Portal")
        await commons.close()
        await fetcher.close()
        db.close()
        services = None


app = FastAPI(
    title="Trivia Image Portal",
    description=(
        "Discovers public-domain and Creative Commons images on Wikimedia "
        "Commons and attaches the chosen one to a trivia question."
    ),
    version=config.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.middleware("http")
async def mcp_trailing_slash(request: Request, call_next):
    """Rewrite /mcp to /mcp/ so MCP clients don't get 307 redirected."""
    if request.url.path == "/mcp":
        request.scope["path"] = "/mcp/"
    return await call_next(request)


@app.middleware("http")
async def attach_services(request: Request, call_next):
    """Inject shared clients into request state for route handlers."""
    if services is not None:
        request.state.commons = services.commons
        request.state.ingestor = services.ingestor
        request.state.object_store = services.object_store
        request.state.record_store = services.record_store
    response: Response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

app.include_router(images_router)
app.include_router(admin_router)

if mcp_app:
    app.mount("/mcp", mcp_app)
    logger.info("MCP server mounted at /mcp")


@app.get("/health", tags=["health"])
async def health():
    """Service health check."""
    return {
        "status": "ok" if services is not None else "starting",
        "service": "image-portal",
        "version": config.VERSION,
        "project": config.GCP_PROJECT,
        "bucket": config.IMAGE_BUCKET,
        "collection": config.QUESTIONS_COLLECTION,
        "mcp_endpoint": "/mcp" if mcp_app else None,
    }
