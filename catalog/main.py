"""
catalog/main.py

FastAPI application entry point.

Responsibilities:
  - Create the FastAPI app with metadata from config
  - Prepare the metadata store on startup, release it on shutdown
  - Register all API routers
  - Add a global exception handler for uncaught AppBaseException
  - Expose a /health endpoint for liveness probes
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from catalog.api.document_controller import error_response
from catalog.api.document_controller import router as document_router
from catalog.core.config import settings
from catalog.core.exceptions import AppBaseException
from catalog.core.logger import get_logger
from catalog.services.catalog_service import catalog_service

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    await catalog_service.records.create_schema()
    logger.info("%s %s ready.", settings.app_name, settings.app_version)
    yield
    await catalog_service.records.dispose()


# ── App instance ───────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Catalogues PDF documents with their bibliographic metadata, "
        "enforces per-owner editing rights and serves filtered, paginated listings."
    ),
    lifespan=lifespan,
)

# ── Routers ────────────────────────────────────────────────────────────────────

app.include_router(document_router)

# ── Global exception handler ───────────────────────────────────────────────────

@app.exception_handler(AppBaseException)
async def app_exception_handler(request: Request, exc: AppBaseException) -> JSONResponse:
    """
    Safety-net for any AppBaseException that escapes controller-level handling.
    Responds from the error kind only: { "error": "...", "kind": "..." }
    """
    logger.exception("Unhandled application error on %s: %s", request.url.path, exc)
    return error_response(exc)


# ── Health endpoint ────────────────────────────────────────────────────────────

@app.get("/health", tags=["Health"], summary="Liveness probe")
async def health() -> dict:
    """Returns 200 OK when the service is running."""
    return {"status": "ok", "version": settings.app_version}
