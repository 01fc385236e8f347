"""
FastAPI application entry point.

create_app() builds the API around an explicit Settings object and its
collaborators; run() is the process entry point that validates configuration
before the HTTP listener is started.
"""
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from pdf_compressor import __version__
from pdf_compressor.api.compress import NO_FILE_MESSAGE
from pdf_compressor.api.router import api_router
from pdf_compressor.config import ConfigurationError, Settings, load_settings
from pdf_compressor.middleware.body_limit_middleware import (
    BodySizeLimitMiddleware,
    RequestBodyTooLarge,
    request_body_too_large_handler,
)
from pdf_compressor.middleware.metrics_middleware import MetricsMiddleware
from pdf_compressor.services.compress_upload import CompressUploadError, CompressUploadService
from pdf_compressor.services.compression import GhostscriptCompressor
from pdf_compressor.storage.object_store import ObjectStorageClient
from pdf_compressor.utils.logging import configure_logging

SERVICE_NAME = "pdf-compressor"
GENERIC_ERROR_MESSAGE = "Internal server error"

logger = logging.getLogger(__name__)


async def compress_upload_error_handler(request: Request, exc: CompressUploadError):
    """Render a CompressUploadError as {"error": ..., **extra}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, **exc.extra}
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """
    Render form validation errors as 400 {"error": ...}.

    A `file` field that is not a file part counts as no file uploaded.
    """
    errors = exc.errors()
    if any(tuple(error.get("loc", ())) == ("body", "file") for error in errors):
        return await compress_upload_error_handler(request, CompressUploadError(400, NO_FILE_MESSAGE))

    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def unhandled_error_handler(request: Request, exc: Exception):
    """Last-resort handler for exceptions no route translated."""
    logger.error(
        f"Unexpected server error: {exc}",
        exc_info=exc,
        extra={"event": "unhandled_error", "path": request.url.path}
    )
    return JSONResponse(status_code=500, content={"error": GENERIC_ERROR_MESSAGE})


def create_app(
    settings: Settings,
    storage: Optional[ObjectStorageClient] = None,
    compressor: Optional[GhostscriptCompressor] = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Loaded settings
        storage: Storage client (built from settings when omitted)
        compressor: Compressor (Ghostscript binary from settings when omitted)

    Returns:
        Configured FastAPI app
    """
    if storage is None:
        storage = ObjectStorageClient(settings)
    if compressor is None:
        compressor = GhostscriptCompressor(settings.ghostscript_binary)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup/shutdown events.
        - Startup: make sure the temp directory exists
        """
        settings.ensure_tmp_dir()
        logger.info(
            f"PDF compressor service listening on port {settings.port}",
            extra={"event": "startup", "bucket": settings.storage_bucket, "tmp_dir": str(settings.tmp_dir)}
        )
        yield

    app = FastAPI(
        title="PDF Compressor API",
        description="Compresses uploaded PDFs with Ghostscript and stores them in object storage",
        version=__version__,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.compress_service = CompressUploadService(settings, storage, compressor)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_input_bytes)

    # Metrics middleware (added last so it also counts 413s from the body limit)
    app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(CompressUploadError, compress_upload_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RequestBodyTooLarge, request_body_too_large_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    return app


def run() -> None:
    """
    Process entry point.

    Exits with status 1, before any socket is bound, when required
    environment variables are missing.
    """
    try:
        settings = load_settings()
    except ConfigurationError as e:
        configure_logging(SERVICE_NAME)
        logger.error(str(e), extra={"event": "configuration_error", "missing": e.missing})
        sys.exit(1)

    configure_logging(SERVICE_NAME, settings.log_level)

    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
