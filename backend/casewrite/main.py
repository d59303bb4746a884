"""
CaseWrite Webhook API
FastAPI application that ingests document webhooks and feeds the document pipeline.

Run with:
    uvicorn casewrite.main:app --port 8000
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from casewrite.config import Settings
from casewrite.models.webhook import ErrorResponse, SourceType
from casewrite.routers import documents, webhooks
from casewrite.services.document_pipeline import DocumentPipeline, InMemoryDocumentStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Send log output to the console at the configured level."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse.build(str(exc.detail), exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse.build("Internal server error", 500),
    )


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[DocumentPipeline] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Settings default to ``Settings.from_env()``; the pipeline defaults to a
    DocumentPipeline over a fresh in-memory store. Both are kept on app.state
    and reach the routers through dependencies.
    """
    if settings is None:
        settings = Settings.from_env()
    if pipeline is None:
        pipeline = DocumentPipeline(
            store=InMemoryDocumentStore(),
            fetch_timeout=settings.document_fetch_timeout,
        )

    configure_logging(settings.log_level)

    app = FastAPI(
        title="CaseWrite Webhook API",
        description="Signed document webhooks from email, scanners and external systems",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.pipeline = pipeline

    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])
    app.include_router(documents.router, prefix="/api/documents", tags=["documents"])

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.on_event("startup")
    async def log_startup() -> None:
        """
        Log where the API listens and which webhook sources accept unsigned requests.

        The port shown comes from ``HOST_PORT`` so Docker-mapped ports are
        reported correctly. Defaults to 8000.
        """
        host_port = os.getenv("HOST_PORT", "8000")
        logger.info("CaseWrite webhook API running at http://localhost:%s", host_port)
        for source in SourceType:
            if not settings.webhook_secrets.is_enforced(source.value):
                logger.warning(
                    f"No webhook secret configured for {source.value!r}; "
                    "signature verification is skipped for this source"
                )

    return app


app = create_app()
