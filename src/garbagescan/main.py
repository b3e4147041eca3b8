"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from garbagescan.api import pages
from garbagescan.api.routes import router
from garbagescan.classifier.client import ClassificationClient
from garbagescan.config import Settings, get_settings
from garbagescan.widget.controller import ClassifyWidget
from garbagescan.widget.uploader import ImageUploader

logger = logging.getLogger(__name__)


def init_app_state(app: FastAPI, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
    """Attach settings, classifier client, uploader and widget to the app."""
    classifier = ClassificationClient(settings, transport)
    app.state.settings = settings
    app.state.classifier = classifier
    app.state.uploader = ImageUploader(settings)
    app.state.widget = ClassifyWidget(classifier, settings)


async def close_app_state(app: FastAPI) -> None:
    """Cancel the pending request and close the outbound HTTP client."""
    widget: ClassifyWidget = app.state.widget
    classifier: ClassificationClient = app.state.classifier
    await widget.shutdown()
    await classifier.aclose()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting GarbageScan (endpoint=%s, contract=%s, field=%s, max_file_size=%s)",
        settings.predict_url,
        settings.response_contract,
        settings.upload_field,
        settings.max_file_size,
    )

    init_app_state(app, settings)

    logger.info("GarbageScan ready")
    yield

    logger.info("Shutting down GarbageScan")
    await close_app_state(app)
    logger.info("GarbageScan shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="GarbageScan",
        description="Upload one image and classify it through a remote endpoint",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    application.include_router(pages.router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run("garbagescan.main:app", host=settings.host, port=settings.port, log_level="info")
