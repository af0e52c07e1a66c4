"""
SitePilot HTTP service.

Run with:
    uvicorn sitepilot.app.main:app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitepilot import __version__
from sitepilot.app.api import messages_router
from sitepilot.app.dependencies import (
    get_providers,
    get_settings,
    initialize_services,
    shutdown_services,
)
from sitepilot.config import AppSettings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store and clients on startup; release them on shutdown."""
    logger.info("[app] Starting up")
    await initialize_services()
    try:
        yield
    finally:
        logger.info("[app] Shutting down")
        await shutdown_services()


def create_app(settings: AppSettings) -> FastAPI:
    application = FastAPI(
        title="SitePilot",
        description="Tool-using chat assistant for managing a WordPress site",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    # The WordPress admin page embedding the chat lives on the site's own origin.
    origins = [settings.wordpress_site_url.rstrip("/")] if settings.wordpress_configured else ["*"]
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    application.include_router(messages_router, prefix="/api/v1")

    @application.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        return {"service": settings.service_name, "version": __version__, "environment": settings.environment}

    @application.get("/health", tags=["health"])
    async def health() -> dict[str, Any]:
        """Degraded when no generation provider has an API key."""
        providers = get_providers()
        return {
            "status": "healthy" if len(providers) else "degraded",
            "providers": providers.list_providers(),
            "storage": settings.storage_backend,
            "wordpress": settings.wordpress_configured,
        }

    return application


app = create_app(get_settings())
