"""FastAPI application factory for the XSD Catalog service."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from xsdcatalog import __version__
from xsdcatalog.api.deps import init_validation_service, reset_validation_service
from xsdcatalog.api.middleware import RequestBodyLimitMiddleware, RequestTimingMiddleware
from xsdcatalog.api.routers import catalog, validation
from xsdcatalog.api.schemas import HealthResponse
from xsdcatalog.service.validation import ValidationService
from xsdcatalog.settings import Settings

logger = logging.getLogger("xsdcatalog.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Prepare the catalog root and the ValidationService alongside the application."""
    settings: Settings = app.state.settings
    if not settings.catalog_root.exists():
        logger.info("Creating catalog root %s", settings.catalog_root)
        settings.catalog_root.mkdir(parents=True, exist_ok=True)
    init_validation_service(ValidationService(settings))
    try:
        yield
    finally:
        reset_validation_service()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="XSD Catalog",
        description="Browse a catalog of XML Schemas and validate XML documents against them.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Middleware
    app.add_middleware(RequestBodyLimitMiddleware)
    app.add_middleware(RequestTimingMiddleware)

    app.include_router(catalog.router, tags=["catalog"])
    app.include_router(validation.router, tags=["validation"])

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    return app


def main() -> None:
    """Run the REST API server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger.info(
        "XSD Catalog API Server v%s starting (host=%s, port=%d, catalog=%s)",
        __version__, settings.api_server_host, settings.effective_port, settings.catalog_root,
    )

    uvicorn.run(
        "xsdcatalog.api.app:create_app",
        factory=True,
        host=settings.api_server_host,
        port=settings.effective_port,
        log_level=settings.log_level.lower(),
    )
