"""
crmbridge - CRM schema bridge

FastAPI application entry point.

Run with:
    uvicorn crmbridge.app.main:app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI

from crmbridge import __version__
from crmbridge.app.api import router
from crmbridge.app.dependencies import (
    get_registry,
    get_settings,
    initialize_services,
    shutdown_services,
)
from crmbridge.registry import EndpointRegistry

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting crmbridge services...")
    try:
        await initialize_services()
        logger.info("crmbridge services initialized")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down crmbridge services...")
    try:
        await shutdown_services()
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


app = FastAPI(
    title="crmbridge",
    description="Runtime schema-introspection adapter exposing CRM record types as callable operations",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

app.include_router(router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": settings.service_name,
        "version": __version__,
        "status": "running",
    }


@app.get("/health", tags=["health"])
async def health_check(
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """Health check: whether any endpoint is registered and how many operations exist."""
    return {
        "status": "healthy",
        "initialized": registry.is_initialized,
        "endpoints": registry.endpoint_ids(),
        "total_tools": registry.catalog.count(),
    }
