"""
Dependency Injection for crmbridge.

Owns the process-wide EndpointRegistry and the shared HTTP client. Both
are created in initialize_services() and torn down in shutdown_services(),
which the application lifespan calls.
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

import httpx

from crmbridge.config.settings import BridgeSettings
from crmbridge.registry import EndpointRegistry

logger = logging.getLogger(__name__)


@lru_cache()
def get_settings() -> BridgeSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return BridgeSettings.from_env()


# Global instances (created by initialize_services)
_http_client: Optional[httpx.AsyncClient] = None
_registry: Optional[EndpointRegistry] = None


def get_registry() -> EndpointRegistry:
    """
    Get the endpoint registry.

    Creates an unconnected registry if services were not initialized.
    """
    global _registry
    if _registry is None:
        _registry = EndpointRegistry(settings=get_settings(), http_client=_http_client)
    return _registry


async def initialize_services() -> None:
    """Create the shared client and registry; connect the configured endpoint."""
    global _http_client, _registry
    settings = get_settings()

    _http_client = httpx.AsyncClient(timeout=settings.request_timeout)
    _registry = EndpointRegistry(settings=settings, http_client=_http_client)

    if settings.connection_string is None:
        logger.info("No connection string configured; waiting for endpoint registration")
        return

    result = await _registry.initialize()
    if result.success:
        logger.info(result.message)
    else:
        # Not fatal: the registry stays "not initialized" and reports it
        logger.error(f"Endpoint initialization failed: {result.message}")


async def shutdown_services() -> None:
    """Close the registry and the shared HTTP client."""
    global _http_client, _registry
    if _registry is not None:
        await _registry.close()
        _registry = None
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
