"""
Bridge API routes.

Thin HTTP wrapper over EndpointRegistry. Every handler returns the
registry's result dict; failures come back as 200 with success=false so
clients see one response shape. Malformed request bodies are rejected
by FastAPI with 422.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from crmbridge.app.dependencies import get_registry
from crmbridge.registry import EndpointRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bridge"])


# =============================================================================
# Request models
# =============================================================================


class RegisterEndpointRequest(BaseModel):
    base_url: str = Field(..., min_length=1, description="Instance URL")
    bearer_token: str = Field(..., min_length=1, description="Access token")
    endpoint_id: str | None = Field(None, description="Explicit endpoint id")
    record_types: list[str] | None = Field(
        None, description="Restrict introspection to these record types"
    )


class InitializeRequest(BaseModel):
    connection_string: str | None = Field(
        None, description="Connection string (defaults to the configured one)"
    )


class ExecuteOperationRequest(BaseModel):
    arguments: dict[str, Any] = Field(default_factory=dict)
    endpoint_id: str | None = None


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/endpoints")
async def register_endpoint(
    body: RegisterEndpointRequest,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    result = await registry.register_endpoint(
        body.base_url,
        body.bearer_token,
        endpoint_id=body.endpoint_id,
        record_types=body.record_types,
    )
    return result.to_dict()


@router.post("/endpoints/initialize")
async def initialize_endpoint(
    body: InitializeRequest,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    result = await registry.initialize(body.connection_string)
    return result.to_dict()


@router.get("/endpoints/status")
async def all_endpoint_status(
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.get_endpoint_status()).to_dict()


@router.get("/endpoints/{endpoint_id}/status")
async def endpoint_status(
    endpoint_id: str,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.get_endpoint_status(endpoint_id)).to_dict()


@router.post("/endpoints/{endpoint_id}/refresh")
async def refresh_endpoint(
    endpoint_id: str,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.refresh_endpoint(endpoint_id)).to_dict()


@router.delete("/endpoints/{endpoint_id}")
async def unregister_endpoint(
    endpoint_id: str,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.unregister_endpoint(endpoint_id)).to_dict()


# =============================================================================
# Operations
# =============================================================================


@router.get("/operations")
async def list_operations(
    endpoint_id: str | None = None,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.list_operations(endpoint_id)).to_dict()


@router.post("/operations/{name}/execute")
async def execute_operation(
    name: str,
    body: ExecuteOperationRequest,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    result = await registry.execute_operation(
        name, body.arguments, endpoint_id=body.endpoint_id
    )
    return result.to_dict()


@router.get("/record-types")
async def summarize_record_types(
    endpoint_id: str | None = None,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.summarize_record_types(endpoint_id)).to_dict()


@router.get("/record-types/{record_type}")
async def describe_record_type(
    record_type: str,
    endpoint_id: str | None = None,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    return (await registry.describe_record_type(record_type, endpoint_id)).to_dict()


@router.get("/tools")
async def list_tools(
    endpoint_id: str | None = None,
    registry: EndpointRegistry = Depends(get_registry),
) -> dict[str, Any]:
    """MCP tool schemas for the current catalog."""
    schemas = registry.tool_schemas(endpoint_id)
    return {"success": True, "tools": schemas, "total_tools": len(schemas)}
