"""
Catalog Operation Tool.

Wraps one synthesized OperationDescriptor as a Tool so the catalog can be
exported to MCP/LLM tool-calling hosts. The descriptor, session and
executor are captured at creation time; a later refresh installs new
descriptors but does not affect tools already handed out.
"""

from __future__ import annotations

import logging
from typing import Any

from crmbridge.errors import CrmBridgeError
from crmbridge.session import EndpointSession
from crmbridge.tools.base import ContentBlock, Tool, ToolAnnotations, ToolResult
from crmbridge.tools.descriptors import OperationDescriptor, Verb
from crmbridge.tools.executor import OperationExecutor

logger = logging.getLogger(__name__)


class CatalogOperationTool(Tool):
    """A Tool backed by a catalog descriptor."""

    def __init__(
        self,
        descriptor: OperationDescriptor,
        session: EndpointSession,
        executor: OperationExecutor | None = None,
    ):
        self._descriptor = descriptor
        self._session = session
        self._executor = executor or OperationExecutor()

    @property
    def descriptor(self) -> OperationDescriptor:
        return self._descriptor

    @property
    def endpoint_id(self) -> str:
        return self._session.id

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def description(self) -> str:
        return self._descriptor.description or f"{self._descriptor.verb.value} {self._descriptor.record_type}"

    @property
    def input_schema(self) -> dict[str, Any]:
        return self._descriptor.input_schema

    @property
    def annotations(self) -> ToolAnnotations:
        """Hints derived from the HTTP method."""
        method = self._descriptor.http_method
        return ToolAnnotations(
            title=self._descriptor.description or self._descriptor.name,
            read_only_hint=method == "GET",
            destructive_hint=method == "DELETE",
            idempotent_hint=method in ("GET", "PATCH", "DELETE"),
            open_world_hint=True,
        )

    async def execute(self, arguments: dict[str, Any]) -> ToolResult:
        try:
            data = await self._executor.execute(self._session, self._descriptor, arguments)
        except CrmBridgeError as e:
            logger.warning(f"[operation_tool:{self.name}] {e}")
            structured: dict[str, Any] = {"error": e.message}
            if e.status_code is not None:
                structured["status_code"] = e.status_code
            if e.response_body:
                structured["response_body"] = e.response_body[:500]
            return ToolResult.error(str(e), structured=structured)

        structured_data = data if isinstance(data, dict) else {"value": data}
        links = None
        entity_url = structured_data.get("entity_id")
        if self._descriptor.verb is Verb.CREATE and entity_url:
            links = (ContentBlock.from_resource_link(entity_url, name=self._descriptor.record_type),)
        return ToolResult.success(
            text=_format_success(self._descriptor, structured_data),
            structured=structured_data,
            additional_content=links,
        )


def _format_success(descriptor: OperationDescriptor, data: dict[str, Any]) -> str:
    """Short human-readable summary of a successful call."""
    if isinstance(data.get("value"), list):
        count = len(data["value"])
        return f"{descriptor.name}: {count} record{'s' if count != 1 else ''}"
    if "message" in data:
        return f"{descriptor.name}: {data['message']}"
    if descriptor.verb is Verb.CREATE:
        return f"{descriptor.name}: created {data.get('id') or 'record'}"
    return f"{descriptor.name}: ok"
