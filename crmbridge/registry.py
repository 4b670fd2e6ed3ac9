"""
Endpoint Registry.

The public operation surface of crmbridge. One EndpointRegistry owns the
registered endpoint sessions and the operation catalog, and wires the
schema client, synthesizer and executor together:

    register_endpoint   introspect a remote instance and build its catalog
    initialize          same, from a connection string and a token provider
    list_operations     catalog grouped by endpoint and record type
    execute_operation   resolve an operation by name and call it
    refresh_endpoint    re-introspect and swap the catalog
    unregister_endpoint drop an endpoint and its operations
    get_endpoint_status per-endpoint status

Every public operation returns a BridgeResult. CrmBridgeError subclasses
(and anything unexpected) are caught here and reported as failures; none
escape to the host.

A catalog is installed only after introspection of every record type has
succeeded, so a failed refresh leaves the previous catalog in place.

Usage:
    registry = EndpointRegistry(settings=BridgeSettings.from_env())
    await registry.register_endpoint("https://contoso.crm.dynamics.com", token)

    result = await registry.execute_operation("create_account", {"name": "Acme"})
    await registry.close()
"""

from __future__ import annotations

import functools
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import httpx

from crmbridge.auth.token_provider import OAuthTokenProvider, TokenProvider
from crmbridge.config.connection_string import ConnectionString
from crmbridge.config.settings import BridgeSettings
from crmbridge.errors import (
    ConfigurationError,
    CrmBridgeError,
    NotInitializedError,
    ValidationError,
)
from crmbridge.results import BridgeResult
from crmbridge.schema.client import SchemaClient
from crmbridge.session import EndpointSession, generate_endpoint_id, normalize_base_url
from crmbridge.tools.catalog import OperationCatalog
from crmbridge.tools.descriptors import OperationDescriptor, Verb
from crmbridge.tools.executor import OperationExecutor
from crmbridge.tools.operation_tool import CatalogOperationTool
from crmbridge.tools.synthesizer import synthesize

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[BridgeResult]])


def public_operation(func: F) -> F:
    """Convert raised errors into failure results."""

    @functools.wraps(func)
    async def wrapper(self: EndpointRegistry, *args: Any, **kwargs: Any) -> BridgeResult:
        try:
            return await func(self, *args, **kwargs)
        except CrmBridgeError as e:
            logger.warning(f"[registry] {func.__name__} failed: {e}")
            return BridgeResult.from_error(e)
        except Exception as e:
            logger.error(f"[registry] {func.__name__} unexpected error: {e}", exc_info=True)
            return BridgeResult.from_error(e)

    return wrapper  # type: ignore[return-value]


def _normalize_filter(record_types: Iterable[str] | None) -> frozenset[str] | None:
    names = frozenset(name.strip().lower() for name in record_types or () if name.strip())
    return names or None


class EndpointRegistry:
    """
    Registered endpoints and their synthesized operations.

    HTTP clients:
        Pass a shared httpx.AsyncClient to pool connections; the caller
        owns and closes it. Without one, each request uses a fresh client.
    """

    def __init__(
        self,
        *,
        settings: BridgeSettings | None = None,
        schema_client: SchemaClient | None = None,
        executor: OperationExecutor | None = None,
        token_provider: TokenProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings or BridgeSettings()
        self._schema_client = schema_client or SchemaClient()
        self._executor = executor or OperationExecutor()
        self._token_provider = token_provider or OAuthTokenProvider(
            authority_host=self._settings.authority_host,
            default_tenant=self._settings.tenant_id,
            timeout=self._settings.request_timeout,
            http_client=http_client,
        )
        self._http_client = http_client
        self._catalog = OperationCatalog()
        # Registration order is significant: name lookups without an
        # endpoint id resolve against the earliest registered endpoint.
        self._sessions: dict[str, EndpointSession] = {}
        self._filters: dict[str, frozenset[str] | None] = {}

    @property
    def catalog(self) -> OperationCatalog:
        return self._catalog

    @property
    def is_initialized(self) -> bool:
        return bool(self._sessions)

    def endpoint_ids(self) -> list[str]:
        return list(self._sessions)

    def get_session(self, endpoint_id: str) -> EndpointSession | None:
        return self._sessions.get(endpoint_id)

    # =========================================================================
    # Registration
    # =========================================================================

    @public_operation
    async def register_endpoint(
        self,
        base_url: str,
        bearer_token: str,
        *,
        endpoint_id: str | None = None,
        record_types: Iterable[str] | None = None,
    ) -> BridgeResult:
        """
        Register an endpoint and build its catalog.

        Registering an id that already exists replaces its session and
        catalog, but only once the new introspection has succeeded.

        Args:
            base_url: Instance URL, e.g. https://contoso.crm.dynamics.com
            bearer_token: Access token for the instance
            endpoint_id: Explicit id (derived from the host by default)
            record_types: Restrict introspection to these logical names
        """
        return await self._register(
            base_url, bearer_token, endpoint_id=endpoint_id, record_types=record_types
        )

    @public_operation
    async def initialize(self, connection_string: str | None = None) -> BridgeResult:
        """
        Register the endpoint described by a connection string.

        Falls back to the configured connection string. Parses it,
        acquires a token, then registers.
        """
        text = connection_string
        if text is None and self._settings.connection_string is not None:
            text = self._settings.connection_string.get_secret_value()
        if not text:
            raise ConfigurationError("No connection string configured")

        credentials = ConnectionString.parse(text)
        credentials.validate()
        token = await self._token_provider.acquire_token(credentials)
        return await self._register(credentials.url, token)

    async def _register(
        self,
        base_url: str,
        bearer_token: str,
        *,
        endpoint_id: str | None = None,
        record_types: Iterable[str] | None = None,
    ) -> BridgeResult:
        url = normalize_base_url(base_url)
        endpoint_id = endpoint_id or generate_endpoint_id(url)
        session = EndpointSession(
            url,
            bearer_token,
            endpoint_id=endpoint_id,
            api_version=self._settings.api_version,
            timeout=self._settings.request_timeout,
            http_client=self._http_client,
        )
        record_filter = _normalize_filter(
            self._settings.record_types if record_types is None else record_types
        )

        logger.info(f"[registry] Registering endpoint {endpoint_id} ({url})")
        descriptors, record_type_count = await self._introspect(session, record_filter)

        self._sessions[endpoint_id] = session
        self._filters[endpoint_id] = record_filter
        self._catalog.replace_all(endpoint_id, descriptors)

        logger.info(
            f"[registry] Registered {endpoint_id}: {len(descriptors)} operations "
            f"for {record_type_count} record types"
        )
        return BridgeResult.ok(
            f"Registered endpoint {endpoint_id} with {len(descriptors)} operations",
            endpoint_id=endpoint_id,
            endpoint_url=url,
            tool_count=len(descriptors),
            record_type_count=record_type_count,
        )

    async def _introspect(
        self,
        session: EndpointSession,
        record_filter: frozenset[str] | None,
    ) -> tuple[list[OperationDescriptor], int]:
        """
        Build the full descriptor list for an endpoint.

        Record types are processed one at a time. Any failure propagates
        before anything is installed.
        """
        record_types = await self._schema_client.list_record_types(session)

        descriptors: list[OperationDescriptor] = []
        seen: set[str] = set()
        for record_type in record_types:
            name = record_type.logical_name
            if record_filter is not None and name.lower() not in record_filter:
                continue
            if not record_type.collection_name:
                logger.debug(f"[registry] Skipping {name}: no collection name")
                continue
            fields = await self._schema_client.list_fields(session, name)
            descriptors.extend(synthesize(session, record_type, fields))
            seen.add(name.lower())

        if record_filter is not None:
            missing = sorted(record_filter - seen)
            if missing:
                logger.warning(
                    f"[registry] {session.id}: record types not found: {', '.join(missing)}"
                )
        return descriptors, len(seen)

    @public_operation
    async def refresh_endpoint(self, endpoint_id: str | None = None) -> BridgeResult:
        """
        Re-introspect an endpoint and replace its catalog.

        Defaults to the first registered endpoint. On failure the
        previous catalog stays in place.
        """
        session = self._resolve_session(endpoint_id)
        previous = self._catalog.count(session.id)

        logger.info(f"[registry] Refreshing {session.id}")
        descriptors, record_type_count = await self._introspect(
            session, self._filters.get(session.id)
        )
        # The endpoint may have been unregistered or re-registered while awaiting.
        if self._sessions.get(session.id) is not session:
            raise ValidationError(
                f"Endpoint '{session.id}' was unregistered or replaced during refresh"
            )
        self._catalog.replace_all(session.id, descriptors)

        return BridgeResult.ok(
            f"Refreshed endpoint {session.id}: {len(descriptors)} operations",
            endpoint_id=session.id,
            previous_tool_count=previous,
            tool_count=len(descriptors),
            record_type_count=record_type_count,
        )

    @public_operation
    async def unregister_endpoint(self, endpoint_id: str) -> BridgeResult:
        """Remove an endpoint and all its operations."""
        if endpoint_id not in self._sessions:
            raise ValidationError(f"Endpoint '{endpoint_id}' not found")

        del self._sessions[endpoint_id]
        self._filters.pop(endpoint_id, None)
        removed = self._catalog.remove(endpoint_id)

        logger.info(f"[registry] Unregistered {endpoint_id} ({removed} operations)")
        return BridgeResult.ok(
            f"Unregistered endpoint {endpoint_id}",
            endpoint_id=endpoint_id,
            removed_tools=removed,
        )

    # =========================================================================
    # Catalog queries
    # =========================================================================

    @public_operation
    async def list_operations(self, endpoint_id: str | None = None) -> BridgeResult:
        """
        List operations grouped by endpoint, then record type.

        Lists every endpoint unless one is named.
        """
        if endpoint_id is not None:
            sessions = [self._resolve_session(endpoint_id)]
        else:
            self._require_initialized()
            sessions = list(self._sessions.values())

        endpoints = []
        for session in sessions:
            groups = self._catalog.grouped_by_record_type(session.id)
            endpoints.append(
                {
                    "endpoint_id": session.id,
                    "endpoint_url": session.base_url,
                    "tool_count": self._catalog.count(session.id),
                    "record_types": [
                        {
                            "record_type": record_type,
                            "display_name": ops[0].record_type_label,
                            "operations": [op.to_dict() for op in ops],
                        }
                        for record_type, ops in groups.items()
                    ],
                }
            )

        total = sum(endpoint["tool_count"] for endpoint in endpoints)
        return BridgeResult.ok(
            f"{total} operations across {len(endpoints)} endpoints",
            endpoints=endpoints,
            total_tools=total,
        )

    @public_operation
    async def get_endpoint_status(self, endpoint_id: str | None = None) -> BridgeResult:
        """Status of one endpoint, or of all of them."""
        if endpoint_id is not None:
            session = self._resolve_session(endpoint_id)
            return BridgeResult.ok(
                f"Endpoint {session.id} is registered", **self._status(session)
            )

        self._require_initialized()
        statuses = [self._status(session) for session in self._sessions.values()]
        return BridgeResult.ok(
            f"{len(statuses)} endpoints registered",
            endpoints=statuses,
            total_tools=self._catalog.count(),
        )

    def _status(self, session: EndpointSession) -> dict[str, Any]:
        built_at = self._catalog.built_at(session.id)
        groups = self._catalog.grouped_by_record_type(session.id)
        return {
            "endpoint_id": session.id,
            "endpoint_url": session.base_url,
            "api_version": session.api_version,
            "tool_count": self._catalog.count(session.id),
            "record_type_count": len(groups),
            "initialized_at": session.created_at.isoformat(),
            "refreshed_at": built_at.isoformat() if built_at else None,
        }

    @public_operation
    async def describe_record_type(
        self, record_type: str, endpoint_id: str | None = None
    ) -> BridgeResult:
        """Operations, capabilities and search fields of one record type."""
        session = self._resolve_session(endpoint_id)
        operations = self._catalog.grouped_by_record_type(session.id).get(record_type)
        if not operations:
            raise ValidationError(
                f"Record type '{record_type}' not found on endpoint {session.id}"
            )

        verbs = {op.verb for op in operations}
        data: dict[str, Any] = {
            "endpoint_id": session.id,
            "record_type": record_type,
            "display_name": operations[0].record_type_label,
            "operation_count": len(operations),
            "operations": [op.to_dict() for op in operations],
            "search_fields": [op.search_field for op in operations if op.search_field],
        }
        for verb in Verb:
            data[f"supports_{verb.value}"] = verb in verbs
        return BridgeResult.ok(f"Record type {record_type}", **data)

    @public_operation
    async def summarize_record_types(self, endpoint_id: str | None = None) -> BridgeResult:
        """One row per record type with its verbs and search fields."""
        session = self._resolve_session(endpoint_id)
        rows = []
        for record_type, ops in self._catalog.grouped_by_record_type(session.id).items():
            rows.append(
                {
                    "record_type": record_type,
                    "display_name": ops[0].record_type_label,
                    "operation_count": len(ops),
                    "verbs": sorted({op.verb.value for op in ops}),
                    "search_fields": [op.search_field for op in ops if op.search_field],
                }
            )
        return BridgeResult.ok(
            f"{len(rows)} record types on endpoint {session.id}",
            endpoint_id=session.id,
            record_types=rows,
            record_type_count=len(rows),
            total_tools=self._catalog.count(session.id),
        )

    # =========================================================================
    # Execution
    # =========================================================================

    @public_operation
    async def execute_operation(
        self,
        name: str,
        arguments: dict[str, Any] | str | None = None,
        endpoint_id: str | None = None,
    ) -> BridgeResult:
        """
        Execute an operation by name.

        Args:
            name: Operation name, e.g. "read_account"
            arguments: JSON object, as a dict or a JSON string
            endpoint_id: Endpoint to use; without one, the first
                registered endpoint that has the operation wins
        """
        args = _parse_arguments(arguments)
        session, descriptor = self._resolve_operation(name, endpoint_id)

        logger.info(f"[registry] Executing {name} on {session.id}")
        data = await self._executor.execute(session, descriptor, args)
        return BridgeResult.ok(
            f"Executed {name}",
            operation=name,
            endpoint_id=session.id,
            result=data,
        )

    def _resolve_operation(
        self, name: str, endpoint_id: str | None
    ) -> tuple[EndpointSession, OperationDescriptor]:
        if endpoint_id is not None:
            session = self._resolve_session(endpoint_id)
            descriptor = self._catalog.find_by_name(session.id, name)
            if descriptor is not None:
                return session, descriptor
        else:
            self._require_initialized()
            for session in list(self._sessions.values()):
                descriptor = self._catalog.find_by_name(session.id, name)
                if descriptor is not None:
                    return session, descriptor
        raise ValidationError(f"Operation '{name}' not found")

    # =========================================================================
    # Tool export
    # =========================================================================

    def get_tools(self, endpoint_id: str | None = None) -> list[CatalogOperationTool]:
        """Current operations wrapped as Tools (empty if nothing matches)."""
        if endpoint_id is not None:
            session = self._sessions.get(endpoint_id)
            sessions = [session] if session else []
        else:
            sessions = list(self._sessions.values())
        return [
            CatalogOperationTool(descriptor, session, self._executor)
            for session in sessions
            for descriptor in self._catalog.get(session.id)
        ]

    def tool_schemas(self, endpoint_id: str | None = None) -> list[dict[str, Any]]:
        """MCP schemas for every current operation."""
        return [tool.to_mcp_schema() for tool in self.get_tools(endpoint_id)]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def close(self) -> None:
        """Drop every endpoint. A shared HTTP client is left to its owner."""
        for endpoint_id in list(self._sessions):
            self._catalog.remove(endpoint_id)
        self._sessions.clear()
        self._filters.clear()
        logger.info("[registry] Closed")

    async def __aenter__(self) -> EndpointRegistry:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _require_initialized(self) -> None:
        if not self._sessions:
            raise NotInitializedError()

    def _resolve_session(self, endpoint_id: str | None) -> EndpointSession:
        """The named endpoint, or the first registered one."""
        self._require_initialized()
        if endpoint_id is None:
            return next(iter(self._sessions.values()))
        session = self._sessions.get(endpoint_id)
        if session is None:
            raise ValidationError(f"Endpoint '{endpoint_id}' not found")
        return session

    def __repr__(self) -> str:
        return f"<EndpointRegistry endpoints={len(self._sessions)} operations={self._catalog.count()}>"


def _parse_arguments(arguments: dict[str, Any] | str | None) -> dict[str, Any]:
    if arguments is None:
        return {}
    if isinstance(arguments, str):
        if not arguments.strip():
            return {}
        try:
            arguments = json.loads(arguments)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Arguments are not valid JSON: {e}") from e
    if not isinstance(arguments, dict):
        raise ValidationError("Arguments must be a JSON object")
    return arguments
