"""
Operation Executor.

Renders a descriptor plus caller arguments into one HTTP request against
an EndpointSession, sends it, and interprets the response. Single shot:
no retries, no paging, no partial-failure handling.

    create  POST   {collection}              body = arguments
    read    GET    {collection}({id})
    update  PATCH  {collection}({id})         body = arguments without id
    delete  DELETE {collection}({id})
    list    GET    {collection}?$filter&$select&$top&$orderby
    search  GET    {collection}?$filter=<field match>&$top=50

Search values are embedded as OData string literals with single quotes
doubled. The list `filter` argument is an expression fragment and is
passed through as given (URL-escaped only).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from crmbridge.errors import RemoteCallError, ValidationError
from crmbridge.session import EndpointSession
from crmbridge.tools.descriptors import OperationDescriptor, Verb
from crmbridge.tools.synthesizer import DEFAULT_TOP, MAX_TOP

logger = logging.getLogger(__name__)

SEARCH_TOP = 50

_ENTITY_ID_PATTERN = re.compile(r"\(([^()]+)\)\s*$")


@dataclass(frozen=True, slots=True)
class PreparedRequest:
    """A rendered request, relative to the Web API root."""

    method: str
    path: str
    body: dict[str, Any] | None = None


# =============================================================================
# Argument helpers
# =============================================================================


def parse_top(value: Any) -> int:
    """
    Parse a `top` argument.

    Integers and integer strings are accepted. Anything else, or a value
    below 1, gives DEFAULT_TOP. Values above MAX_TOP are clamped.
    """
    if isinstance(value, bool) or value is None:
        return DEFAULT_TOP
    if isinstance(value, float):
        if not value.is_integer():
            return DEFAULT_TOP
        value = int(value)
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            return DEFAULT_TOP
    if not isinstance(value, int) or value < 1:
        return DEFAULT_TOP
    return min(value, MAX_TOP)


def parse_flag(value: Any) -> bool:
    """True for True or the string "true" (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def odata_literal(value: str) -> str:
    """Quote a value as an OData string literal."""
    return "'" + value.replace("'", "''") + "'"


def build_query(params: list[tuple[str, Any]]) -> str:
    """Join query options, URL-escaping each value. None values are skipped."""
    parts = [
        f"${key}={quote(str(value), safe='')}"
        for key, value in params
        if value is not None and value != ""
    ]
    return "&".join(parts)


def _require_id(descriptor: OperationDescriptor, arguments: dict[str, Any]) -> str:
    value = arguments.get("id")
    record_id = "" if value is None else str(value).strip()
    if not record_id:
        raise ValidationError(f"id required for {descriptor.name}")
    return quote(record_id, safe="'=,")


# =============================================================================
# Executor
# =============================================================================


class OperationExecutor:
    """
    Executes synthesized operations.

    Example:
        executor = OperationExecutor()
        result = await executor.execute(session, descriptor, {"name": "Acme"})
    """

    def __init__(self) -> None:
        self._builders: dict[
            Verb, Callable[[OperationDescriptor, dict[str, Any]], PreparedRequest]
        ] = {
            Verb.CREATE: self._build_create,
            Verb.READ: self._build_read,
            Verb.UPDATE: self._build_update,
            Verb.DELETE: self._build_delete,
            Verb.LIST: self._build_list,
            Verb.SEARCH: self._build_search,
        }

    def prepare(
        self,
        descriptor: OperationDescriptor,
        arguments: dict[str, Any] | None,
    ) -> PreparedRequest:
        """
        Validate arguments and render the request without sending it.

        Raises:
            ValidationError: If a precondition fails (missing id, missing search value)
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValidationError(
                f"Arguments for {descriptor.name} must be a JSON object"
            )
        return self._builders[descriptor.verb](descriptor, arguments)

    async def execute(
        self,
        session: EndpointSession,
        descriptor: OperationDescriptor,
        arguments: dict[str, Any] | None,
    ) -> Any:
        """
        Execute one operation.

        Returns:
            The parsed JSON body for create/read/list/search, or an
            acknowledgment dict for update/delete and body-less creates.
            Any other empty success body yields {}.

        Raises:
            ValidationError: Arguments failed a precondition (nothing was sent)
            RemoteCallError: Transport failure or non-success status
        """
        request = self.prepare(descriptor, arguments)
        logger.info(
            f"[executor:{session.id}] {descriptor.name}: {request.method} {request.path}"
        )

        try:
            response = await session.send(request.method, request.path, json=request.body)
        except httpx.HTTPError as e:
            logger.error(f"[executor:{session.id}] {descriptor.name} transport error: {e}")
            raise RemoteCallError(f"Request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.warning(
                f"[executor:{session.id}] {descriptor.name} failed "
                f"({response.status_code}): {body[:500]}"
            )
            raise RemoteCallError(
                f"{request.method} {request.path} failed",
                status_code=response.status_code,
                response_body=body,
            )

        return self._interpret(descriptor, response)

    # -------------------------------------------------------------------------
    # Request builders
    # -------------------------------------------------------------------------

    def _build_create(
        self, descriptor: OperationDescriptor, arguments: dict[str, Any]
    ) -> PreparedRequest:
        return PreparedRequest(
            descriptor.http_method, descriptor.render_path(), dict(arguments)
        )

    def _build_read(
        self, descriptor: OperationDescriptor, arguments: dict[str, Any]
    ) -> PreparedRequest:
        record_id = _require_id(descriptor, arguments)
        return PreparedRequest(descriptor.http_method, descriptor.render_path(record_id))

    def _build_update(
        self, descriptor: OperationDescriptor, arguments: dict[str, Any]
    ) -> PreparedRequest:
        record_id = _require_id(descriptor, arguments)
        body = {key: value for key, value in arguments.items() if key != "id"}
        return PreparedRequest(
            descriptor.http_method, descriptor.render_path(record_id), body
        )

    def _build_delete(
        self, descriptor: OperationDescriptor, arguments: dict[str, Any]
    ) -> PreparedRequest:
        record_id = _require_id(descriptor, arguments)
        return PreparedRequest(descriptor.http_method, descriptor.render_path(record_id))

    def _build_list(
        self, descriptor: OperationDescriptor, arguments: dict[str, Any]
    ) -> PreparedRequest:
        query = build_query(
            [
                ("filter", arguments.get("filter")),
                ("select", arguments.get("select")),
                ("top", parse_top(arguments.get("top"))),
                ("orderby", arguments.get("orderby")),
            ]
        )
        return PreparedRequest(descriptor.http_method, f"{descriptor.render_path()}?{query}")

    def _build_search(
        self, descriptor: OperationDescriptor, arguments: dict[str, Any]
    ) -> PreparedRequest:
        field = descriptor.search_field
        if not field:
            raise ValidationError(f"{descriptor.name} has no search field")

        value = arguments.get(field)
        if value is None:
            raise ValidationError(f"'{field}' is required for {descriptor.name}")

        literal = odata_literal(str(value))
        if parse_flag(arguments.get("exactMatch")):
            expression = f"{field} eq {literal}"
        else:
            expression = f"contains({field}, {literal})"

        query = build_query([("filter", expression), ("top", SEARCH_TOP)])
        return PreparedRequest(descriptor.http_method, f"{descriptor.render_path()}?{query}")

    # -------------------------------------------------------------------------
    # Response handling
    # -------------------------------------------------------------------------

    def _interpret(self, descriptor: OperationDescriptor, response: httpx.Response) -> Any:
        if descriptor.verb is Verb.UPDATE:
            return {"success": True, "message": "Record updated successfully"}
        if descriptor.verb is Verb.DELETE:
            return {"success": True, "message": "Record deleted successfully"}

        text = response.text
        if response.status_code == 204 or not text:
            if descriptor.verb is not Verb.CREATE:
                return {}
            entity_url = response.headers.get("OData-EntityId")
            match = _ENTITY_ID_PATTERN.search(entity_url or "")
            return {
                "success": True,
                "id": match.group(1) if match else None,
                "entity_id": entity_url,
            }

        try:
            return response.json()
        except ValueError:
            return {"success": True, "content": text}
