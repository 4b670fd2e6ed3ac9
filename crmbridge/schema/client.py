"""
Schema Client.

Issues metadata queries against the remote platform:

    GET {api}/EntityDefinitions?$select=LogicalName,DisplayName,Description,EntitySetName
    GET {api}/EntityDefinitions(LogicalName='{name}')/Attributes?$select=...

Each call is exactly one GET restricted to the properties this package
consumes. Nothing retries; callers decide what to do with failures.

Errors:
    IntrospectionError: transport failure or non-success status
        (carries status_code and response_body)
    SchemaFormatError: the body is not the expected OData envelope
"""

from __future__ import annotations

import logging
from typing import TypeVar

import httpx
import pydantic
from pydantic import BaseModel

from crmbridge.errors import IntrospectionError, SchemaFormatError
from crmbridge.schema.models import FieldDescriptor, ODataCollection, RecordTypeDescriptor
from crmbridge.session import EndpointSession

logger = logging.getLogger(__name__)

RECORD_TYPE_SELECT = ("LogicalName", "DisplayName", "Description", "EntitySetName")
FIELD_SELECT = (
    "LogicalName",
    "DisplayName",
    "Description",
    "AttributeType",
    "IsValidForCreate",
    "IsValidForRead",
    "IsValidForUpdate",
    "RequiredLevel",
)

M = TypeVar("M", bound=BaseModel)


class SchemaClient:
    """
    Reads record types and fields from the metadata API.

    Example:
        client = SchemaClient()
        record_types = await client.list_record_types(session)
        fields = await client.list_fields(session, "account")
    """

    async def list_record_types(
        self, session: EndpointSession
    ) -> list[RecordTypeDescriptor]:
        """List every record type the endpoint exposes."""
        path = f"EntityDefinitions?$select={','.join(RECORD_TYPE_SELECT)}"
        items = await self._fetch_collection(session, path, RecordTypeDescriptor)
        logger.info(f"[schema_client:{session.id}] Found {len(items)} record types")
        return items

    async def list_fields(
        self, session: EndpointSession, record_type: str
    ) -> list[FieldDescriptor]:
        """List the fields of one record type, in the order the platform reports them."""
        name = record_type.replace("'", "''")
        path = (
            f"EntityDefinitions(LogicalName='{name}')/Attributes"
            f"?$select={','.join(FIELD_SELECT)}"
        )
        items = await self._fetch_collection(session, path, FieldDescriptor)
        logger.debug(
            f"[schema_client:{session.id}] {record_type}: {len(items)} fields"
        )
        return items

    async def _fetch_collection(
        self,
        session: EndpointSession,
        path: str,
        model: type[M],
    ) -> list[M]:
        try:
            response = await session.send("GET", path)
        except httpx.HTTPError as e:
            raise IntrospectionError(f"Metadata request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.warning(
                f"[schema_client:{session.id}] Metadata request failed "
                f"({response.status_code}): {body[:500]}"
            )
            raise IntrospectionError(
                f"Metadata request failed: GET {path}",
                status_code=response.status_code,
                response_body=body,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SchemaFormatError(
                f"Metadata response is not JSON: {e}",
                status_code=response.status_code,
                response_body=response.text,
            ) from e

        try:
            envelope = ODataCollection.model_validate(payload)
            items = [model.model_validate(item) for item in envelope.value]
        except pydantic.ValidationError as e:
            raise SchemaFormatError(
                f"Unexpected metadata shape for {model.__name__}: {e}",
                status_code=response.status_code,
            ) from e

        if envelope.next_link:
            logger.debug(
                f"[schema_client:{session.id}] Ignoring continuation link for {path}"
            )
        return items
