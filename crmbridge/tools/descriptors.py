"""
Operation descriptors.

An OperationDescriptor is the immutable description of one callable
action on one record type: verb, HTTP method, URL template and input
contract. Descriptors for an endpoint are created together by the
synthesizer and discarded together on refresh; none is ever updated in
place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from crmbridge.tools.mapper import PrimitiveType

ID_PLACEHOLDER = "{id}"


class Verb(str, Enum):
    """Operation verbs, one per synthesized operation kind."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    SEARCH = "search"

    @property
    def http_method(self) -> str:
        return _HTTP_METHODS[self]


_HTTP_METHODS: dict[Verb, str] = {
    Verb.CREATE: "POST",
    Verb.READ: "GET",
    Verb.UPDATE: "PATCH",
    Verb.DELETE: "DELETE",
    Verb.LIST: "GET",
    Verb.SEARCH: "GET",
}


@dataclass(frozen=True, slots=True)
class ContractProperty:
    """One input property: name, primitive type, description, optional default."""

    name: str
    type: PrimitiveType
    description: str = ""
    default: Any = None

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type.value}
        if self.description:
            schema["description"] = self.description
        if self.default is not None:
            schema["default"] = self.default
        return schema


@dataclass(frozen=True, slots=True)
class InputContract:
    """Ordered input properties plus the names that are required."""

    properties: tuple[ContractProperty, ...] = ()
    required: tuple[str, ...] = ()

    @property
    def property_names(self) -> tuple[str, ...]:
        return tuple(prop.name for prop in self.properties)

    def to_json_schema(self) -> dict[str, Any]:
        """
        Render as a JSON Schema object.

        Example:
            {
                "type": "object",
                "properties": {"id": {"type": "string", "description": "..."}},
                "required": ["id"],
            }
        """
        return {
            "type": "object",
            "properties": {
                prop.name: prop.to_json_schema() for prop in self.properties
            },
            "required": list(self.required),
        }


@dataclass(frozen=True, slots=True)
class OperationDescriptor:
    """
    Synthesized operation on one record type.

    Attributes:
        name: Unique within an endpoint, e.g. "create_account"
        record_type: Logical name of the record type
        verb: Operation kind
        http_method: HTTP method for the call
        url_template: Path relative to the Web API root; may hold {id}
        input_contract: Accepted arguments
        search_field: Target field, only for verb=search
        description: Human-readable summary
        record_type_label: Display name of the record type
        api_version: Web API version the template is relative to
    """

    name: str
    record_type: str
    verb: Verb
    http_method: str
    url_template: str
    input_contract: InputContract
    search_field: str | None = None
    description: str = ""
    record_type_label: str = ""
    api_version: str = "v9.2"

    @property
    def api_path(self) -> str:
        return f"/api/data/{self.api_version}/{self.url_template}"

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.input_contract.to_json_schema()

    def render_path(self, record_id: str | None = None) -> str:
        """Substitute {id} in the URL template."""
        if ID_PLACEHOLDER not in self.url_template:
            return self.url_template
        if record_id is None:
            raise ValueError(f"{self.name} requires an id")
        return self.url_template.replace(ID_PLACEHOLDER, record_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "record_type": self.record_type,
            "verb": self.verb.value,
            "description": self.description,
            "http_method": self.http_method,
            "api_path": self.api_path,
            "input_schema": self.input_schema,
            "search_field": self.search_field,
        }
