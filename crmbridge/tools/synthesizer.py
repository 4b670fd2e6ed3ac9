"""
Operation Synthesizer.

Turns one introspected record type and its fields into a fixed set of
operation descriptors:

    create_{type}            POST   {collection}
    read_{type}              GET    {collection}({id})
    update_{type}            PATCH  {collection}({id})
    delete_{type}            DELETE {collection}({id})
    list_{type}              GET    {collection}
    search_{type}_by_{field} GET    {collection}      (up to MAX_SEARCH_FIELDS)

Search candidates are readable text or reference fields, taken in the
order the metadata API reported them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from crmbridge.schema.models import DataKind, FieldDescriptor, RecordTypeDescriptor
from crmbridge.session import EndpointSession
from crmbridge.tools.descriptors import (
    ID_PLACEHOLDER,
    ContractProperty,
    InputContract,
    OperationDescriptor,
    Verb,
)
from crmbridge.tools.mapper import PrimitiveType, map_data_kind

logger = logging.getLogger(__name__)

MAX_SEARCH_FIELDS = 3
DEFAULT_TOP = 50
MAX_TOP = 5000

SEARCHABLE_KINDS = frozenset({DataKind.TEXT, DataKind.REFERENCE})


def operation_name(verb: Verb, record_type: str, field: str | None = None) -> str:
    """
    Derive an operation name.

    Example:
        >>> operation_name(Verb.READ, "account")
        'read_account'
        >>> operation_name(Verb.SEARCH, "account", "name")
        'search_account_by_name'
    """
    if verb is Verb.SEARCH:
        return f"search_{record_type}_by_{field}"
    return f"{verb.value}_{record_type}"


def search_candidates(fields: Sequence[FieldDescriptor]) -> list[FieldDescriptor]:
    """First MAX_SEARCH_FIELDS readable text/reference fields, in remote order."""
    candidates = [
        f for f in fields if f.readable and f.data_kind in SEARCHABLE_KINDS
    ]
    return candidates[:MAX_SEARCH_FIELDS]


def synthesize(
    session: EndpointSession,
    record_type: RecordTypeDescriptor,
    fields: Sequence[FieldDescriptor],
) -> list[OperationDescriptor]:
    """
    Build every operation descriptor for one record type.

    Deterministic: the same inputs always give the same descriptors in
    the same order.

    Raises:
        ValueError: If the record type has no collection name
    """
    collection = record_type.collection_name
    if not collection:
        raise ValueError(
            f"Record type '{record_type.logical_name}' has no collection name"
        )

    builder = _Builder(session.api_version, record_type, collection)
    operations = [
        builder.create(fields),
        builder.read(),
        builder.update(fields),
        builder.delete(),
        builder.list_records(),
    ]
    operations.extend(builder.search(f) for f in search_candidates(fields))
    logger.debug(
        f"[synthesizer] {record_type.logical_name}: {len(operations)} operations "
        f"from {len(fields)} fields"
    )
    return operations


def _field_property(field: FieldDescriptor) -> ContractProperty:
    return ContractProperty(
        name=field.logical_name,
        type=map_data_kind(field.data_kind),
        description=field.description or field.display_name or field.logical_name,
    )


class _Builder:
    """Per-record-type descriptor factory."""

    def __init__(
        self,
        api_version: str,
        record_type: RecordTypeDescriptor,
        collection: str,
    ):
        self._api_version = api_version
        self._type = record_type.logical_name
        self._label = record_type.label
        self._collection = collection
        self._record_path = f"{collection}({ID_PLACEHOLDER})"

    def _descriptor(
        self,
        verb: Verb,
        url_template: str,
        contract: InputContract,
        description: str,
        search_field: str | None = None,
    ) -> OperationDescriptor:
        return OperationDescriptor(
            name=operation_name(verb, self._type, search_field),
            record_type=self._type,
            verb=verb,
            http_method=verb.http_method,
            url_template=url_template,
            input_contract=contract,
            search_field=search_field,
            description=description,
            record_type_label=self._label,
            api_version=self._api_version,
        )

    def _id_property(self, description: str) -> ContractProperty:
        return ContractProperty(name="id", type=PrimitiveType.STRING, description=description)

    def create(self, fields: Sequence[FieldDescriptor]) -> OperationDescriptor:
        creatable = [f for f in fields if f.creatable]
        contract = InputContract(
            properties=tuple(_field_property(f) for f in creatable),
            required=tuple(f.logical_name for f in creatable if f.is_required),
        )
        return self._descriptor(
            Verb.CREATE,
            self._collection,
            contract,
            f"Create a new {self._label} record",
        )

    def read(self) -> OperationDescriptor:
        contract = InputContract(
            properties=(
                self._id_property(f"Unique identifier for the {self._type} record"),
            ),
            required=("id",),
        )
        return self._descriptor(
            Verb.READ,
            self._record_path,
            contract,
            f"Read a {self._label} record by ID",
        )

    def update(self, fields: Sequence[FieldDescriptor]) -> OperationDescriptor:
        properties = [self._id_property("Unique identifier for the record to update")]
        properties.extend(
            _field_property(f) for f in fields if f.updatable and f.logical_name != "id"
        )
        contract = InputContract(properties=tuple(properties), required=("id",))
        return self._descriptor(
            Verb.UPDATE,
            self._record_path,
            contract,
            f"Update an existing {self._label} record",
        )

    def delete(self) -> OperationDescriptor:
        contract = InputContract(
            properties=(
                self._id_property(
                    f"Unique identifier for the {self._type} record to delete"
                ),
            ),
            required=("id",),
        )
        return self._descriptor(
            Verb.DELETE,
            self._record_path,
            contract,
            f"Delete a {self._label} record",
        )

    def list_records(self) -> OperationDescriptor:
        contract = InputContract(
            properties=(
                ContractProperty("filter", PrimitiveType.STRING, "OData filter expression"),
                ContractProperty(
                    "select", PrimitiveType.STRING, "Comma-separated list of fields to select"
                ),
                ContractProperty(
                    "top",
                    PrimitiveType.INTEGER,
                    f"Maximum number of records to return (default: {DEFAULT_TOP}, max: {MAX_TOP})",
                    default=DEFAULT_TOP,
                ),
                ContractProperty(
                    "orderby",
                    PrimitiveType.STRING,
                    "Field to order by (append ' desc' for descending)",
                ),
            ),
        )
        return self._descriptor(
            Verb.LIST,
            self._collection,
            contract,
            f"List {self._label} records with optional filtering",
        )

    def search(self, field: FieldDescriptor) -> OperationDescriptor:
        contract = InputContract(
            properties=(
                ContractProperty(
                    field.logical_name,
                    map_data_kind(field.data_kind),
                    field.description or f"Value to search for in {field.logical_name}",
                ),
                ContractProperty(
                    "exactMatch",
                    PrimitiveType.BOOLEAN,
                    "Whether to perform exact match (true) or contains search (false, default)",
                    default=False,
                ),
            ),
            required=(field.logical_name,),
        )
        return self._descriptor(
            Verb.SEARCH,
            self._collection,
            contract,
            f"Search {self._label} records by {field.label}",
            search_field=field.logical_name,
        )
