"""Remote schema introspection: metadata models and client."""

from crmbridge.schema.client import SchemaClient
from crmbridge.schema.models import (
    DataKind,
    FieldDescriptor,
    RecordTypeDescriptor,
    RequiredLevel,
)

__all__ = [
    "DataKind",
    "FieldDescriptor",
    "RecordTypeDescriptor",
    "RequiredLevel",
    "SchemaClient",
]
