"""
crmbridge - runtime schema-introspection adapter for CRM Web APIs.

Connects to a remote instance's metadata API, discovers record types and
fields, and synthesizes a callable catalog of create/read/update/delete/
list/search operations per record type.

Usage:
    from crmbridge import EndpointRegistry

    async with EndpointRegistry() as registry:
        await registry.register_endpoint(url, token)
        result = await registry.execute_operation("list_account", {"top": 10})
"""

from crmbridge.errors import (
    ConfigurationError,
    CrmBridgeError,
    IntrospectionError,
    NotInitializedError,
    RemoteCallError,
    SchemaFormatError,
    TokenAcquisitionError,
    ValidationError,
)
from crmbridge.registry import EndpointRegistry
from crmbridge.results import BridgeResult
from crmbridge.session import EndpointSession

__version__ = "0.1.0"

__all__ = [
    "BridgeResult",
    "ConfigurationError",
    "CrmBridgeError",
    "EndpointRegistry",
    "EndpointSession",
    "IntrospectionError",
    "NotInitializedError",
    "RemoteCallError",
    "SchemaFormatError",
    "TokenAcquisitionError",
    "ValidationError",
]
