"""
Operation synthesis, storage and execution.

    mapper       - data kind -> JSON-Schema primitive
    descriptors  - Verb, InputContract, OperationDescriptor
    synthesizer  - record type + fields -> descriptors
    catalog      - per-endpoint descriptor store
    executor     - descriptor + arguments -> HTTP call
    base / operation_tool - MCP-aligned Tool export
"""

from crmbridge.tools.base import ContentBlock, Tool, ToolAnnotations, ToolResult
from crmbridge.tools.catalog import OperationCatalog
from crmbridge.tools.descriptors import (
    ContractProperty,
    InputContract,
    OperationDescriptor,
    Verb,
)
from crmbridge.tools.executor import OperationExecutor, PreparedRequest
from crmbridge.tools.mapper import PrimitiveType, map_data_kind
from crmbridge.tools.operation_tool import CatalogOperationTool
from crmbridge.tools.synthesizer import MAX_SEARCH_FIELDS, synthesize

__all__ = [
    "CatalogOperationTool",
    "ContentBlock",
    "ContractProperty",
    "InputContract",
    "MAX_SEARCH_FIELDS",
    "OperationCatalog",
    "OperationDescriptor",
    "OperationExecutor",
    "PreparedRequest",
    "PrimitiveType",
    "Tool",
    "ToolAnnotations",
    "ToolResult",
    "Verb",
    "map_data_kind",
    "synthesize",
]
