"""
Operation Catalog.

In-memory store of synthesized operation descriptors, per endpoint.

Concurrency:
    replace_all() is the only way to install descriptors. It builds the
    new entry completely, then swaps it into a fresh mapping under a lock
    (copy-on-write). Readers take a reference to the current mapping and
    never see a half-replaced endpoint. An execute that already resolved
    a descriptor keeps using it even if a refresh lands meanwhile.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType

from crmbridge.tools.descriptors import OperationDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """All descriptors of one endpoint, plus a name index."""

    descriptors: tuple[OperationDescriptor, ...]
    by_name: Mapping[str, OperationDescriptor]
    built_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def build(cls, descriptors: Iterable[OperationDescriptor]) -> CatalogEntry:
        ordered = tuple(descriptors)
        index: dict[str, OperationDescriptor] = {}
        for descriptor in ordered:
            # Last write wins on a name clash
            index[descriptor.name] = descriptor
        return cls(descriptors=ordered, by_name=MappingProxyType(index))


class OperationCatalog:
    """
    Operation descriptors keyed by endpoint id.

    Example:
        catalog = OperationCatalog()
        catalog.replace_all("contoso_crm_dynamics_com", descriptors)
        op = catalog.find_by_name("contoso_crm_dynamics_com", "read_account")
    """

    def __init__(self) -> None:
        self._entries: Mapping[str, CatalogEntry] = MappingProxyType({})
        self._lock = threading.Lock()

    def replace_all(
        self, endpoint_id: str, descriptors: Iterable[OperationDescriptor]
    ) -> None:
        """Install a complete descriptor set for an endpoint, replacing any previous one."""
        entry = CatalogEntry.build(descriptors)
        with self._lock:
            entries = dict(self._entries)
            entries[endpoint_id] = entry
            self._entries = MappingProxyType(entries)
        logger.info(
            f"[catalog] {endpoint_id}: {len(entry.descriptors)} operations installed"
        )

    def remove(self, endpoint_id: str) -> int:
        """
        Drop an endpoint's descriptors.

        Returns:
            Number of descriptors removed (0 if the endpoint was unknown)
        """
        with self._lock:
            if endpoint_id not in self._entries:
                return 0
            entries = dict(self._entries)
            entry = entries.pop(endpoint_id)
            self._entries = MappingProxyType(entries)
        logger.info(f"[catalog] {endpoint_id}: removed {len(entry.descriptors)} operations")
        return len(entry.descriptors)

    def get(self, endpoint_id: str) -> tuple[OperationDescriptor, ...]:
        """Descriptors for an endpoint, in synthesis order (empty if absent)."""
        entry = self._entries.get(endpoint_id)
        return entry.descriptors if entry else ()

    def find_by_name(self, endpoint_id: str, name: str) -> OperationDescriptor | None:
        entry = self._entries.get(endpoint_id)
        if entry is None:
            return None
        return entry.by_name.get(name)

    def has_endpoint(self, endpoint_id: str) -> bool:
        return endpoint_id in self._entries

    def built_at(self, endpoint_id: str) -> datetime | None:
        entry = self._entries.get(endpoint_id)
        return entry.built_at if entry else None

    def grouped_by_record_type(
        self, endpoint_id: str
    ) -> dict[str, list[OperationDescriptor]]:
        """Descriptors grouped by record type, computed on read."""
        groups: dict[str, list[OperationDescriptor]] = {}
        for descriptor in self.get(endpoint_id):
            groups.setdefault(descriptor.record_type, []).append(descriptor)
        return groups

    def endpoint_ids(self) -> list[str]:
        return list(self._entries.keys())

    def count(self, endpoint_id: str | None = None) -> int:
        """Descriptor count for one endpoint, or across all of them."""
        entries = self._entries
        if endpoint_id is not None:
            entry = entries.get(endpoint_id)
            return len(entry.descriptors) if entry else 0
        return sum(len(entry.descriptors) for entry in entries.values())

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, endpoint_id: str) -> bool:
        return self.has_endpoint(endpoint_id)
