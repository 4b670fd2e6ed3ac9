"""
Pydantic models for the metadata API.

The remote platform reports metadata in PascalCase with localized labels
and managed properties wrapped in objects:

    {
        "LogicalName": "name",
        "DisplayName": {"UserLocalizedLabel": {"Label": "Account Name"}},
        "RequiredLevel": {"Value": "ApplicationRequired"},
        ...
    }

These models flatten that into immutable snapshots of one introspection
pass. Both the wrapped and the plain form are accepted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Enums
# =============================================================================


class DataKind(str, Enum):
    """Kind of value a field holds."""

    TEXT = "text"
    LARGE_TEXT = "large_text"
    INTEGER = "integer"
    BIG_INTEGER = "big_integer"
    DECIMAL = "decimal"
    DOUBLE = "double"
    CURRENCY = "currency"
    BOOLEAN = "boolean"
    DATE_TIME = "date_time"
    REFERENCE = "reference"
    CHOICE = "choice"
    STATE = "state"
    STATUS = "status"
    OTHER = "other"

    @classmethod
    def from_remote(cls, value: str | None) -> DataKind:
        """Convert a remote AttributeType name to a DataKind, with fallback."""
        if not value:
            return cls.OTHER
        key = value.strip().lower()
        kind = _REMOTE_KINDS.get(key)
        if kind is not None:
            return kind
        try:
            return cls(key)
        except ValueError:
            return cls.OTHER


_REMOTE_KINDS: dict[str, DataKind] = {
    "string": DataKind.TEXT,
    "memo": DataKind.LARGE_TEXT,
    "integer": DataKind.INTEGER,
    "bigint": DataKind.BIG_INTEGER,
    "decimal": DataKind.DECIMAL,
    "double": DataKind.DOUBLE,
    "money": DataKind.CURRENCY,
    "boolean": DataKind.BOOLEAN,
    "datetime": DataKind.DATE_TIME,
    "lookup": DataKind.REFERENCE,
    "picklist": DataKind.CHOICE,
    "state": DataKind.STATE,
    "status": DataKind.STATUS,
}


class RequiredLevel(str, Enum):
    """How strongly the platform requires a field on create."""

    NONE = "none"
    RECOMMENDED = "recommended"
    APPLICATION_REQUIRED = "application_required"
    SYSTEM_REQUIRED = "system_required"

    @classmethod
    def from_remote(cls, value: str | None) -> RequiredLevel:
        """Convert 'ApplicationRequired' etc. to a RequiredLevel, with fallback."""
        key = (value or "").strip().lower()
        return {
            "recommended": cls.RECOMMENDED,
            "applicationrequired": cls.APPLICATION_REQUIRED,
            "application_required": cls.APPLICATION_REQUIRED,
            "systemrequired": cls.SYSTEM_REQUIRED,
            "system_required": cls.SYSTEM_REQUIRED,
        }.get(key, cls.NONE)

    @property
    def is_required(self) -> bool:
        return self in (RequiredLevel.APPLICATION_REQUIRED, RequiredLevel.SYSTEM_REQUIRED)


# =============================================================================
# Helpers
# =============================================================================


def _label_text(value: Any) -> str | None:
    """Extract text from a plain string or a localized Label object."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        user_label = value.get("UserLocalizedLabel")
        if isinstance(user_label, dict) and user_label.get("Label"):
            return user_label["Label"]
        for label in value.get("LocalizedLabels") or []:
            if isinstance(label, dict) and label.get("Label"):
                return label["Label"]
        return None
    raise ValueError(f"Unexpected label value: {value!r}")


def _managed_value(value: Any) -> Any:
    """Unwrap {'Value': x} managed properties."""
    if isinstance(value, dict):
        return value.get("Value")
    return value


# =============================================================================
# Metadata Models
# =============================================================================


class RecordTypeDescriptor(BaseModel):
    """A remote record type (entity definition)."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    logical_name: str = Field(..., alias="LogicalName", min_length=1)
    display_name: str | None = Field(None, alias="DisplayName")
    description: str | None = Field(None, alias="Description")
    collection_name: str | None = Field(None, alias="EntitySetName")

    @field_validator("display_name", "description", mode="before")
    @classmethod
    def _flatten_label(cls, value: Any) -> str | None:
        return _label_text(value)

    @property
    def label(self) -> str:
        """Display name, falling back to the logical name."""
        return self.display_name or self.logical_name


class FieldDescriptor(BaseModel):
    """A single field (attribute) of a record type."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    logical_name: str = Field(..., alias="LogicalName", min_length=1)
    display_name: str | None = Field(None, alias="DisplayName")
    description: str | None = Field(None, alias="Description")
    data_kind: DataKind = Field(DataKind.OTHER, alias="AttributeType")
    creatable: bool = Field(False, alias="IsValidForCreate")
    readable: bool = Field(False, alias="IsValidForRead")
    updatable: bool = Field(False, alias="IsValidForUpdate")
    requiredness: RequiredLevel = Field(RequiredLevel.NONE, alias="RequiredLevel")

    @field_validator("display_name", "description", mode="before")
    @classmethod
    def _flatten_label(cls, value: Any) -> str | None:
        return _label_text(value)

    @field_validator("data_kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> DataKind:
        if isinstance(value, DataKind):
            return value
        return DataKind.from_remote(value)

    @field_validator("requiredness", mode="before")
    @classmethod
    def _parse_required(cls, value: Any) -> RequiredLevel:
        if isinstance(value, RequiredLevel):
            return value
        return RequiredLevel.from_remote(_managed_value(value))

    @field_validator("creatable", "readable", "updatable", mode="before")
    @classmethod
    def _null_is_false(cls, value: Any) -> Any:
        value = _managed_value(value)
        return False if value is None else value

    @property
    def label(self) -> str:
        """Display name, falling back to the logical name."""
        return self.display_name or self.logical_name

    @property
    def is_required(self) -> bool:
        return self.requiredness.is_required


class ODataCollection(BaseModel):
    """OData collection envelope: {"value": [...], "@odata.nextLink": ...}."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    value: list[dict[str, Any]]
    next_link: str | None = Field(None, alias="@odata.nextLink")
