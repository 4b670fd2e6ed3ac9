"""
Schema-to-Contract Mapper.

Maps a field's data kind to the JSON-Schema primitive used in input
contracts. Total over every input: anything unrecognized maps to string,
since every value the platform accepts has a textual JSON form.

    text, large text, date/time, reference  -> string
    integer, big integer                    -> integer
    decimal, double, currency               -> number
    boolean                                 -> boolean
    choice, state, status                   -> integer (the numeric code)
"""

from __future__ import annotations

from enum import Enum

from crmbridge.schema.models import DataKind


class PrimitiveType(str, Enum):
    """JSON-Schema primitive types used in input contracts."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"


_PRIMITIVES: dict[DataKind, PrimitiveType] = {
    DataKind.TEXT: PrimitiveType.STRING,
    DataKind.LARGE_TEXT: PrimitiveType.STRING,
    DataKind.INTEGER: PrimitiveType.INTEGER,
    DataKind.BIG_INTEGER: PrimitiveType.INTEGER,
    DataKind.DECIMAL: PrimitiveType.NUMBER,
    DataKind.DOUBLE: PrimitiveType.NUMBER,
    DataKind.CURRENCY: PrimitiveType.NUMBER,
    DataKind.BOOLEAN: PrimitiveType.BOOLEAN,
    DataKind.DATE_TIME: PrimitiveType.STRING,
    DataKind.REFERENCE: PrimitiveType.STRING,
    DataKind.CHOICE: PrimitiveType.INTEGER,
    DataKind.STATE: PrimitiveType.INTEGER,
    DataKind.STATUS: PrimitiveType.INTEGER,
    DataKind.OTHER: PrimitiveType.STRING,
}


def map_data_kind(kind: DataKind | str | None) -> PrimitiveType:
    """
    Map a data kind (or a remote type name like "Money") to a primitive.

    Example:
        >>> map_data_kind("money")
        <PrimitiveType.NUMBER: 'number'>
        >>> map_data_kind("Uniqueidentifier")
        <PrimitiveType.STRING: 'string'>
    """
    if not isinstance(kind, DataKind):
        kind = DataKind.from_remote(kind)
    return _PRIMITIVES.get(kind, PrimitiveType.STRING)
