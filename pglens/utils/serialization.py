"""Conversion of database values into JSON-safe values."""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

# Types the response serializer already renders
_PASSTHROUGH_TYPES = (str, int, float, bool, Decimal, datetime, date, time, timedelta, UUID)


def bytes_to_text(value: bytes | bytearray | memoryview) -> str:
    """Hex form used by PostgreSQL for bytea, e.g. ``\\x0a1b``."""
    if isinstance(value, memoryview):
        value = value.tobytes()
    return "\\x" + bytes(value).hex()


def jsonable_value(value: Any) -> Any:
    """
    Make a column value serializable.

    bytea becomes its ``\\x`` hex text; ranges, intervals from other drivers,
    network types and anything else unknown fall back to ``str(value)``.
    """
    if value is None or isinstance(value, _PASSTHROUGH_TYPES):
        return value
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes_to_text(value)
    if isinstance(value, dict):
        return {str(k): jsonable_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [jsonable_value(v) for v in value]
    return str(value)


def jsonable_row(row: dict[str, Any]) -> dict[str, Any]:
    return {key: jsonable_value(value) for key, value in row.items()}
