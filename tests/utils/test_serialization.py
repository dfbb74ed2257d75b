"""Tests for converting driver values into JSON-safe values."""

from datetime import UTC, date, datetime
from decimal import Decimal
from ipaddress import IPv4Network
from uuid import UUID

import pytest
from psycopg2.extras import DateTimeTZRange, NumericRange

from pglens.utils.serialization import bytes_to_text, jsonable_row, jsonable_value


@pytest.mark.parametrize(
    "value",
    [None, "text", 7, 1.5, True, Decimal("1.10"), date(2024, 1, 1), UUID(int=1)],
)
def test_natively_serialized_values_pass_through(value):
    assert jsonable_value(value) is value


@pytest.mark.parametrize("value", [b"\x00\x10", bytearray(b"\x00\x10"), memoryview(b"\x00\x10")])
def test_binary_values_use_hex_text(value):
    assert jsonable_value(value) == "\\x0010"


def test_empty_bytes():
    assert bytes_to_text(b"") == "\\x"


def test_numeric_range_rendered_as_text():
    assert jsonable_value(NumericRange(Decimal("1.5"), None, "[)")) == "[1.5, None)"


def test_timestamp_range_rendered_as_text():
    value = DateTimeTZRange(datetime(2024, 1, 1, tzinfo=UTC), datetime(2024, 1, 2, tzinfo=UTC), "[]")
    assert jsonable_value(value) == "[2024-01-01 00:00:00+00:00, 2024-01-02 00:00:00+00:00]"


def test_empty_range():
    assert jsonable_value(NumericRange(empty=True)) == "empty"


def test_unknown_types_fall_back_to_str():
    assert jsonable_value(IPv4Network("10.0.0.0/8")) == "10.0.0.0/8"


def test_nested_values_converted():
    value = {"blob": b"\x01", "ranges": [NumericRange(1, 2)], 3: "x"}
    assert jsonable_value(value) == {"blob": "\\x01", "ranges": ["[1, 2)"], "3": "x"}


def test_row_keys_preserved():
    row = {"id": 1, "during": NumericRange(1, 5)}
    assert jsonable_row(row) == {"id": 1, "during": "[1, 5)"}
