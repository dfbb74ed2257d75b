"""Validation and quoting of SQL identifiers taken from request paths."""

import re

from pglens.errors import InvalidIdentifier

TABLE_NAME_RE = re.compile(r"^[A-Za-z0-9_.]+$")


def validate_table_name(name: str) -> str:
    """
    Check a table name before it is interpolated into any query.

    Accepts ``table`` or ``schema.table`` made of letters, digits and
    underscores.

    Raises:
        InvalidIdentifier: For any other input
    """
    if not name or not TABLE_NAME_RE.match(name):
        raise InvalidIdentifier("Invalid table name")
    parts = name.split(".")
    if len(parts) > 2 or not all(parts):
        raise InvalidIdentifier("Invalid table name")
    return name


def split_table_name(name: str, default_schema: str) -> tuple[str, str]:
    """Return ``(schema, table)`` for a validated table name."""
    validate_table_name(name)
    if "." in name:
        schema, table = name.split(".", 1)
        return schema, table
    return default_schema, name


def quote_identifier(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def qualified_table(name: str, default_schema: str) -> str:
    """Quoted ``"schema"."table"`` reference for a validated table name."""
    schema, table = split_table_name(name, default_schema)
    return f"{quote_identifier(schema)}.{quote_identifier(table)}"
