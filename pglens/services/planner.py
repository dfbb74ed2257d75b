"""Pagination planning.

Chooses the query shape for a page request. Rules are evaluated in order and
the first match wins:

1. ``OFFSET_SORTED``     a sort column was requested
2. ``CURSOR``            primary key present and a cursor supplied
3. ``OFFSET_FIRST_PAGE`` primary key present and page 1
4. ``OFFSET_FALLBACK``   anything else (no key, page jumps, backward moves)

Cursor scans cost O(limit) however deep the page is; offset scans cost
O(offset + limit). Cursors are only produced for primary-key order, so a
custom sort never yields one.

Key order always uses every primary key column. A single-column key's cursor
is the plain key value; a composite key's cursor is an opaque token holding
one value per key column, compared as a row value.

Without a primary key the fallback issues no ORDER BY at all, so row order
is whatever the database returns and may differ between calls.
"""

import base64
import json
from collections.abc import Sequence
from typing import Any

from pglens.errors import InvalidPaginationParams, InvalidSortColumn
from pglens.models.pagination import (
    PaginationPlan,
    PaginationRequest,
    PaginationStrategy,
    SortDirection,
)
from pglens.models.table import TableMetadata
from pglens.services.identifiers import quote_identifier
from pglens.utils.serialization import jsonable_value


def check_pagination_params(request: PaginationRequest, max_limit: int | None = None) -> None:
    """
    Raises:
        InvalidPaginationParams: If page or limit is out of range
    """
    if request.page < 1 or request.limit < 1:
        raise InvalidPaginationParams("Page and limit must be positive integers")
    if max_limit and request.limit > max_limit:
        raise InvalidPaginationParams(f"Limit must not exceed {max_limit}")


def encode_cursor(values: Sequence[str]) -> str:
    """Cursor text for the key values of a row."""
    if len(values) == 1:
        return values[0]
    json_str = json.dumps(list(values))
    return base64.urlsafe_b64encode(json_str.encode()).decode()


def decode_cursor(cursor: str, key_count: int) -> tuple[str, ...]:
    """
    Key values held by a cursor.

    Raises:
        InvalidPaginationParams: If a composite cursor is malformed or holds
            the wrong number of values
    """
    if key_count == 1:
        return (cursor,)
    try:
        values = json.loads(base64.urlsafe_b64decode(cursor.encode()).decode())
    except ValueError as e:
        raise InvalidPaginationParams(f"Invalid pagination cursor: {e}") from e
    if (
        not isinstance(values, list)
        or len(values) != key_count
        or not all(isinstance(v, str) for v in values)
    ):
        raise InvalidPaginationParams("Invalid pagination cursor: wrong key values")
    return tuple(values)


def plan(metadata: TableMetadata, request: PaginationRequest) -> PaginationPlan:
    """
    Decide how to fetch one page of a table.

    Args:
        metadata: Resolved table metadata
        request: Navigation request

    Returns:
        The plan for the page

    Raises:
        InvalidPaginationParams: If page or limit is out of range, or the
            cursor does not fit the primary key
        InvalidSortColumn: If the sort column is not a column of the table
    """
    check_pagination_params(request)
    keys = tuple(metadata.primary_key_columns)
    key_order = tuple((column, SortDirection.ASC) for column in keys)
    offset = (request.page - 1) * request.limit

    if request.sort_column:
        if request.sort_column not in metadata.columns:
            raise InvalidSortColumn(request.sort_column, metadata.table)
        order_by = ((request.sort_column, request.sort_direction),) + tuple(
            (column, direction) for column, direction in key_order if column != request.sort_column
        )
        return PaginationPlan(
            strategy=PaginationStrategy.OFFSET_SORTED,
            limit=request.limit,
            order_by=order_by,
            offset=offset,
        )

    if keys and request.cursor:
        return PaginationPlan(
            strategy=PaginationStrategy.CURSOR,
            limit=request.limit,
            order_by=key_order,
            key_columns=keys,
            cursor_values=decode_cursor(request.cursor, len(keys)),
        )

    if keys and request.page == 1:
        return PaginationPlan(
            strategy=PaginationStrategy.OFFSET_FIRST_PAGE,
            limit=request.limit,
            order_by=key_order,
            key_columns=keys,
        )

    return PaginationPlan(
        strategy=PaginationStrategy.OFFSET_FALLBACK,
        limit=request.limit,
        order_by=key_order,
        offset=offset,
        key_columns=keys,
    )


def build_page_query(page_plan: PaginationPlan, table_ref: str) -> tuple[str, dict[str, Any]]:
    """
    Render a plan as SQL with named bind parameters.

    ``table_ref`` must already be a quoted, validated table reference; every
    column in the plan is quoted here.
    """
    params: dict[str, Any] = {"limit": page_plan.limit}
    clauses = [f"SELECT * FROM {table_ref}"]

    if page_plan.strategy == PaginationStrategy.CURSOR:
        if len(page_plan.key_columns) == 1:
            clauses.append(f"WHERE {quote_identifier(page_plan.key_columns[0])} > :cursor")
            params["cursor"] = page_plan.cursor_values[0]
        else:
            columns = ", ".join(quote_identifier(c) for c in page_plan.key_columns)
            names = [f"cursor_{i}" for i in range(len(page_plan.key_columns))]
            bound = ", ".join(f":{name}" for name in names)
            clauses.append(f"WHERE ({columns}) > ({bound})")
            params.update(zip(names, page_plan.cursor_values, strict=True))

    if page_plan.order_by:
        ordering = ", ".join(
            f"{quote_identifier(column)} {direction.value.upper()}"
            for column, direction in page_plan.order_by
        )
        clauses.append(f"ORDER BY {ordering}")

    clauses.append("LIMIT :limit")
    if page_plan.offset is not None:
        clauses.append("OFFSET :offset")
        params["offset"] = page_plan.offset

    return " ".join(clauses), params


def next_cursor_from_rows(page_plan: PaginationPlan, rows: Sequence[dict[str, Any]]) -> str | None:
    """
    Cursor for the page after ``rows``, or None when there is nothing further.

    A page shorter than the limit is the end of the data, so it yields no
    cursor; neither does an empty page or a plan without key columns.
    """
    if not page_plan.key_columns or len(rows) < page_plan.limit:
        return None
    last_row = rows[-1]
    values = [last_row.get(column) for column in page_plan.key_columns]
    if any(value is None for value in values):
        return None
    # bytea keys use the \x hex text PostgreSQL accepts back as input
    return encode_cursor([str(jsonable_value(value)) for value in values])
