"""API endpoints for listing tables and reading table pages."""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from pglens.core.db import ConnectionRegistry, QueryExecutor
from pglens.core.deps import get_executor, get_registry
from pglens.core.settings import Settings, get_settings
from pglens.models.pagination import PaginationRequest, SortDirection
from pglens.models.table import (
    ConnectionListResponse,
    TableListResponse,
    TableMetadata,
    TablePageResponse,
)
from pglens.services.tables import TableService

router = APIRouter(
    tags=["tables"],
    responses={
        400: {"description": "Invalid table name, pagination or sort parameters"},
        404: {"description": "Unknown connection or table"},
        500: {"description": "Database error"},
    },
)


def get_table_service(
    executor: Annotated[QueryExecutor, Depends(get_executor)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TableService:
    return TableService(
        executor,
        default_schema=settings.default_schema,
        max_page_limit=settings.max_page_limit or None,
        estimated_count_threshold=settings.estimated_count_threshold,
    )


@router.get("/connections", response_model=ConnectionListResponse)
def list_connections(
    registry: Annotated[ConnectionRegistry, Depends(get_registry)],
) -> ConnectionListResponse:
    """Names of the configured database connections."""
    return ConnectionListResponse(connections=registry.names(), default=registry.default_name)


@router.get("/tables", response_model=TableListResponse)
def list_tables(
    service: Annotated[TableService, Depends(get_table_service)],
) -> TableListResponse:
    """List base tables of the configured schema, alphabetically."""
    return TableListResponse(tables=service.list_tables())


@router.get("/tables/{table_name}/columns", response_model=TableMetadata)
def get_table_columns(
    table_name: Annotated[str, Path(description="Table name, optionally schema-qualified")],
    service: Annotated[TableService, Depends(get_table_service)],
) -> TableMetadata:
    """Column types and key annotations for a table."""
    return service.describe(table_name)


@router.get("/tables/{table_name}", response_model=TablePageResponse)
def get_table_page(
    table_name: Annotated[str, Path(description="Table name, optionally schema-qualified")],
    service: Annotated[TableService, Depends(get_table_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    page: Annotated[int, Query(description="1-based page number")] = 1,
    limit: Annotated[int | None, Query(description="Rows per page")] = None,
    cursor: Annotated[
        str | None, Query(description="nextCursor from the previous page (forward navigation)")
    ] = None,
    sort_column: Annotated[
        str | None, Query(alias="sortColumn", description="Column to sort by")
    ] = None,
    sort_direction: Annotated[
        SortDirection, Query(alias="sortDirection", description="asc or desc")
    ] = SortDirection.ASC,
) -> TablePageResponse:
    """
    Get one page of table data.

    Tables with a primary key are paged by key: the first page and any page
    requested with a cursor return ``nextCursor`` for the following page.
    Page jumps, backward navigation and tables without a key use offsets.
    Sorting by a column always uses offsets and never returns a cursor.
    """
    request = PaginationRequest(
        page=page,
        limit=settings.default_page_limit if limit is None else limit,
        cursor=cursor or None,
        sort_column=sort_column or None,
        sort_direction=sort_direction,
    )
    return service.get_page(table_name, request)
