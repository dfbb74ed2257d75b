"""FastAPI dependencies for resolving the database connection of a request."""

from typing import Annotated

from fastapi import Depends, Query, Request

from pglens.core.db import ConnectionRegistry, QueryExecutor


def get_registry(request: Request) -> ConnectionRegistry:
    """Registry created at startup and stored on ``app.state``."""
    return request.app.state.registry


def get_executor(
    registry: Annotated[ConnectionRegistry, Depends(get_registry)],
    connection: Annotated[
        str | None, Query(description="Connection name (defaults to the first configured)")
    ] = None,
) -> QueryExecutor:
    """
    Get the executor for the requested connection.

    Raises:
        UnknownConnection: If no connection is registered under ``connection``
    """
    return registry.get(connection)
