"""Error taxonomy for table browsing requests."""

from fastapi import status


class PglensError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidIdentifier(PglensError):
    """Table name contains characters outside ``[A-Za-z0-9_.]``."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidPaginationParams(PglensError):
    """``page`` or ``limit`` outside the accepted range."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidSortColumn(PglensError):
    """Requested sort column is not a column of the table."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, column: str, table: str):
        super().__init__(f"Unknown sort column '{column}' for table '{table}'")
        self.column = column
        self.table = table


class UnknownConnection(PglensError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Unknown connection '{name}'")
        self.name = name


class TableNotFound(PglensError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, table: str):
        super().__init__(f"Table '{table}' not found")
        self.table = table


class QueryError(PglensError):
    """Database execution failure; carries the raw database message."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
