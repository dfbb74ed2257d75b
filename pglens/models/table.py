"""Pydantic models for table metadata and API responses."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pglens.models.pagination import PaginationStrategy


class CamelModel(BaseModel):
    """Serialises with camelCase keys, the browser client's convention."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ForeignKeyRef(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    table: str = Field(..., description="Referenced table")
    column: str = Field(..., description="Referenced column")


class ColumnMetadata(CamelModel):
    """Metadata for a single table column."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str = Field(..., description="Column name")
    data_type: str = Field(..., description="Database type name as reported by the server")
    is_nullable: bool = Field(True, description="Whether the column allows NULL")
    is_primary_key: bool = Field(False, description="Member of the primary key")
    is_unique: bool = Field(False, description="Covered by a single-table UNIQUE constraint")
    is_foreign_key: bool = Field(False, description="References another table")
    foreign_key_ref: ForeignKeyRef | None = Field(None, description="Referenced table/column")


class TableMetadata(CamelModel):
    """Resolved metadata snapshot for one table."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    table: str
    primary_key_columns: list[str] = Field(default_factory=list)
    columns: dict[str, ColumnMetadata] = Field(default_factory=dict)

    @property
    def primary_key_column(self) -> str | None:
        """Single ordering/cursor column: the first member of the primary key."""
        return self.primary_key_columns[0] if self.primary_key_columns else None


class TablePageResponse(CamelModel):
    """Response for the table data endpoint."""

    rows: list[dict[str, Any]] = Field(..., description="Rows of the requested page")
    total_count: int = Field(..., description="Row count of the whole table")
    page: int
    limit: int
    is_approximate: bool = Field(False, description="True when total_count is an estimate")
    next_cursor: str | None = Field(
        None, description="Cursor for the next forward request (null at end of data)"
    )
    has_primary_key: bool
    primary_key_columns: list[str] = Field(default_factory=list)
    columns: dict[str, ColumnMetadata] = Field(default_factory=dict)
    strategy: PaginationStrategy = Field(..., description="Query shape used for this page")


class TableListResponse(CamelModel):
    tables: list[str]


class ConnectionListResponse(CamelModel):
    connections: list[str]
    default: str
