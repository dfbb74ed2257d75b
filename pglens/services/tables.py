"""Table listing and paginated table reads for one connection."""

from pglens.core.db import QueryExecutor
from pglens.core.logging import get_logger
from pglens.errors import QueryError
from pglens.models.pagination import PaginationRequest
from pglens.models.table import TableMetadata, TablePageResponse
from pglens.services import planner
from pglens.services.identifiers import qualified_table, split_table_name, validate_table_name
from pglens.services.metadata import MetadataResolver
from pglens.utils.serialization import jsonable_row

logger = get_logger(__name__)


LIST_TABLES_QUERY = """
SELECT table_name
FROM information_schema.tables
WHERE table_schema = :schema
  AND table_type = 'BASE TABLE'
ORDER BY table_name
"""

ESTIMATED_COUNT_QUERY = """
SELECT CAST(c.reltuples AS bigint) AS estimate
FROM pg_class c
JOIN pg_namespace n ON n.oid = c.relnamespace
WHERE n.nspname = :schema
  AND c.relname = :table
"""


class TableService:
    """Read-only table browsing on top of a query executor.

    Holds no per-request state; pagination progress (page, cursor) is owned
    by the caller, so one instance may serve concurrent requests.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        *,
        default_schema: str = "public",
        max_page_limit: int | None = None,
        estimated_count_threshold: int | None = None,
    ):
        self.executor = executor
        self.default_schema = default_schema
        self.max_page_limit = max_page_limit
        self.estimated_count_threshold = estimated_count_threshold
        self.resolver = MetadataResolver(executor, default_schema=default_schema)

    def list_tables(self) -> list[str]:
        """Base tables of the default schema, alphabetically."""
        rows = self.executor.execute(LIST_TABLES_QUERY, {"schema": self.default_schema})
        return [row["table_name"] for row in rows]

    def describe(self, table_name: str) -> TableMetadata:
        validate_table_name(table_name)
        return self.resolver.resolve(table_name)

    def count_rows(self, table_name: str) -> tuple[int, bool]:
        """
        Count rows of a table.

        Returns:
            ``(count, is_approximate)``. The count is exact unless an estimate
            threshold is configured and the planner statistics report at
            least that many rows.
        """
        if self.estimated_count_threshold:
            estimate = self._estimated_count(table_name)
            if estimate is not None and estimate >= self.estimated_count_threshold:
                return estimate, True

        table_ref = qualified_table(table_name, self.default_schema)
        rows = self.executor.execute(f"SELECT COUNT(*) AS total FROM {table_ref}")
        return int(rows[0]["total"]), False

    def _estimated_count(self, table_name: str) -> int | None:
        schema, table = split_table_name(table_name, self.default_schema)
        try:
            rows = self.executor.execute(ESTIMATED_COUNT_QUERY, {"schema": schema, "table": table})
        except QueryError as e:
            logger.warning(f"Row estimate unavailable for {table_name}: {e.message}")
            return None
        if not rows or rows[0]["estimate"] is None:
            return None
        return int(rows[0]["estimate"])

    def get_page(self, table_name: str, request: PaginationRequest) -> TablePageResponse:
        """
        Fetch one page of a table.

        Raises:
            InvalidIdentifier: If the table name is malformed
            InvalidPaginationParams: If page or limit is out of range
            InvalidSortColumn: If the sort column is unknown
            TableNotFound: If the table has no visible columns
            QueryError: If a data or count query fails
        """
        validate_table_name(table_name)
        planner.check_pagination_params(request, self.max_page_limit)

        metadata = self.resolver.resolve(table_name)
        page_plan = planner.plan(metadata, request)
        logger.debug(f"Page plan for {table_name}: {page_plan}")

        total_count, is_approximate = self.count_rows(table_name)

        query, params = planner.build_page_query(
            page_plan, qualified_table(table_name, self.default_schema)
        )
        rows = self.executor.execute(query, params)
        logger.debug(
            f"{page_plan.strategy.value} page {request.page} of {table_name}: {len(rows)} rows"
        )

        return TablePageResponse(
            rows=[jsonable_row(row) for row in rows],
            total_count=total_count,
            page=request.page,
            limit=request.limit,
            is_approximate=is_approximate,
            next_cursor=planner.next_cursor_from_rows(page_plan, rows),
            has_primary_key=metadata.primary_key_column is not None,
            primary_key_columns=metadata.primary_key_columns,
            columns=metadata.columns,
            strategy=page_plan.strategy,
        )
