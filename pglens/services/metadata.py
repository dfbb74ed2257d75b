"""Table metadata resolution from information_schema and pg_constraint.

Only the column list is load-bearing. Primary key, foreign key and unique
lookups are best-effort: a failure is logged and treated as "none known".
"""

from collections.abc import Callable

from pglens.core.db import QueryExecutor
from pglens.core.logging import get_logger
from pglens.errors import QueryError, TableNotFound
from pglens.models.table import ColumnMetadata, ForeignKeyRef, TableMetadata
from pglens.services.identifiers import split_table_name

logger = get_logger(__name__)

COLUMNS_QUERY = """
SELECT column_name, data_type, is_nullable
FROM information_schema.columns
WHERE table_schema = :schema
  AND table_name = :table
ORDER BY ordinal_position
"""

PRIMARY_KEY_QUERY = """
SELECT kcu.column_name
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage kcu
  ON tc.constraint_name = kcu.constraint_name
  AND tc.table_schema = kcu.table_schema
  AND tc.table_name = kcu.table_name
WHERE tc.constraint_type = 'PRIMARY KEY'
  AND tc.table_schema = :schema
  AND tc.table_name = :table
ORDER BY kcu.ordinal_position
"""

FOREIGN_KEYS_QUERY = """
SELECT a.attname AS column_name,
       fn.nspname AS foreign_table_schema,
       fc.relname AS foreign_table_name,
       fa.attname AS foreign_column_name
FROM pg_constraint con
JOIN pg_class c ON c.oid = con.conrelid
JOIN pg_namespace n ON n.oid = c.relnamespace
JOIN pg_class fc ON fc.oid = con.confrelid
JOIN pg_namespace fn ON fn.oid = fc.relnamespace
CROSS JOIN LATERAL unnest(con.conkey, con.confkey) WITH ORDINALITY AS k(attnum, fattnum, position)
JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
JOIN pg_attribute fa ON fa.attrelid = con.confrelid AND fa.attnum = k.fattnum
WHERE con.contype = 'f'
  AND n.nspname = :schema
  AND c.relname = :table
ORDER BY con.conname, k.position
"""

UNIQUE_QUERY = """
SELECT DISTINCT kcu.column_name
FROM information_schema.table_constraints tc
JOIN information_schema.key_column_usage kcu
  ON tc.constraint_name = kcu.constraint_name
  AND tc.table_schema = kcu.table_schema
  AND tc.table_name = kcu.table_name
WHERE tc.constraint_type = 'UNIQUE'
  AND tc.table_schema = :schema
  AND tc.table_name = :table
"""


class MetadataResolver:
    """Resolves columns and key annotations for tables on one connection."""

    def __init__(self, executor: QueryExecutor, default_schema: str = "public"):
        self.executor = executor
        self.default_schema = default_schema

    def resolve(self, table_name: str) -> TableMetadata:
        """
        Resolve a fresh metadata snapshot for ``table_name``.

        Raises:
            InvalidIdentifier: If the table name is malformed
            QueryError: If the column list cannot be read
            TableNotFound: If the table has no visible columns
        """
        schema, table = split_table_name(table_name, self.default_schema)
        params = {"schema": schema, "table": table}

        column_rows = self.executor.execute(COLUMNS_QUERY, params)
        if not column_rows:
            raise TableNotFound(table_name)

        primary_keys = self._best_effort(
            "primary_key", table_name, lambda: self._primary_keys(params)
        )
        foreign_keys = self._best_effort(
            "foreign_keys", table_name, lambda: self._foreign_keys(params)
        )
        unique_columns = self._best_effort(
            "unique_constraints", table_name, lambda: self._unique_columns(params)
        )

        columns: dict[str, ColumnMetadata] = {}
        for row in column_rows:
            name = row["column_name"]
            fk_ref = foreign_keys.get(name)
            columns[name] = ColumnMetadata(
                name=name,
                data_type=row["data_type"],
                is_nullable=str(row.get("is_nullable", "YES")).upper() == "YES",
                is_primary_key=name in primary_keys,
                is_unique=name in unique_columns,
                is_foreign_key=fk_ref is not None,
                foreign_key_ref=fk_ref,
            )

        primary_key_columns = [name for name in primary_keys if name in columns]
        if len(primary_key_columns) > 1:
            logger.debug(f"Table {table_name} has a composite primary key {primary_key_columns}")

        return TableMetadata(
            table=table_name,
            primary_key_columns=primary_key_columns,
            columns=columns,
        )

    def _best_effort(self, operation: str, table_name: str, lookup: Callable):
        try:
            return lookup()
        except QueryError as e:
            logger.warning(
                f"Metadata lookup '{operation}' failed for {table_name}: {e.message}",
                extra={"component": "metadata", "operation": operation, "table": table_name},
            )
            return {}

    def _primary_keys(self, params: dict) -> dict[str, int]:
        # dict keeps key order; value is position in the key
        rows = self.executor.execute(PRIMARY_KEY_QUERY, params)
        return {row["column_name"]: position for position, row in enumerate(rows)}

    def _foreign_keys(self, params: dict) -> dict[str, ForeignKeyRef]:
        refs: dict[str, ForeignKeyRef] = {}
        for row in self.executor.execute(FOREIGN_KEYS_QUERY, params):
            ref_table = row["foreign_table_name"]
            ref_schema = row.get("foreign_table_schema")
            if ref_schema and ref_schema != self.default_schema:
                ref_table = f"{ref_schema}.{ref_table}"
            refs.setdefault(
                row["column_name"],
                ForeignKeyRef(table=ref_table, column=row["foreign_column_name"]),
            )
        return refs

    def _unique_columns(self, params: dict) -> dict[str, bool]:
        return {row["column_name"]: True for row in self.executor.execute(UNIQUE_QUERY, params)}
