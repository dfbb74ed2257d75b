"""Test configuration and fixtures.

Data queries run against an in-memory SQLite database. SQLite has no
information_schema, so ``SchemaFixtureExecutor`` answers the introspection
queries from declared table definitions and forwards everything else.
"""

from dataclasses import dataclass, field

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

from pglens.core.db import ConnectionRegistry, QueryExecutor
from pglens.core.settings import get_settings
from pglens.errors import QueryError
from pglens.services.tables import TableService

SCHEMA = "main"


@dataclass
class TableFixture:
    columns: list[tuple[str, str]]
    primary_key: list[str] = field(default_factory=list)
    foreign_keys: dict[str, tuple[str, str]] = field(default_factory=dict)
    unique: list[str] = field(default_factory=list)


class SchemaFixtureExecutor(QueryExecutor):
    """Executor answering introspection from fixtures and data queries from SQLite."""

    def __init__(self, engine, tables: dict[str, TableFixture]):
        super().__init__(engine, name="test")
        self.tables = tables
        self.queries: list[tuple[str, dict]] = []
        self.failing: set[str] = set()
        self.estimates: dict[str, int] = {}
        # Driver values SQLite cannot produce, substituted into data rows by column
        self.column_values: dict[str, object] = {}

    def execute(self, query, params=None):
        params = dict(params or {})
        self.queries.append((query, params))
        for marker in self.failing:
            if marker in query:
                raise QueryError(f'simulated failure on "{marker}"')

        if "pg_constraint" in query:
            return self._foreign_keys(params)
        if "pg_class" in query:
            if params["table"] in self.estimates:
                return [{"estimate": self.estimates[params["table"]]}]
            return []
        if "information_schema" in query:
            return self._introspect(query, params)
        rows = super().execute(query, params)
        if self.column_values:
            for row in rows:
                for column, value in self.column_values.items():
                    if column in row:
                        row[column] = value
        return rows

    def data_queries(self) -> list[tuple[str, dict]]:
        return [
            (q, p)
            for q, p in self.queries
            if "information_schema" not in q
            and "COUNT(*)" not in q
            and "pg_class" not in q
            and "pg_constraint" not in q
        ]

    def _table(self, params: dict) -> TableFixture | None:
        return self.tables.get(params["table"]) if params.get("schema") == SCHEMA else None

    def _foreign_keys(self, params: dict) -> list[dict]:
        table = self._table(params)
        if table is None:
            return []
        return [
            {
                "column_name": column,
                "foreign_table_schema": SCHEMA,
                "foreign_table_name": ref_table,
                "foreign_column_name": ref_column,
            }
            for column, (ref_table, ref_column) in table.foreign_keys.items()
        ]

    def _introspect(self, query: str, params: dict) -> list[dict]:
        if "information_schema.tables" in query:
            return [{"table_name": name} for name in sorted(self.tables)]

        table = self._table(params)
        if table is None:
            return []
        if "'PRIMARY KEY'" in query:
            return [{"column_name": name} for name in table.primary_key]
        if "'UNIQUE'" in query:
            return [{"column_name": name} for name in table.unique]
        if "information_schema.columns" in query:
            return [
                {"column_name": name, "data_type": data_type, "is_nullable": "YES"}
                for name, data_type in table.columns
            ]
        raise AssertionError(f"Unexpected introspection query: {query}")


TABLES = {
    "users": TableFixture(
        columns=[("id", "integer"), ("name", "text"), ("score", "integer")],
        primary_key=["id"],
        unique=["name"],
    ),
    "orders": TableFixture(
        columns=[("id", "integer"), ("user_id", "integer"), ("total", "numeric")],
        primary_key=["id"],
        foreign_keys={"user_id": ("users", "id")},
    ),
    "events": TableFixture(columns=[("kind", "text"), ("payload", "text")]),
    "empty_table": TableFixture(columns=[("id", "integer")], primary_key=["id"]),
    "memberships": TableFixture(
        columns=[("org_id", "integer"), ("user_id", "integer"), ("role", "text")],
        primary_key=["org_id", "user_id"],
    ),
}


@pytest.fixture
def test_db():
    """In-memory SQLite database with seeded tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT UNIQUE, score INTEGER)"))
        conn.execute(
            text("INSERT INTO users (id, name, score) VALUES (:id, :name, :score)"),
            [{"id": i, "name": f"user{i:03d}", "score": i % 7} for i in range(1, 251)],
        )
        conn.execute(text("CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total NUMERIC)"))
        conn.execute(text("CREATE TABLE events (kind TEXT, payload TEXT)"))
        conn.execute(
            text("INSERT INTO events (kind, payload) VALUES (:kind, :payload)"),
            [{"kind": f"kind{i % 3}", "payload": f"p{i}"} for i in range(30)],
        )
        conn.execute(text("CREATE TABLE empty_table (id INTEGER PRIMARY KEY)"))
        conn.execute(
            text(
                "CREATE TABLE memberships (org_id INTEGER, user_id INTEGER, role TEXT, "
                "PRIMARY KEY (org_id, user_id))"
            )
        )
        conn.execute(
            text("INSERT INTO memberships (org_id, user_id, role) VALUES (:org_id, :user_id, :role)"),
            [
                {"org_id": org_id, "user_id": user_id, "role": "member"}
                for org_id in (1, 2)
                for user_id in range(1, 7)
            ],
        )
    yield engine
    engine.dispose()


@pytest.fixture
def executor(test_db):
    return SchemaFixtureExecutor(test_db, TABLES)


# Foreign key constraint names are only unique per table, so "owner_fk" exists
# on both notes and attachments with different targets.
FOREIGN_KEY_TABLES = {
    "notes": TableFixture(
        columns=[("id", "integer"), ("owner_id", "integer")],
        primary_key=["id"],
        foreign_keys={"owner_id": ("users", "id")},
    ),
    "attachments": TableFixture(
        columns=[("id", "integer"), ("owner_id", "integer")],
        primary_key=["id"],
        foreign_keys={"owner_id": ("orders", "id")},
    ),
    "membership_grants": TableFixture(
        columns=[("id", "integer"), ("org_id", "integer"), ("member_id", "integer")],
        primary_key=["id"],
        foreign_keys={"org_id": ("memberships", "org_id"), "member_id": ("memberships", "user_id")},
    ),
}


@pytest.fixture
def foreign_key_executor(test_db):
    return SchemaFixtureExecutor(test_db, FOREIGN_KEY_TABLES)


@pytest.fixture
def table_service(executor):
    return TableService(executor, default_schema=SCHEMA, max_page_limit=1000)


@pytest.fixture
def settings_env(monkeypatch, tmp_path):
    """Environment for ``get_settings()`` pointing at the SQLite schema."""
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("DEFAULT_SCHEMA", SCHEMA)
    monkeypatch.setenv("LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("DATABASE_URLS", raising=False)
    monkeypatch.delenv("ESTIMATED_COUNT_THRESHOLD", raising=False)
    monkeypatch.delenv("MAX_PAGE_LIMIT", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client(settings_env, executor):
    """Test client whose registry serves the fixture executor."""
    from pglens.main import create_app

    app = create_app(registry=ConnectionRegistry({"local": executor}))
    with TestClient(app) as test_client:
        yield test_client
