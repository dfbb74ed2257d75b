import time
from collections.abc import Mapping
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from pglens.core.logging import get_logger
from pglens.core.settings import Settings
from pglens.errors import QueryError, UnknownConnection

logger = get_logger(__name__)


def _normalize_url(url: str) -> str:
    # SQLAlchemy only accepts the postgresql:// spelling
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://") :]
    return url


def create_engine_for_url(url: str, settings: Settings) -> Engine:
    """Create a pooled engine for one browsable database."""
    sa_url = make_url(_normalize_url(url))
    kwargs: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": settings.debug,
    }

    if sa_url.get_backend_name() == "postgresql":
        kwargs.update(
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout_seconds,
        )
        if settings.statement_timeout_ms:
            # Queries fail instead of hanging once the server-side timeout elapses
            kwargs["connect_args"] = {
                "options": f"-c statement_timeout={settings.statement_timeout_ms}"
            }

    engine = create_engine(sa_url, **kwargs)

    @event.listens_for(engine, "connect")
    def log_connect(dbapi_conn, connection_record):
        logger.debug(f"New database connection established: {id(dbapi_conn)}")

    @event.listens_for(engine, "checkout")
    def log_checkout(dbapi_conn, connection_record, connection_proxy):
        logger.debug(f"Connection checked out from pool: {id(dbapi_conn)}")

    return engine


class QueryExecutor:
    """Read-only ``execute(query, params) -> rows`` capability over one engine."""

    def __init__(self, engine: Engine, name: str = "default"):
        self.engine = engine
        self.name = name

    def execute(
        self, query: str, params: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """
        Run a statement with named bind parameters.

        Returns:
            Rows as dicts keyed by column name, in result order.

        Raises:
            QueryError: If the database rejects or fails the statement.
        """
        start = time.perf_counter()
        try:
            # Leaving the block rolls back; nothing here ever writes
            with self.engine.connect() as conn:
                result = conn.execute(text(query), dict(params or {}))
                if not result.returns_rows:
                    return []
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            orig = getattr(e, "orig", None)
            message = str(orig).strip() if orig is not None else str(e)
            raise QueryError(message) from e
        finally:
            self._log_duration(query, (time.perf_counter() - start) * 1000)

    def _log_duration(self, query: str, duration_ms: float) -> None:
        statement = " ".join(query.split())[:120]
        message = f"[{self.name}] [{duration_ms:.2f}ms] {statement}"
        if duration_ms < 50:
            logger.debug(message)
        elif duration_ms < 500:
            logger.info(f"{message} (slow)")
        else:
            logger.warning(f"{message} (very slow)")

    def dispose(self) -> None:
        self.engine.dispose()


class ConnectionRegistry:
    """Named executors for every configured database."""

    def __init__(self, executors: Mapping[str, QueryExecutor], default: str | None = None):
        if not executors:
            raise ValueError("At least one connection is required")
        self._executors = dict(executors)
        self.default_name = default or next(iter(self._executors))
        if self.default_name not in self._executors:
            raise ValueError(f"Default connection '{self.default_name}' is not registered")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionRegistry":
        executors = {
            name: QueryExecutor(create_engine_for_url(url, settings), name=name)
            for name, url in settings.connection_urls.items()
        }
        logger.info(f"Registered {len(executors)} connection(s): {', '.join(executors)}")
        return cls(executors)

    def names(self) -> list[str]:
        return list(self._executors)

    def get(self, name: str | None = None) -> QueryExecutor:
        key = name or self.default_name
        try:
            return self._executors[key]
        except KeyError:
            raise UnknownConnection(key) from None

    def dispose(self) -> None:
        for executor in self._executors.values():
            executor.dispose()
        logger.info("Connection pools closed")
