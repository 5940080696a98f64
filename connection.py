"""
PostgresConnectionManager - pooled query execution.

Exposes the single operation discovery depends on:

    execute(query, params) -> QueryResult(rows, row_count)

Rows are dict-like (RealDictCursor). Every call borrows one pooled
connection for one round trip and returns it before the call completes.

Errors:
- DatabaseConnectionError: pool not initialized, exhausted, or connection lost
- QueryTimeoutError: statement_timeout cancelled the query
- QueryError: any other server-side failure
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool

from .config import DatabaseConfig, PoolConfig
from .logging_setup import get_logger
from .protocol.errors import DatabaseConnectionError, QueryError, QueryTimeoutError

POOL_RETRY_INTERVAL = 0.05


@dataclass
class QueryResult:
    """Rows returned by one query."""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0


class QueryExecutor(Protocol):
    """Anything that can run a parameterized catalog query."""

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Run ``query`` with bound ``params`` and return its rows."""
        ...


class PostgresConnectionManager:
    """
    Owns a psycopg2 ThreadedConnectionPool.

    Usage:
        with PostgresConnectionManager(db_config) as manager:
            result = manager.execute("SELECT current_database()")
    """

    def __init__(
        self,
        config: DatabaseConfig,
        pool_config: Optional[PoolConfig] = None,
        logger: Optional[logging.Logger] = None,
        read_only: bool = True,
    ):
        self.config = config
        self.pool_config = pool_config or PoolConfig()
        self.read_only = read_only
        self.log = get_logger("connection", logger)
        self._pool: Optional[psycopg2.pool.ThreadedConnectionPool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    def initialize(self) -> None:
        """Create the pool and verify one connection."""
        if self._pool is not None:
            self.log.warning("Connection pool already initialized")
            return

        try:
            pool = psycopg2.pool.ThreadedConnectionPool(
                self.pool_config.effective_min_connections,
                self.pool_config.max_connections,
                **self.config.connection_kwargs(),
            )
        except psycopg2.Error as e:
            self.log.error(
                "Failed to initialize PostgreSQL connection pool",
                extra={"meta": {"database": self.config.redacted_url(), "error": str(e).strip()}},
            )
            raise DatabaseConnectionError(
                f"Failed to initialize connection pool: {str(e).strip()}"
            ) from e

        # Test the connection
        try:
            conn = pool.getconn()
            pool.putconn(conn)
        except psycopg2.Error as e:
            pool.closeall()
            raise DatabaseConnectionError(
                f"Failed to initialize connection pool: {str(e).strip()}"
            ) from e

        self._pool = pool
        self.log.info(
            "PostgreSQL connection pool initialized",
            extra={"meta": {
                "database": self.config.redacted_url(),
                "max_connections": self.pool_config.max_connections,
            }},
        )

    def close(self) -> None:
        """Close every pooled connection."""
        if self._pool is None:
            self.log.warning("Connection pool not initialized")
            return

        try:
            self._pool.closeall()
        except psycopg2.Error as e:
            raise DatabaseConnectionError(
                f"Failed to close connection pool: {str(e).strip()}"
            ) from e
        finally:
            self._pool = None
        self.log.info("PostgreSQL connection pool closed")

    def query(self, query: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Run one statement on a pooled connection."""
        if self._pool is None:
            raise DatabaseConnectionError(
                "Connection pool not initialized. Call initialize() first."
            )

        self.log.debug("Executing query", extra={"meta": {"query": _compact(query), "params": params}})
        conn = self._checkout()
        broken = False
        try:
            if self.read_only and not conn.readonly:
                conn.readonly = True
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
                row_count = cur.rowcount
            conn.rollback()
        except psycopg2.extensions.QueryCanceledError as e:
            self._rollback(conn)
            self.log.error("Query timed out", extra={"meta": {"query": _compact(query)}})
            raise QueryTimeoutError(f"Query timed out: {str(e).strip()}", query=query) from e
        except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
            broken = True
            self.log.error("Connection failed during query", extra={"meta": {"error": str(e).strip()}})
            raise DatabaseConnectionError(f"Query execution failed: {str(e).strip()}") from e
        except psycopg2.Error as e:
            self._rollback(conn)
            self.log.error(
                "Query execution failed",
                extra={"meta": {"query": _compact(query), "pgcode": e.pgcode, "error": str(e).strip()}},
            )
            raise QueryError(
                f"Query execution failed: {str(e).strip()}", query=query, pgcode=e.pgcode
            ) from e
        finally:
            self._pool.putconn(conn, close=broken or bool(conn.closed))

        self.log.debug("Query executed", extra={"meta": {"row_count": row_count}})
        return QueryResult(rows=rows, row_count=row_count)

    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """Run a parameterized query (placeholders are %s)."""
        return self.query(query, list(params) if params else None)

    def _checkout(self):
        """Borrow a connection, waiting up to pool_timeout_ms when exhausted."""
        deadline = time.monotonic() + self.pool_config.pool_timeout_ms / 1000
        while True:
            try:
                return self._pool.getconn()
            except psycopg2.pool.PoolError as e:
                if "exhausted" not in str(e) or time.monotonic() >= deadline:
                    raise DatabaseConnectionError(f"Could not acquire connection: {e}") from e
                time.sleep(POOL_RETRY_INTERVAL)
            except psycopg2.Error as e:
                raise DatabaseConnectionError(f"Could not acquire connection: {str(e).strip()}") from e

    def _rollback(self, conn) -> None:
        try:
            conn.rollback()
        except psycopg2.Error:
            self.log.warning("Rollback failed after query error")

    def __enter__(self) -> "PostgresConnectionManager":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._pool is not None:
            self.close()


def create_connection_manager(
    config: DatabaseConfig,
    pool_config: Optional[PoolConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> PostgresConnectionManager:
    """Create a new (uninitialized) connection manager."""
    return PostgresConnectionManager(config, pool_config, logger=logger)


def _compact(query: str) -> str:
    return " ".join(query.split())
