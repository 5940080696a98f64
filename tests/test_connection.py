"""Tests for PostgresConnectionManager using a fake psycopg2 pool."""

import logging

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool
import pytest

from pg_transfer.config import DatabaseConfig, PoolConfig
from pg_transfer.connection import PostgresConnectionManager, QueryResult, create_connection_manager
from pg_transfer.protocol.errors import DatabaseConnectionError, QueryError, QueryTimeoutError


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn
        self.description = None
        self.rowcount = -1
        self._rows = []

    def execute(self, query, params=None):
        self.conn.executed.append((query, params))
        if self.conn.error is not None:
            raise self.conn.error
        self._rows = list(self.conn.rows)
        self.description = [("col",)] if self._rows else None
        self.rowcount = len(self._rows)

    def fetchall(self):
        return self._rows

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeConnection:
    def __init__(self):
        self.readonly = False
        self.closed = 0
        self.rows = []
        self.error = None
        self.executed = []
        self.rollbacks = 0
        self.cursor_factory = None

    def cursor(self, cursor_factory=None):
        self.cursor_factory = cursor_factory
        return FakeCursor(self)

    def rollback(self):
        self.rollbacks += 1


class FakePool:
    instances = []
    fail_on_create = None

    def __init__(self, minconn, maxconn, **kwargs):
        if FakePool.fail_on_create is not None:
            raise FakePool.fail_on_create
        self.minconn = minconn
        self.maxconn = maxconn
        self.kwargs = kwargs
        self.conn = FakeConnection()
        self.exhausted_for = 0
        self.returned = []
        self.closed = False
        FakePool.instances.append(self)

    def getconn(self):
        if self.exhausted_for > 0:
            self.exhausted_for -= 1
            raise psycopg2.pool.PoolError("connection pool exhausted")
        return self.conn

    def putconn(self, conn, close=False):
        self.returned.append((conn, close))

    def closeall(self):
        self.closed = True


@pytest.fixture
def fake_pool(monkeypatch):
    FakePool.instances = []
    FakePool.fail_on_create = None
    monkeypatch.setattr(psycopg2.pool, "ThreadedConnectionPool", FakePool)
    return FakePool


@pytest.fixture
def db_config():
    return DatabaseConfig(host="db", name="app", user="reader", password="pw", query_timeout_ms=2000)


@pytest.fixture
def manager(fake_pool, db_config):
    mgr = PostgresConnectionManager(db_config, PoolConfig(max_connections=4, min_connections=2, pool_timeout_ms=0))
    mgr.initialize()
    yield mgr
    if mgr.is_initialized:
        mgr.close()


def _pool(manager) -> FakePool:
    return FakePool.instances[-1]


class TestLifecycle:

    def test_initialize_builds_pool(self, fake_pool, db_config):
        mgr = create_connection_manager(db_config, PoolConfig(max_connections=4, min_connections=2))
        assert not mgr.is_initialized
        mgr.initialize()

        pool = fake_pool.instances[-1]
        assert (pool.minconn, pool.maxconn) == (2, 4)
        assert pool.kwargs["dbname"] == "app"
        assert pool.kwargs["options"] == "-c statement_timeout=2000"
        assert pool.returned == [(pool.conn, False)]
        assert mgr.is_initialized
        mgr.close()
        assert pool.closed

    def test_initialize_twice_warns(self, manager, caplog):
        with caplog.at_level(logging.WARNING, logger="pg_transfer"):
            manager.initialize()
        assert "Connection pool already initialized" in caplog.text
        assert len(FakePool.instances) == 1

    def test_initialize_failure(self, fake_pool, db_config):
        fake_pool.fail_on_create = psycopg2.OperationalError("could not connect to server")
        mgr = PostgresConnectionManager(db_config)
        with pytest.raises(DatabaseConnectionError, match="could not connect to server"):
            mgr.initialize()
        assert not mgr.is_initialized

    def test_close_without_initialize_warns(self, fake_pool, db_config, caplog):
        with caplog.at_level(logging.WARNING, logger="pg_transfer"):
            PostgresConnectionManager(db_config).close()
        assert "Connection pool not initialized" in caplog.text

    def test_context_manager(self, fake_pool, db_config):
        with PostgresConnectionManager(db_config) as mgr:
            assert mgr.is_initialized
        assert not mgr.is_initialized
        assert fake_pool.instances[-1].closed

    def test_query_requires_initialize(self, fake_pool, db_config):
        with pytest.raises(DatabaseConnectionError, match="not initialized"):
            PostgresConnectionManager(db_config).execute("SELECT 1")


class TestExecute:

    def test_returns_rows(self, manager):
        pool = _pool(manager)
        pool.conn.rows = [{"current_database": "app"}]

        result = manager.execute("SELECT current_database()")

        assert result == QueryResult(rows=[{"current_database": "app"}], row_count=1)
        assert pool.conn.readonly is True
        assert pool.conn.cursor_factory is psycopg2.extras.RealDictCursor
        assert pool.conn.rollbacks == 1
        assert pool.returned[-1] == (pool.conn, False)

    def test_params_are_bound(self, manager):
        pool = _pool(manager)
        manager.execute("SELECT 1 WHERE x = %s AND y IN %s", ("a", ("b", "c")))
        assert pool.conn.executed[-1][1] == ["a", ("b", "c")]

    def test_empty_params_pass_none(self, manager):
        pool = _pool(manager)
        manager.execute("SELECT 1 WHERE 1=1", [])
        assert pool.conn.executed[-1][1] is None

    def test_query_cancel_maps_to_timeout(self, manager):
        pool = _pool(manager)
        pool.conn.error = psycopg2.extensions.QueryCanceledError("canceling statement due to statement timeout")

        with pytest.raises(QueryTimeoutError) as excinfo:
            manager.execute("SELECT pg_sleep(10)")

        assert excinfo.value.query == "SELECT pg_sleep(10)"
        assert excinfo.value.code == "TIMEOUT_ERROR"
        assert pool.returned[-1] == (pool.conn, False)

    def test_server_error_maps_to_query_error(self, manager):
        pool = _pool(manager)
        pool.conn.error = psycopg2.ProgrammingError('relation "nope" does not exist')

        with pytest.raises(QueryError) as excinfo:
            manager.execute("SELECT * FROM nope")

        assert "does not exist" in excinfo.value.message
        assert excinfo.value.query == "SELECT * FROM nope"
        assert isinstance(excinfo.value.__cause__, psycopg2.ProgrammingError)
        assert pool.conn.rollbacks == 1
        assert pool.returned[-1] == (pool.conn, False)

    def test_lost_connection_is_discarded(self, manager):
        pool = _pool(manager)
        pool.conn.error = psycopg2.OperationalError("server closed the connection unexpectedly")

        with pytest.raises(DatabaseConnectionError):
            manager.execute("SELECT 1")

        assert pool.returned[-1] == (pool.conn, True)


class TestCheckout:

    def test_waits_for_exhausted_pool(self, fake_pool, db_config):
        mgr = PostgresConnectionManager(db_config, PoolConfig(pool_timeout_ms=5000))
        mgr.initialize()
        pool = fake_pool.instances[-1]
        pool.exhausted_for = 2

        assert mgr.execute("SELECT 1").rows == []
        assert pool.exhausted_for == 0
        mgr.close()

    def test_gives_up_after_pool_timeout(self, manager):
        _pool(manager).exhausted_for = 1000
        with pytest.raises(DatabaseConnectionError, match="Could not acquire connection"):
            manager.execute("SELECT 1")
