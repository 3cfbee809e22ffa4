"""
PostgreSQL access for invoices, counters and the audit log.

Every connection handed out is first scoped to the current tenant through
the app.current_user_id setting, which the RLS policies on invoices,
invoice_counters and audit_log compare against. Outside a user context the
setting is '' and the policies match nothing.
"""

import logging
import math
import threading
from contextlib import contextmanager
from typing import Any, Mapping, Sequence
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

from utils.user_context import peek_current_user_id

logger = logging.getLogger(__name__)

Params = Sequence[Any] | Mapping[str, Any] | None

_jsonb_registered = False


def _plain(value: Any) -> Any:
    """UUIDs become strings, containers are walked."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return type(value)(_plain(v) for v in value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    return value


def _tcp_options(timeout_seconds: float | None) -> dict[str, int]:
    if timeout_seconds is None:
        return {}
    seconds = max(1, math.ceil(timeout_seconds))
    return {
        "keepalives": 1,
        "keepalives_idle": seconds,
        "keepalives_interval": 1,
        "keepalives_count": 1,
        "tcp_user_timeout": int(timeout_seconds * 1000),
    }


class PostgresClient:
    """
    Pooled psycopg2 client. Rows come back as plain dicts.

        db = PostgresClient(get_database_url())
        with user_context(tenant_id):
            db.execute("SELECT record FROM invoices")   # tenant's rows only
    """

    # One pool per DSN, shared by every client in the process
    _connection_pools: dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(
        self,
        database_url: str,
        connect_timeout: int = 10,
        max_connections: int = 10,
        tcp_timeout_seconds: float | None = None,
    ):
        """
        tcp_timeout_seconds bounds a silent server on an open connection:
        keepalive probes start after it and unacknowledged writes give up
        after it (libpq tcp_user_timeout). None leaves the OS defaults.
        """
        self._database_url = database_url
        self._connect_timeout = connect_timeout
        self._max_connections = max_connections
        self._tcp_options = _tcp_options(tcp_timeout_seconds)
        self._pool()

    def _pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        global _jsonb_registered
        with self._pools_lock:
            pool = self._connection_pools.get(self._database_url)
            if pool is None:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=self._connect_timeout,
                    **self._tcp_options,
                )
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    _jsonb_registered = True
                self._connection_pools[self._database_url] = pool
                logger.info("Postgres pool created (max %d connections)", self._max_connections)
            return pool

    @staticmethod
    def _scope_to_tenant(conn) -> None:
        user_id = peek_current_user_id()
        with conn.cursor() as cur:
            if user_id is None:
                # RLS casts the setting to uuid; '' matches no rows
                cur.execute("SET app.current_user_id = ''")
            else:
                cur.execute("SET app.current_user_id = %s", (str(user_id),))

    @contextmanager
    def get_connection(self):
        """Tenant-scoped connection; rolled back on error, always returned to the pool."""
        pool = self._pool()
        conn = pool.getconn()
        if conn is None:
            raise RuntimeError("Could not get connection from pool")

        try:
            self._scope_to_tenant(conn)
            yield conn
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    def _run(
        self,
        query: str,
        params: Params,
        statement_timeout_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                if statement_timeout_ms is not None:
                    cur.execute("SET LOCAL statement_timeout = %s", (int(statement_timeout_ms),))
                cur.execute(query, _plain(params))
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
            conn.commit()
            return rows

    def execute(self, query: str, params: Params = None) -> list[dict[str, Any]]:
        """Run one statement. Statements without a result set return []."""
        return self._run(query, params)

    def execute_single(self, query: str, params: Params = None) -> dict[str, Any] | None:
        rows = self._run(query, params)
        return rows[0] if rows else None

    def execute_returning(
        self,
        query: str,
        params: Params = None,
        statement_timeout_ms: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        INSERT/UPDATE ... RETURNING.

        statement_timeout_ms applies to this transaction only (SET LOCAL);
        running over raises psycopg2.errors.QueryCanceled.
        """
        return self._run(query, params, statement_timeout_ms)

    def close(self) -> None:
        with self._pools_lock:
            pool = self._connection_pools.pop(self._database_url, None)
            if pool is not None:
                pool.closeall()

    @classmethod
    def close_all_pools(cls) -> None:
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
