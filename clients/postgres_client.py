"""
PostgreSQL client with connection pooling and explicit transactions.

Uses psycopg2 with ThreadedConnectionPool so each worker thread checks out
its own connection. Single-statement helpers (execute, execute_single, ...)
run in their own short transaction. Multi-statement units of work that need
row locks use transaction(), which yields a cursor bound to one connection
and commits or rolls back as a whole.

Connections are always returned to the pool with no transaction open. A
connection left mid-transaction would keep its row locks.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# Global JSONB/UUID adapter registration flag
_adapters_registered = False


class PostgresClient:
    """
    PostgreSQL client with pooled connections.

    Usage:
        db = PostgresClient(database_url)

        # One-shot queries
        invoices = db.execute("SELECT * FROM invoices")

        # Atomic unit of work holding row locks until commit
        with db.transaction() as tx:
            tx.execute("SELECT * FROM owners WHERE id = %s FOR UPDATE", (owner_id,))
            ...
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )

                global _adapters_registered
                if not _adapters_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    psycopg2.extras.register_uuid()
                    _adapters_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created (max %d connections)", self._max_connections)

    @contextmanager
    def get_connection(self) -> Iterator[psycopg2.extensions.connection]:
        """Check out a pooled connection, rolling back anything left open on return."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")
            yield conn

        finally:
            if conn:
                if conn.closed:
                    pool.putconn(conn, close=True)
                else:
                    if conn.get_transaction_status() != psycopg2.extensions.TRANSACTION_STATUS_IDLE:
                        conn.rollback()
                    pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[psycopg2.extras.RealDictCursor]:
        """
        Run a block as one transaction on one connection.

        Yields a RealDictCursor. Commits when the block exits normally and
        rolls back when it raises; the exception is re-raised unchanged.
        Row locks taken with FOR UPDATE are held until the block exits.
        """
        with self.get_connection() as conn:
            try:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    yield cur
                conn.commit()
            except BaseException:
                if not conn.closed:
                    conn.rollback()
                raise

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self.transaction() as cur:
            cur.execute(query, params)
            if cur.description:
                return [dict(row) for row in cur.fetchall()]
            return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        row = self.execute_single(query, params)
        return next(iter(row.values())) if row else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        with self.transaction() as cur:
            cur.execute(query, params)
            return [dict(row) for row in cur.fetchall()]

    def execute_script(self, sql: str) -> None:
        """Run a multi-statement SQL script (DDL) in one transaction."""
        with self.transaction() as cur:
            cur.execute(sql)

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
