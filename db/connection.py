"""
db/connection.py
----------------
Manages the PostgreSQL connection pool for the direct `postgres` backend.
Uses psycopg2's ThreadedConnectionPool, since request handlers run
database calls on worker threads.

psycopg2 raises PoolError as soon as every connection is checked out, so
checkouts are gated by a semaphore sized to the pool: a request arriving
while the pool is exhausted waits for a connection instead of failing.
"""

import threading
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import pool

from utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionPool:
    """Owns one psycopg2 pool; created at startup and passed to the backend."""

    def __init__(self, dsn: str, min_conn: int = 1, max_conn: int = 5):
        self._dsn = dsn
        self._min_conn = min_conn
        self._max_conn = max_conn
        self._pool: pool.ThreadedConnectionPool | None = None
        self._slots = threading.BoundedSemaphore(max_conn)

    def init(self) -> None:
        """
        Open the pool.

        Raises:
            psycopg2.OperationalError: If the database is unreachable.
        """
        if self._pool is not None:
            return
        try:
            self._pool = pool.ThreadedConnectionPool(
                self._min_conn, self._max_conn, self._dsn
            )
            logger.info("Database connection pool initialized successfully.")
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to initialize database pool: {e}")
            raise

    def get_connection(self):
        """
        Get a connection from the pool, waiting while all are in use.

        Raises:
            RuntimeError: If the pool has not been initialized.
        """
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call init() first.")
        self._slots.acquire()
        try:
            return self._pool.getconn()
        except Exception:
            self._slots.release()
            raise

    def release_connection(self, conn) -> None:
        """Return a connection back to the pool."""
        if self._pool is not None:
            self._pool.putconn(conn)
            self._slots.release()

    @contextmanager
    def connection(self) -> Iterator:
        """Yield a pooled connection; commit on success, roll back on error."""
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.release_connection(conn)

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.info("Database connection pool closed.")
