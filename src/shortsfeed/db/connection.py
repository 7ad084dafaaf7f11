"""Process-wide psycopg2 connection pool and DSN resolution."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from psycopg2 import connect
from psycopg2.extensions import connection as PsycopgConnection
from psycopg2.pool import ThreadedConnectionPool

from shortsfeed.config.settings import Settings, get_settings

APPLICATION_NAME = "shortsfeed"


class DatabaseConfigurationError(RuntimeError):
    """Raised when no database DSN is configured."""


class DatabasePool:
    """Hands out transactional connections from a ``ThreadedConnectionPool``.

    Repository calls run on worker threads through ``asyncio.to_thread``, so the pool must be
    shared safely across threads. ``max_connections`` bounds concurrent queries.
    """

    def __init__(self, dsn: str, *, min_connections: int = 1, max_connections: int = 5) -> None:
        if min_connections > max_connections:
            raise DatabaseConfigurationError(
                f"Pool minimum ({min_connections}) exceeds maximum ({max_connections})."
            )
        self._pool = ThreadedConnectionPool(
            min_connections,
            max_connections,
            dsn,
            application_name=APPLICATION_NAME,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabasePool":
        return cls(
            database_dsn(settings),
            min_connections=settings.database_pool_min_connections,
            max_connections=settings.database_pool_max_connections,
        )

    @contextmanager
    def connection(self) -> Iterator[PsycopgConnection]:
        """Yield a connection; commit on success, roll back and re-raise on error."""

        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def close(self) -> None:
        self._pool.closeall()


_pool: Optional[DatabasePool] = None


def database_dsn(settings: Optional[Settings] = None) -> str:
    """Return the configured DSN or raise :class:`DatabaseConfigurationError`."""

    settings = settings or get_settings()
    if settings.database_url is None:
        raise DatabaseConfigurationError("DATABASE_URL is not configured.")
    return str(settings.database_url)


def _ensure_pool() -> DatabasePool:
    global _pool
    if _pool is None:
        _pool = DatabasePool.from_settings(get_settings())
    return _pool


@contextmanager
def get_connection() -> Iterator[PsycopgConnection]:
    """Default :class:`shortsfeed.db.ConnectionFactory`, backed by the shared pool."""

    with _ensure_pool().connection() as conn:
        yield conn


def close_pool() -> None:
    """Close the shared pool if one was opened; safe to call repeatedly."""

    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None


def connection_from_dsn(dsn: str) -> PsycopgConnection:
    """Open a standalone connection outside the pool (used by migrations)."""

    return connect(dsn, application_name=APPLICATION_NAME)


__all__ = [
    "DatabaseConfigurationError",
    "DatabasePool",
    "close_pool",
    "connection_from_dsn",
    "database_dsn",
    "get_connection",
]
