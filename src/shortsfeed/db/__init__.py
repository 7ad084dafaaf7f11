"""Postgres access: connection pool, migrations and table repositories."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol

from psycopg2.extensions import connection as PsycopgConnection


class ConnectionFactory(Protocol):
    """Zero-argument callable returning a context manager around one transactional connection.

    :func:`shortsfeed.db.connection.get_connection` is the pooled default; tests pass fakes.
    """

    def __call__(self) -> AbstractContextManager[PsycopgConnection]: ...


__all__ = ["ConnectionFactory"]
