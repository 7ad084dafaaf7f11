"""Persistence gateway: idempotent shorts upsert plus the read paths behind the feed."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol, Sequence

import psycopg2
from rich.console import Console

from shortsfeed.config.settings import Settings, get_settings
from shortsfeed.db import ConnectionFactory
from shortsfeed.db.channel_repository import ChannelRepository
from shortsfeed.db.connection import DatabaseConfigurationError, get_connection
from shortsfeed.db.migrate import run_migrations
from shortsfeed.db.repositories import RepositoryError
from shortsfeed.db.short_repository import ShortRepository
from shortsfeed.models.short import Channel, NormalizedShort


class StorageError(RuntimeError):
    """Base exception raised when persistence fails."""


class ShortsStore(Protocol):
    """Operations the ingestion core and the feed depend on."""

    def upsert_shorts(self, shorts: Sequence[NormalizedShort]) -> int:
        """Insert or overwrite shorts keyed by ``video_id``; return rows written."""

    def get_active_channels(self) -> List[Channel]:
        """Return the curated channels currently marked active."""

    def list_shorts(self, *, limit: int, offset: int, channel_name: Optional[str] = None) -> List[NormalizedShort]:
        """Return one feed page of embeddable shorts, newest first."""

    def count_shorts(self) -> int:
        """Return the number of persisted shorts."""


class StorageService:
    """Postgres implementation of :class:`ShortsStore`."""

    _migrations_applied: bool = False

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        connection_factory: Optional[ConnectionFactory] = None,
        auto_migrate: bool = True,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._connection_factory = connection_factory or get_connection
        self._short_repo = ShortRepository(self._connection_factory)
        self._channel_repo = ChannelRepository(self._connection_factory)

        if auto_migrate and not StorageService._migrations_applied:
            try:
                run_migrations(console=self._console, settings=self._settings)
            except Exception as exc:  # pragma: no cover - surfaced to caller
                raise StorageError(f"Failed to run database migrations: {exc}") from exc
            StorageService._migrations_applied = True

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def upsert_shorts(self, shorts: Sequence[NormalizedShort]) -> int:
        """Persist shorts, overwriting existing rows with the same ``video_id``.

        Parameters
        ----------
        shorts:
            Normalised records from one channel run. An empty sequence is a no-op.

        Returns
        -------
        int
            Number of distinct rows written.

        Raises
        ------
        StorageError
            If the database rejects the write.
        """

        if not shorts:
            return 0
        with self._translate_errors("upsert shorts"):
            written = self._short_repo.upsert_many(shorts)
        self._console.log(f"[green]Storage:[/green] upserted {written} shorts")
        return written

    def get_active_channels(self) -> List[Channel]:
        with self._translate_errors("load active channels"):
            return self._channel_repo.list_active()

    def list_shorts(self, *, limit: int, offset: int, channel_name: Optional[str] = None) -> List[NormalizedShort]:
        with self._translate_errors("list shorts"):
            return self._short_repo.list_feed(limit=limit, offset=offset, channel_name=channel_name)

    def count_shorts(self) -> int:
        with self._translate_errors("count shorts"):
            return self._short_repo.count()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (psycopg2.Error, RepositoryError, DatabaseConfigurationError) as exc:
            self._console.log(f"[red]Storage:[/red] failed to {operation}: {exc}")
            raise StorageError(f"Failed to {operation}: {exc}") from exc


__all__ = ["ShortsStore", "StorageError", "StorageService"]
