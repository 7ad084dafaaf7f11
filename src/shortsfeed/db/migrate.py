"""Apply the SQL files under ``db/migrations`` and record which ones have run."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Set

from psycopg2.extensions import cursor as PsycopgCursor
from rich.console import Console
from rich.table import Table

from shortsfeed.config.settings import Settings
from shortsfeed.db.connection import connection_from_dsn, database_dsn

MIGRATIONS_ROOT = Path(__file__).resolve().parent / "migrations"
LEDGER_TABLE = "schema_migrations"

_CREATE_LEDGER = f"""
CREATE TABLE IF NOT EXISTS {LEDGER_TABLE} (
    filename TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def pending_migrations(directory: Path, applied: Set[str]) -> List[Path]:
    """Migration files in lexical order that are not yet in ``applied``."""

    return [path for path in sorted(directory.glob("*.sql")) if path.name not in applied]


def _applied_migrations(db_cursor: PsycopgCursor) -> Set[str]:
    db_cursor.execute(_CREATE_LEDGER)
    db_cursor.execute(f"SELECT filename FROM {LEDGER_TABLE}")
    return {row[0] for row in db_cursor.fetchall()}


def _apply(db_cursor: PsycopgCursor, migration_file: Path) -> None:
    db_cursor.execute(migration_file.read_text(encoding="utf-8"))
    db_cursor.execute(f"INSERT INTO {LEDGER_TABLE} (filename) VALUES (%s)", (migration_file.name,))


def run_migrations(
    console: Optional[Console] = None,
    *,
    settings: Optional[Settings] = None,
    directory: Path = MIGRATIONS_ROOT,
) -> List[str]:
    """Apply pending migrations in one transaction and return their file names.

    Raises
    ------
    DatabaseConfigurationError
        If ``DATABASE_URL`` is not set.
    psycopg2.Error
        If a migration fails; nothing from this invocation is committed.
    """

    console = console or Console()
    connection = connection_from_dsn(database_dsn(settings))

    try:
        with connection.cursor() as db_cursor:
            pending = pending_migrations(directory, _applied_migrations(db_cursor))
            for migration in pending:
                _apply(db_cursor, migration)
        connection.commit()
    except Exception as exc:
        connection.rollback()
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise
    finally:
        connection.close()

    if not pending:
        console.log("[green]Database schema is up to date[/green]")
        return []

    table = Table(title="Database Migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status", style="green")
    for migration in pending:
        table.add_row(migration.name, "applied")
    console.print(table)
    return [migration.name for migration in pending]


def main() -> None:
    """Entry point for ``python -m shortsfeed.db.migrate``."""

    run_migrations()


if __name__ == "__main__":  # pragma: no cover
    main()
