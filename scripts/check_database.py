"""Connectivity check for the shortsfeed Postgres database."""

from __future__ import annotations

from psycopg2 import connect
from rich.console import Console

from shortsfeed.db.connection import DatabaseConfigurationError, database_dsn


def main() -> None:
    """Connect with DATABASE_URL and report how many channels and shorts are stored."""

    console = Console()
    try:
        dsn = database_dsn()
    except DatabaseConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    try:
        with connect(dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT COUNT(*) FROM channels WHERE is_active = TRUE;")
                active_channels = cur.fetchone()[0]
                cur.execute("SELECT COUNT(*) FROM shorts;")
                shorts = cur.fetchone()[0]
    except Exception as exc:  # pragma: no cover - diagnostic script
        console.print(f"[red]Connection failed:[/red] {exc}")
        raise SystemExit(1) from exc

    console.print(f"[green]Connection successful[/green]: {active_channels} active channels, {shorts} shorts")


if __name__ == "__main__":
    main()
