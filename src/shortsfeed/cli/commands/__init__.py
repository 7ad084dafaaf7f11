"""Command modules for the shortsfeed CLI."""

from __future__ import annotations

import typer
from rich.console import Console

from shortsfeed.cli.commands import ingest


def register_commands(app: typer.Typer, console: Console) -> None:
    """Attach ingestion, migration and stats commands to ``app``."""

    ingest.register(app, console)


__all__ = ["register_commands"]
