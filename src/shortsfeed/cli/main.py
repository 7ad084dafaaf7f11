"""Typer application wiring for the ``shortsfeed`` command."""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from shortsfeed import __version__
from shortsfeed.cli.commands import register_commands

APP_HELP = "Ingest curated YouTube Shorts and inspect the feed store."


class CLIApplication:
    """Owns the Typer app and the console every command writes to."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self._app = typer.Typer(name="shortsfeed", help=APP_HELP, add_completion=False, rich_markup_mode="rich")
        register_commands(self._app, self.console)
        self._register_root_callback()

    @property
    def app(self) -> typer.Typer:
        return self._app

    def run(self, *, args: Optional[list[str]] = None) -> None:
        self._app(prog_name="shortsfeed", args=args)

    def _register_root_callback(self) -> None:
        console = self.console

        @self._app.callback(invoke_without_command=True)
        def root(
            ctx: typer.Context,
            version: bool = typer.Option(False, "--version", help="Show the installed version and exit"),
        ) -> None:
            if version:
                console.print(f"shortsfeed {__version__}")
                raise typer.Exit()
            if ctx.invoked_subcommand is None:
                console.print(ctx.get_help())


def create_app(console: Optional[Console] = None) -> typer.Typer:
    """Return a configured Typer app; tests pass a quiet console."""

    return CLIApplication(console=console).app


def main() -> None:
    CLIApplication().run()


__all__ = ["CLIApplication", "create_app", "main"]
