"""CLI commands for running ingestion, applying migrations and inspecting the store."""

from __future__ import annotations

import asyncio
import json
from functools import lru_cache
from typing import Any, Callable, Coroutine, Optional, Sequence, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from shortsfeed.db.migrate import run_migrations
from shortsfeed.models.run import ChannelCollected, ChannelFailed, ChannelResult, RunSummary, SingleChannelRun
from shortsfeed.services.pacing import DeadlineExceededError
from shortsfeed.services.runner import ChannelNotFoundError, ChannelSelectionError, open_runner
from shortsfeed.services.storage import StorageError, StorageService
from shortsfeed.services.youtube import YouTubeConfigurationError

T = TypeVar("T")


class IngestExitCode:
    """Mapping of meaningful CLI exit codes."""

    SUCCESS = 0
    INVALID_INPUT = 1
    CHANNEL_NOT_FOUND = 2
    NETWORK_ERROR = 3
    PROCESSING_ERROR = 4
    STORAGE_ERROR = 5
    CONFIGURATION_ERROR = 6


def register(app: typer.Typer, console: Console) -> None:
    """Register ingestion and maintenance commands."""

    @lru_cache(maxsize=1)
    def get_storage_service() -> StorageService:
        return StorageService(console=console)

    @app.command("ingest")
    def ingest_all(
        json_output: bool = typer.Option(False, "--json", help="Output the run summary as JSON"),
    ) -> None:
        """Ingest shorts for every active channel."""

        async def _run() -> RunSummary:
            async with open_runner(get_storage_service(), console=console) as runner:
                return await runner.run_all()

        summary = _execute(console, _run)

        if json_output:
            typer.echo(json.dumps(summary.model_dump(mode="json"), ensure_ascii=False, indent=2))
            return

        console.print(Panel.fit(summary.message, border_style="green"))
        _render_results(console, summary.results)

    @app.command("ingest-channel")
    def ingest_channel(
        channel_id: Optional[str] = typer.Option(None, "--channel-id", help="External channel identifier"),
        channel_name: Optional[str] = typer.Option(None, "--channel-name", help="Channel display name"),
        target_count: Optional[int] = typer.Option(None, "--target-count", min=1, help="Stop after this many shorts"),
        json_output: bool = typer.Option(False, "--json", help="Output the run result as JSON"),
    ) -> None:
        """Ingest shorts for a single active channel (manual or backfill runs)."""

        async def _run() -> SingleChannelRun:
            async with open_runner(get_storage_service(), console=console) as runner:
                return await runner.run_channel(
                    channel_id=channel_id,
                    channel_name=channel_name,
                    target_count=target_count,
                )

        run = _execute(console, _run)

        if json_output:
            typer.echo(json.dumps(run.model_dump(mode="json"), ensure_ascii=False, indent=2))
        else:
            console.print(Panel.fit(run.message, border_style="green" if run.success else "red"))
            _render_results(console, [run.result])

        if not run.success:
            raise typer.Exit(code=IngestExitCode.PROCESSING_ERROR)

    @app.command("migrate")
    def migrate() -> None:
        """Apply the SQL migrations."""

        try:
            run_migrations(console=console)
        except Exception as exc:
            console.print(f"[red]Migration error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.STORAGE_ERROR) from exc

    @app.command("stats")
    def stats(
        json_output: bool = typer.Option(False, "--json", help="Output stats as JSON"),
    ) -> None:
        """Show how many shorts are stored."""

        try:
            total = get_storage_service().count_shorts()
        except StorageError as exc:
            console.print(f"[red]Storage error:[/red] {exc}")
            raise typer.Exit(code=IngestExitCode.STORAGE_ERROR) from exc

        if json_output:
            typer.echo(json.dumps({"totalShorts": total}))
            return
        console.print(f"[bold]Total shorts:[/bold] {total}")


def _execute(console: Console, factory: Callable[[], Coroutine[Any, Any, T]]) -> T:
    try:
        return asyncio.run(factory())
    except ChannelSelectionError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=IngestExitCode.INVALID_INPUT) from exc
    except ChannelNotFoundError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        if exc.available:
            names = ", ".join(f"{channel.channel_name} ({channel.channel_id})" for channel in exc.available)
            console.print(f"Available channels: {names}")
        raise typer.Exit(code=IngestExitCode.CHANNEL_NOT_FOUND) from exc
    except YouTubeConfigurationError as exc:
        console.print(f"[red]Configuration error:[/red] {exc}")
        raise typer.Exit(code=IngestExitCode.CONFIGURATION_ERROR) from exc
    except StorageError as exc:
        console.print(f"[red]Storage error:[/red] {exc}")
        raise typer.Exit(code=IngestExitCode.STORAGE_ERROR) from exc
    except DeadlineExceededError as exc:
        console.print(f"[red]Run timed out:[/red] {exc}")
        raise typer.Exit(code=IngestExitCode.NETWORK_ERROR) from exc


def _render_results(console: Console, results: Sequence[ChannelResult]) -> None:
    table = Table(title="Channel Results")
    table.add_column("Channel", style="cyan")
    table.add_column("Status")
    table.add_column("Collected", justify="right")
    table.add_column("Details")

    for result in results:
        if isinstance(result, ChannelCollected):
            table.add_row(result.channel, "[green]collected[/green]", str(result.collected), "; ".join(result.titles))
        elif isinstance(result, ChannelFailed):
            table.add_row(result.channel, "[red]failed[/red]", "-", result.error)
        else:
            table.add_row(result.channel, "[yellow]no content[/yellow]", "0", result.message)

    console.print(table)


__all__ = ["IngestExitCode", "register"]
