"""Drives channel ingestion across the curated channel list with failure isolation."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional, Protocol, Sequence, TypeVar

import httpx
from rich.console import Console

from shortsfeed.config.settings import Settings, get_settings
from shortsfeed.models.run import (
    ChannelCollected,
    ChannelFailed,
    ChannelNoContent,
    ChannelResult,
    RunSummary,
    SingleChannelRun,
)
from shortsfeed.models.short import Channel, NormalizedShort
from shortsfeed.services.ingestion import ChannelIngestionService
from shortsfeed.services.pacing import Clock, Deadline, FixedIntervalThrottle, SystemClock, Throttle
from shortsfeed.services.storage import ShortsStore
from shortsfeed.services.youtube import YouTubeClient

T = TypeVar("T")

ALL_CHANNELS_SAMPLE_TITLES = 3
SINGLE_CHANNEL_SAMPLE_TITLES = 5
DEFAULT_CHANNEL_PAUSE_SECONDS = 2.0


class ChannelSelectionError(ValueError):
    """Raised when a single-channel run does not name exactly one channel selector."""


class ChannelNotFoundError(LookupError):
    """Raised when the requested channel is not in the active set."""

    def __init__(self, selector: str, available: Sequence[Channel]) -> None:
        super().__init__(f"Channel not found: {selector}")
        self.selector = selector
        self.available = list(available)


class ChannelIngestor(Protocol):
    async def fetch_channel_shorts(
        self,
        channel_id: str,
        *,
        target_count: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[NormalizedShort]:
        """Return the shorts collected for one channel."""


class IngestionRunner:
    """Run channel ingestion sequentially, persisting each channel's result as it completes."""

    def __init__(
        self,
        ingestion: ChannelIngestor,
        store: ShortsStore,
        *,
        channel_throttle: Optional[Throttle] = None,
        clock: Optional[Clock] = None,
        console: Optional[Console] = None,
        deadline_seconds: Optional[float] = None,
    ) -> None:
        self._ingestion = ingestion
        self._store = store
        self._clock = clock or SystemClock()
        self._console = console or Console()
        self._channel_throttle = channel_throttle or FixedIntervalThrottle(
            DEFAULT_CHANNEL_PAUSE_SECONDS, clock=self._clock
        )
        self._deadline_seconds = deadline_seconds

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def run_all(self, *, deadline: Optional[Deadline] = None) -> RunSummary:
        """Ingest every active channel in list order.

        A failing channel is recorded as :class:`ChannelFailed` and the loop moves on; it never
        aborts the remaining channels. Only failing to load the channel list itself propagates.
        """

        deadline = deadline or self._new_deadline()
        channels = await self._call_store(self._store.get_active_channels, deadline=deadline)
        self._console.log(f"[blue]Run:[/blue] {len(channels)} active channels")

        results: List[ChannelResult] = []
        for index, channel in enumerate(channels):
            self._console.log(f"Processing channel {channel.channel_name} ({channel.channel_id})")
            result = await self._ingest_channel(
                channel,
                target_count=None,
                sample_size=ALL_CHANNELS_SAMPLE_TITLES,
                deadline=deadline,
            )
            results.append(result)

            # No pause after the last channel; nothing follows it.
            if index < len(channels) - 1:
                await self._pause_between_channels(deadline)

        total = sum(result.collected for result in results if isinstance(result, ChannelCollected))
        failed = sum(1 for result in results if isinstance(result, ChannelFailed))
        message = f"Collected {total} shorts from {len(channels)} channels."
        if failed:
            message = f"{message} {failed} channel(s) failed."
        self._console.log(f"[green]Run complete:[/green] {message}")

        return RunSummary(
            success=True,
            message=message,
            total_collected=total,
            results=results,
            timestamp=self._clock.now(),
        )

    async def run_channel(
        self,
        *,
        channel_id: Optional[str] = None,
        channel_name: Optional[str] = None,
        target_count: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> SingleChannelRun:
        """Ingest one active channel selected by id or by display name.

        Raises
        ------
        ChannelSelectionError
            If neither or both selectors are given, or ``target_count`` is not positive.
        ChannelNotFoundError
            If no active channel matches; carries the active channels for guidance.
        """

        if bool(channel_id) == bool(channel_name):
            raise ChannelSelectionError("Exactly one of channelId or channelName is required.")
        if target_count is not None and target_count < 1:
            raise ChannelSelectionError("targetCount must be a positive integer.")

        deadline = deadline or self._new_deadline()
        channels = await self._call_store(self._store.get_active_channels, deadline=deadline)
        channel = self._find_channel(channels, channel_id=channel_id, channel_name=channel_name)
        self._console.log(
            f"[blue]Run:[/blue] single channel {channel.channel_name} ({channel.channel_id}), "
            f"target={target_count or 'default'}"
        )

        result = await self._ingest_channel(
            channel,
            target_count=target_count,
            sample_size=SINGLE_CHANNEL_SAMPLE_TITLES,
            deadline=deadline,
        )

        if isinstance(result, ChannelFailed):
            success = False
            message = f"Ingestion failed for {channel.channel_name}."
        else:
            success = True
            message = f"Collected {result.collected} shorts from {channel.channel_name}."

        return SingleChannelRun(success=success, message=message, result=result, timestamp=self._clock.now())

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _ingest_channel(
        self,
        channel: Channel,
        *,
        target_count: Optional[int],
        sample_size: int,
        deadline: Deadline,
    ) -> ChannelResult:
        name = channel.channel_name
        try:
            shorts = await self._ingestion.fetch_channel_shorts(
                channel.channel_id,
                target_count=target_count,
                deadline=deadline,
            )
            if not shorts:
                self._console.log(f"[yellow]{name}:[/yellow] no new shorts")
                return ChannelNoContent(channel=name)

            # A write that has started always runs to completion: a failed result means no rows.
            deadline.require(0, "upsert_shorts")
            await asyncio.to_thread(self._store.upsert_shorts, shorts)
            self._console.log(f"[green]{name}:[/green] stored {len(shorts)} shorts")
            return ChannelCollected(
                channel=name,
                collected=len(shorts),
                titles=[short.title for short in shorts[:sample_size]],
            )
        except Exception as exc:  # isolate the failure to this channel's entry
            self._console.log(f"[red]{name} failed:[/red] {exc.__class__.__name__}: {exc}")
            return ChannelFailed(channel=name, error=str(exc) or exc.__class__.__name__)

    async def _pause_between_channels(self, deadline: Deadline) -> None:
        if deadline.expired:
            return
        try:
            await self._channel_throttle.acquire(deadline)
        except TimeoutError:
            # The next channel will record the expired deadline as its failure.
            return

    async def _call_store(self, func: Callable[..., T], *args: object, deadline: Deadline) -> T:
        return await deadline.run(asyncio.to_thread(func, *args), operation=getattr(func, "__name__", "storage call"))

    def _find_channel(
        self,
        channels: Sequence[Channel],
        *,
        channel_id: Optional[str],
        channel_name: Optional[str],
    ) -> Channel:
        for channel in channels:
            if channel_id and channel.channel_id == channel_id:
                return channel
            if channel_name and channel.channel_name == channel_name:
                return channel
        raise ChannelNotFoundError(channel_id or channel_name or "", channels)

    def _new_deadline(self) -> Deadline:
        return Deadline(self._deadline_seconds, clock=self._clock)


@asynccontextmanager
async def open_runner(
    store: ShortsStore,
    *,
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    clock: Optional[Clock] = None,
    console: Optional[Console] = None,
) -> AsyncIterator[IngestionRunner]:
    """Wire the production ingestion graph and close the YouTube client afterwards.

    Raises :class:`shortsfeed.services.youtube.YouTubeConfigurationError` before any work
    starts when the API key is missing.
    """

    settings = settings or get_settings()
    clock = clock or SystemClock()
    console = console or Console()
    client = YouTubeClient.from_settings(settings, http_client=http_client, clock=clock, console=console)
    try:
        ingestion = ChannelIngestionService.from_settings(client, settings, clock=clock, console=console)
        yield IngestionRunner(
            ingestion,
            store,
            channel_throttle=FixedIntervalThrottle(settings.channel_pause_seconds, clock=clock),
            clock=clock,
            console=console,
            deadline_seconds=settings.ingestion_deadline_seconds,
        )
    finally:
        await client.aclose()


__all__ = [
    "ChannelIngestor",
    "ChannelNotFoundError",
    "ChannelSelectionError",
    "IngestionRunner",
    "open_runner",
]
