"""Per-channel ingestion: search, batch detail fetch, classify, sort."""

from __future__ import annotations

from datetime import datetime
from functools import partial
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence

from rich.console import Console

from shortsfeed.config.settings import Settings, get_settings
from shortsfeed.models.short import NormalizedShort
from shortsfeed.models.youtube import RawSearchResult, RawVideoDetail, SearchListResponse
from shortsfeed.services.classifier import ShortsClassifier
from shortsfeed.services.pacing import Clock, Deadline, FixedIntervalThrottle, SystemClock, Throttle
from shortsfeed.services.retry import RetryPolicy
from shortsfeed.services.search import DEFAULT_MAX_ITEMS, DEFAULT_MAX_PAGES, ChannelSearchPaginator
from shortsfeed.services.youtube import DETAILS_BATCH_LIMIT

DEFAULT_TARGET_COUNT = 100
DEFAULT_RECENCY_YEARS = 3
DEFAULT_BATCH_PAUSE_SECONDS = 0.1


class VideoSource(Protocol):
    """The subset of :class:`shortsfeed.services.youtube.YouTubeClient` used here."""

    async def search_channel_page(
        self,
        channel_id: str,
        *,
        published_after: datetime,
        page_token: Optional[str] = None,
    ) -> SearchListResponse:
        """Return one search page for the channel."""

    async def fetch_video_details(self, video_ids: Sequence[str]) -> List[RawVideoDetail]:
        """Return detail records for a batch of ids."""


def years_before(moment: datetime, years: int) -> datetime:
    """Return ``moment`` shifted back by whole calendar years (29 Feb falls back to 28 Feb)."""

    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        return moment.replace(year=moment.year - years, day=28)


def chunked(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def unique_video_ids(results: Iterable[RawSearchResult]) -> List[str]:
    """Video ids in first-seen order, skipping non-video hits and repeats across pages."""

    seen = set()
    ordered: List[str] = []
    for result in results:
        video_id = result.video_id
        if not video_id or video_id in seen:
            continue
        seen.add(video_id)
        ordered.append(video_id)
    return ordered


class ChannelIngestionService:
    """Produce the normalised, newest-first shorts list for one channel in one run."""

    def __init__(
        self,
        source: VideoSource,
        *,
        classifier: Optional[ShortsClassifier] = None,
        batch_throttle: Optional[Throttle] = None,
        retry_policy: Optional[RetryPolicy] = None,
        clock: Optional[Clock] = None,
        console: Optional[Console] = None,
        default_target_count: int = DEFAULT_TARGET_COUNT,
        recency_window_years: int = DEFAULT_RECENCY_YEARS,
        max_pages: int = DEFAULT_MAX_PAGES,
        max_items: int = DEFAULT_MAX_ITEMS,
    ) -> None:
        self._source = source
        self._clock = clock or SystemClock()
        self._console = console or Console()
        self._classifier = classifier or ShortsClassifier(console=self._console)
        self._batch_throttle = batch_throttle or FixedIntervalThrottle(DEFAULT_BATCH_PAUSE_SECONDS, clock=self._clock)
        self._retry = retry_policy or RetryPolicy(clock=self._clock, console=self._console)
        self._default_target_count = default_target_count
        self._recency_window_years = recency_window_years
        self._max_pages = max_pages
        self._max_items = max_items

    @classmethod
    def from_settings(
        cls,
        source: VideoSource,
        settings: Optional[Settings] = None,
        *,
        clock: Optional[Clock] = None,
        console: Optional[Console] = None,
    ) -> "ChannelIngestionService":
        """Build the service with thresholds, caps and pacing taken from settings."""

        settings = settings or get_settings()
        clock = clock or SystemClock()
        console = console or Console()
        return cls(
            source,
            classifier=ShortsClassifier(max_duration_seconds=settings.shorts_max_duration_seconds, console=console),
            batch_throttle=FixedIntervalThrottle(settings.detail_batch_pause_seconds, clock=clock),
            retry_policy=RetryPolicy(
                max_attempts=settings.api_max_attempts,
                backoff_seconds=settings.api_backoff_seconds,
                clock=clock,
                console=console,
            ),
            clock=clock,
            console=console,
            default_target_count=settings.target_shorts_per_channel,
            recency_window_years=settings.recency_window_years,
            max_pages=settings.max_search_pages,
            max_items=settings.max_search_results,
        )

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def fetch_channel_shorts(
        self,
        channel_id: str,
        *,
        target_count: Optional[int] = None,
        published_after: Optional[datetime] = None,
        max_pages: Optional[int] = None,
        max_items: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> List[NormalizedShort]:
        """Collect shorts for ``channel_id``.

        Parameters
        ----------
        channel_id:
            External channel identifier.
        target_count:
            Stop fetching detail batches once this many shorts are held. The batch that crosses
            the target is kept whole, so the result can exceed it by up to one batch.
        published_after:
            Recency bound for the search; defaults to the configured number of years before now.
        max_pages, max_items:
            Search pagination caps; default to the configured values.
        deadline:
            Run deadline bounding every call and pause.

        Returns
        -------
        list[NormalizedShort]
            Accepted shorts sorted by ``published_at`` descending; empty when nothing matched.

        Raises
        ------
        YouTubeAPIError
            When a search page or detail batch fails after retries. No partial data is returned.
        DeadlineExceededError
            When the run deadline expires.
        """

        deadline = deadline or Deadline.unbounded(clock=self._clock)
        target = target_count if target_count is not None else self._default_target_count
        since = published_after or years_before(self._clock.now(), self._recency_window_years)

        self._console.log(
            f"[blue]Ingestion:[/blue] searching channel {channel_id} "
            f"(target={target}, published_after={since.date().isoformat()})"
        )

        paginator = ChannelSearchPaginator(partial(self._search_page, deadline=deadline), console=self._console)
        raw_results = await paginator.collect(
            channel_id,
            published_after=since,
            max_pages=max_pages if max_pages is not None else self._max_pages,
            max_items=max_items if max_items is not None else self._max_items,
        )

        if not raw_results:
            self._console.log(f"[yellow]Ingestion:[/yellow] no videos for {channel_id} since {since.date().isoformat()}")
            return []

        video_ids = unique_video_ids(raw_results)
        batches = list(chunked(video_ids, DETAILS_BATCH_LIMIT))
        shorts: List[NormalizedShort] = []

        for index, batch in enumerate(batches, start=1):
            details = await self._retry.call(
                partial(self._source.fetch_video_details, batch),
                description=f"video details batch {index}/{len(batches)} for {channel_id}",
                deadline=deadline,
            )
            accepted = self._classifier.classify(details)
            shorts.extend(accepted)
            self._console.log(
                f"Batch {index}/{len(batches)}: {len(details)} details, {len(accepted)} shorts ({len(shorts)} total)"
            )

            if len(shorts) >= target:
                self._console.log(f"[green]Ingestion:[/green] target of {target} shorts reached for {channel_id}")
                break
            if index < len(batches):
                await self._batch_throttle.acquire(deadline)

        shorts.sort(key=lambda short: short.published_at, reverse=True)
        self._console.log(f"[green]Ingestion:[/green] {len(shorts)} shorts collected for {channel_id}")
        return shorts

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _search_page(
        self,
        channel_id: str,
        published_after: datetime,
        page_token: Optional[str],
        *,
        deadline: Deadline,
    ) -> SearchListResponse:
        return await self._retry.call(
            partial(
                self._source.search_channel_page,
                channel_id,
                published_after=published_after,
                page_token=page_token,
            ),
            description=f"search page for {channel_id}",
            deadline=deadline,
        )


__all__ = [
    "ChannelIngestionService",
    "DEFAULT_TARGET_COUNT",
    "VideoSource",
    "chunked",
    "unique_video_ids",
    "years_before",
]
