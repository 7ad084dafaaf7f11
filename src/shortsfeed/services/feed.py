"""Read side of the feed: paginated shorts with a bounded TTL cache, channels and stats."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import Generic, Hashable, List, Optional, Tuple, TypeVar

from shortsfeed.models.run import FeedPage, ShortsStats
from shortsfeed.models.short import Channel
from shortsfeed.services.pacing import Clock, SystemClock
from shortsfeed.services.storage import ShortsStore

V = TypeVar("V")

DEFAULT_CACHE_TTL_SECONDS = 300.0
DEFAULT_CACHE_MAX_ENTRIES = 256

FeedKey = Tuple[int, int, Optional[str]]


class FeedCache(Generic[V]):
    """Least-recently-used cache whose entries also expire after a fixed TTL.

    The cache is per process; horizontally scaled deployments each hold their own copy and
    rely on the TTL for convergence.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
        clock: Optional[Clock] = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock or SystemClock()
        self._entries: "OrderedDict[Hashable, Tuple[float, V]]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[V]:
        hit = self._entries.get(key)
        if hit is None:
            return None
        expires_at, value = hit
        if self._clock.monotonic() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: Hashable, value: V) -> None:
        self._entries[key] = (self._clock.monotonic() + self._ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class FeedService:
    """Serve feed pages, the channel list and aggregate stats from a :class:`ShortsStore`."""

    def __init__(self, store: ShortsStore, *, cache: Optional[FeedCache[FeedPage]] = None) -> None:
        self._store = store
        self._cache: FeedCache[FeedPage] = cache if cache is not None else FeedCache()

    async def get_page(self, page: int, limit: int, channel: Optional[str] = None) -> FeedPage:
        """Return page ``page`` (1-based) of embeddable shorts, newest first.

        ``has_more`` is a heuristic: it is true whenever the page came back exactly full, so the
        page after an exactly full final page is empty.
        """

        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")

        key: FeedKey = (page, limit, channel or None)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        offset = (page - 1) * limit
        shorts = await asyncio.to_thread(
            self._store.list_shorts, limit=limit, offset=offset, channel_name=channel or None
        )
        result = FeedPage(data=shorts, page=page, limit=limit, has_more=len(shorts) == limit)
        self._cache.set(key, result)
        return result

    async def list_channels(self) -> List[Channel]:
        return await asyncio.to_thread(self._store.get_active_channels)

    async def stats(self) -> ShortsStats:
        total = await asyncio.to_thread(self._store.count_shorts)
        return ShortsStats(total_shorts=total)

    def invalidate(self) -> None:
        """Drop cached pages, e.g. after an ingestion run in this process."""

        self._cache.clear()


__all__ = ["FeedCache", "FeedService"]
