"""Walks a channel's ``search.list`` result pages to collect candidate videos."""

from __future__ import annotations

from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from rich.console import Console

from shortsfeed.models.youtube import RawSearchResult, SearchListResponse

SearchPageFetcher = Callable[[str, datetime, Optional[str]], Awaitable[SearchListResponse]]

DEFAULT_MAX_PAGES = 10
DEFAULT_MAX_ITEMS = 500


class ChannelSearchPaginator:
    """Follow continuation tokens until results, the page cap or the item cap run out."""

    def __init__(self, fetch_page: SearchPageFetcher, *, console: Optional[Console] = None) -> None:
        self._fetch_page = fetch_page
        self._console = console or Console()

    async def collect(
        self,
        channel_id: str,
        *,
        published_after: datetime,
        max_pages: int = DEFAULT_MAX_PAGES,
        max_items: int = DEFAULT_MAX_ITEMS,
    ) -> List[RawSearchResult]:
        """Return raw search results for ``channel_id`` in API order (newest first).

        Parameters
        ----------
        channel_id:
            External channel identifier.
        published_after:
            Lower recency bound forwarded as ``publishedAfter``.
        max_pages:
            Hard cap on the number of page requests.
        max_items:
            Stop requesting pages once this many results are held. The last page is kept whole,
            so the returned list may exceed the cap by less than one page.

        Raises
        ------
        YouTubeAPIError
            Propagated from the first failing page; results gathered so far are discarded.
        """

        collected: List[RawSearchResult] = []
        page_token: Optional[str] = None
        pages_fetched = 0

        while True:
            pages_fetched += 1
            response = await self._fetch_page(channel_id, published_after, page_token)
            collected.extend(response.items)
            self._console.log(
                f"Search page {pages_fetched} for {channel_id}: "
                f"{len(response.items)} videos ({len(collected)} total)"
            )

            page_token = response.next_page_token
            if not page_token:
                break
            if pages_fetched >= max_pages:
                break
            if len(collected) >= max_items:
                break

        return collected


__all__ = ["ChannelSearchPaginator", "DEFAULT_MAX_ITEMS", "DEFAULT_MAX_PAGES", "SearchPageFetcher"]
