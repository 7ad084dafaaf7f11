"""Tests for channel search pagination."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import pytest

from conftest import make_search_page
from shortsfeed.models.youtube import SearchListResponse
from shortsfeed.services.search import ChannelSearchPaginator
from shortsfeed.services.youtube import YouTubeAPIError

SINCE = datetime(2021, 6, 1, tzinfo=timezone.utc)


class ScriptedPages:
    def __init__(self, pages: List[SearchListResponse], fail_at: Optional[int] = None) -> None:
        self.pages = pages
        self.fail_at = fail_at
        self.tokens: List[Optional[str]] = []

    async def __call__(self, channel_id: str, published_after: datetime, page_token: Optional[str]) -> SearchListResponse:
        index = len(self.tokens)
        self.tokens.append(page_token)
        if self.fail_at is not None and index == self.fail_at:
            raise YouTubeAPIError("YouTube API error: 500", status_code=500)
        return self.pages[index]


def ids(prefix: str, count: int) -> List[str]:
    return [f"{prefix}{index}" for index in range(count)]


@pytest.mark.asyncio
async def test_stops_when_no_continuation_token(console) -> None:
    fetch = ScriptedPages([make_search_page(ids("a", 50), "p2"), make_search_page(ids("b", 10))])
    paginator = ChannelSearchPaginator(fetch, console=console)

    results = await paginator.collect("UC_alpha", published_after=SINCE)

    assert len(results) == 60
    assert fetch.tokens == [None, "p2"]
    assert results[0].video_id == "a0"
    assert results[-1].video_id == "b9"


@pytest.mark.asyncio
async def test_stops_at_page_cap(console) -> None:
    fetch = ScriptedPages([make_search_page(ids(f"p{page}-", 5), f"t{page + 1}") for page in range(5)])
    paginator = ChannelSearchPaginator(fetch, console=console)

    results = await paginator.collect("UC_alpha", published_after=SINCE, max_pages=3)

    assert len(fetch.tokens) == 3
    assert len(results) == 15


@pytest.mark.asyncio
async def test_stops_at_item_cap_without_truncating(console) -> None:
    fetch = ScriptedPages([make_search_page(ids(f"p{page}-", 50), f"t{page + 1}") for page in range(4)])
    paginator = ChannelSearchPaginator(fetch, console=console)

    results = await paginator.collect("UC_alpha", published_after=SINCE, max_items=120)

    assert len(fetch.tokens) == 3
    assert len(results) == 150


@pytest.mark.asyncio
async def test_empty_first_page(console) -> None:
    fetch = ScriptedPages([make_search_page([])])
    paginator = ChannelSearchPaginator(fetch, console=console)

    assert await paginator.collect("UC_alpha", published_after=SINCE) == []


@pytest.mark.asyncio
async def test_page_failure_propagates(console) -> None:
    fetch = ScriptedPages([make_search_page(ids("a", 50), "p2"), make_search_page(ids("b", 50))], fail_at=1)
    paginator = ChannelSearchPaginator(fetch, console=console)

    with pytest.raises(YouTubeAPIError):
        await paginator.collect("UC_alpha", published_after=SINCE)
