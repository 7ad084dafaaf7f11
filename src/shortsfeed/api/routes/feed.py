"""Public read endpoints consumed by the feed client."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from shortsfeed.api.deps import ServiceContainer, get_services

router = APIRouter(prefix="/api", tags=["feed"])

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20


@router.get("/shorts")
async def list_shorts(
    services: Annotated[ServiceContainer, Depends(get_services)],
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    channel: Annotated[Optional[str], Query(min_length=1)] = None,
) -> Dict[str, Any]:
    feed_page = await services.feed.get_page(page, limit, channel)
    return feed_page.model_dump(mode="json", by_alias=True)


@router.get("/channels")
async def list_channels(services: Annotated[ServiceContainer, Depends(get_services)]) -> List[Dict[str, Any]]:
    channels = await services.feed.list_channels()
    return [
        channel.model_dump(mode="json", include={"id", "channel_id", "channel_name", "is_active"})
        for channel in channels
    ]


@router.get("/stats")
async def stats(services: Annotated[ServiceContainer, Depends(get_services)]) -> Dict[str, Any]:
    summary = await services.feed.stats()
    return summary.model_dump(mode="json", by_alias=True)


__all__ = ["router"]
