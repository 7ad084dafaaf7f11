"""Ingestion triggers invoked by an external scheduler or an operator."""

from __future__ import annotations

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from shortsfeed.api.deps import ServiceContainer, get_services, verify_cron_secret

router = APIRouter(prefix="/api/cron", tags=["ingestion"], dependencies=[Depends(verify_cron_secret)])


@router.get("/fetch-shorts")
async def fetch_shorts(services: Annotated[ServiceContainer, Depends(get_services)]) -> Dict[str, Any]:
    """Ingest every active channel and return the per-channel summary."""

    async with services.runner_factory() as runner:
        summary = await runner.run_all()
    services.feed.invalidate()
    return summary.model_dump(mode="json")


@router.get("/fetch-shorts-by-channel")
async def fetch_shorts_by_channel(
    services: Annotated[ServiceContainer, Depends(get_services)],
    channel_id: Annotated[Optional[str], Query(alias="channelId")] = None,
    channel_name: Annotated[Optional[str], Query(alias="channelName")] = None,
    target_count: Annotated[Optional[int], Query(alias="targetCount", ge=1)] = None,
) -> Dict[str, Any]:
    """Ingest one active channel selected by ``channelId`` or ``channelName``."""

    async with services.runner_factory() as runner:
        run = await runner.run_channel(
            channel_id=channel_id,
            channel_name=channel_name,
            target_count=target_count,
        )
    if run.success:
        services.feed.invalidate()
    return run.model_dump(mode="json")


__all__ = ["router"]
