"""Models describing ingestion run outcomes and read-side responses."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Union

from pydantic import ConfigDict, Field

from shortsfeed.models.base import ShortsBaseModel
from shortsfeed.models.short import NormalizedShort


class ChannelCollected(ShortsBaseModel):
    """Channel ingested and persisted at least one short."""

    status: Literal["collected"] = "collected"
    channel: str
    collected: int = Field(ge=1)
    titles: List[str] = Field(default_factory=list)


class ChannelNoContent(ShortsBaseModel):
    """Channel ingested successfully but produced no shorts."""

    status: Literal["no_content"] = "no_content"
    channel: str
    collected: Literal[0] = 0
    message: str = "No new shorts found."


class ChannelFailed(ShortsBaseModel):
    """Channel ingestion aborted; nothing was persisted for it in this run."""

    status: Literal["failed"] = "failed"
    channel: str
    error: str


ChannelResult = Annotated[
    Union[ChannelCollected, ChannelNoContent, ChannelFailed],
    Field(discriminator="status"),
]


class RunSummary(ShortsBaseModel):
    """Aggregate outcome of an all-channels ingestion run."""

    success: bool
    message: str
    total_collected: int = Field(default=0, ge=0)
    results: List[ChannelResult] = Field(default_factory=list)
    timestamp: datetime


class SingleChannelRun(ShortsBaseModel):
    """Outcome of a single-channel (manual or backfill) ingestion run."""

    success: bool
    message: str
    result: ChannelResult
    timestamp: datetime


class FeedPage(ShortsBaseModel):
    """A page of the public feed. ``has_more`` is true when the page came back full."""

    data: List[NormalizedShort] = Field(default_factory=list)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    has_more: bool = Field(alias="hasMore")

    model_config = ConfigDict(extra="forbid", validate_assignment=True, populate_by_name=True)


class ShortsStats(ShortsBaseModel):
    total_shorts: int = Field(ge=0, alias="totalShorts")

    model_config = ConfigDict(extra="forbid", validate_assignment=True, populate_by_name=True)


__all__ = [
    "ChannelCollected",
    "ChannelFailed",
    "ChannelNoContent",
    "ChannelResult",
    "FeedPage",
    "RunSummary",
    "ShortsStats",
    "SingleChannelRun",
]
