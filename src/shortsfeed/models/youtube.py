"""Pydantic models describing YouTube Data API v3 payloads.

Only the fields consumed by the ingestion pipeline are modelled. Unknown keys are ignored so
that additive API changes do not break parsing, while missing required keys surface as
validation errors (treated as malformed responses by :mod:`shortsfeed.services.youtube`).
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class YouTubePayload(BaseModel):
    """Lenient base for raw API payloads using camelCase aliases."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Thumbnail(YouTubePayload):
    url: str
    width: Optional[int] = None
    height: Optional[int] = None


class Thumbnails(YouTubePayload):
    """Thumbnail variants keyed by resolution name."""

    default: Optional[Thumbnail] = None
    medium: Optional[Thumbnail] = None
    high: Optional[Thumbnail] = None
    standard: Optional[Thumbnail] = None
    maxres: Optional[Thumbnail] = None


class Snippet(YouTubePayload):
    title: str = ""
    channel_id: str = Field(default="", alias="channelId")
    channel_title: str = Field(default="", alias="channelTitle")
    published_at: datetime = Field(alias="publishedAt")
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)


class SearchResultId(YouTubePayload):
    kind: Optional[str] = None
    video_id: Optional[str] = Field(default=None, alias="videoId")


class RawSearchResult(YouTubePayload):
    """One item of a ``search.list`` page: a video identifier plus its snippet."""

    id: SearchResultId
    snippet: Snippet

    @property
    def video_id(self) -> Optional[str]:
        return self.id.video_id


class SearchListResponse(YouTubePayload):
    items: List[RawSearchResult] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(default=None, alias="nextPageToken")


class ContentDetails(YouTubePayload):
    duration: Optional[str] = None


class Statistics(YouTubePayload):
    view_count: Optional[str] = Field(default=None, alias="viewCount")


class Status(YouTubePayload):
    embeddable: Optional[bool] = None


class RawVideoDetail(YouTubePayload):
    """One item of a ``videos.list`` response."""

    id: str
    snippet: Snippet
    content_details: ContentDetails = Field(default_factory=ContentDetails, alias="contentDetails")
    statistics: Statistics = Field(default_factory=Statistics)
    status: Optional[Status] = None


class VideoListResponse(YouTubePayload):
    items: List[RawVideoDetail] = Field(default_factory=list)


__all__ = [
    "ContentDetails",
    "RawSearchResult",
    "RawVideoDetail",
    "SearchListResponse",
    "SearchResultId",
    "Snippet",
    "Statistics",
    "Status",
    "Thumbnail",
    "Thumbnails",
    "VideoListResponse",
    "YouTubePayload",
]
