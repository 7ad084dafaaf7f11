"""Pydantic models describing persisted shorts and curated channels."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from shortsfeed.models.base import ShortsBaseModel


class NormalizedShort(ShortsBaseModel):
    """Domain model representing a row in the ``shorts`` table.

    ``video_id`` is the natural key: re-ingesting a video overwrites the stored row through
    :meth:`shortsfeed.db.short_repository.ShortRepository.upsert_many`.
    """

    id: Optional[int] = None
    video_id: str = Field(min_length=1, max_length=20)
    title: str
    channel_id: str
    channel_name: str
    thumbnail_url: str
    published_at: datetime
    duration: int = Field(gt=0)
    view_count: int = Field(default=0, ge=0)
    is_embeddable: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Channel(ShortsBaseModel):
    """A curator-selected source channel. Managed out of band; read-only to ingestion."""

    id: Optional[int] = None
    channel_id: str = Field(min_length=1, max_length=64)
    channel_name: str
    is_active: bool = True
    created_at: Optional[datetime] = None


__all__ = ["Channel", "NormalizedShort"]
