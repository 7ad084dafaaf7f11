"""Repository for interacting with the `shorts` table."""

from __future__ import annotations

from typing import Dict, List, Optional

from shortsfeed.db import ConnectionFactory
from shortsfeed.db.repositories import BaseRepository
from shortsfeed.models.short import NormalizedShort


class ShortRepository(BaseRepository[NormalizedShort]):
    """Data access object encapsulating shorts persistence logic."""

    table_name = "shorts"
    model_type = NormalizedShort
    insert_fields = (
        "video_id",
        "title",
        "channel_id",
        "channel_name",
        "thumbnail_url",
        "published_at",
        "duration",
        "view_count",
        "is_embeddable",
    )
    conflict_field = "video_id"
    auto_timestamp_field = "updated_at"

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def list_feed(self, *, limit: int, offset: int, channel_name: Optional[str] = None) -> List[NormalizedShort]:
        """Return embeddable shorts newest first, optionally restricted to one channel."""

        where_clause = "is_embeddable = TRUE"
        params: Dict[str, object] = {"limit": limit, "offset": offset}
        if channel_name:
            where_clause = f"{where_clause} AND channel_name = %(channel_name)s"
            params["channel_name"] = channel_name

        query = self._select("*", where_clause)
        query = f"{query} ORDER BY published_at DESC, video_id LIMIT %(limit)s OFFSET %(offset)s"
        rows = self._fetch_many(query, params)
        return [self.model_type.model_validate(row) for row in rows]


__all__ = ["ShortRepository"]
