"""Repository for interacting with the `channels` table."""

from __future__ import annotations

from typing import List

from shortsfeed.db import ConnectionFactory
from shortsfeed.db.repositories import BaseRepository
from shortsfeed.models.short import Channel


class ChannelRepository(BaseRepository[Channel]):
    """Read access to curated channels. Rows are maintained by administrators."""

    table_name = "channels"
    model_type = Channel
    insert_fields = ("channel_id", "channel_name", "is_active")
    conflict_field = "channel_id"

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def list_active(self) -> List[Channel]:
        """Return active channels in a stable order."""

        return self.fetch_all("is_active = TRUE", order_by="id")


__all__ = ["ChannelRepository"]
