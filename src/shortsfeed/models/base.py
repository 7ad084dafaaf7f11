"""Base model for persisted and API-facing shortsfeed records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ShortsBaseModel(BaseModel):
    """Strict base: unknown fields are rejected and assignments are re-validated.

    Raw YouTube payloads use the lenient :class:`shortsfeed.models.youtube.YouTubePayload` instead.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


__all__ = ["ShortsBaseModel"]
