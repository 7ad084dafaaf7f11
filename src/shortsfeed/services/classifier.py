"""Duration-based shorts classification and record normalisation."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from rich.console import Console

from shortsfeed.models.short import NormalizedShort
from shortsfeed.models.youtube import RawVideoDetail, Thumbnails
from shortsfeed.utils.duration import is_parseable_duration, parse_duration

SHORT_MAX_DURATION_SECONDS = 70
PLACEHOLDER_THUMBNAIL_URL = "https://via.placeholder.com/480x360?text=No+Thumbnail"

_LEADING_DIGITS = re.compile(r"\s*(\d+)")


def select_thumbnail(thumbnails: Thumbnails) -> str:
    """Pick the best available thumbnail: maxres, then high, then medium, else a placeholder."""

    for variant in (thumbnails.maxres, thumbnails.high, thumbnails.medium):
        if variant is not None and variant.url:
            return variant.url
    return PLACEHOLDER_THUMBNAIL_URL


def parse_view_count(value: Optional[str]) -> int:
    """Parse the API's string view count, returning ``0`` when absent or unparseable."""

    if not value:
        return 0
    match = _LEADING_DIGITS.match(value)
    return int(match.group(1)) if match else 0


class ShortsClassifier:
    """Keep videos whose duration lies in ``(0, max_duration_seconds]`` and normalise them."""

    def __init__(
        self,
        *,
        max_duration_seconds: int = SHORT_MAX_DURATION_SECONDS,
        console: Optional[Console] = None,
    ) -> None:
        self._max_duration = max_duration_seconds
        self._console = console or Console()

    @property
    def max_duration_seconds(self) -> int:
        return self._max_duration

    def is_short(self, duration_seconds: int) -> bool:
        return 0 < duration_seconds <= self._max_duration

    def classify(self, details: Iterable[RawVideoDetail]) -> List[NormalizedShort]:
        """Return normalised shorts in input order; everything else is dropped."""

        accepted: List[NormalizedShort] = []
        for detail in details:
            encoded = detail.content_details.duration
            duration = parse_duration(encoded)
            if duration == 0:
                self._log_zero_duration(detail, encoded)
                continue
            if not self.is_short(duration):
                continue
            accepted.append(self.normalize(detail, duration))
        return accepted

    def normalize(self, detail: RawVideoDetail, duration: int) -> NormalizedShort:
        """Map a raw detail record onto the persisted shape."""

        snippet = detail.snippet
        embeddable = True
        if detail.status is not None and detail.status.embeddable is False:
            embeddable = False

        return NormalizedShort(
            video_id=detail.id,
            title=snippet.title,
            channel_id=snippet.channel_id,
            channel_name=snippet.channel_title,
            thumbnail_url=select_thumbnail(snippet.thumbnails),
            published_at=snippet.published_at,
            duration=duration,
            view_count=parse_view_count(detail.statistics.view_count),
            is_embeddable=embeddable,
        )

    def _log_zero_duration(self, detail: RawVideoDetail, encoded: Optional[str]) -> None:
        if is_parseable_duration(encoded):
            self._console.log(f"[yellow]Skipping zero-length video[/yellow] {detail.id} (duration={encoded!r})")
        else:
            self._console.log(f"[yellow]Unparseable duration[/yellow] for {detail.id}: {encoded!r}; video excluded")


__all__ = [
    "PLACEHOLDER_THUMBNAIL_URL",
    "SHORT_MAX_DURATION_SECONDS",
    "ShortsClassifier",
    "parse_view_count",
    "select_thumbnail",
]
