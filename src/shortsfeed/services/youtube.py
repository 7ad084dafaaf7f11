"""Async client for the two YouTube Data API v3 endpoints used by ingestion."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx
from pydantic import ValidationError
from rich.console import Console

from shortsfeed.config.settings import Settings, get_settings
from shortsfeed.models.youtube import RawVideoDetail, SearchListResponse, VideoListResponse
from shortsfeed.services.pacing import Clock, RateLimiter, Throttle

DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"
SEARCH_PAGE_SIZE = 50
DETAILS_BATCH_LIMIT = 50
DETAIL_PARTS = "snippet,contentDetails,statistics,status"
RATE_LIMIT_SERVICE = "youtube_api"

_QUOTA_REASONS = frozenset({"quotaExceeded", "dailyLimitExceeded"})
_THROTTLE_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded"})


class YouTubeAPIError(RuntimeError):
    """Raised when a YouTube API call fails or returns an unusable payload."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.retryable = retryable


class QuotaExceededError(YouTubeAPIError):
    """Raised when the daily API quota is exhausted; never worth retrying within a run."""


class YouTubeConfigurationError(RuntimeError):
    """Raised when the client cannot be built from the current settings."""


def format_rfc3339(value: datetime) -> str:
    """Render ``value`` the way the ``publishedAfter`` parameter expects it."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class YouTubeClient:
    """Thin wrapper over ``search.list`` and ``videos.list``.

    The client performs exactly one HTTP request per call and never retries; retry and
    deadline policy belong to :class:`shortsfeed.services.ingestion.ChannelIngestionService`.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 15.0,
        rate_limiter: Optional[Throttle] = None,
        console: Optional[Console] = None,
    ) -> None:
        if not api_key:
            raise YouTubeConfigurationError("A YouTube API key is required.")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._rate_limiter = rate_limiter
        self._console = console or Console()

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
        console: Optional[Console] = None,
    ) -> "YouTubeClient":
        """Build a client using the API key, base URL and ``youtube_api`` rate limit from settings."""

        settings = settings or get_settings()
        if settings.youtube_api_key is None:
            raise YouTubeConfigurationError("YOUTUBE_API_KEY is not configured.")

        limiter: Optional[RateLimiter] = None
        limit_config = settings.rate_limits.services.get(RATE_LIMIT_SERVICE)
        if limit_config is not None:
            limiter = RateLimiter.from_config(limit_config, clock=clock)

        return cls(
            api_key=settings.youtube_api_key.get_secret_value(),
            http_client=http_client,
            base_url=settings.youtube_api_base_url,
            timeout_seconds=settings.youtube_request_timeout_seconds,
            rate_limiter=limiter,
            console=console,
        )

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    async def search_channel_page(
        self,
        channel_id: str,
        *,
        published_after: datetime,
        page_token: Optional[str] = None,
        max_results: int = SEARCH_PAGE_SIZE,
    ) -> SearchListResponse:
        """Fetch one page of a channel's videos, newest first."""

        params: Dict[str, Any] = {
            "part": "snippet",
            "channelId": channel_id,
            "type": "video",
            "order": "date",
            "publishedAfter": format_rfc3339(published_after),
            "maxResults": min(max_results, SEARCH_PAGE_SIZE),
        }
        if page_token:
            params["pageToken"] = page_token

        payload = await self._get("search", params)
        try:
            return SearchListResponse.model_validate(payload)
        except ValidationError as exc:
            raise YouTubeAPIError(f"Malformed search response for channel {channel_id}: {exc}") from exc

    async def fetch_video_details(self, video_ids: Sequence[str]) -> List[RawVideoDetail]:
        """Return detail records for up to 50 video ids.

        Parameters
        ----------
        video_ids:
            Non-empty batch of YouTube video identifiers, at most ``DETAILS_BATCH_LIMIT`` long.

        Returns
        -------
        list[RawVideoDetail]
            Records the API returned. Removed or private videos are silently absent.

        Raises
        ------
        ValueError
            If the batch is empty or exceeds the per-call limit.
        YouTubeAPIError
            On a non-success status, transport failure or malformed payload.
        """

        if not video_ids:
            raise ValueError("fetch_video_details requires at least one video id.")
        if len(video_ids) > DETAILS_BATCH_LIMIT:
            raise ValueError(f"At most {DETAILS_BATCH_LIMIT} video ids may be fetched per call, got {len(video_ids)}.")

        payload = await self._get("videos", {"part": DETAIL_PARTS, "id": ",".join(video_ids)})
        try:
            return VideoListResponse.model_validate(payload).items
        except ValidationError as exc:
            raise YouTubeAPIError(f"Malformed videos response: {exc}") from exc

    async def aclose(self) -> None:
        """Close the underlying HTTP client when this instance created it."""

        if self._owns_http_client:
            await self._http.aclose()

    # ------------------------------------------------------------------ #
    # Internal helpers                                                   #
    # ------------------------------------------------------------------ #
    async def _get(self, endpoint: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

        url = f"{self._base_url}/{endpoint}"
        try:
            response = await self._http.get(url, params={**params, "key": self._api_key})
        except httpx.RequestError as exc:
            raise YouTubeAPIError(
                f"YouTube {endpoint} request failed: {exc.__class__.__name__}: {exc}",
                retryable=True,
            ) from exc

        if response.is_error:
            raise self._error_from_response(endpoint, response)

        try:
            payload = response.json()
        except ValueError as exc:
            raise YouTubeAPIError(f"YouTube {endpoint} returned invalid JSON", status_code=response.status_code) from exc
        if not isinstance(payload, Mapping):
            raise YouTubeAPIError(f"YouTube {endpoint} returned an unexpected payload type")
        return payload

    def _error_from_response(self, endpoint: str, response: httpx.Response) -> YouTubeAPIError:
        status_code = response.status_code
        reason, detail = self._extract_error_reason(response)
        message = f"YouTube API error: {status_code} {response.reason_phrase} ({endpoint})"
        if detail:
            message = f"{message}: {detail}"

        if reason in _QUOTA_REASONS:
            self._console.log(f"[red]YouTube quota exhausted[/red] (endpoint={endpoint}, reason={reason})")
            return QuotaExceededError(message, status_code=status_code, reason=reason)

        retryable = status_code >= 500 or status_code == 429 or reason in _THROTTLE_REASONS
        return YouTubeAPIError(message, status_code=status_code, reason=reason, retryable=retryable)

    @staticmethod
    def _extract_error_reason(response: httpx.Response) -> tuple[Optional[str], Optional[str]]:
        try:
            body = response.json()
        except ValueError:
            return None, None
        error = body.get("error") if isinstance(body, Mapping) else None
        if not isinstance(error, Mapping):
            return None, None
        reason = None
        errors = error.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], Mapping):
            reason = errors[0].get("reason")
        return reason, error.get("message")


__all__ = [
    "DETAILS_BATCH_LIMIT",
    "QuotaExceededError",
    "SEARCH_PAGE_SIZE",
    "YouTubeAPIError",
    "YouTubeClient",
    "YouTubeConfigurationError",
    "format_rfc3339",
]
