"""Service container and FastAPI dependencies."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Annotated, AsyncContextManager, Callable, Optional, cast

from fastapi import Depends, Header, Request, status
from rich.console import Console

from shortsfeed.api.errors import ApiError
from shortsfeed.config.settings import Settings, get_settings
from shortsfeed.services.feed import FeedCache, FeedService
from shortsfeed.services.runner import IngestionRunner, open_runner
from shortsfeed.services.storage import ShortsStore, StorageService

RunnerFactory = Callable[[], AsyncContextManager[IngestionRunner]]


@dataclass(slots=True)
class ServiceContainer:
    """Process-wide services shared by all requests."""

    settings: Settings
    store: ShortsStore
    feed: FeedService
    runner_factory: RunnerFactory
    console: Console


def build_container(settings: Optional[Settings] = None, console: Optional[Console] = None) -> ServiceContainer:
    """Wire the production services from settings."""

    settings = settings or get_settings()
    console = console or Console()
    store = StorageService(settings=settings, console=console)
    cache: FeedCache = FeedCache(
        ttl_seconds=settings.feed_cache_ttl_seconds,
        max_entries=settings.feed_cache_max_entries,
    )

    def runner_factory() -> AsyncContextManager[IngestionRunner]:
        return open_runner(store, settings=settings, console=console)

    return ServiceContainer(
        settings=settings,
        store=store,
        feed=FeedService(store, cache=cache),
        runner_factory=runner_factory,
        console=console,
    )


def get_services(request: Request) -> ServiceContainer:
    return cast(ServiceContainer, request.app.state.services)


def verify_cron_secret(
    services: Annotated[ServiceContainer, Depends(get_services)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> None:
    """Require ``Authorization: Bearer <CRON_SECRET>``.

    Raises
    ------
    ApiError
        500 when the secret is not configured, 401 when the header does not match exactly.
    """

    secret = services.settings.cron_secret
    if secret is None or not secret.get_secret_value():
        raise ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "CRON_SECRET not configured")

    expected = f"Bearer {secret.get_secret_value()}"
    if authorization is None or not secrets.compare_digest(authorization.encode("utf-8"), expected.encode("utf-8")):
        services.console.log("[yellow]Rejected cron request with invalid credentials[/yellow]")
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Unauthorized")


__all__ = ["RunnerFactory", "ServiceContainer", "build_container", "get_services", "verify_cron_secret"]
