"""Tests for the HTTP surface."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

import pytest
from fastapi.testclient import TestClient

from conftest import FIXED_NOW, FakeVideoSource, InMemoryStore, make_detail, make_search_page, make_short
from shortsfeed.api import create_app
from shortsfeed.api.deps import ServiceContainer
from shortsfeed.services.classifier import ShortsClassifier
from shortsfeed.services.feed import FeedCache, FeedService
from shortsfeed.services.ingestion import ChannelIngestionService
from shortsfeed.services.pacing import FixedIntervalThrottle
from shortsfeed.services.retry import RetryPolicy
from shortsfeed.services.runner import IngestionRunner
from shortsfeed.services.storage import StorageError
from shortsfeed.services.youtube import YouTubeConfigurationError

AUTH = {"Authorization": "Bearer cron-secret"}


def build_container(
    settings,
    store,
    clock,
    console,
    source: Optional[FakeVideoSource] = None,
    *,
    deadline_seconds: Optional[float] = None,
) -> ServiceContainer:
    source = source or FakeVideoSource()

    @asynccontextmanager
    async def runner_factory() -> AsyncIterator[IngestionRunner]:
        ingestion = ChannelIngestionService(
            source,
            classifier=ShortsClassifier(console=console),
            batch_throttle=FixedIntervalThrottle(0, clock=clock),
            retry_policy=RetryPolicy(max_attempts=1, clock=clock, console=console),
            clock=clock,
            console=console,
        )
        yield IngestionRunner(
            ingestion,
            store,
            channel_throttle=FixedIntervalThrottle(0, clock=clock),
            clock=clock,
            console=console,
            deadline_seconds=deadline_seconds,
        )

    return ServiceContainer(
        settings=settings,
        store=store,
        feed=FeedService(store, cache=FeedCache(clock=clock)),
        runner_factory=runner_factory,
        console=console,
    )


def seed(store: InMemoryStore, count: int) -> None:
    store.upsert_shorts(
        [make_short(f"v{index}", published_at=FIXED_NOW - timedelta(hours=index)) for index in range(count)]
    )


@pytest.fixture
def store(channels) -> InMemoryStore:
    return InMemoryStore(channels)


@pytest.fixture
def client(settings, store, clock, console) -> TestClient:
    source = FakeVideoSource(
        pages={"UC_alpha": [make_search_page(["a1", "a2"])], "UC_beta": [make_search_page([])]},
        details={"a1": make_detail("a1"), "a2": make_detail("a2")},
    )
    app = create_app(build_container(settings, store, clock, console, source))
    with TestClient(app) as test_client:
        yield test_client


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_full_page_has_more(client, store) -> None:
    seed(store, 3)

    body = client.get("/api/shorts", params={"limit": 3}).json()

    assert body["hasMore"] is True
    assert body["page"] == 1
    assert body["limit"] == 3
    assert [item["video_id"] for item in body["data"]] == ["v0", "v1", "v2"]


def test_partial_page_has_no_more(client, store) -> None:
    seed(store, 2)

    body = client.get("/api/shorts", params={"limit": 3}).json()

    assert body["hasMore"] is False
    assert len(body["data"]) == 2


def test_feed_defaults(client, store) -> None:
    seed(store, 1)

    body = client.get("/api/shorts").json()

    assert body["page"] == 1
    assert body["limit"] == 20


@pytest.mark.parametrize("params", [{"limit": 51}, {"limit": 0}, {"page": 0}, {"page": "abc"}])
def test_invalid_paging_is_bad_request(client, params) -> None:
    response = client.get("/api/shorts", params=params)

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid request parameters")


def test_channels_and_stats(client, store) -> None:
    seed(store, 4)

    channels = client.get("/api/channels").json()
    stats = client.get("/api/stats").json()

    assert channels[0] == {"id": 1, "channel_id": "UC_alpha", "channel_name": "Alpha", "is_active": True}
    assert len(channels) == 3
    assert stats == {"totalShorts": 4}


def test_read_storage_failure_is_server_error(settings, clock, console) -> None:
    class BrokenStore(InMemoryStore):
        def count_shorts(self) -> int:
            raise StorageError("Failed to count shorts: connection refused")

    app = create_app(build_container(settings, BrokenStore(), clock, console))
    with TestClient(app) as test_client:
        response = test_client.get("/api/stats")

    assert response.status_code == 500
    assert response.json() == {"error": "Storage request failed"}


def test_cron_requires_configured_secret(settings, store, clock, console) -> None:
    unconfigured = settings.model_copy(update={"cron_secret": None})
    app = create_app(build_container(unconfigured, store, clock, console))
    with TestClient(app) as test_client:
        response = test_client.get("/api/cron/fetch-shorts", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"error": "CRON_SECRET not configured"}


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "cron-secret"}])
def test_cron_rejects_bad_credentials(client, headers) -> None:
    response = client.get("/api/cron/fetch-shorts", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert "cron-secret" not in response.text


def test_fetch_shorts_runs_all_channels(client, store) -> None:
    response = client.get("/api/cron/fetch-shorts", headers=AUTH)

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["total_collected"] == 2
    assert [result["status"] for result in body["results"]] == ["collected", "no_content", "no_content"]
    assert sorted(store.rows) == ["a1", "a2"]


def test_fetch_shorts_invalidates_feed_cache(client, store) -> None:
    assert client.get("/api/shorts").json()["data"] == []

    client.get("/api/cron/fetch-shorts", headers=AUTH)

    assert len(client.get("/api/shorts").json()["data"]) == 2


def test_fetch_by_channel(client) -> None:
    response = client.get(
        "/api/cron/fetch-shorts-by-channel",
        params={"channelName": "Alpha", "targetCount": 5},
        headers=AUTH,
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["result"]["channel"] == "Alpha"
    assert body["result"]["collected"] == 2


@pytest.mark.parametrize("params", [{}, {"channelId": "UC_alpha", "channelName": "Alpha"}])
def test_fetch_by_channel_requires_one_selector(client, params) -> None:
    response = client.get("/api/cron/fetch-shorts-by-channel", params=params, headers=AUTH)

    assert response.status_code == 400
    assert "error" in response.json()


def test_fetch_by_channel_rejects_non_positive_target(client) -> None:
    response = client.get(
        "/api/cron/fetch-shorts-by-channel",
        params={"channelId": "UC_alpha", "targetCount": 0},
        headers=AUTH,
    )

    assert response.status_code == 400


def test_fetch_by_channel_unknown_lists_available(client) -> None:
    response = client.get("/api/cron/fetch-shorts-by-channel", params={"channelId": "UC_nope"}, headers=AUTH)

    body = response.json()
    assert response.status_code == 404
    assert body["error"] == "Channel not found: UC_nope"
    assert body["availableChannels"][0] == {"name": "Alpha", "id": "UC_alpha"}


def test_missing_api_key_is_server_error(settings, store, clock, console) -> None:
    container = build_container(settings, store, clock, console)

    @asynccontextmanager
    async def unconfigured_runner():
        raise YouTubeConfigurationError("YOUTUBE_API_KEY is not configured.")
        yield  # pragma: no cover

    container.runner_factory = unconfigured_runner
    with TestClient(create_app(container)) as test_client:
        response = test_client.get("/api/cron/fetch-shorts", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"error": "YOUTUBE_API_KEY is not configured."}


def test_run_deadline_is_json_error(settings, clock, console, channels) -> None:
    class SlowChannelStore(InMemoryStore):
        def get_active_channels(self):
            time.sleep(0.5)
            return super().get_active_channels()

    container = build_container(settings, SlowChannelStore(channels), clock, console, deadline_seconds=0.1)
    with TestClient(create_app(container)) as test_client:
        response = test_client.get("/api/cron/fetch-shorts", headers=AUTH)

    assert response.status_code == 504
    assert response.json() == {"error": "Deadline exceeded during get_active_channels"}
