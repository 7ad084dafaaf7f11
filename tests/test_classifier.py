"""Tests for shorts classification and normalisation."""

from __future__ import annotations

from conftest import make_detail
from shortsfeed.models.youtube import Thumbnails
from shortsfeed.services.classifier import (
    PLACEHOLDER_THUMBNAIL_URL,
    ShortsClassifier,
    parse_view_count,
    select_thumbnail,
)


def test_duration_boundary(console) -> None:
    classifier = ShortsClassifier(console=console)
    details = [
        make_detail("at_limit", duration="PT1M10S"),
        make_detail("over_limit", duration="PT1M11S"),
        make_detail("zero", duration="PT0S"),
    ]

    accepted = classifier.classify(details)

    assert [short.video_id for short in accepted] == ["at_limit"]
    assert accepted[0].duration == 70


def test_unparseable_and_missing_durations_are_excluded(console) -> None:
    classifier = ShortsClassifier(console=console)
    details = [make_detail("bad", duration="P1D"), make_detail("none", duration=None)]

    assert classifier.classify(details) == []


def test_classify_preserves_input_order(console) -> None:
    classifier = ShortsClassifier(console=console)
    details = [make_detail(video_id) for video_id in ("c", "a", "b")]

    assert [short.video_id for short in classifier.classify(details)] == ["c", "a", "b"]


def test_custom_threshold(console) -> None:
    classifier = ShortsClassifier(max_duration_seconds=60, console=console)

    assert classifier.is_short(60)
    assert not classifier.is_short(61)
    assert not classifier.is_short(0)


def test_thumbnail_falls_back_to_medium_then_placeholder() -> None:
    medium_only = Thumbnails.model_validate(
        {"default": {"url": "https://img/default.jpg"}, "medium": {"url": "https://img/medium.jpg"}}
    )
    nothing_usable = Thumbnails.model_validate({"default": {"url": "https://img/default.jpg"}})

    assert select_thumbnail(medium_only) == "https://img/medium.jpg"
    assert select_thumbnail(nothing_usable) == PLACEHOLDER_THUMBNAIL_URL


def test_thumbnail_prefers_maxres() -> None:
    thumbnails = Thumbnails.model_validate(
        {
            "medium": {"url": "https://img/medium.jpg"},
            "high": {"url": "https://img/high.jpg"},
            "maxres": {"url": "https://img/maxres.jpg"},
        }
    )

    assert select_thumbnail(thumbnails) == "https://img/maxres.jpg"


def test_normalize_maps_fields(console) -> None:
    classifier = ShortsClassifier(console=console)
    detail = make_detail(
        "abc123",
        title="A short",
        duration="PT45S",
        view_count="1234",
        thumbnails={"medium": {"url": "https://img/medium.jpg"}},
        channel_id="UC_beta",
        channel_title="Beta",
    )

    [short] = classifier.classify([detail])

    assert short.video_id == "abc123"
    assert short.title == "A short"
    assert short.channel_id == "UC_beta"
    assert short.channel_name == "Beta"
    assert short.thumbnail_url == "https://img/medium.jpg"
    assert short.duration == 45
    assert short.view_count == 1234
    assert short.is_embeddable is True
    assert short.published_at.year == 2024


def test_placeholder_thumbnail_when_none_present(console) -> None:
    classifier = ShortsClassifier(console=console)

    [short] = classifier.classify([make_detail("nothumb", thumbnails={})])

    assert short.thumbnail_url == PLACEHOLDER_THUMBNAIL_URL


def test_embeddable_defaults_true_unless_explicitly_false(console) -> None:
    classifier = ShortsClassifier(console=console)
    details = [
        make_detail("missing_status", embeddable=None),
        make_detail("blocked", embeddable=False),
    ]

    shorts = {short.video_id: short for short in classifier.classify(details)}

    assert shorts["missing_status"].is_embeddable is True
    assert shorts["blocked"].is_embeddable is False


def test_parse_view_count() -> None:
    assert parse_view_count("42") == 42
    assert parse_view_count("17abc") == 17
    assert parse_view_count("abc") == 0
    assert parse_view_count(None) == 0
    assert parse_view_count("") == 0
