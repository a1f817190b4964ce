"""Tests for aggregator service."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from learning_aggregator.adapters.storage import InMemoryStorage
from learning_aggregator.core import (
    AggregationOptions,
    ClassifiedResource,
    Difficulty,
    PersistenceError,
    Pricing,
    RawCandidate,
    ResourceFilters,
    ResourceType,
)
from learning_aggregator.use_cases import AggregatorService, deduplicate, topic_slug

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def make_source(name: str, candidates=None, available: bool = True) -> MagicMock:
    source = MagicMock()
    source.name = name
    source.is_available.return_value = available
    source.search = AsyncMock(return_value=candidates or [])
    return source


def make_classified(url: str, score: int, normalized_url: str = None, **kwargs) -> ClassifiedResource:
    return ClassifiedResource(
        url=url,
        title=kwargs.pop("title", url),
        type=kwargs.pop("type", ResourceType.VIDEO),
        difficulty=kwargs.pop("difficulty", Difficulty.BEGINNER),
        pricing=kwargs.pop("pricing", Pricing.FREE),
        quality_score=score,
        normalized_url=normalized_url or url,
        **kwargs,
    )


def raw(url: str) -> RawCandidate:
    return RawCandidate(url=url, title=url)


@pytest.mark.asyncio
async def test_aggregate_classifies_and_stores() -> None:
    """Test real candidates flow through classification into storage."""
    storage = InMemoryStorage()
    youtube = make_source("youtube", [
        RawCandidate(
            url="https://www.youtube.com/watch?v=abc123",
            title="Learn React Hooks Tutorial",
            rating=4.8,
            view_count=500_000,
            publish_date=NOW,
        ),
    ])
    github = make_source("github", [
        RawCandidate(
            url="https://github.com/enaqx/awesome-react",
            title="enaqx/awesome-react",
            description="A collection of awesome things regarding React ecosystem",
            stars=60_000,
            last_updated=NOW,
        ),
    ])
    service = AggregatorService([youtube, github], storage, clock=lambda: NOW)

    result = await service.aggregate_resources("React", AggregationOptions(min_quality_score=0))

    assert result.resource_count == 2
    assert result.sources == {"youtube": 1, "github": 1}
    assert result.average_quality_score > 0
    youtube.search.assert_awaited_once_with("React", 20)

    topic = storage.get_topic(result.topic_id)
    assert topic.slug == "react"
    assert topic.resource_count == 2
    assert topic.last_aggregated_at == NOW

    stored = service.get_topic_resources(result.topic_id)
    assert len(stored) == 2
    assert stored[0].quality_score >= stored[1].quality_score


@pytest.mark.asyncio
async def test_aggregate_dedup_keeps_higher_score() -> None:
    storage = InMemoryStorage()
    source = make_source("youtube", [raw("https://a.example/1"), raw("https://a.example/2")])
    service = AggregatorService([source], storage, clock=lambda: NOW)

    classified = [
        make_classified("https://www.example.com/post", 70, normalized_url="https://example.com/post"),
        make_classified("https://example.com/post?utm_source=x", 80, normalized_url="https://example.com/post"),
    ]
    with patch("learning_aggregator.use_cases.classify_batch", return_value=classified):
        result = await service.aggregate_resources("React")

    stored = service.get_topic_resources(result.topic_id)
    assert result.resource_count == 1
    assert len(stored) == 1
    assert stored[0].quality_score == 80


@pytest.mark.asyncio
async def test_aggregate_quality_filter() -> None:
    storage = InMemoryStorage()
    source = make_source("youtube", [raw("https://a.example/1"), raw("https://a.example/2")])
    service = AggregatorService([source], storage, clock=lambda: NOW)

    classified = [make_classified("https://a.example/1", 85), make_classified("https://a.example/2", 20)]
    with patch("learning_aggregator.use_cases.classify_batch", return_value=classified):
        result = await service.aggregate_resources("React", AggregationOptions(min_quality_score=50))

    assert result.resource_count == 1
    assert result.average_quality_score == 85


@pytest.mark.asyncio
async def test_aggregate_cache_short_circuits() -> None:
    """Test second call within TTL does not hit sources again."""
    storage = InMemoryStorage()
    youtube = make_source("youtube")
    github = make_source("github")
    service = AggregatorService([youtube, github], storage)

    first = await service.aggregate_resources("React")
    second = await service.aggregate_resources("  react ")

    assert first == second
    assert youtube.search.await_count == 1
    assert github.search.await_count == 1


@pytest.mark.asyncio
async def test_cached_result_is_not_shared() -> None:
    storage = InMemoryStorage()
    source = make_source("youtube", [raw("https://a.example/1")])
    service = AggregatorService([source], storage, clock=lambda: NOW)

    with patch("learning_aggregator.use_cases.classify_batch", return_value=[make_classified("https://a.example/1", 80)]):
        first = await service.aggregate_resources("React")
        first.sources["youtube"] = 99
        second = await service.aggregate_resources("React")
        second.sources.clear()
        third = await service.aggregate_resources("React")

    assert source.search.await_count == 1
    assert second.sources["youtube"] == 1
    assert third.sources["youtube"] == 1


@pytest.mark.asyncio
async def test_list_topics_most_recent_first() -> None:
    storage = InMemoryStorage()
    await AggregatorService([make_source("youtube")], storage, clock=lambda: NOW).aggregate_resources("React")
    later = AggregatorService([make_source("youtube")], storage, clock=lambda: NOW + timedelta(hours=1))
    await later.aggregate_resources("Vue")

    assert [t.name for t in later.list_topics()] == ["Vue", "React"]
    assert [t.name for t in later.list_topics(limit=1)] == ["Vue"]


@pytest.mark.asyncio
async def test_clear_cache_forces_refetch() -> None:
    storage = InMemoryStorage()
    source = make_source("youtube")
    service = AggregatorService([source], storage)

    result = await service.aggregate_resources("React")
    service.clear_cache(result.topic_id)
    await service.aggregate_resources("React")

    assert source.search.await_count == 2


@pytest.mark.asyncio
async def test_aggregate_absorbs_source_failures() -> None:
    storage = InMemoryStorage()
    failing = make_source("youtube")
    failing.search.side_effect = RuntimeError("quota exceeded")
    working = make_source("github", [raw("https://github.com/a/b")])
    service = AggregatorService([failing, working], storage, clock=lambda: NOW)

    result = await service.aggregate_resources("React", AggregationOptions(min_quality_score=0))

    assert result.resource_count == 1
    assert result.sources == {"youtube": 0, "github": 1}


@pytest.mark.asyncio
async def test_aggregate_skips_disabled_and_unavailable_sources() -> None:
    storage = InMemoryStorage()
    youtube = make_source("youtube")
    github = make_source("github", available=False)
    service = AggregatorService([youtube, github], storage)

    result = await service.aggregate_resources("React", AggregationOptions(include_youtube=False))

    youtube.search.assert_not_awaited()
    github.search.assert_not_awaited()
    assert result.resource_count == 0
    assert result.average_quality_score == 0


@pytest.mark.asyncio
async def test_aggregate_propagates_persistence_failure() -> None:
    storage = InMemoryStorage()
    storage.upsert_resource = MagicMock(side_effect=PersistenceError("disk full"))
    source = make_source("github", [raw("https://github.com/a/b")])
    service = AggregatorService([source], storage, clock=lambda: NOW)

    with pytest.raises(PersistenceError):
        await service.aggregate_resources("React", AggregationOptions(min_quality_score=0))

    assert len(service.cache) == 0


@pytest.mark.asyncio
async def test_aggregate_rejects_blank_topic() -> None:
    service = AggregatorService([], InMemoryStorage())

    with pytest.raises(ValueError):
        await service.aggregate_resources("   ")


@pytest.mark.asyncio
async def test_get_topic_resources_filters() -> None:
    storage = InMemoryStorage()
    source = make_source("youtube", [raw("https://a.example/1"), raw("https://a.example/2")])
    service = AggregatorService([source], storage, clock=lambda: NOW)

    classified = [
        make_classified("https://a.example/1", 90, type=ResourceType.VIDEO),
        make_classified("https://a.example/2", 60, type=ResourceType.REPOSITORY),
    ]
    with patch("learning_aggregator.use_cases.classify_batch", return_value=classified):
        result = await service.aggregate_resources("React")

    videos = service.get_topic_resources(result.topic_id, ResourceFilters(type=ResourceType.VIDEO))
    good = service.get_topic_resources(result.topic_id, ResourceFilters(min_quality_score=70))

    assert [r.url for r in videos] == ["https://a.example/1"]
    assert [r.url for r in good] == ["https://a.example/1"]
    assert service.get_topic_resources("unknown") == []


def test_topic_slug() -> None:
    assert topic_slug("  Machine   Learning ") == ("machine   learning", "machine-learning")


def test_deduplicate_keeps_first_on_tie() -> None:
    first = make_classified("https://a.example/1", 50, normalized_url="k", title="first")
    second = make_classified("https://a.example/2", 50, normalized_url="k", title="second")

    assert [r.title for r in deduplicate([first, second])] == ["first"]
