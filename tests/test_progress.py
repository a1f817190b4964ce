"""Tests for progress tracking."""

from datetime import datetime, timedelta, timezone

import pytest

from learning_aggregator.adapters.storage import InMemoryStorage
from learning_aggregator.core import (
    ClassifiedResource,
    Difficulty,
    NotFoundError,
    Pricing,
    ProgressEntry,
    ProgressStatus,
    ResourceType,
)
from learning_aggregator.use_cases import PlanGeneratorService, ProgressService

START = datetime(2025, 6, 1, tzinfo=timezone.utc)


class StepClock:
    """Clock advancing one hour per call."""

    def __init__(self) -> None:
        self.now = START

    def __call__(self) -> datetime:
        self.now += timedelta(hours=1)
        return self.now


async def make_plan(storage: InMemoryStorage) -> tuple[str, list[str]]:
    topic = storage.upsert_topic("Rust", "rust", "rust", START)
    ids = []
    for idx, difficulty in enumerate([Difficulty.BEGINNER, Difficulty.ADVANCED]):
        url = f"https://example.com/{idx}"
        stored = storage.upsert_resource(ClassifiedResource(
            url=url,
            title=f"Resource {idx}",
            type=ResourceType.ARTICLE,
            difficulty=difficulty,
            pricing=Pricing.FREE,
            quality_score=60,
            normalized_url=url,
        ), START)
        storage.upsert_topic_resource(topic.id, stored.id, 60)
        ids.append(stored.id)

    plan = await PlanGeneratorService(storage).generate_plan(topic.id)
    return plan.id, ids


@pytest.mark.asyncio
async def test_progress_lifecycle() -> None:
    storage = InMemoryStorage()
    plan_id, ids = await make_plan(storage)
    service = ProgressService(storage, clock=StepClock())

    started = service.update_progress(plan_id, ids[0], ProgressStatus.IN_PROGRESS, notes="chapter 1")
    assert started.started_at is not None
    assert started.completed_at is None

    done = service.update_progress(plan_id, ids[0], ProgressStatus.COMPLETED, time_spent=45)
    assert done.started_at == started.started_at
    assert done.completed_at is not None
    assert done.notes == "chapter 1"
    assert done.time_spent == 45
    assert storage.get_plan(plan_id).completion_percentage == 50

    reopened = service.update_progress(plan_id, ids[0], ProgressStatus.IN_PROGRESS)
    assert reopened.completed_at is None
    assert reopened.started_at == started.started_at
    assert storage.get_plan(plan_id).completion_percentage == 0


@pytest.mark.asyncio
async def test_complete_without_start_sets_both_timestamps() -> None:
    storage = InMemoryStorage()
    plan_id, ids = await make_plan(storage)
    service = ProgressService(storage, clock=StepClock())

    entry = service.update_progress(plan_id, ids[1], ProgressStatus.COMPLETED)

    assert entry.started_at == entry.completed_at
    assert entry.started_at is not None


@pytest.mark.asyncio
async def test_not_started_has_no_timestamps() -> None:
    storage = InMemoryStorage()
    plan_id, ids = await make_plan(storage)

    entry = ProgressService(storage).update_progress(plan_id, ids[0], "not_started")

    assert entry.status == ProgressStatus.NOT_STARTED
    assert entry.started_at is None
    assert entry.completed_at is None


@pytest.mark.asyncio
async def test_list_progress_most_recent_first() -> None:
    storage = InMemoryStorage()
    plan_id, ids = await make_plan(storage)
    service = ProgressService(storage, clock=StepClock())

    service.update_progress(plan_id, ids[0], ProgressStatus.IN_PROGRESS)
    service.update_progress(plan_id, ids[1], ProgressStatus.COMPLETED)

    assert [e.resource_id for e in service.list_progress(plan_id)] == [ids[1], ids[0]]


@pytest.mark.asyncio
async def test_progress_validation() -> None:
    storage = InMemoryStorage()
    plan_id, ids = await make_plan(storage)
    service = ProgressService(storage)

    with pytest.raises(NotFoundError):
        service.update_progress("missing", ids[0], ProgressStatus.COMPLETED)
    with pytest.raises(NotFoundError):
        service.update_progress(plan_id, "missing", ProgressStatus.COMPLETED)
    with pytest.raises(NotFoundError):
        service.list_progress("missing")
    with pytest.raises(ValueError):
        service.update_progress(plan_id, ids[0], ProgressStatus.IN_PROGRESS, time_spent=-5)
    with pytest.raises(ValueError):
        service.update_progress(plan_id, ids[0], "paused")


@pytest.mark.asyncio
async def test_progress_stats_across_plans() -> None:
    storage = InMemoryStorage()
    first, ids = await make_plan(storage)
    second, _ = await make_plan(storage)
    await make_plan(storage)
    service = ProgressService(storage, clock=StepClock())

    service.update_progress(first, ids[0], ProgressStatus.COMPLETED, time_spent=45)
    service.update_progress(first, ids[1], ProgressStatus.IN_PROGRESS, time_spent=15)
    service.update_progress(second, ids[0], ProgressStatus.NOT_STARTED)

    stats = service.get_progress_stats()

    assert stats.total_plans == 3
    assert stats.total_resources == 3
    assert stats.completed_resources == 1
    assert stats.in_progress_resources == 1
    assert stats.not_started_resources == 1
    assert stats.total_time_spent == 60
    # (50 + 0 + 0) / 3
    assert stats.average_completion_rate == 16.7
    assert [(a.plan_id, a.resource_title) for a in stats.recent_activity] == [
        (second, "Resource 0"),
        (first, "Resource 1"),
        (first, "Resource 0"),
    ]
    assert stats.recent_activity[0].status == ProgressStatus.NOT_STARTED


@pytest.mark.asyncio
async def test_progress_stats_recent_activity_limit() -> None:
    storage = InMemoryStorage()
    plan_id, ids = await make_plan(storage)
    service = ProgressService(storage, clock=StepClock())
    service.update_progress(plan_id, ids[0], ProgressStatus.IN_PROGRESS)
    storage.upsert_progress(ProgressEntry(
        plan_id=plan_id,
        resource_id="removed",
        status=ProgressStatus.COMPLETED,
        updated_at=START + timedelta(days=30),
    ))

    stats = service.get_progress_stats(recent_limit=1)

    assert stats.total_resources == 2
    assert len(stats.recent_activity) == 1
    assert stats.recent_activity[0].resource_title == "removed"


def test_progress_stats_empty() -> None:
    stats = ProgressService(InMemoryStorage()).get_progress_stats()

    assert stats.total_plans == 0
    assert stats.total_resources == 0
    assert stats.total_time_spent == 0
    assert stats.average_completion_rate == 0.0
    assert stats.recent_activity == []
