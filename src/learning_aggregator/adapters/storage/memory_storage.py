"""In-memory storage adapter."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from learning_aggregator.core import (
    ClassifiedResource,
    NotFoundError,
    PlanRecord,
    ProgressEntry,
    ResourceFilters,
    Storage,
    StoredResource,
    Topic,
    TopicResource,
)


_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStorage(Storage):
    """Dictionary-backed store with the uniqueness rules of the relational schema.

    Topics are unique by slug, resources by url, links by (topic, resource)
    and progress entries by (plan, resource).
    """

    def __init__(self) -> None:
        self.topics: dict[str, Topic] = {}
        self.resources: dict[str, StoredResource] = {}
        self.topic_resources: dict[tuple[str, str], TopicResource] = {}
        self.plans: dict[str, PlanRecord] = {}
        self.progress: dict[tuple[str, str], ProgressEntry] = {}

    def _commit(self) -> None:
        """Hook called after every mutation."""

    # Topics

    def upsert_topic(self, name: str, normalized_name: str, slug: str, now: datetime) -> Topic:
        topic = next((t for t in self.topics.values() if t.slug == slug), None)
        if topic:
            topic.last_aggregated_at = now
        else:
            topic = Topic(
                id=_new_id(),
                name=name,
                normalized_name=normalized_name,
                slug=slug,
                last_aggregated_at=now,
                created_at=now,
            )
            self.topics[topic.id] = topic
        self._commit()
        return replace(topic)

    def get_topic(self, topic_id: str) -> Optional[Topic]:
        topic = self.topics.get(topic_id)
        return replace(topic) if topic else None

    def list_topics(self, limit: int = 50) -> list[Topic]:
        topics = sorted(
            self.topics.values(),
            key=lambda t: t.last_aggregated_at or _EPOCH,
            reverse=True,
        )
        return [replace(t) for t in topics[:limit]]

    def update_topic(self, topic_id: str, resource_count: int, last_aggregated_at: datetime) -> Topic:
        topic = self.topics.get(topic_id)
        if not topic:
            raise NotFoundError(f"Topic {topic_id} not found")
        topic.resource_count = resource_count
        topic.last_aggregated_at = last_aggregated_at
        self._commit()
        return replace(topic)

    # Resources

    def get_resource(self, resource_id: str) -> Optional[StoredResource]:
        resource = self.resources.get(resource_id)
        return replace(resource) if resource else None

    def upsert_resource(self, resource: ClassifiedResource, now: datetime) -> StoredResource:
        existing = next((r for r in self.resources.values() if r.url == resource.url), None)
        stored = StoredResource(
            id=existing.id if existing else _new_id(),
            url=resource.url,
            normalized_url=resource.normalized_url,
            title=resource.title,
            type=resource.type,
            difficulty=resource.difficulty,
            pricing=resource.pricing,
            quality_score=resource.quality_score,
            description=resource.description,
            duration=resource.duration,
            platform=resource.platform,
            stars=resource.stars,
            view_count=resource.view_count,
            rating=resource.rating,
            publish_date=resource.publish_date,
            last_updated=resource.last_updated,
            last_verified_at=now,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self.resources[stored.id] = stored
        self._commit()
        return replace(stored)

    def upsert_topic_resource(self, topic_id: str, resource_id: str, relevance_score: float) -> TopicResource:
        key = (topic_id, resource_id)
        link = self.topic_resources.get(key)
        if link:
            link.relevance_score = relevance_score
        else:
            link = TopicResource(
                topic_id=topic_id,
                resource_id=resource_id,
                relevance_score=relevance_score,
                created_at=_utcnow(),
            )
            self.topic_resources[key] = link
        self._commit()
        return replace(link)

    def list_topic_resources(
        self, topic_id: str, filters: Optional[ResourceFilters] = None
    ) -> list[StoredResource]:
        links = sorted(
            (link for link in self.topic_resources.values() if link.topic_id == topic_id),
            key=lambda link: link.relevance_score,
            reverse=True,
        )
        resources = [self.resources[link.resource_id] for link in links if link.resource_id in self.resources]
        if filters:
            resources = [r for r in resources if filters.matches(r)]
        return [replace(r) for r in resources]

    # Plans

    def create_plan(self, record: PlanRecord) -> PlanRecord:
        now = _utcnow()
        stored = replace(record, id=record.id or _new_id(), created_at=now, updated_at=now)
        self.plans[stored.id] = stored
        self._commit()
        return replace(stored)

    def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
        record = self.plans.get(plan_id)
        return replace(record) if record else None

    def update_plan_completion(self, plan_id: str, completion_percentage: float) -> None:
        record = self.plans.get(plan_id)
        if not record:
            raise NotFoundError(f"Learning plan {plan_id} not found")
        record.completion_percentage = completion_percentage
        record.updated_at = _utcnow()
        self._commit()

    def list_plans(self, limit: Optional[int] = 50) -> list[PlanRecord]:
        records = sorted(
            self.plans.values(),
            key=lambda r: r.created_at or _EPOCH,
            reverse=True,
        )
        return [replace(r) for r in records[:limit]]

    def delete_plan(self, plan_id: str) -> bool:
        if plan_id not in self.plans:
            return False
        del self.plans[plan_id]
        for key in [k for k in self.progress if k[0] == plan_id]:
            del self.progress[key]
        self._commit()
        return True

    # Progress

    def upsert_progress(self, entry: ProgressEntry) -> ProgressEntry:
        stored = replace(entry, updated_at=entry.updated_at or _utcnow())
        self.progress[(entry.plan_id, entry.resource_id)] = stored
        self._commit()
        return replace(stored)

    def get_progress(self, plan_id: str, resource_id: str) -> Optional[ProgressEntry]:
        entry = self.progress.get((plan_id, resource_id))
        return replace(entry) if entry else None

    def list_progress(self, plan_id: str) -> list[ProgressEntry]:
        entries = [e for e in self.progress.values() if e.plan_id == plan_id]
        entries.sort(
            key=lambda e: e.updated_at or _EPOCH,
            reverse=True,
        )
        return [replace(e) for e in entries]

    def list_recent_progress(self, limit: int = 10) -> list[ProgressEntry]:
        entries = sorted(self.progress.values(), key=lambda e: e.updated_at or _EPOCH, reverse=True)
        return [replace(e) for e in entries[:limit]]
