"""Business logic use cases."""

import asyncio
import json
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from learning_aggregator.core import (
    ActivityEntry,
    AggregationCache,
    AggregationOptions,
    AggregationResult,
    ClassifiedResource,
    EmptyResourceSetError,
    LearningPlan,
    LLMClient,
    NoMatchError,
    NotFoundError,
    PlanPreferences,
    PlanRecord,
    ProgressEntry,
    ProgressStatus,
    ProgressStats,
    RawCandidate,
    ResourceFilters,
    ResourceSource,
    ResourceType,
    Storage,
    StoredResource,
    Topic,
)
from learning_aggregator.core.classifier import classify_batch
from learning_aggregator.core.planning import (
    FallbackPlan,
    PlanOutcome,
    apply_preference_filters,
    build_fallback_phases,
    build_prompt,
    compute_completion,
    deserialize_plan_fields,
    parse_plan_response,
    serialize_phases,
    total_duration,
)

logger = logging.getLogger(__name__)

COMPLETION_EPSILON = 0.01


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def topic_slug(name: str) -> tuple[str, str]:
    """Normalized name and slug for a topic name."""
    normalized_name = name.lower().strip()
    return normalized_name, re.sub(r"\s+", "-", normalized_name)


def _copy_result(result: AggregationResult) -> AggregationResult:
    """Copy of result with its own sources dict."""
    return replace(result, sources=dict(result.sources))


def deduplicate(resources: list[ClassifiedResource]) -> list[ClassifiedResource]:
    """Keep one resource per normalized URL, preferring the higher quality score."""
    seen: dict[str, ClassifiedResource] = {}
    for resource in resources:
        existing = seen.get(resource.normalized_url)
        if existing is None or resource.quality_score > existing.quality_score:
            seen[resource.normalized_url] = resource
    return list(seen.values())


class AggregatorService:
    """Service for discovering, classifying and storing resources for a topic."""

    def __init__(
        self,
        sources: list[ResourceSource],
        storage: Storage,
        cache: Optional[AggregationCache[AggregationResult]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.sources = sources
        self.storage = storage
        self.cache = cache if cache is not None else AggregationCache()
        self.clock = clock

    async def aggregate_resources(
        self, topic_name: str, options: Optional[AggregationOptions] = None
    ) -> AggregationResult:
        """Aggregate resources for a topic from every enabled source.

        A cached result younger than the cache TTL is returned without
        contacting any source. Source failures are absorbed; storage
        failures propagate.
        """
        if not topic_name or not topic_name.strip():
            raise ValueError("Topic name cannot be empty")

        options = options or AggregationOptions()
        logger.info("Starting resource aggregation for %r", topic_name)

        topic = self._get_or_create_topic(topic_name)

        cached = self.cache.get(topic.id)
        if cached is not None:
            logger.info("Returning cached aggregation for topic %s", topic.id)
            return _copy_result(cached)

        enabled = [s for s in self.sources if options.includes(s.name)]
        batches = await asyncio.gather(
            *(self._fetch_from_source(s, topic_name, options.max_resources_per_source) for s in enabled)
        )
        for source, batch in zip(enabled, batches):
            logger.info("Fetched %d raw candidates from %s", len(batch), source.name)

        raw_candidates = [candidate for batch in batches for candidate in batch]
        now = self.clock()
        classified = classify_batch(raw_candidates, now)

        quality = [r for r in classified if r.quality_score >= options.min_quality_score]
        logger.info(
            "Resources after quality filter (min %d): %d -> %d",
            options.min_quality_score, len(classified), len(quality),
        )

        unique = deduplicate(quality)
        logger.info("Resources after deduplication: %d -> %d", len(quality), len(unique))

        try:
            self._store_resources(topic.id, unique, now)
            self.storage.update_topic(topic.id, len(unique), now)
        except Exception:
            logger.error("Failed to store resources for topic %s", topic.id)
            raise

        result = AggregationResult(
            topic_id=topic.id,
            resource_count=len(unique),
            sources={
                "youtube": sum(1 for r in unique if r.type == ResourceType.VIDEO),
                "github": sum(1 for r in unique if r.type == ResourceType.REPOSITORY),
            },
            average_quality_score=(
                sum(r.quality_score for r in unique) / len(unique) if unique else 0.0
            ),
        )

        self.cache.set(topic.id, result)
        logger.info(
            "Aggregation completed for topic %s: %d resources, average quality %.1f",
            topic.id, result.resource_count, result.average_quality_score,
        )
        return _copy_result(result)

    def get_topic_resources(
        self, topic_id: str, filters: Optional[ResourceFilters] = None
    ) -> list[StoredResource]:
        """Resources linked to topic, ordered by relevance score descending."""
        return self.storage.list_topic_resources(topic_id, filters)

    def clear_cache(self, topic_id: str) -> None:
        self.cache.clear(topic_id)

    def list_topics(self, limit: int = 50) -> list[Topic]:
        """Topics, most recently aggregated first."""
        return self.storage.list_topics(limit)

    async def _fetch_from_source(
        self, source: ResourceSource, topic: str, max_results: int
    ) -> list[RawCandidate]:
        """Fetch from one source; any failure yields an empty list."""
        try:
            if not source.is_available():
                logger.warning("Source %s is not available", source.name)
                return []
            return list(await source.search(topic, max_results))
        except Exception as e:
            logger.warning("Failed to fetch resources from %s for %r: %s", source.name, topic, e)
            return []

    def _get_or_create_topic(self, name: str) -> Topic:
        normalized_name, slug = topic_slug(name)
        return self.storage.upsert_topic(name, normalized_name, slug, self.clock())

    def _store_resources(self, topic_id: str, resources: list[ClassifiedResource], now: datetime) -> None:
        """Upsert each resource and its topic link, one pair at a time."""
        for resource in resources:
            stored = self.storage.upsert_resource(resource, now)
            self.storage.upsert_topic_resource(topic_id, stored.id, resource.quality_score)

        logger.info("Stored %d resources for topic %s", len(resources), topic_id)


class PlanGeneratorService:
    """Service for building learning plans from a topic's stored resources."""

    def __init__(
        self,
        storage: Storage,
        llm_client: Optional[LLMClient] = None,
        llm_timeout: float = 60.0,
    ) -> None:
        self.storage = storage
        self.llm_client = llm_client
        self.llm_timeout = llm_timeout
        if llm_client is None:
            logger.info("No LLM client configured, plans will use the heuristic strategy")

    async def generate_plan(
        self, topic_id: str, preferences: Optional[PlanPreferences] = None
    ) -> LearningPlan:
        """Generate and store a learning plan for a topic.

        Raises:
            NotFoundError: topic does not exist
            EmptyResourceSetError: topic has no resources
            NoMatchError: preferences filter out every resource
        """
        preferences = preferences or PlanPreferences()
        logger.info("Generating learning plan for topic %s", topic_id)

        topic = self.storage.get_topic(topic_id)
        if topic is None:
            raise NotFoundError(f"Topic {topic_id} not found")

        resources = self.storage.list_topic_resources(topic_id)
        if not resources:
            raise EmptyResourceSetError(f"No resources available for topic {topic_id}")

        resources = apply_preference_filters(resources, preferences)
        if not resources:
            raise NoMatchError("No resources match the specified preferences")

        if self.llm_client is not None:
            outcome = await self._request_llm_plan(topic.name, resources, preferences)
            if isinstance(outcome, FallbackPlan):
                logger.warning("LLM plan unusable (%s), using heuristic plan", outcome.reason)
                phases = build_fallback_phases(resources)
            else:
                phases = outcome.phases
        else:
            phases = build_fallback_phases(resources)

        duration = total_duration(phases)
        record = self.storage.create_plan(PlanRecord(
            id="",
            topic_id=topic_id,
            title=f"{topic.name} Learning Path",
            preferences=json.dumps(preferences.to_dict()),
            phases=serialize_phases(phases),
            total_duration=duration,
            completion_percentage=0.0,
        ))

        logger.info(
            "Learning plan %s generated: %d phases, %s hours",
            record.id, len(phases), duration,
        )

        return LearningPlan(
            id=record.id,
            topic_id=topic_id,
            title=record.title,
            preferences=preferences,
            phases=phases,
            total_duration=duration,
            completion_percentage=record.completion_percentage,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    async def _request_llm_plan(
        self, topic_name: str, resources: list[StoredResource], preferences: PlanPreferences
    ) -> PlanOutcome:
        """Single bounded LLM round trip; every failure becomes a FallbackPlan."""
        prompt = build_prompt(topic_name, resources, preferences)
        logger.info("Requesting plan from LLM for %r with %d resources", topic_name, len(resources))

        try:
            text = await asyncio.wait_for(self.llm_client.complete(prompt), timeout=self.llm_timeout)
        except asyncio.TimeoutError:
            return FallbackPlan(f"LLM request timed out after {self.llm_timeout}s")
        except Exception as e:
            return FallbackPlan(f"LLM request failed: {e}")

        outcome = parse_plan_response(text, resources)
        if isinstance(outcome, FallbackPlan):
            logger.debug("Unparseable LLM response: %s", text[:500])
        return outcome

    def get_plan(self, plan_id: str) -> LearningPlan:
        """Load a plan with its completion percentage recomputed from progress."""
        record = self.storage.get_plan(plan_id)
        if record is None:
            raise NotFoundError(f"Learning plan {plan_id} not found")

        decoded = deserialize_plan_fields(record.preferences, record.phases)
        if decoded is None:
            logger.error("Failed to parse JSON fields of plan %s", plan_id)
            preferences, phases = PlanPreferences(), []
        else:
            preferences, phases = decoded

        completion = compute_completion(phases, self.storage.list_progress(plan_id))
        if abs(completion - record.completion_percentage) > COMPLETION_EPSILON:
            self.storage.update_plan_completion(plan_id, completion)
            logger.info("Plan %s completion updated to %.1f%%", plan_id, completion)

        return self._to_plan(record, preferences, phases, completion)

    def list_plans(self, limit: int = 50) -> list[LearningPlan]:
        plans = []
        for record in self.storage.list_plans(limit):
            decoded = deserialize_plan_fields(record.preferences, record.phases)
            preferences, phases = decoded if decoded else (PlanPreferences(), [])
            plans.append(self._to_plan(record, preferences, phases, record.completion_percentage))
        return plans

    def delete_plan(self, plan_id: str) -> None:
        if not self.storage.delete_plan(plan_id):
            raise NotFoundError(f"Learning plan {plan_id} not found")
        logger.info("Learning plan %s deleted", plan_id)

    def _to_plan(self, record: PlanRecord, preferences, phases, completion: float) -> LearningPlan:
        return LearningPlan(
            id=record.id,
            topic_id=record.topic_id,
            title=record.title,
            preferences=preferences,
            phases=phases,
            total_duration=record.total_duration or 0,
            completion_percentage=completion,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class ProgressService:
    """Service for tracking learner progress through a plan."""

    def __init__(self, storage: Storage, clock: Callable[[], datetime] = _utcnow) -> None:
        self.storage = storage
        self.clock = clock

    def update_progress(
        self,
        plan_id: str,
        resource_id: str,
        status: ProgressStatus,
        notes: Optional[str] = None,
        time_spent: Optional[int] = None,
    ) -> ProgressEntry:
        """Record progress and refresh the plan's completion percentage.

        started_at is set on the first move out of not_started; completed_at
        is set on completion and cleared when leaving completed.
        """
        status = ProgressStatus(status)
        if time_spent is not None and time_spent < 0:
            raise ValueError("time_spent cannot be negative")

        record = self.storage.get_plan(plan_id)
        if record is None:
            raise NotFoundError(f"Learning plan {plan_id} not found")
        if self.storage.get_resource(resource_id) is None:
            raise NotFoundError(f"Resource {resource_id} not found")

        existing = self.storage.get_progress(plan_id, resource_id)
        now = self.clock()
        started_at = existing.started_at if existing else None
        completed_at = existing.completed_at if existing else None

        if existing is None or existing.status == ProgressStatus.NOT_STARTED:
            if status in (ProgressStatus.IN_PROGRESS, ProgressStatus.COMPLETED):
                started_at = started_at or now

        if status == ProgressStatus.COMPLETED:
            completed_at = completed_at or now
            started_at = started_at or now
        elif existing is not None and existing.status == ProgressStatus.COMPLETED:
            completed_at = None

        entry = self.storage.upsert_progress(ProgressEntry(
            plan_id=plan_id,
            resource_id=resource_id,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
            notes=notes if notes is not None else (existing.notes if existing else None),
            time_spent=time_spent if time_spent is not None else (existing.time_spent if existing else None),
            updated_at=now,
        ))

        self._refresh_completion(record)
        logger.info("Progress for resource %s in plan %s set to %s", resource_id, plan_id, status.value)
        return entry

    def list_progress(self, plan_id: str) -> list[ProgressEntry]:
        if self.storage.get_plan(plan_id) is None:
            raise NotFoundError(f"Learning plan {plan_id} not found")
        return self.storage.list_progress(plan_id)

    def get_progress_stats(self, recent_limit: int = 10) -> ProgressStats:
        """Totals over every plan's progress plus the latest activity."""
        plans = self.storage.list_plans(limit=None)
        counts = {status: 0 for status in ProgressStatus}
        total_resources = 0
        total_time_spent = 0

        for record in plans:
            for entry in self.storage.list_progress(record.id):
                total_resources += 1
                counts[entry.status] += 1
                total_time_spent += entry.time_spent or 0

        average = sum(p.completion_percentage for p in plans) / len(plans) if plans else 0.0

        recent = []
        for entry in self.storage.list_recent_progress(recent_limit):
            resource = self.storage.get_resource(entry.resource_id)
            recent.append(ActivityEntry(
                plan_id=entry.plan_id,
                resource_id=entry.resource_id,
                resource_title=resource.title if resource else entry.resource_id,
                status=entry.status,
                updated_at=entry.updated_at,
            ))

        logger.info(
            "Progress statistics: %d plans, %d resources, %d completed",
            len(plans), total_resources, counts[ProgressStatus.COMPLETED],
        )
        return ProgressStats(
            total_plans=len(plans),
            total_resources=total_resources,
            completed_resources=counts[ProgressStatus.COMPLETED],
            in_progress_resources=counts[ProgressStatus.IN_PROGRESS],
            not_started_resources=counts[ProgressStatus.NOT_STARTED],
            total_time_spent=total_time_spent,
            average_completion_rate=round(average, 1),
            recent_activity=recent,
        )

    def _refresh_completion(self, record: PlanRecord) -> None:
        decoded = deserialize_plan_fields(record.preferences, record.phases)
        phases = decoded[1] if decoded else []
        completion = compute_completion(phases, self.storage.list_progress(record.id))
        if abs(completion - record.completion_percentage) > COMPLETION_EPSILON:
            self.storage.update_plan_completion(record.id, completion)
