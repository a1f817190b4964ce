"""Core interfaces for adapters."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from learning_aggregator.core.entities import (
    ClassifiedResource,
    LearningPlan,
    PlanRecord,
    ProgressEntry,
    RawCandidate,
    ResourceFilters,
    StoredResource,
    Topic,
    TopicResource,
)


class ResourceSource(ABC):
    """Interface for searching a content source for a topic."""

    name: str = "source"

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the source is configured and can be queried."""
        pass

    @abstractmethod
    async def search(self, topic: str, max_results: int = 20) -> list[RawCandidate]:
        """Search for candidates; returns an empty list on failure."""
        pass


class LLMClient(ABC):
    """Interface for LLM operations."""

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send a single prompt and return the response text."""
        pass


class PlanExporter(ABC):
    """Interface for rendering a plan."""

    @abstractmethod
    def render(self, plan: LearningPlan) -> str:
        """Render plan to text."""
        pass


class Storage(ABC):
    """Persistence collaborator for topics, resources, plans and progress."""

    @abstractmethod
    def upsert_topic(self, name: str, normalized_name: str, slug: str, now: datetime) -> Topic:
        """Create the topic for slug, or stamp last_aggregated_at on the existing one."""
        pass

    @abstractmethod
    def get_topic(self, topic_id: str) -> Optional[Topic]:
        pass

    @abstractmethod
    def list_topics(self, limit: int = 50) -> list[Topic]:
        """Topics ordered by last_aggregated_at, newest first."""
        pass

    @abstractmethod
    def update_topic(self, topic_id: str, resource_count: int, last_aggregated_at: datetime) -> Topic:
        pass

    @abstractmethod
    def get_resource(self, resource_id: str) -> Optional[StoredResource]:
        pass

    @abstractmethod
    def upsert_resource(self, resource: ClassifiedResource, now: datetime) -> StoredResource:
        """Insert or update a resource keyed by its original url."""
        pass

    @abstractmethod
    def upsert_topic_resource(self, topic_id: str, resource_id: str, relevance_score: float) -> TopicResource:
        pass

    @abstractmethod
    def list_topic_resources(
        self, topic_id: str, filters: Optional[ResourceFilters] = None
    ) -> list[StoredResource]:
        """Resources linked to topic, ordered by relevance score descending."""
        pass

    @abstractmethod
    def create_plan(self, record: PlanRecord) -> PlanRecord:
        """Store a new plan; id and timestamps are assigned by the store."""
        pass

    @abstractmethod
    def get_plan(self, plan_id: str) -> Optional[PlanRecord]:
        pass

    @abstractmethod
    def update_plan_completion(self, plan_id: str, completion_percentage: float) -> None:
        pass

    @abstractmethod
    def list_plans(self, limit: Optional[int] = 50) -> list[PlanRecord]:
        """Plans ordered newest first; a limit of None returns all."""
        pass

    @abstractmethod
    def delete_plan(self, plan_id: str) -> bool:
        """Delete plan and its progress; returns False if it did not exist."""
        pass

    @abstractmethod
    def upsert_progress(self, entry: ProgressEntry) -> ProgressEntry:
        pass

    @abstractmethod
    def get_progress(self, plan_id: str, resource_id: str) -> Optional[ProgressEntry]:
        pass

    @abstractmethod
    def list_progress(self, plan_id: str) -> list[ProgressEntry]:
        """Progress entries of a plan, most recently updated first."""
        pass

    @abstractmethod
    def list_recent_progress(self, limit: int = 10) -> list[ProgressEntry]:
        """Progress entries of all plans, most recently updated first."""
        pass
