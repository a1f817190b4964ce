"""Core domain layer."""

from learning_aggregator.core.cache import AggregationCache
from learning_aggregator.core.entities import (
    ActivityEntry,
    AggregationOptions,
    AggregationResult,
    ClassifiedResource,
    Difficulty,
    LearningPlan,
    Pace,
    Phase,
    PlanPreferences,
    PlanRecord,
    PlanResourceRef,
    Pricing,
    ProgressEntry,
    ProgressStatus,
    ProgressStats,
    RawCandidate,
    ResourceFilters,
    ResourceType,
    StoredResource,
    Topic,
    TopicResource,
)
from learning_aggregator.core.errors import (
    EmptyResourceSetError,
    LearningAggregatorError,
    NoMatchError,
    NotFoundError,
    PersistenceError,
)
from learning_aggregator.core.interfaces import LLMClient, PlanExporter, ResourceSource, Storage

__all__ = [
    "ActivityEntry",
    "AggregationCache",
    "AggregationOptions",
    "AggregationResult",
    "ClassifiedResource",
    "Difficulty",
    "LearningPlan",
    "Pace",
    "Phase",
    "PlanPreferences",
    "PlanRecord",
    "PlanResourceRef",
    "Pricing",
    "ProgressEntry",
    "ProgressStatus",
    "ProgressStats",
    "RawCandidate",
    "ResourceFilters",
    "ResourceType",
    "StoredResource",
    "Topic",
    "TopicResource",
    "EmptyResourceSetError",
    "LearningAggregatorError",
    "NoMatchError",
    "NotFoundError",
    "PersistenceError",
    "LLMClient",
    "PlanExporter",
    "ResourceSource",
    "Storage",
]
