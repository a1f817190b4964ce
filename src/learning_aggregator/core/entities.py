"""Core domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ResourceType(str, Enum):
    """Kind of learning resource."""

    VIDEO = "video"
    ARTICLE = "article"
    COURSE = "course"
    BOOK = "book"
    TUTORIAL = "tutorial"
    DOCUMENTATION = "documentation"
    REPOSITORY = "repository"
    OTHER = "other"


class Difficulty(str, Enum):
    """Difficulty level of a resource."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    UNSPECIFIED = "unspecified"


class Pricing(str, Enum):
    """Pricing model of a resource."""

    FREE = "free"
    FREEMIUM = "freemium"
    PREMIUM = "premium"
    UNKNOWN = "unknown"


class ProgressStatus(str, Enum):
    """Learner progress on a single resource."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Pace(str, Enum):
    """Preferred learning pace."""

    CASUAL = "casual"
    MODERATE = "moderate"
    INTENSIVE = "intensive"


@dataclass
class RawCandidate:
    """Unclassified resource as returned by a source."""

    url: str
    title: str
    description: Optional[str] = None
    duration: Optional[int] = None  # minutes
    platform: Optional[str] = None
    stars: Optional[int] = None
    view_count: Optional[int] = None
    rating: Optional[float] = None
    publish_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.title:
            raise ValueError("Title cannot be empty")
        if not self.url:
            raise ValueError("URL cannot be empty")


@dataclass(frozen=True)
class ClassifiedResource:
    """Candidate annotated with type, difficulty, pricing and quality."""

    url: str
    title: str
    type: ResourceType
    difficulty: Difficulty
    pricing: Pricing
    quality_score: int
    normalized_url: str
    description: Optional[str] = None
    duration: Optional[int] = None
    platform: Optional[str] = None
    stars: Optional[int] = None
    view_count: Optional[int] = None
    rating: Optional[float] = None
    publish_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None


@dataclass
class StoredResource:
    """Classified resource persisted under a stable id."""

    id: str
    url: str
    normalized_url: str
    title: str
    type: ResourceType
    difficulty: Difficulty
    pricing: Pricing
    quality_score: int
    description: Optional[str] = None
    duration: Optional[int] = None
    platform: Optional[str] = None
    stars: Optional[int] = None
    view_count: Optional[int] = None
    rating: Optional[float] = None
    publish_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    last_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class Topic:
    """Aggregation root, unique by slug."""

    id: str
    name: str
    normalized_name: str
    slug: str
    resource_count: int = 0
    last_aggregated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


@dataclass
class TopicResource:
    """Link between a topic and a resource."""

    topic_id: str
    resource_id: str
    relevance_score: float
    created_at: Optional[datetime] = None


@dataclass
class AggregationOptions:
    """Options for a single aggregation run."""

    max_resources_per_source: int = 20
    include_youtube: bool = True
    include_github: bool = True
    min_quality_score: int = 30

    def __post_init__(self) -> None:
        if self.max_resources_per_source < 1:
            raise ValueError("max_resources_per_source must be positive")
        if not 0 <= self.min_quality_score <= 100:
            raise ValueError("min_quality_score must be between 0 and 100")

    def includes(self, source_name: str) -> bool:
        """Whether the named source is enabled for this run."""
        return bool(getattr(self, f"include_{source_name}", True))


@dataclass
class AggregationResult:
    """Summary of one aggregation run."""

    topic_id: str
    resource_count: int
    sources: dict[str, int]
    average_quality_score: float


@dataclass
class ResourceFilters:
    """Filters for reading a topic's resources."""

    type: Optional[ResourceType] = None
    difficulty: Optional[Difficulty] = None
    pricing: Optional[Pricing] = None
    min_quality_score: Optional[int] = None

    def matches(self, resource: StoredResource) -> bool:
        if self.type and resource.type != self.type:
            return False
        if self.difficulty and resource.difficulty != self.difficulty:
            return False
        if self.pricing and resource.pricing != self.pricing:
            return False
        if self.min_quality_score and resource.quality_score < self.min_quality_score:
            return False
        return True


@dataclass
class PlanPreferences:
    """User preferences for plan generation."""

    free_only: bool = False
    pace: Optional[Pace] = None
    preferred_types: list[str] = field(default_factory=list)
    max_duration: Optional[int] = None  # hours

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.free_only:
            data["freeOnly"] = True
        if self.pace:
            data["pace"] = self.pace.value
        if self.preferred_types:
            data["preferredTypes"] = list(self.preferred_types)
        if self.max_duration:
            data["maxDuration"] = self.max_duration
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "PlanPreferences":
        """Build preferences from stored JSON data; unknown shapes become defaults."""
        if not isinstance(data, dict):
            return cls()

        pace = data.get("pace")
        try:
            pace = Pace(pace) if pace else None
        except ValueError:
            pace = None

        preferred_types = data.get("preferredTypes") or []
        if not isinstance(preferred_types, list):
            preferred_types = []

        max_duration = data.get("maxDuration")
        return cls(
            free_only=bool(data.get("freeOnly", False)),
            pace=pace,
            preferred_types=[str(t) for t in preferred_types],
            max_duration=max_duration if isinstance(max_duration, int) else None,
        )


@dataclass
class PlanResourceRef:
    """Snapshot of a resource inside a plan phase."""

    resource_id: str
    title: str
    url: str
    type: str
    difficulty: str
    duration: Optional[int]
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "resourceId": self.resource_id,
            "title": self.title,
            "url": self.url,
            "type": self.type,
            "difficulty": self.difficulty,
            "duration": self.duration,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanResourceRef":
        duration = data.get("duration")
        return cls(
            resource_id=str(data.get("resourceId", "")),
            title=str(data.get("title", "")),
            url=str(data.get("url", "")),
            type=str(data.get("type", "")),
            difficulty=str(data.get("difficulty", "unknown")),
            duration=duration if isinstance(duration, int) else None,
            reason=str(data.get("reason", "")),
        )


@dataclass
class Phase:
    """Ordered group of resources within a plan."""

    name: str
    description: str
    order: int
    estimated_hours: float
    resources: list[PlanResourceRef] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "estimatedHours": self.estimated_hours,
            "resources": [r.to_dict() for r in self.resources],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Phase":
        resources = data.get("resources") or []
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            order=int(data.get("order", 0)),
            estimated_hours=data.get("estimatedHours", 0),
            resources=[PlanResourceRef.from_dict(r) for r in resources if isinstance(r, dict)],
        )


@dataclass
class LearningPlan:
    """Learning plan as returned to callers."""

    id: str
    topic_id: str
    title: str
    preferences: PlanPreferences
    phases: list[Phase]
    total_duration: float
    completion_percentage: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def resource_refs(self) -> list[PlanResourceRef]:
        return [ref for phase in self.phases for ref in phase.resources]


@dataclass
class PlanRecord:
    """Stored form of a plan; preferences and phases are JSON text."""

    id: str
    topic_id: str
    title: str
    preferences: str
    phases: str
    total_duration: float
    completion_percentage: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ProgressEntry:
    """Learner progress on one resource of one plan."""

    plan_id: str
    resource_id: str
    status: ProgressStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    time_spent: Optional[int] = None  # minutes
    updated_at: Optional[datetime] = None


@dataclass
class ActivityEntry:
    """Recent progress change shown in statistics."""

    plan_id: str
    resource_id: str
    resource_title: str
    status: ProgressStatus
    updated_at: Optional[datetime] = None


@dataclass
class ProgressStats:
    """Progress totals across all plans."""

    total_plans: int
    total_resources: int
    completed_resources: int
    in_progress_resources: int
    not_started_resources: int
    total_time_spent: int  # minutes
    average_completion_rate: float
    recent_activity: list[ActivityEntry] = field(default_factory=list)
