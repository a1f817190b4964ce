"""Plan construction: prompt building, LLM response parsing and the heuristic plan."""

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from learning_aggregator.core.entities import (
    Difficulty,
    Phase,
    PlanPreferences,
    PlanResourceRef,
    Pricing,
    ProgressEntry,
    ProgressStatus,
    StoredResource,
)

logger = logging.getLogger(__name__)

DEFAULT_PHASE_HOURS = 10
DEFAULT_REASON = "Relevant to this learning phase"
HOURS_BUFFER = 1.25

TYPE_MINUTES = {
    "video": 30,
    "course": 180,
    "article": 20,
    "documentation": 60,
    "tutorial": 45,
    "repository": 120,
}
DEFAULT_TYPE_MINUTES = 60

CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


@dataclass
class ParsedPlan:
    """LLM response that yielded usable phases."""

    phases: list[Phase]


@dataclass
class FallbackPlan:
    """LLM path failed; the heuristic plan must be used."""

    reason: str


PlanOutcome = Union[ParsedPlan, FallbackPlan]


def apply_preference_filters(
    resources: list[StoredResource], preferences: PlanPreferences
) -> list[StoredResource]:
    filtered = list(resources)

    if preferences.free_only:
        filtered = [r for r in filtered if r.pricing == Pricing.FREE]

    if preferences.preferred_types:
        wanted = set(preferences.preferred_types)
        filtered = [r for r in filtered if r.type.value in wanted]

    return filtered


def build_prompt(topic_name: str, resources: list[StoredResource], preferences: PlanPreferences) -> str:
    """Prompt asking the LLM to organise resources into phases as JSON."""
    resources_list = "\n\n".join(
        f"{idx}. [{r.type.value}] {r.title}\n"
        f"   - ID: {r.id}\n"
        f"   - URL: {r.url}\n"
        f"   - Difficulty: {r.difficulty.value if r.difficulty else 'unknown'}\n"
        f"   - Duration: {f'{r.duration} min' if r.duration else 'N/A'}\n"
        f"   - Quality Score: {r.quality_score}/100\n"
        f"   - Description: {r.description or 'No description'}"
        for idx, r in enumerate(resources, 1)
    )

    preferences_text = "\n".join([
        "User Preferences:",
        f"- Free resources only: {'Yes' if preferences.free_only else 'No'}",
        f"- Learning pace: {preferences.pace.value if preferences.pace else 'moderate'}",
        f"- Preferred resource types: {', '.join(preferences.preferred_types) or 'Any'}",
        f"- Maximum total duration: "
        f"{f'{preferences.max_duration} hours' if preferences.max_duration else 'No limit'}",
    ])

    return f"""You are an expert learning path designer. Create a structured learning plan for the topic "{topic_name}" using the provided resources.

{preferences_text}

Available Resources:
{resources_list}

Instructions:
1. Organize the resources into logical learning phases (3-5 phases recommended)
2. Order resources within each phase from beginner to advanced
3. Each phase should build upon previous phases
4. Assign resources to phases based on their difficulty, type, and relevance
5. Estimate realistic time commitment for each phase
6. Provide a clear reason why each resource is included in its phase
7. Consider the user's preferences when selecting and ordering resources

Return your response as a JSON object with the following structure:
{{
  "phases": [
    {{
      "name": "Phase name (e.g., 'Foundation & Basics')",
      "description": "Clear description of what the learner will achieve in this phase",
      "estimatedHours": 15,
      "resources": [
        {{
          "resourceId": "resource ID from the list above",
          "reason": "Why this resource is important for this phase"
        }}
      ]
    }}
  ]
}}

Important:
- Only use resource IDs from the provided list
- Ensure each phase has at least 1-2 resources
- Make the plan practical and achievable
- Return ONLY valid JSON, no additional text"""


def strip_code_fence(text: str) -> str:
    text = text.strip()
    match = CODE_FENCE.search(text)
    if match:
        return match.group(1).strip()
    return text


def _coerce_hours(value: Any) -> float:
    """Numeric hours, or the default for missing, zero and non-numeric values."""
    if isinstance(value, bool):
        return DEFAULT_PHASE_HOURS
    try:
        hours = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_PHASE_HOURS
    if not math.isfinite(hours) or hours == 0:
        return DEFAULT_PHASE_HOURS
    return int(hours) if hours.is_integer() else hours


def _text(value: Any, default: str) -> str:
    return str(value) if value else default


def _resolve_ref(entry: dict[str, Any], by_id: dict[str, StoredResource]) -> PlanResourceRef:
    resource_id = _text(entry.get("resourceId"), "")
    resource = by_id.get(resource_id)
    reason = _text(entry.get("reason"), DEFAULT_REASON)

    if resource:
        return PlanResourceRef(
            resource_id=resource.id,
            title=resource.title,
            url=resource.url,
            type=resource.type.value,
            difficulty=resource.difficulty.value if resource.difficulty else "unknown",
            duration=resource.duration or None,
            reason=reason,
        )

    return PlanResourceRef(
        resource_id=resource_id,
        title=_text(entry.get("title"), ""),
        url=_text(entry.get("url"), ""),
        type=_text(entry.get("type"), ""),
        difficulty=_text(entry.get("difficulty"), "unknown"),
        duration=None,
        reason=reason,
    )


def parse_plan_response(text: str, resources: list[StoredResource]) -> PlanOutcome:
    """Turn raw LLM text into phases; never raises."""
    json_text = strip_code_fence(text)

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        return FallbackPlan(f"invalid JSON: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("phases"), list):
        return FallbackPlan("response missing phases array")

    by_id = {r.id: r for r in resources}
    raw_phases = [p for p in data["phases"] if isinstance(p, dict)]

    phases = []
    for order, raw in enumerate(raw_phases, 1):
        entries = raw.get("resources")
        refs = [
            _resolve_ref(entry, by_id)
            for entry in (entries if isinstance(entries, list) else [])
            if isinstance(entry, dict)
        ]
        phases.append(Phase(
            name=_text(raw.get("name"), f"Phase {order}"),
            description=_text(raw.get("description"), ""),
            order=order,
            estimated_hours=_coerce_hours(raw.get("estimatedHours")),
            resources=refs,
        ))

    if not phases:
        return FallbackPlan("response contained no usable phases")

    return ParsedPlan(phases)


def estimate_phase_hours(resources: list[StoredResource]) -> int:
    """Hours for a phase: summed minutes rounded up to hours, plus a 25% buffer."""
    total_minutes = sum(
        r.duration if r.duration else TYPE_MINUTES.get(r.type.value, DEFAULT_TYPE_MINUTES)
        for r in resources
    )
    hours = math.ceil(total_minutes / 60)
    return math.ceil(hours * HOURS_BUFFER)


def _phase(
    name: str,
    description: str,
    order: int,
    resources: list[StoredResource],
    default_difficulty: str,
    reason: str,
) -> Phase:
    return Phase(
        name=name,
        description=description,
        order=order,
        estimated_hours=estimate_phase_hours(resources),
        resources=[
            PlanResourceRef(
                resource_id=r.id,
                title=r.title,
                url=r.url,
                type=r.type.value,
                difficulty=r.difficulty.value if r.difficulty else default_difficulty,
                duration=r.duration or None,
                reason=reason,
            )
            for r in resources
        ],
    )


def build_fallback_phases(resources: list[StoredResource]) -> list[Phase]:
    """Deterministic plan bucketed by difficulty."""
    beginner = [r for r in resources if r.difficulty == Difficulty.BEGINNER]
    intermediate = [r for r in resources if r.difficulty == Difficulty.INTERMEDIATE]
    advanced = [r for r in resources if r.difficulty == Difficulty.ADVANCED]
    unspecified = [
        r for r in resources
        if r.difficulty not in (Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED)
    ]

    if not (beginner or intermediate or advanced):
        return [_phase(
            "Complete Learning Path",
            "Comprehensive resources for learning this topic",
            1,
            resources,
            "unknown",
            "Recommended resource for this topic",
        )]

    phases: list[Phase] = []

    foundation = beginner + unspecified[:2]
    if foundation:
        phases.append(_phase(
            "Foundation & Basics",
            "Start with fundamental concepts and beginner-friendly resources",
            len(phases) + 1,
            foundation,
            "beginner",
            "Essential foundation for learning this topic",
        ))

    if intermediate:
        phases.append(_phase(
            "Building Skills",
            "Develop intermediate skills and practical knowledge",
            len(phases) + 1,
            intermediate,
            "intermediate",
            "Builds on foundation and develops practical skills",
        ))

    if advanced:
        phases.append(_phase(
            "Advanced Topics",
            "Master advanced concepts and best practices",
            len(phases) + 1,
            advanced,
            "advanced",
            "Advanced knowledge for mastery of the topic",
        ))

    return phases


def total_duration(phases: list[Phase]) -> float:
    return sum(phase.estimated_hours for phase in phases)


def serialize_phases(phases: list[Phase]) -> str:
    return json.dumps([phase.to_dict() for phase in phases])


def deserialize_plan_fields(preferences_json: str, phases_json: str) -> Optional[tuple[PlanPreferences, list[Phase]]]:
    """Decode stored plan JSON; None when either field is corrupt."""
    try:
        preferences = PlanPreferences.from_dict(json.loads(preferences_json))
        raw_phases = json.loads(phases_json)
        if not isinstance(raw_phases, list):
            return None
        phases = [Phase.from_dict(p) for p in raw_phases if isinstance(p, dict)]
    except (TypeError, ValueError) as e:
        logger.debug("Stored plan JSON could not be decoded: %s", e)
        return None
    return preferences, phases


def compute_completion(phases: list[Phase], progress: list[ProgressEntry]) -> float:
    """Percentage of resource references in phases that have a completed entry."""
    refs = [ref for phase in phases for ref in phase.resources]
    if not refs:
        return 0.0

    completed_ids = {e.resource_id for e in progress if e.status == ProgressStatus.COMPLETED}
    completed = sum(1 for ref in refs if ref.resource_id in completed_ids)
    return completed / len(refs) * 100
