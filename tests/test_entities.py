"""Tests for core entities."""

import pytest

from learning_aggregator.core import (
    AggregationOptions,
    Difficulty,
    Pace,
    Phase,
    PlanPreferences,
    PlanResourceRef,
    Pricing,
    RawCandidate,
    ResourceFilters,
    ResourceType,
    StoredResource,
)


def test_raw_candidate_creation() -> None:
    candidate = RawCandidate(url="https://github.com/a/b", title="a/b", stars=100)

    assert candidate.title == "a/b"
    assert candidate.stars == 100
    assert candidate.description is None


def test_raw_candidate_validation() -> None:
    with pytest.raises(ValueError, match="Title cannot be empty"):
        RawCandidate(url="https://github.com/a/b", title="")

    with pytest.raises(ValueError, match="URL cannot be empty"):
        RawCandidate(url="", title="a/b")


def test_aggregation_options_validation() -> None:
    with pytest.raises(ValueError):
        AggregationOptions(max_resources_per_source=0)
    with pytest.raises(ValueError):
        AggregationOptions(min_quality_score=101)


def test_aggregation_options_includes() -> None:
    options = AggregationOptions(include_github=False)

    assert options.includes("youtube")
    assert not options.includes("github")
    assert options.includes("somewhere_else")


def test_resource_filters_match() -> None:
    resource = StoredResource(
        id="r",
        url="https://example.com",
        normalized_url="https://example.com/",
        title="T",
        type=ResourceType.BOOK,
        difficulty=Difficulty.INTERMEDIATE,
        pricing=Pricing.PREMIUM,
        quality_score=55,
    )

    assert ResourceFilters().matches(resource)
    assert ResourceFilters(type=ResourceType.BOOK, min_quality_score=55).matches(resource)
    assert not ResourceFilters(difficulty=Difficulty.BEGINNER).matches(resource)
    assert not ResourceFilters(pricing=Pricing.FREE).matches(resource)
    assert not ResourceFilters(min_quality_score=56).matches(resource)


def test_preferences_round_trip() -> None:
    preferences = PlanPreferences(free_only=True, pace=Pace.MODERATE, preferred_types=["video"], max_duration=40)

    data = preferences.to_dict()

    assert data == {"freeOnly": True, "pace": "moderate", "preferredTypes": ["video"], "maxDuration": 40}
    assert PlanPreferences.from_dict(data) == preferences
    assert PlanPreferences().to_dict() == {}


@pytest.mark.parametrize("data", [None, [], "x", {"pace": "warp", "preferredTypes": "video", "maxDuration": "10"}])
def test_preferences_from_bad_data(data) -> None:
    preferences = PlanPreferences.from_dict(data)

    assert preferences.pace is None
    assert preferences.preferred_types == []
    assert preferences.max_duration is None


def test_phase_to_dict_uses_camel_case() -> None:
    phase = Phase(
        name="Basics",
        description="d",
        order=1,
        estimated_hours=4,
        resources=[PlanResourceRef("r1", "T", "https://x", "video", "beginner", 12, "why")],
    )

    data = phase.to_dict()

    assert data["estimatedHours"] == 4
    assert data["resources"][0]["resourceId"] == "r1"
    assert Phase.from_dict(data) == phase
