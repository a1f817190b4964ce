"""Tests for markdown plan exporter."""

from datetime import datetime, timezone

from learning_aggregator.adapters.export import MarkdownPlanExporter
from learning_aggregator.core import LearningPlan, Pace, Phase, PlanPreferences, PlanResourceRef


def make_plan(**kwargs) -> LearningPlan:
    phases = kwargs.pop("phases", [
        Phase(
            name="Foundation & Basics",
            description="Start with fundamental concepts",
            order=1,
            estimated_hours=2,
            resources=[
                PlanResourceRef(
                    resource_id="r1",
                    title="React in 100 Seconds",
                    url="https://www.youtube.com/watch?v=abc",
                    type="video",
                    difficulty="beginner",
                    duration=3,
                    reason="Quick overview",
                ),
                PlanResourceRef(
                    resource_id="r2",
                    title="awesome-react",
                    url="https://github.com/enaqx/awesome-react",
                    type="repository",
                    difficulty="beginner",
                    duration=None,
                    reason="Curated links",
                ),
            ],
        ),
    ])
    return LearningPlan(
        id="p1",
        topic_id="t1",
        title="React Learning Path",
        preferences=kwargs.pop("preferences", PlanPreferences()),
        phases=phases,
        total_duration=2,
        completion_percentage=kwargs.pop("completion_percentage", 50.0),
        created_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
    )


def test_render_plan() -> None:
    """Test plan renders header, phases and resources."""
    markdown = MarkdownPlanExporter().render(make_plan())

    assert markdown.startswith("# React Learning Path\n")
    assert "**Total Duration:** 2 hours" in markdown
    assert "**Completion:** 50.0%" in markdown
    assert "**Created:** 2025-06-01" in markdown
    assert "### Phase 1: Foundation & Basics" in markdown
    assert "**Estimated time:** 2 hours" in markdown
    assert "1. **[React in 100 Seconds](https://www.youtube.com/watch?v=abc)**" in markdown
    assert "   - Duration: 3 min" in markdown
    assert "2. **[awesome-react](https://github.com/enaqx/awesome-react)**" in markdown
    assert "   - Why: Curated links" in markdown
    assert markdown.count("Duration: ") == 1
    assert "## Preferences" not in markdown
    assert markdown.rstrip().endswith("*Generated by Learning Aggregator*")


def test_render_preferences() -> None:
    preferences = PlanPreferences(free_only=True, pace=Pace.INTENSIVE, preferred_types=["video", "article"])

    markdown = MarkdownPlanExporter().render(make_plan(preferences=preferences))

    assert "## Preferences" in markdown
    assert "- Free resources only" in markdown
    assert "- Learning pace: intensive" in markdown
    assert "- Preferred types: video, article" in markdown


def test_render_empty_plan() -> None:
    markdown = MarkdownPlanExporter().render(make_plan(phases=[], completion_percentage=0.0))

    assert "No phases in this plan." in markdown
    assert "**Completion:** 0.0%" in markdown
