"""CLI entry point for learning aggregator."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from learning_aggregator.adapters.export import MarkdownPlanExporter
from learning_aggregator.adapters.llm import ClaudeClient
from learning_aggregator.adapters.sources import GitHubSource, YouTubeSource
from learning_aggregator.adapters.storage import YamlStorage
from learning_aggregator.config import Settings, configure_logging, get_settings
from learning_aggregator.core import (
    AggregationCache,
    AggregationOptions,
    Difficulty,
    LearningAggregatorError,
    LearningPlan,
    Pace,
    PlanPreferences,
    Pricing,
    ProgressStatus,
    ResourceFilters,
    ResourceType,
)
from learning_aggregator.use_cases import AggregatorService, PlanGeneratorService, ProgressService

app = typer.Typer(help="Aggregate learning resources and build learning plans.", no_args_is_help=True)

CONFIG_OPTION = typer.Option(Path("config.yaml"), "--config", "-c", help="Path to YAML config")


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def _fail(error: Exception) -> None:
    print(f"\n❌ {error}")
    raise typer.Exit(code=1)


def _load(config: Path) -> tuple[Settings, YamlStorage]:
    settings = get_settings(config)
    configure_logging(settings)
    return settings, YamlStorage(settings.paths.storage_file)


def _build_aggregator(settings: Settings, storage: YamlStorage) -> AggregatorService:
    sources = [
        YouTubeSource(
            api_key=settings.youtube_api_key,
            order=settings.sources.youtube.get("order", "relevance"),
            video_duration=settings.sources.youtube.get("video_duration", "any"),
        ),
        GitHubSource(
            token=settings.github_token,
            min_stars=settings.sources.github.get("min_stars", 10),
            request_delay=settings.sources.github.get("request_delay", 0.5),
        ),
    ]
    return AggregatorService(
        sources=sources,
        storage=storage,
        cache=AggregationCache(ttl_seconds=settings.cache_ttl_seconds),
    )


def _build_planner(settings: Settings, storage: YamlStorage) -> PlanGeneratorService:
    llm_client = ClaudeClient(settings) if settings.llm_enabled else None
    return PlanGeneratorService(storage, llm_client=llm_client, llm_timeout=settings.claude.timeout)


def _print_plan(plan: LearningPlan) -> None:
    _banner(f"📚 {plan.title}")
    print(f"  • ID: {plan.id}")
    print(f"  • Topic: {plan.topic_id}")
    print(f"  • Total duration: {plan.total_duration} hours")
    print(f"  • Completion: {plan.completion_percentage:.1f}%")

    for phase in plan.phases:
        print(f"\n📌 Phase {phase.order}: {phase.name} ({phase.estimated_hours} h)")
        if phase.description:
            print(f"   {phase.description}")
        for ref in phase.resources:
            print(f"   - [{ref.type}] {ref.title}")
            print(f"     {ref.url}  (id: {ref.resource_id})")
    print()


@app.command()
def aggregate(
    topic: str = typer.Argument(..., help="Topic to search resources for"),
    max_per_source: Optional[int] = typer.Option(None, help="Max resources per source"),
    min_quality: Optional[int] = typer.Option(None, help="Minimum quality score (0-100)"),
    no_youtube: bool = typer.Option(False, "--no-youtube", help="Skip YouTube"),
    no_github: bool = typer.Option(False, "--no-github", help="Skip GitHub"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Discover, classify and store resources for a topic."""
    try:
        settings, storage = _load(config)
        options = AggregationOptions(
            max_resources_per_source=(
                max_per_source if max_per_source is not None else settings.aggregation.max_resources_per_source
            ),
            include_youtube=not no_youtube,
            include_github=not no_github,
            min_quality_score=(
                min_quality if min_quality is not None else settings.aggregation.min_quality_score
            ),
        )
    except (LearningAggregatorError, ValueError) as e:
        _fail(e)

    _banner(f"🔎 LEARNING AGGREGATOR - {topic}")

    print("\n🔑 Credentials:")
    if settings.youtube_api_key:
        print("  ✓ YOUTUBE_API_KEY - video search enabled")
    else:
        print("  ✗ YOUTUBE_API_KEY - not found (YouTube will be skipped)")
    if settings.github_token:
        print("  ✓ GITHUB_TOKEN - authenticated GitHub search")
    else:
        print("  ⚠️  GITHUB_TOKEN - not found (limited rate limit)")

    print("\n⚙️  Settings:")
    print(f"  • Max resources per source: {options.max_resources_per_source}")
    print(f"  • Minimum quality score: {options.min_quality_score}")

    service = _build_aggregator(settings, storage)
    try:
        result = asyncio.run(service.aggregate_resources(topic, options))
    except (LearningAggregatorError, ValueError) as e:
        _fail(e)

    _banner("✅ DONE!")
    print(f"  • Topic ID: {result.topic_id}")
    print(f"  • Resources: {result.resource_count}")
    for name, count in result.sources.items():
        print(f"    - {name}: {count}")
    print(f"  • Average quality: {result.average_quality_score:.1f}")
    print()


@app.command()
def topics(
    limit: int = typer.Option(50, help="Maximum number of topics"),
    config: Path = CONFIG_OPTION,
) -> None:
    """List topics, most recently aggregated first."""
    try:
        settings, storage = _load(config)
    except LearningAggregatorError as e:
        _fail(e)

    items = _build_aggregator(settings, storage).list_topics(limit)
    _banner(f"🏷️  TOPICS ({len(items)})")
    for item in items:
        aggregated = item.last_aggregated_at.strftime("%Y-%m-%d %H:%M") if item.last_aggregated_at else "-"
        print(f"  {item.id}  {aggregated}  {item.resource_count:>4} resources  {item.name}")
    print()


@app.command()
def resources(
    topic_id: str = typer.Argument(..., help="Topic ID"),
    resource_type: Optional[ResourceType] = typer.Option(None, "--type", help="Resource type"),
    difficulty: Optional[Difficulty] = typer.Option(None, help="Difficulty"),
    pricing: Optional[Pricing] = typer.Option(None, help="Pricing"),
    min_quality: Optional[int] = typer.Option(None, help="Minimum quality score"),
    config: Path = CONFIG_OPTION,
) -> None:
    """List stored resources of a topic, best first."""
    try:
        settings, storage = _load(config)
    except LearningAggregatorError as e:
        _fail(e)

    if storage.get_topic(topic_id) is None:
        _fail(LearningAggregatorError(f"Topic {topic_id} not found"))

    service = _build_aggregator(settings, storage)
    items = service.get_topic_resources(
        topic_id,
        ResourceFilters(type=resource_type, difficulty=difficulty, pricing=pricing, min_quality_score=min_quality),
    )

    _banner(f"📦 RESOURCES ({len(items)})")
    for resource in items:
        print(
            f"  [{resource.quality_score:>3}] {resource.title}\n"
            f"        {resource.type.value} · {resource.difficulty.value} · {resource.pricing.value}"
            f" · id: {resource.id}\n"
            f"        {resource.url}"
        )
    print()


@app.command()
def plan(
    topic_id: str = typer.Argument(..., help="Topic ID"),
    free_only: bool = typer.Option(False, "--free-only", help="Only free resources"),
    pace: Optional[Pace] = typer.Option(None, help="Learning pace"),
    preferred_type: Optional[list[ResourceType]] = typer.Option(None, "--type", help="Preferred resource type"),
    max_duration: Optional[int] = typer.Option(None, help="Maximum total duration in hours"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Generate a learning plan for a topic."""
    preferences = PlanPreferences(
        free_only=free_only,
        pace=pace,
        preferred_types=[t.value for t in preferred_type or []],
        max_duration=max_duration,
    )

    try:
        settings, storage = _load(config)
        if settings.llm_enabled:
            print("\n🤖 Generating plan with Claude...")
        else:
            print("\n⚠️  CLAUDE_API_KEY not found, using heuristic plan")
        service = _build_planner(settings, storage)
        result = asyncio.run(service.generate_plan(topic_id, preferences))
    except LearningAggregatorError as e:
        _fail(e)

    _print_plan(result)


@app.command()
def show(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Show a learning plan with its current completion."""
    try:
        settings, storage = _load(config)
        result = _build_planner(settings, storage).get_plan(plan_id)
    except LearningAggregatorError as e:
        _fail(e)

    _print_plan(result)


@app.command()
def plans(
    limit: int = typer.Option(50, help="Maximum number of plans"),
    config: Path = CONFIG_OPTION,
) -> None:
    """List learning plans, newest first."""
    try:
        settings, storage = _load(config)
    except LearningAggregatorError as e:
        _fail(e)

    items = _build_planner(settings, storage).list_plans(limit)
    _banner(f"🗂️  LEARNING PLANS ({len(items)})")
    for item in items:
        created = item.created_at.strftime("%Y-%m-%d") if item.created_at else "-"
        print(f"  {item.id}  {created}  {item.completion_percentage:5.1f}%  {item.title}")
    print()


@app.command()
def delete(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Delete a learning plan and its progress."""
    try:
        settings, storage = _load(config)
        _build_planner(settings, storage).delete_plan(plan_id)
    except LearningAggregatorError as e:
        _fail(e)

    print(f"\n🗑️  Plan {plan_id} deleted\n")


@app.command()
def progress(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    resource_id: Optional[str] = typer.Argument(None, help="Resource ID; omit to list progress"),
    status: Optional[ProgressStatus] = typer.Option(None, help="New status"),
    notes: Optional[str] = typer.Option(None, help="Notes"),
    time_spent: Optional[int] = typer.Option(None, help="Minutes spent"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Record or list progress on a plan's resources."""
    try:
        _, storage = _load(config)
        service = ProgressService(storage)

        if resource_id is None:
            entries = service.list_progress(plan_id)
            _banner(f"📈 PROGRESS ({len(entries)})")
            for entry in entries:
                print(f"  {entry.resource_id}  {entry.status.value}")
            print()
            return

        if status is None:
            _fail(ValueError("--status is required when a resource ID is given"))

        entry = service.update_progress(plan_id, resource_id, status, notes=notes, time_spent=time_spent)
    except (LearningAggregatorError, ValueError) as e:
        _fail(e)

    print(f"\n✓ {entry.resource_id}: {entry.status.value}\n")


@app.command()
def stats(config: Path = CONFIG_OPTION) -> None:
    """Show progress statistics across all plans."""
    try:
        _, storage = _load(config)
    except LearningAggregatorError as e:
        _fail(e)

    result = ProgressService(storage).get_progress_stats()

    _banner("📊 PROGRESS STATISTICS")
    print(f"  • Plans: {result.total_plans}")
    print(f"  • Tracked resources: {result.total_resources}")
    print(f"    - completed: {result.completed_resources}")
    print(f"    - in progress: {result.in_progress_resources}")
    print(f"    - not started: {result.not_started_resources}")
    print(f"  • Time spent: {result.total_time_spent} min")
    print(f"  • Average completion: {result.average_completion_rate:.1f}%")

    if result.recent_activity:
        print("\n🕒 Recent activity:")
        for activity in result.recent_activity:
            print(f"  {activity.status.value:<12} {activity.resource_title}  (plan {activity.plan_id})")
    print()


@app.command()
def export(
    plan_id: str = typer.Argument(..., help="Plan ID"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output markdown file"),
    config: Path = CONFIG_OPTION,
) -> None:
    """Export a learning plan as markdown."""
    try:
        settings, storage = _load(config)
        result = _build_planner(settings, storage).get_plan(plan_id)
    except LearningAggregatorError as e:
        _fail(e)

    if output is None:
        output = settings.paths.exports_dir / f"{plan_id}.md"

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(MarkdownPlanExporter().render(result), encoding="utf-8")
    print(f"\n📄 Plan exported: {output}\n")


if __name__ == "__main__":
    app()
