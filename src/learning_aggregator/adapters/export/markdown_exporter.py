"""Markdown plan exporter."""

from learning_aggregator.core import LearningPlan, Phase, PlanExporter, PlanResourceRef


class MarkdownPlanExporter(PlanExporter):
    """Render a learning plan as markdown."""

    def render(self, plan: LearningPlan) -> str:
        lines = [
            f"# {plan.title}",
            "",
            f"**Total Duration:** {plan.total_duration} hours",
            f"**Completion:** {plan.completion_percentage:.1f}%",
        ]
        if plan.created_at:
            lines.append(f"**Created:** {plan.created_at.strftime('%Y-%m-%d')}")
        lines.append("")

        preferences = plan.preferences
        preference_lines = []
        if preferences.free_only:
            preference_lines.append("- Free resources only")
        if preferences.pace:
            preference_lines.append(f"- Learning pace: {preferences.pace.value}")
        if preferences.preferred_types:
            preference_lines.append(f"- Preferred types: {', '.join(preferences.preferred_types)}")
        if preferences.max_duration:
            preference_lines.append(f"- Maximum duration: {preferences.max_duration} hours")

        if preference_lines:
            lines.extend(["## Preferences", "", *preference_lines, ""])

        lines.extend(["## Learning Path", ""])

        if not plan.phases:
            lines.extend(["No phases in this plan.", ""])

        for phase in plan.phases:
            lines.extend(self._format_phase(phase))

        lines.extend(["---", "", "*Generated by Learning Aggregator*", ""])
        return "\n".join(lines)

    def _format_phase(self, phase: Phase) -> list[str]:
        lines = [
            f"### Phase {phase.order}: {phase.name}",
            "",
        ]
        if phase.description:
            lines.extend([phase.description, ""])
        lines.extend([
            f"**Estimated time:** {phase.estimated_hours} hours",
            "",
            "#### Resources",
            "",
        ])

        for idx, ref in enumerate(phase.resources, 1):
            lines.extend(self._format_resource(idx, ref))

        return lines

    def _format_resource(self, idx: int, ref: PlanResourceRef) -> list[str]:
        lines = [
            f"{idx}. **[{ref.title}]({ref.url})**",
            f"   - Type: {ref.type}",
            f"   - Difficulty: {ref.difficulty}",
        ]
        if ref.duration:
            lines.append(f"   - Duration: {ref.duration} min")
        lines.append(f"   - Why: {ref.reason}")
        lines.append("")
        return lines
