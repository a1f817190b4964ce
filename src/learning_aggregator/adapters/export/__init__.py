"""Plan export adapters."""

from learning_aggregator.adapters.export.markdown_exporter import MarkdownPlanExporter

__all__ = ["MarkdownPlanExporter"]
