"""Source adapters for discovering learning resources."""

from learning_aggregator.adapters.sources.github_source import GitHubSource
from learning_aggregator.adapters.sources.youtube_source import YouTubeSource

__all__ = ["GitHubSource", "YouTubeSource"]
