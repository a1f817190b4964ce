"""Configuration management."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class ClaudeConfig:
    """Claude API settings."""
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 4096
    temperature: float = 0.7
    max_retries: int = 1
    initial_retry_delay: float = 2.0
    request_delay: float = 0.0
    timeout: float = 60.0


@dataclass
class PathsConfig:
    """Path settings."""
    storage_file: Path = Path("data/learning_aggregator.yaml")
    exports_dir: Path = Path("exports")


@dataclass
class AggregationConfig:
    """Aggregation defaults."""
    max_resources_per_source: int = 20
    min_quality_score: int = 30
    cache_ttl_days: float = 7


@dataclass
class SourcesConfig:
    """Source-specific settings."""
    youtube: dict = field(default_factory=lambda: {
        "order": "relevance",
        "video_duration": "any",
    })
    github: dict = field(default_factory=lambda: {
        "min_stars": 10,
        "request_delay": 0.5,
    })


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    """Application settings."""

    # API Keys (from environment only)
    claude_api_key: str = ""
    youtube_api_key: str = ""
    github_token: Optional[str] = None

    # Config sections
    claude: ClaudeConfig = field(default_factory=ClaudeConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    aggregation: AggregationConfig = field(default_factory=AggregationConfig)
    sources: SourcesConfig = field(default_factory=SourcesConfig)
    log: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def llm_enabled(self) -> bool:
        return bool(self.claude_api_key)

    @property
    def cache_ttl_seconds(self) -> float:
        return self.aggregation.cache_ttl_days * 24 * 60 * 60


def load_config(config_path: Path = Path("config.yaml")) -> dict:
    """Load configuration from YAML file."""
    if not config_path.exists():
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_settings(config_path: Path = Path("config.yaml")) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)

    settings = Settings(
        claude_api_key=os.getenv("CLAUDE_API_KEY") or os.getenv("ANTHROPIC_API_KEY", ""),
        youtube_api_key=os.getenv("YOUTUBE_API_KEY", ""),
        github_token=os.getenv("GITHUB_TOKEN") or None,
    )

    if "claude" in config:
        for key, value in config["claude"].items():
            setattr(settings.claude, key, value)

    if "paths" in config:
        for key, value in config["paths"].items():
            setattr(settings.paths, key, Path(value))

    if "aggregation" in config:
        for key, value in config["aggregation"].items():
            setattr(settings.aggregation, key, value)

    if "sources" in config:
        settings.sources = SourcesConfig(**config["sources"])

    if "logging" in config:
        for key, value in config["logging"].items():
            setattr(settings.log, key, value)

    return settings


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, str(settings.log.level).upper(), logging.INFO),
        format=settings.log.format,
    )
