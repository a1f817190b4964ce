"""Learning resource aggregation and learning plan generation."""

__version__ = "0.1.0"
