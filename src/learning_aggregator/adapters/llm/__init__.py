"""LLM adapters."""

from learning_aggregator.adapters.llm.claude_client import ClaudeClient

__all__ = ["ClaudeClient"]
