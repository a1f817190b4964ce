"""Claude API client for plan generation."""

import asyncio
import logging

import httpx

from learning_aggregator.config import Settings
from learning_aggregator.core import LLMClient

logger = logging.getLogger(__name__)


class ClaudeClient(LLMClient):
    """Claude API client implementation."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.api_key = settings.claude_api_key
        self.model = settings.claude.model
        self.max_tokens = settings.claude.max_tokens
        self.temperature = settings.claude.temperature
        self.base_url = "https://api.anthropic.com/v1"
        self.max_retries = max(1, settings.claude.max_retries)
        self.initial_retry_delay = settings.claude.initial_retry_delay
        self.request_delay = settings.claude.request_delay
        self.timeout = settings.claude.timeout
        self._last_request_time = 0.0

    async def complete(self, prompt: str) -> str:
        """Send prompt as a single user message and return the text reply."""
        return await self._call_api(prompt=prompt)

    async def _call_api(self, prompt: str) -> str:
        """Call Claude API with rate limiting and optional retries."""
        current_time = asyncio.get_event_loop().time()
        time_since_last_request = current_time - self._last_request_time
        if time_since_last_request < self.request_delay:
            await asyncio.sleep(self.request_delay - time_since_last_request)

        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }

        last_exception = None

        for attempt in range(self.max_retries):
            is_last_attempt = attempt == self.max_retries - 1
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        f"{self.base_url}/messages",
                        headers={
                            "x-api-key": self.api_key,
                            "anthropic-version": "2023-06-01",
                            "content-type": "application/json",
                        },
                        json=payload,
                    )

                    self._last_request_time = asyncio.get_event_loop().time()

                    if response.status_code == 200:
                        return self._extract_text(response.json())

                    if (response.status_code == 429 or response.status_code >= 500) and not is_last_attempt:
                        retry_delay = self._get_retry_delay(response, attempt)
                        logger.warning(
                            "Claude API returned %s, retrying after %.1fs (attempt %d/%d)",
                            response.status_code, retry_delay, attempt + 1, self.max_retries,
                        )
                        await asyncio.sleep(retry_delay)
                        continue

                    response.raise_for_status()
                    raise httpx.HTTPStatusError(
                        f"Unexpected status {response.status_code}",
                        request=response.request,
                        response=response,
                    )

            except (httpx.HTTPStatusError, httpx.RequestError) as e:
                last_exception = e
                if not is_last_attempt:
                    retry_delay = self.initial_retry_delay * (2 ** attempt)
                    logger.warning("Claude API request failed (%s), retrying after %.1fs", e, retry_delay)
                    await asyncio.sleep(retry_delay)
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError("Failed to call API after all retries")

    def _extract_text(self, data: dict) -> str:
        """Concatenate the text blocks of a messages response."""
        blocks = data.get("content") or []
        texts = [b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type", "text") == "text"]
        if not texts:
            raise ValueError("Unexpected response type from Claude API")
        return "".join(texts)

    def _get_retry_delay(self, response: httpx.Response, attempt: int) -> float:
        """Calculate retry delay from response headers or use exponential backoff."""
        retry_after = response.headers.get("retry-after")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                pass

        return self.initial_retry_delay * (2 ** attempt)
