"""GitHub source for educational repositories and awesome lists."""

import asyncio
import logging
import re
from datetime import datetime
from typing import Optional

import httpx

from learning_aggregator.core import RawCandidate, ResourceSource

logger = logging.getLogger(__name__)

EDUCATIONAL_KEYWORDS = ["tutorial", "awesome", "learn"]


class GitHubSource(ResourceSource):
    """Search GitHub repositories that teach a topic."""

    name = "github"

    def __init__(
        self,
        token: Optional[str] = None,
        min_stars: int = 10,
        request_delay: float = 0.5,
        timeout: float = 30.0,
    ) -> None:
        self.token = token
        self.min_stars = min_stars
        self.request_delay = request_delay
        self.timeout = timeout
        self.api_base = "https://api.github.com"

    def is_available(self) -> bool:
        # The API works without a token, only with a lower rate limit.
        return True

    def build_queries(self, topic: str) -> list[str]:
        slug = re.sub(r"\s+", "-", topic.strip().lower())
        stars_filter = f"stars:>={self.min_stars}"
        return [
            f"{topic} {' OR '.join(EDUCATIONAL_KEYWORDS)} {stars_filter}",
            f"awesome-{slug} {stars_filter}",
        ]

    async def search(self, topic: str, max_results: int = 20) -> list[RawCandidate]:
        """Run each query in turn, dedupe by URL and keep the most starred."""
        seen_urls: set[str] = set()
        candidates: list[RawCandidate] = []

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                headers = self._get_headers()

                for i, query in enumerate(self.build_queries(topic)):
                    if i > 0:
                        await asyncio.sleep(self.request_delay)

                    for candidate in await self._search_by_query(client, headers, query, max_results):
                        if candidate.url not in seen_urls:
                            seen_urls.add(candidate.url)
                            candidates.append(candidate)
        except Exception as e:
            logger.warning("GitHub search failed for topic %r: %s", topic, e)
            return []

        candidates.sort(key=lambda c: c.stars or 0, reverse=True)
        logger.info("Found %d GitHub repositories for topic %r", min(len(candidates), max_results), topic)
        return candidates[:max_results]

    async def _search_by_query(
        self,
        client: httpx.AsyncClient,
        headers: dict[str, str],
        query: str,
        max_results: int,
    ) -> list[RawCandidate]:
        """Execute a search query; a failed query contributes nothing."""
        candidates: list[RawCandidate] = []

        try:
            response = await client.get(
                f"{self.api_base}/search/repositories",
                headers=headers,
                params={"q": query, "order": "desc", "per_page": min(max_results, 100)},
            )

            if response.status_code != 200:
                if response.status_code == 403:
                    logger.warning("GitHub API rate limit exceeded for query %r", query)
                elif response.status_code == 401:
                    logger.warning("GitHub API authentication failed, check token")
                else:
                    logger.warning("GitHub API error %s for query %r", response.status_code, query)
                return candidates

            for repo in response.json().get("items", []):
                candidate = self._create_candidate(repo)
                if candidate:
                    candidates.append(candidate)

        except Exception as e:
            logger.warning("GitHub search query %r failed: %s", query, e)

        return candidates

    def _create_candidate(self, repo: dict) -> Optional[RawCandidate]:
        """Create candidate from a search result; archived or undescribed repos are skipped."""
        if repo.get("archived") or not repo.get("description"):
            return None

        try:
            updated_at = repo.get("updated_at")
            last_updated = (
                datetime.fromisoformat(updated_at.replace("Z", "+00:00")) if updated_at else None
            )
            return RawCandidate(
                url=repo["html_url"],
                title=repo["full_name"],
                description=repo["description"],
                platform="github.com",
                stars=int(repo.get("stargazers_count", 0)),
                last_updated=last_updated,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Failed to transform GitHub repository %s: %s", repo.get("id", "?"), e)
            return None

    def _get_headers(self) -> dict[str, str]:
        """Get headers for GitHub API requests."""
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        return headers
