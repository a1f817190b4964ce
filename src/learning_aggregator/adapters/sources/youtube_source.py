"""YouTube Data API v3 source for educational videos."""

import logging
import re
from datetime import datetime
from typing import Optional

import httpx

from learning_aggregator.core import RawCandidate, ResourceSource

logger = logging.getLogger(__name__)

ISO_DURATION = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


def parse_duration(iso_duration: str) -> int:
    """Convert an ISO 8601 duration such as ``PT1H2M10S`` to whole minutes."""
    match = ISO_DURATION.match(iso_duration or "")
    if not match:
        return 0

    hours, minutes, seconds = (int(g or 0) for g in match.groups())
    return hours * 60 + minutes + round(seconds / 60)


class YouTubeSource(ResourceSource):
    """Search YouTube for tutorial, course and guide videos."""

    name = "youtube"

    def __init__(
        self,
        api_key: str = "",
        order: str = "relevance",
        video_duration: str = "any",
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.order = order
        self.video_duration = video_duration
        self.timeout = timeout
        self.api_base = "https://www.googleapis.com/youtube/v3"

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def search(self, topic: str, max_results: int = 20) -> list[RawCandidate]:
        """Search videos, then fetch their statistics and durations."""
        if not self.api_key:
            logger.warning("YouTube API key is missing")
            return []

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                search_response = await client.get(
                    f"{self.api_base}/search",
                    params={
                        "key": self.api_key,
                        "part": "snippet",
                        "q": f"{topic} tutorial OR {topic} course OR {topic} guide",
                        "type": "video",
                        "maxResults": max_results,
                        "order": self.order,
                        "videoDuration": self.video_duration,
                        "videoEmbeddable": "true",
                        "videoSyndicated": "true",
                        "relevanceLanguage": "en",
                    },
                )
                search_response.raise_for_status()

                video_ids = [
                    item["id"]["videoId"]
                    for item in search_response.json().get("items", [])
                    if item.get("id", {}).get("videoId")
                ]
                if not video_ids:
                    logger.info("No YouTube videos found for topic %r", topic)
                    return []

                videos_response = await client.get(
                    f"{self.api_base}/videos",
                    params={
                        "key": self.api_key,
                        "part": "snippet,contentDetails,statistics",
                        "id": ",".join(video_ids),
                    },
                )
                videos_response.raise_for_status()
                videos = videos_response.json().get("items", [])

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 403:
                logger.warning("YouTube API quota exceeded or invalid key")
            else:
                logger.warning("YouTube API request failed with status %s", e.response.status_code)
            return []
        except Exception as e:
            logger.warning("YouTube search failed for topic %r: %s", topic, e)
            return []

        candidates = [c for c in (self._create_candidate(v) for v in videos) if c]
        logger.info("Found %d YouTube videos for topic %r", len(candidates), topic)
        return candidates

    def _create_candidate(self, video: dict) -> Optional[RawCandidate]:
        try:
            snippet = video["snippet"]
            statistics = video.get("statistics", {})

            likes = int(statistics.get("likeCount", 0))
            dislikes = int(statistics.get("dislikeCount", 0))
            total_votes = likes + dislikes
            rating = (likes / total_votes) * 5 if total_votes > 0 else 4.0

            published_at = snippet.get("publishedAt")
            return RawCandidate(
                url=f"https://www.youtube.com/watch?v={video['id']}",
                title=snippet["title"],
                description=snippet.get("description", ""),
                duration=parse_duration(video.get("contentDetails", {}).get("duration", "")),
                platform="youtube.com",
                view_count=int(statistics.get("viewCount", 0)),
                rating=round(rating, 1),
                publish_date=(
                    datetime.fromisoformat(published_at.replace("Z", "+00:00")) if published_at else None
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Failed to transform YouTube video %s: %s", video.get("id", "?"), e)
            return None
