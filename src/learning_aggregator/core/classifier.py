"""Rule-based classification and scoring of raw candidates.

Every function here is pure: the same candidate (and the same ``now``) always
yields the same classification.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

from learning_aggregator.core.entities import (
    ClassifiedResource,
    Difficulty,
    Pricing,
    RawCandidate,
    ResourceType,
)

logger = logging.getLogger(__name__)

VIDEO_DOMAINS = ("youtube.com", "youtu.be", "vimeo.com")
REPOSITORY_DOMAINS = ("github.com",)
DOCUMENTATION_PATTERNS = ("/docs/", "developer.mozilla.org", "devdocs.io", ".readthedocs.io")
COURSE_DOMAINS = (
    "udemy.com",
    "coursera.org",
    "edx.org",
    "pluralsight.com",
    "linkedin.com/learning",
)
BOOK_DOMAINS = ("books.google.com", "amazon.com")

BEGINNER_KEYWORDS = (
    "beginner",
    "introduction",
    "getting started",
    "basics",
    "101",
    "fundamentals",
    "for beginners",
    "start here",
    "first steps",
    "crash course",
)
ADVANCED_KEYWORDS = (
    "advanced",
    "expert",
    "mastery",
    "deep dive",
    "internals",
    "architecture",
    "optimization",
    "performance",
    "scaling",
    "production",
    "best practices",
    "design patterns",
)
INTERMEDIATE_KEYWORDS = (
    "intermediate",
    "practical",
    "real-world",
    "hands-on",
    "building",
    "creating",
    "developing",
)
PREREQUISITE_KEYWORDS = (
    "prerequisite",
    "requires",
    "familiarity with",
    "knowledge of",
    "understanding of",
    "experience with",
    "should know",
    "must know",
    "assumes",
)

FREE_DOMAINS = (
    "youtube.com",
    "youtu.be",
    "github.com",
    "developer.mozilla.org",
    "freecodecamp.org",
    "devdocs.io",
    "wikipedia.org",
)
PREMIUM_KEYWORDS = ("paid", "purchase", "buy", "subscription", "premium")
FREEMIUM_DOMAINS = ("udemy.com", "coursera.org", "skillshare.com")
FREE_KEYWORDS = ("free", "open source", "no cost")

PLATFORM_SCORES = {
    "youtube.com": 10,
    "github.com": 15,
    "developer.mozilla.org": 15,
    "coursera.org": 12,
    "udemy.com": 10,
    "freecodecamp.org": 14,
    "edx.org": 12,
    "pluralsight.com": 11,
}
DEFAULT_PLATFORM_SCORE = 5

TRACKING_PARAMS = frozenset(
    ["utm_source", "utm_medium", "utm_campaign", "utm_content", "ref", "source"]
)

SECONDS_PER_YEAR = 365 * 24 * 60 * 60
RECENCY_DECAY_YEARS = 3


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(needle in text for needle in needles)


def _count_matches(text: str, keywords: tuple[str, ...]) -> int:
    return sum(1 for kw in keywords if kw in text)


def detect_type(raw: RawCandidate) -> ResourceType:
    """Detect resource type; the first matching rule wins."""
    url = raw.url.lower()
    title = raw.title.lower()
    description = (raw.description or "").lower()

    if _contains_any(url, VIDEO_DOMAINS):
        return ResourceType.VIDEO
    if _contains_any(url, REPOSITORY_DOMAINS):
        return ResourceType.REPOSITORY
    if _contains_any(url, DOCUMENTATION_PATTERNS):
        return ResourceType.DOCUMENTATION
    if _contains_any(url, COURSE_DOMAINS):
        return ResourceType.COURSE
    if "book" in title or _contains_any(url, BOOK_DOMAINS) or "isbn" in description:
        return ResourceType.BOOK
    if (
        "tutorial" in title
        or "guide" in title
        or "how to" in title
        or "step-by-step" in description
    ):
        return ResourceType.TUTORIAL
    if raw.duration and raw.duration < 30:
        return ResourceType.ARTICLE
    return ResourceType.OTHER


def count_prerequisites(text: str) -> int:
    return _count_matches(text, PREREQUISITE_KEYWORDS)


def detect_difficulty(raw: RawCandidate) -> Difficulty:
    """Detect difficulty from keyword counts in title and description.

    Beginner wins ties against advanced. With no keyword hits the number of
    prerequisite phrases decides: none is beginner, more than three is
    advanced, anything else intermediate.
    """
    text = f"{raw.title} {raw.description or ''}".lower()

    beginner_count = _count_matches(text, BEGINNER_KEYWORDS)
    advanced_count = _count_matches(text, ADVANCED_KEYWORDS)
    intermediate_count = _count_matches(text, INTERMEDIATE_KEYWORDS)

    if beginner_count > 0 and beginner_count >= advanced_count:
        return Difficulty.BEGINNER
    if advanced_count > 0 and advanced_count > beginner_count:
        return Difficulty.ADVANCED
    if intermediate_count > 0:
        return Difficulty.INTERMEDIATE

    prerequisites = count_prerequisites(text)
    if prerequisites == 0:
        return Difficulty.BEGINNER
    if prerequisites > 3:
        return Difficulty.ADVANCED
    return Difficulty.INTERMEDIATE


def detect_pricing(raw: RawCandidate) -> Pricing:
    url = raw.url.lower()
    title = raw.title.lower()
    description = (raw.description or "").lower()

    if _contains_any(url, FREE_DOMAINS):
        return Pricing.FREE
    if _contains_any(title, PREMIUM_KEYWORDS) or _contains_any(description, PREMIUM_KEYWORDS):
        return Pricing.PREMIUM
    if _contains_any(url, FREEMIUM_DOMAINS):
        return Pricing.FREEMIUM
    if _contains_any(title, FREE_KEYWORDS) or _contains_any(description, FREE_KEYWORDS):
        return Pricing.FREE
    return Pricing.UNKNOWN


def extract_domain(url: str) -> str:
    """Host of url without a leading ``www.``; empty string if unparseable."""
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_quality_score(raw: RawCandidate, now: Optional[datetime] = None) -> int:
    """Quality score in [0, 100] from rating, popularity, recency and platform.

    Each signal missing from the candidate contributes a neutral value.
    """
    score = 0.0

    # Rating: 0-40
    if raw.rating:
        score += (min(max(raw.rating, 0.0), 5.0) / 5) * 40
    else:
        score += 20

    # Popularity: 0-25
    popularity = raw.view_count or raw.stars or 0
    if popularity > 0:
        score += min(math.log10(popularity) / 6, 1) * 25
    else:
        score += 10

    # Recency: 0-20, linear decay over three years
    published = raw.publish_date or raw.last_updated
    if published:
        reference = _as_utc(now) if now else datetime.now(timezone.utc)
        age_years = (reference - _as_utc(published)).total_seconds() / SECONDS_PER_YEAR
        recency = min(max(0.0, 1 - age_years / RECENCY_DECAY_YEARS), 1.0)
        score += recency * 20
    else:
        score += 10

    # Platform reputation: 5-15
    score += PLATFORM_SCORES.get(extract_domain(raw.url), DEFAULT_PLATFORM_SCORE)

    return int(min(max(round(score), 0), 100))


def normalize_url(url: str) -> str:
    """Canonical form of url used as the deduplication key.

    Drops tracking parameters, the fragment and a leading ``www.``, reduces
    YouTube watch URLs to their video id and sorts the remaining query. Never
    raises: an unparseable url is returned unchanged.
    """
    try:
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise ValueError("missing scheme or host")
        host = parts.hostname or ""
        if not host:
            raise ValueError("missing host")
        port = parts.port
    except ValueError as e:
        logger.warning("Failed to normalize URL %r: %s", url, e)
        return url

    if host.startswith("www."):
        host = host[4:]
    if ":" in host:
        host = f"[{host}]"
    if port is not None:
        host = f"{host}:{port}"

    params = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in TRACKING_PARAMS
    ]

    if "youtube.com" in host:
        video_id = next((value for key, value in params if key == "v"), None)
        if video_id:
            return f"https://{host}/watch?v={quote(video_id, safe='')}"

    path = parts.path or "/"
    query = urlencode(sorted(params))
    return f"{parts.scheme}://{host}{path}{'?' + query if query else ''}"


def classify(raw: RawCandidate, now: Optional[datetime] = None) -> ClassifiedResource:
    """Classify a single candidate."""
    return ClassifiedResource(
        url=raw.url,
        title=raw.title,
        type=detect_type(raw),
        difficulty=detect_difficulty(raw),
        pricing=detect_pricing(raw),
        quality_score=calculate_quality_score(raw, now),
        normalized_url=normalize_url(raw.url),
        description=raw.description,
        duration=raw.duration,
        platform=raw.platform,
        stars=raw.stars,
        view_count=raw.view_count,
        rating=raw.rating,
        publish_date=raw.publish_date,
        last_updated=raw.last_updated,
    )


def classify_batch(
    raws: list[RawCandidate], now: Optional[datetime] = None
) -> list[ClassifiedResource]:
    """Classify candidates, preserving order."""
    return [classify(raw, now) for raw in raws]
