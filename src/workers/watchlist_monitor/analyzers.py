"""
Upstream content analyzers (collaborators of the monitor).

The monitor only depends on the two protocols below. The default
implementations run Apify actors synchronously and reshape the dataset
into the structured results the network adapters read:

  reviews   → stored GoogleReviewSnapshot (raw_data = {"items": [...]})
  instagram → {"profile": {..., "latestPosts": [...], "latestReels": [...]}}
  facebook  → {"postsData": {"posts": [...]}}
  tiktok    → {"rawData": {"videos": [...]}}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.models import GoogleReviewSnapshot, Network
from workers.watchlist_monitor.exceptions import ApifyError
from workers.watchlist_monitor.handles import normalize_social_handle, normalize_social_url

logger = logging.getLogger(__name__)


# ── Protocols ─────────────────────────────────────────────────────────

class ReviewsAnalyzer(Protocol):
    async def analyze(self, place_id: str) -> dict[str, Any] | None:
        """Trigger a fresh reviews analysis; the raw payload is stored as a snapshot."""
        ...


class SocialAnalyzer(Protocol):
    async def analyze(
        self,
        target: str,
        *,
        competitor_name: str,
        place_id: str,
    ) -> dict[str, Any] | None:
        """Fetch recent content for a handle / page URL."""
        ...


@dataclass(frozen=True, slots=True)
class MonitorCollaborators:
    """The set of analyzers a monitoring run dispatches to."""

    reviews: ReviewsAnalyzer
    instagram: SocialAnalyzer
    facebook: SocialAnalyzer
    tiktok: SocialAnalyzer


# ── Apify client ──────────────────────────────────────────────────────

class ApifyClient:
    """Thin async wrapper around the Apify run-sync-get-dataset-items endpoint."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token if token is not None else settings.apify_token
        self.base_url = (base_url or settings.apify_base_url).rstrip("/")
        self.timeout = timeout or settings.apify_timeout_seconds
        self._transport = transport

    async def run_actor(self, actor_id: str, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Run an actor to completion and return its dataset items."""
        if not self.token:
            raise ApifyError("APIFY_TOKEN not configured")

        url = f"{self.base_url}/acts/{actor_id}/run-sync-get-dataset-items"
        logger.info("Calling Apify actor %s", actor_id)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(url, params={"token": self.token}, json=payload)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, list):
            raise ApifyError(f"Unexpected dataset payload from actor {actor_id}: {type(data).__name__}")
        items = [item for item in data if isinstance(item, dict)]
        logger.info("Apify actor %s returned %d items", actor_id, len(items))
        return items


# ── Default analyzers ─────────────────────────────────────────────────

class ApifyGoogleReviewsAnalyzer:
    """Scrapes newest reviews for a place and stores them as a snapshot."""

    def __init__(
        self,
        client: ApifyClient,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.client = client
        self.session_factory = session_factory

    async def analyze(self, place_id: str) -> dict[str, Any] | None:
        items = await self.client.run_actor(
            settings.apify_google_reviews_actor,
            {
                "placeIds": [place_id],
                "maxReviews": settings.google_reviews_limit,
                "reviewsSort": "newest",
                "reviewsOrigin": "all",
                "scrapePlaceDetailPage": True,
                "scrapeReviewsPersonalData": True,
                "maxImages": 0,
                "maxQuestions": 0,
                "language": "en",
            },
        )
        if not items:
            logger.warning("No items returned for place %s", place_id)
            return None

        place = next((item for item in items if item.get("placeId") == place_id), items[0])
        reviews = place.get("reviews") if isinstance(place.get("reviews"), list) else []

        async with self.session_factory() as session:
            session.add(
                GoogleReviewSnapshot(
                    business_id=place_id,
                    total_reviews=len(reviews),
                    raw_data={"items": items},
                )
            )
            await session.commit()

        logger.info("Stored reviews snapshot for %s (%d reviews)", place_id, len(reviews))
        return {"placeId": place_id, "title": place.get("title"), "reviewsCount": len(reviews)}


class ApifyInstagramAnalyzer:
    def __init__(self, client: ApifyClient) -> None:
        self.client = client

    async def analyze(self, target: str, *, competitor_name: str, place_id: str) -> dict[str, Any] | None:
        handle = normalize_social_handle(Network.INSTAGRAM, target)
        items = await self.client.run_actor(
            settings.apify_instagram_actor,
            {
                "directUrls": [f"https://www.instagram.com/{handle}"],
                "resultsType": "details",
                "resultsLimit": settings.instagram_results_limit,
                "searchLimit": 1,
                "addParentData": False,
            },
        )
        if not items:
            return None
        return {"profile": items[0]}


class ApifyFacebookAnalyzer:
    def __init__(self, client: ApifyClient) -> None:
        self.client = client

    async def analyze(self, target: str, *, competitor_name: str, place_id: str) -> dict[str, Any] | None:
        page_url = normalize_social_url(Network.FACEBOOK, target)
        items = await self.client.run_actor(
            settings.apify_facebook_posts_actor,
            {
                "startUrls": [{"url": page_url}],
                "resultsLimit": settings.facebook_posts_limit,
                "captionText": False,
            },
        )
        return {"postsData": {"posts": items}}


class ApifyTikTokAnalyzer:
    def __init__(self, client: ApifyClient) -> None:
        self.client = client

    async def analyze(self, target: str, *, competitor_name: str, place_id: str) -> dict[str, Any] | None:
        handle = normalize_social_handle(Network.TIKTOK, target)
        items = await self.client.run_actor(
            settings.apify_tiktok_actor,
            {
                "profiles": [handle],
                "profileScrapeSections": ["videos"],
                "profileSorting": "latest",
                "excludePinnedPosts": True,
                "resultsPerPage": settings.tiktok_results_limit,
                "shouldDownloadVideos": False,
                "shouldDownloadCovers": False,
            },
        )
        return {"rawData": {"videos": items}}


def build_apify_collaborators(
    session_factory: async_sessionmaker[AsyncSession],
    client: ApifyClient | None = None,
) -> MonitorCollaborators:
    """Wire the default Apify-backed analyzers."""
    client = client or ApifyClient()
    return MonitorCollaborators(
        reviews=ApifyGoogleReviewsAnalyzer(client, session_factory),
        instagram=ApifyInstagramAnalyzer(client),
        facebook=ApifyFacebookAnalyzer(client),
        tiktok=ApifyTikTokAnalyzer(client),
    )
