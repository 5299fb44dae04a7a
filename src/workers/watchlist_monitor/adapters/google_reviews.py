"""Reviews-platform adapter backed by the stored Google reviews snapshot."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from core.config import settings
from core.models import AlertType, Network
from workers.watchlist_monitor.adapters.base import NetworkAdapter
from workers.watchlist_monitor.analyzers import ReviewsAnalyzer
from workers.watchlist_monitor.fields import first_number, first_text, get_path, tail_segment
from workers.watchlist_monitor.formatting import format_number
from workers.watchlist_monitor.models import ContentItem, ProfileRef, WatchlistEntryRef

logger = logging.getLogger(__name__)

SnapshotLoader = Callable[[str], Awaitable[dict[str, Any] | None]]

_MAPS_PLACE_URL = "https://www.google.com/maps/place/?q=place_id:{place_id}"


class GoogleReviewsAdapter(NetworkAdapter):
    """
    Two-step fetch: trigger a fresh analysis (which stores a snapshot),
    then read the newest stored snapshot for the competitor's place id.
    """

    network = Network.GOOGLE
    label = "Google"
    new_item_alert = AlertType.NEW_REVIEW
    supports_trending = False
    primary_metric = "rating"

    # Tried in order; the first path holding a list wins (no merge).
    review_paths = ("reviews", "placeData.reviews")
    id_fields = (
        "reviewId",
        "reviewerId",
        "id",
        "review_id",
        tail_segment("authorAttribution.uri"),
    )
    timestamp_fields = ("publishedAtDate", "publishAt", "publishTime")
    rating_fields = ("stars", "rating", "starRating")
    text_fields = ("text", "reviewText", "comment")
    url_fields = ("reviewUrl",)

    def __init__(
        self,
        analyzer: ReviewsAnalyzer,
        snapshot_loader: SnapshotLoader,
        *,
        settle_seconds: float | None = None,
        negative_max_stars: int | None = None,
    ) -> None:
        self.analyzer = analyzer
        self.snapshot_loader = snapshot_loader
        self.settle_seconds = (
            settings.review_snapshot_settle_seconds if settle_seconds is None else settle_seconds
        )
        self.negative_max_stars = (
            settings.monitor_negative_review_max_stars if negative_max_stars is None else negative_max_stars
        )

    async def fetch_raw(self, entry: WatchlistEntryRef, profile: ProfileRef) -> Any:
        summary = await self.analyzer.analyze(entry.competitor_place_id)
        logger.info(
            "Reviews analysis done for %s (summary=%s)",
            entry.competitor_place_id, bool(summary),
        )
        if self.settle_seconds > 0:
            await asyncio.sleep(self.settle_seconds)
        return await self.snapshot_loader(entry.competitor_place_id)

    def extract_raw_items(self, raw: Any, entry: WatchlistEntryRef) -> list[dict[str, Any]]:
        if not isinstance(raw, Mapping):
            return []
        for path in self.review_paths:
            reviews = get_path(raw, path)
            if isinstance(reviews, list):
                return [r for r in reviews if isinstance(r, Mapping)]

        places = raw.get("items")
        if isinstance(places, list) and places:
            place = next(
                (p for p in places if isinstance(p, Mapping) and p.get("placeId") == entry.competitor_place_id),
                places[0],
            )
            reviews = place.get("reviews") if isinstance(place, Mapping) else None
            if isinstance(reviews, list):
                return [r for r in reviews if isinstance(r, Mapping)]
        return []

    def build_item(self, record: Mapping[str, Any], entry: WatchlistEntryRef) -> ContentItem:
        rating = first_number(record, self.rating_fields)
        if rating is not None and rating.is_integer():
            rating = int(rating)
        return ContentItem(
            id=self.extract_id(record),
            timestamp_ms=self.extract_timestamp(record),
            metrics={"rating": int(rating)} if rating is not None else {},
            url=self.extract_url(record, entry)
            or _MAPS_PLACE_URL.format(place_id=entry.competitor_place_id),
            rating=rating,
            text=first_text(record, self.text_fields),
            raw=dict(record),
        )

    def severity_alert(self, item: ContentItem) -> AlertType | None:
        if item.rating is not None and item.rating <= self.negative_max_stars:
            return AlertType.NEGATIVE_REVIEW
        return None

    def headline_metric(self, item: ContentItem) -> str:
        return f"{format_number(item.rating or 0)}★ rating"

    def alert_meta(self, item: ContentItem) -> dict[str, Any]:
        return {"rating": item.rating or 0, "review_text": item.text or ""}
