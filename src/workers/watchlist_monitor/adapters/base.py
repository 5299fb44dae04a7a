"""Abstract base class for all network adapters (Strategy Pattern)."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from core.models import AlertType, Network
from workers.watchlist_monitor.analyzers import SocialAnalyzer
from workers.watchlist_monitor.fields import (
    Candidate,
    collect_lists,
    first_number,
    first_text,
    first_value,
)
from workers.watchlist_monitor.formatting import format_number, normalize_timestamp_ms
from workers.watchlist_monitor.handles import normalize_social_handle
from workers.watchlist_monitor.models import ContentItem, ProfileRef, WatchlistEntryRef

logger = logging.getLogger(__name__)


class NetworkAdapter(ABC):
    """
    Turns an analyzer result into a canonical, newest-first item list.

    Subclasses are mostly configuration: where the item lists live,
    which field names hold the id / timestamp / metrics / link. The
    diff engine is written once against this interface.

    Principles:
    - fetch_items() lets collaborator errors propagate (the engine
      records them); extraction itself never raises on odd payloads.
    - Missing fields degrade to None / 0, never to exceptions.
    """

    network: ClassVar[Network]
    label: ClassVar[str]
    new_item_alert: ClassVar[AlertType] = AlertType.NEW_POST
    supports_trending: ClassVar[bool] = True
    primary_metric: ClassVar[str] = "likes"

    item_paths: ClassVar[tuple[str, ...]] = ()
    id_fields: ClassVar[tuple[Candidate, ...]] = ("id",)
    timestamp_fields: ClassVar[tuple[Candidate, ...]] = ("timestamp",)
    metric_fields: ClassVar[dict[str, tuple[Candidate, ...]]] = {}
    url_fields: ClassVar[tuple[Candidate, ...]] = ("url",)

    @abstractmethod
    async def fetch_raw(self, entry: WatchlistEntryRef, profile: ProfileRef) -> Any:
        """Call the upstream collaborator and return its structured result."""
        ...

    async def fetch_items(self, entry: WatchlistEntryRef, profile: ProfileRef) -> list[ContentItem]:
        """Fetch, extract and sort (newest first) the current items."""
        raw = await self.fetch_raw(entry, profile)
        items: list[ContentItem] = []
        seen: set[str] = set()
        for record in self.extract_raw_items(raw, entry):
            item = self.build_item(record, entry)
            # The same post can be listed under several paths (posts and reels)
            if item.id is not None:
                if item.id in seen:
                    continue
                seen.add(item.id)
            items.append(item)
        items.sort(key=lambda item: item.timestamp_ms, reverse=True)
        logger.debug("%s: %d items for %s", self.network.value, len(items), entry.competitor_name)
        return items

    # ── Extraction ────────────────────────────────────────────────────

    def extract_raw_items(self, raw: Any, entry: WatchlistEntryRef) -> list[dict[str, Any]]:
        return collect_lists(raw, self.item_paths)

    def extract_id(self, record: Mapping[str, Any]) -> str | None:
        return first_text(record, self.id_fields)

    def extract_timestamp(self, record: Mapping[str, Any]) -> int:
        return normalize_timestamp_ms(first_value(record, self.timestamp_fields)) or 0

    def extract_metrics(self, record: Mapping[str, Any]) -> dict[str, int]:
        metrics: dict[str, int] = {}
        for name, candidates in self.metric_fields.items():
            value = first_number(record, candidates)
            metrics[name] = int(value) if value is not None else 0
        return metrics

    def extract_url(self, record: Mapping[str, Any], entry: WatchlistEntryRef) -> str | None:
        return first_text(record, self.url_fields)

    def build_item(self, record: Mapping[str, Any], entry: WatchlistEntryRef) -> ContentItem:
        return ContentItem(
            id=self.extract_id(record),
            timestamp_ms=self.extract_timestamp(record),
            metrics=self.extract_metrics(record),
            url=self.extract_url(record, entry),
            raw=dict(record),
        )

    # ── Alert hooks ───────────────────────────────────────────────────

    def severity_alert(self, item: ContentItem) -> AlertType | None:
        """Extra alert type raised on top of the plain new-item alert, if any."""
        return None

    def headline_metric(self, item: ContentItem) -> str:
        return f"{format_number(item.metric(self.primary_metric))} {self.primary_metric}"

    def alert_meta(self, item: ContentItem) -> dict[str, Any]:
        """Network-specific metadata merged into every alert for this item."""
        return dict(item.metrics)


class SocialAdapter(NetworkAdapter):
    """Adapter for a social network analyzer keyed by handle or page URL."""

    def __init__(self, analyzer: SocialAnalyzer) -> None:
        self.analyzer = analyzer

    def target_for(self, profile: ProfileRef) -> str:
        """Value handed to the analyzer (bare handle by default)."""
        return normalize_social_handle(self.network, profile.handle_or_url)

    async def fetch_raw(self, entry: WatchlistEntryRef, profile: ProfileRef) -> Any:
        target = self.target_for(profile)
        if not target:
            logger.warning(
                "Could not derive a %s target from %r (profile %d), skipping fetch",
                self.network.value, profile.handle_or_url, profile.id,
            )
            return None
        return await self.analyzer.analyze(
            target,
            competitor_name=entry.competitor_name,
            place_id=entry.competitor_place_id,
        )
