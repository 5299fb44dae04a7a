"""Instagram adapter. Merges posts, reels and IGTV from the analyzed profile."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from core.models import Network
from workers.watchlist_monitor.adapters.base import SocialAdapter
from workers.watchlist_monitor.models import WatchlistEntryRef


def _shortcode_url(record: Mapping[str, Any]) -> str | None:
    shortcode = record.get("shortCode")
    return f"https://www.instagram.com/p/{shortcode}/" if shortcode else None


class InstagramAdapter(SocialAdapter):
    network = Network.INSTAGRAM
    label = "Instagram"

    item_paths = ("profile.latestPosts", "profile.latestReels", "profile.latestIgtvVideos")
    id_fields = ("shortCode", "id", "postId")
    timestamp_fields = ("timestamp", "takenAtTimestamp")
    metric_fields = {
        "likes": ("likesCount", "likes"),
        "comments": ("commentsCount", "comments"),
        "views": ("videoViewCount", "videoPlayCount"),
    }
    url_fields = ("url", _shortcode_url)

    def extract_url(self, record: Mapping[str, Any], entry: WatchlistEntryRef) -> str | None:
        return super().extract_url(record, entry) or "https://www.instagram.com/"
