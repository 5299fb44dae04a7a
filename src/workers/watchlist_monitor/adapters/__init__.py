"""Network adapters: one configuration class per monitored source."""

from workers.watchlist_monitor.adapters.base import NetworkAdapter, SocialAdapter
from workers.watchlist_monitor.adapters.facebook import FacebookAdapter
from workers.watchlist_monitor.adapters.google_reviews import GoogleReviewsAdapter
from workers.watchlist_monitor.adapters.instagram import InstagramAdapter
from workers.watchlist_monitor.adapters.tiktok import TikTokAdapter

__all__ = [
    "FacebookAdapter",
    "GoogleReviewsAdapter",
    "InstagramAdapter",
    "NetworkAdapter",
    "SocialAdapter",
    "TikTokAdapter",
]
