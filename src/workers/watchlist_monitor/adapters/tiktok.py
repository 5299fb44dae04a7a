"""TikTok adapter: latest videos of the analyzed profile."""

from __future__ import annotations

from core.models import Network
from workers.watchlist_monitor.adapters.base import SocialAdapter


class TikTokAdapter(SocialAdapter):
    network = Network.TIKTOK
    label = "TikTok"

    item_paths = ("rawData.videos", "profile.videos")
    id_fields = ("id", "videoId")
    timestamp_fields = ("createTime", "createTimeISO")
    metric_fields = {
        "likes": ("diggCount", "likeCount", "digg", "heartCount", "likes"),
        "comments": ("commentCount", "comments"),
        "shares": ("shareCount", "shares"),
        "views": ("playCount", "viewCount", "play"),
    }
    url_fields = ("webVideoUrl", "url")
