"""Facebook adapter: page posts returned by the posts analyzer."""

from __future__ import annotations

from core.models import Network
from workers.watchlist_monitor.adapters.base import SocialAdapter
from workers.watchlist_monitor.handles import normalize_social_url
from workers.watchlist_monitor.models import ProfileRef


class FacebookAdapter(SocialAdapter):
    network = Network.FACEBOOK
    label = "Facebook"

    item_paths = ("postsData.posts", "profile.posts", "rawData.posts")
    id_fields = ("postId", "id")
    timestamp_fields = ("timestamp", "time")
    metric_fields = {
        "likes": ("likes", "likeCount", "likesCount"),
        "comments": ("comments", "commentsCount"),
        "shares": ("shares", "sharesCount"),
    }
    url_fields = ("url", "permalink", "topLevelUrl")

    def target_for(self, profile: ProfileRef) -> str:
        # The posts analyzer wants the full page URL, not just the slug
        if not profile.handle_or_url or not profile.handle_or_url.strip():
            return ""
        return normalize_social_url(self.network, profile.handle_or_url)
