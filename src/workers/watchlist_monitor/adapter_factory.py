"""
AdapterFactory: Strategy Pattern router.

Decides which concrete NetworkAdapter to instantiate for a profile's
network and wires it to the run's collaborators.

Usage:
    factory = AdapterFactory(collaborators, session)
    adapter = factory.create("instagram")
    items = await adapter.fetch_items(entry, profile)
"""

from __future__ import annotations

import logging
from functools import partial

from sqlalchemy.ext.asyncio import AsyncSession

from core.models import Network
from workers.watchlist_monitor.adapters import (
    FacebookAdapter,
    GoogleReviewsAdapter,
    InstagramAdapter,
    NetworkAdapter,
    SocialAdapter,
    TikTokAdapter,
)
from workers.watchlist_monitor.analyzers import MonitorCollaborators
from workers.watchlist_monitor.exceptions import UnknownNetworkError
from workers.watchlist_monitor.repository import latest_review_snapshot

logger = logging.getLogger(__name__)

# ── Registry: maps social Network → adapter class ─────────────────────

_SOCIAL_REGISTRY: dict[Network, type[SocialAdapter]] = {
    Network.INSTAGRAM: InstagramAdapter,
    Network.FACEBOOK: FacebookAdapter,
    Network.TIKTOK: TikTokAdapter,
}


class AdapterFactory:
    """Creates (and caches per run) the adapter for a network value."""

    def __init__(
        self,
        collaborators: MonitorCollaborators,
        session: AsyncSession,
        *,
        review_settle_seconds: float | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.session = session
        self.review_settle_seconds = review_settle_seconds
        self._cache: dict[Network, NetworkAdapter] = {}

    def create(self, network: str | Network) -> NetworkAdapter:
        """Raises UnknownNetworkError for values outside the Network enum."""
        try:
            key = Network(network)
        except ValueError:
            raise UnknownNetworkError(network) from None

        if key not in self._cache:
            self._cache[key] = self._build(key)
        return self._cache[key]

    def _build(self, network: Network) -> NetworkAdapter:
        if network is Network.GOOGLE:
            return GoogleReviewsAdapter(
                self.collaborators.reviews,
                partial(latest_review_snapshot, self.session),
                settle_seconds=self.review_settle_seconds,
            )

        adapter_cls = _SOCIAL_REGISTRY[network]
        analyzer = getattr(self.collaborators, network.value)
        logger.debug("Using %s for network=%s", adapter_cls.__name__, network.value)
        return adapter_cls(analyzer)
