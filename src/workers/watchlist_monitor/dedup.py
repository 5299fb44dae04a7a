"""
Alert Deduplicator — guards baseline-alert creation.

Steady-state alerts need no dedup: the advancing watermark already
prevents re-emission. Baseline runs, however, can be repeated (admin
backfills), so at most one initialBaseline alert may exist per
(watchlist entry, network).
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import Alert, AlertType, Network

logger = logging.getLogger(__name__)

BASELINE_FLAG = "initialBaseline"


async def baseline_alert_exists(
    session: AsyncSession,
    user_id: str,
    watchlist_id: int,
    network: Network,
    alert_type: AlertType,
) -> bool:
    """True if a baseline alert for this (watchlist, network, type) was already written."""
    result = await session.execute(
        select(Alert.id, Alert.meta).where(
            Alert.user_id == user_id,
            Alert.watchlist_id == watchlist_id,
            Alert.type == alert_type,
        )
    )
    for alert_id, meta in result.all():
        meta = meta or {}
        if meta.get(BASELINE_FLAG) is True and meta.get("network") == network.value:
            logger.info(
                "Baseline alert #%d already exists for watchlist %d on %s",
                alert_id, watchlist_id, network.value,
            )
            return True
    return False
