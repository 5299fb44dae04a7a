"""
Persistence helpers for the watchlist monitor.

Profile writes go through UPDATE statements keyed by id so the engine never
depends on ORM instance state (which is expired after a rollback).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.models import (
    GoogleReviewSnapshot,
    WatchlistCompetitor,
    WatchlistSocialProfile,
)
from workers.watchlist_monitor.models import ProfileRef, WatchlistEntryRef


async def load_watchlist_entries(
    session: AsyncSession,
    only_watchlist_id: int | None = None,
) -> list[WatchlistEntryRef]:
    """Active watchlist entries, optionally narrowed to one id."""
    stmt = select(WatchlistCompetitor).where(WatchlistCompetitor.active.is_(True))
    if only_watchlist_id is not None:
        stmt = stmt.where(WatchlistCompetitor.id == only_watchlist_id)
    result = await session.execute(stmt.order_by(WatchlistCompetitor.id))
    return [WatchlistEntryRef.from_row(row) for row in result.scalars().all()]


async def load_social_profiles(session: AsyncSession, watchlist_id: int) -> list[ProfileRef]:
    result = await session.execute(
        select(WatchlistSocialProfile)
        .where(WatchlistSocialProfile.watchlist_id == watchlist_id)
        .order_by(WatchlistSocialProfile.id)
    )
    return [ProfileRef.from_row(row) for row in result.scalars().all()]


async def touch_profile(session: AsyncSession, profile_id: int, checked_at: datetime) -> None:
    """Advance last_checked_at only."""
    await session.execute(
        update(WatchlistSocialProfile)
        .where(WatchlistSocialProfile.id == profile_id)
        .values(last_checked_at=checked_at)
        .execution_options(synchronize_session=False)
    )


async def advance_watermark(
    session: AsyncSession,
    profile_id: int,
    *,
    expected: str | None,
    new_id: str,
    checked_at: datetime,
) -> bool:
    """
    Compare-and-swap the watermark.

    Only writes when the stored last_seen_external_id still equals the
    value read at the start of this pass. Returns False when another run
    got there first.
    """
    result = await session.execute(
        update(WatchlistSocialProfile)
        .where(
            WatchlistSocialProfile.id == profile_id,
            WatchlistSocialProfile.last_seen_external_id.is_not_distinct_from(expected),
        )
        .values(last_seen_external_id=new_id, last_checked_at=checked_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def latest_review_snapshot(session: AsyncSession, business_id: str) -> dict[str, Any] | None:
    """raw_data of the newest stored reviews snapshot for a place."""
    result = await session.execute(
        select(GoogleReviewSnapshot.raw_data)
        .where(GoogleReviewSnapshot.business_id == business_id)
        .order_by(desc(GoogleReviewSnapshot.snapshot_ts), desc(GoogleReviewSnapshot.id))
        .limit(1)
    )
    return result.scalar_one_or_none()
