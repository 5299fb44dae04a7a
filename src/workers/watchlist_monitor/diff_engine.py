"""
Baseline / Diff Engine — decides what a fresh item list means for a profile.

Per profile pass:
  1. Fetch the current items (newest first) through the network adapter.
  2. Unbaselined (or forced) → record the newest id as the watermark and
     write at most one initialBaseline alert.
  3. Otherwise → alert on every item newer than the watermark, escalate
     negative reviews and trending posts, then advance the watermark.

The watermark write is a compare-and-swap; alerts are only inserted once
it succeeds, in the same transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.models import Alert, AlertType
from workers.watchlist_monitor.adapters.base import NetworkAdapter
from workers.watchlist_monitor.dedup import BASELINE_FLAG, baseline_alert_exists
from workers.watchlist_monitor.exceptions import CollaboratorFetchError
from workers.watchlist_monitor.formatting import format_time_ago
from workers.watchlist_monitor.models import (
    ContentItem,
    ProfileOutcome,
    ProfileRef,
    ProfileState,
    WatchlistEntryRef,
)
from workers.watchlist_monitor.repository import advance_watermark, touch_profile

logger = logging.getLogger(__name__)

# ── Alert titles ──────────────────────────────────────────────────────

_TITLE_TEMPLATES: dict[AlertType, str] = {
    AlertType.NEW_REVIEW: "{name} got a new review on {label}",
    AlertType.NEGATIVE_REVIEW: "{name} got a negative review on {label}",
    AlertType.NEW_POST: "{name} posted on {label}",
    AlertType.TRENDING_POST: "{name} has a trending post on {label}",
}

_NO_AGO = {"just now", "recently"}


async def process_profile(
    session: AsyncSession,
    adapter: NetworkAdapter,
    entry: WatchlistEntryRef,
    profile: ProfileRef,
    *,
    initial_baseline: bool = False,
    now: datetime | None = None,
) -> ProfileOutcome:
    """
    Run one profile through the baseline / diff state machine.

    Commits its own transaction. Raises CollaboratorFetchError when the
    upstream fetch fails (after last_checked_at has been advanced);
    persistence failures are reported in the returned outcome instead.
    """
    now = now or datetime.now(timezone.utc)

    try:
        items = await adapter.fetch_items(entry, profile)
    except Exception as exc:
        logger.warning(
            "Fetch failed for %s on %s (profile %d): %s",
            entry.competitor_name, adapter.network.value, profile.id, exc,
        )
        await _mark_checked(session, profile, now)
        raise CollaboratorFetchError(adapter.network.value, entry.competitor_name, exc) from exc

    try:
        if initial_baseline or profile.last_seen_external_id is None:
            outcome = await _establish_baseline(session, adapter, entry, profile, items, now)
        else:
            outcome = await _detect_new_content(session, adapter, entry, profile, items, now)
        if outcome.state is ProfileState.CONFLICT:
            await session.rollback()
        else:
            await session.commit()
        return outcome
    except SQLAlchemyError as exc:
        await session.rollback()
        message = f"Error saving {adapter.network.value} for {entry.competitor_name}: {exc}"
        logger.error(message)
        await _mark_checked(session, profile, now)
        return ProfileOutcome(state=ProfileState.FAILED, errors=[message])


# ── Baseline ──────────────────────────────────────────────────────────

async def _establish_baseline(
    session: AsyncSession,
    adapter: NetworkAdapter,
    entry: WatchlistEntryRef,
    profile: ProfileRef,
    items: list[ContentItem],
    now: datetime,
) -> ProfileOutcome:
    if not items:
        logger.info(
            "No %s items for %s yet, nothing to baseline",
            adapter.network.value, entry.competitor_name,
        )
        await touch_profile(session, profile.id, now)
        return ProfileOutcome(state=ProfileState.UNCHANGED)

    newest = items[0]
    if newest.id is not None:
        swapped = await advance_watermark(
            session,
            profile.id,
            expected=profile.last_seen_external_id,
            new_id=newest.id,
            checked_at=now,
        )
        if not swapped:
            return _conflict(adapter, profile)
    else:
        logger.warning(
            "Newest %s item for %s has no id, watermark left unset",
            adapter.network.value, entry.competitor_name,
        )
        await touch_profile(session, profile.id, now)

    exists = await baseline_alert_exists(
        session, entry.user_id, entry.id, adapter.network, adapter.new_item_alert,
    )
    if exists:
        return ProfileOutcome(state=ProfileState.BASELINED)

    session.add(build_alert(adapter, entry, newest, adapter.new_item_alert, initial_baseline=True, now=now))
    logger.info(
        "Baseline set for %s on %s (watermark=%s)",
        entry.competitor_name, adapter.network.value, newest.id,
    )
    return ProfileOutcome(state=ProfileState.BASELINED, alerts_created=1)


# ── Steady state ──────────────────────────────────────────────────────

async def _detect_new_content(
    session: AsyncSession,
    adapter: NetworkAdapter,
    entry: WatchlistEntryRef,
    profile: ProfileRef,
    items: list[ContentItem],
    now: datetime,
) -> ProfileOutcome:
    watermark = profile.last_seen_external_id
    newest = items[0] if items else None

    if newest is None or newest.id is None or newest.id == watermark:
        await touch_profile(session, profile.id, now)
        return ProfileOutcome(state=ProfileState.UNCHANGED)

    new_items = select_new_items(items, watermark)

    swapped = await advance_watermark(
        session, profile.id, expected=watermark, new_id=newest.id, checked_at=now,
    )
    if not swapped:
        return _conflict(adapter, profile)

    alerts: list[Alert] = []
    for item in reversed(new_items):
        alerts.append(build_alert(adapter, entry, item, adapter.new_item_alert, now=now))
        severity = adapter.severity_alert(item)
        if severity is not None:
            alerts.append(build_alert(adapter, entry, item, severity, now=now))

    if (
        adapter.supports_trending
        and any(item.id == newest.id for item in new_items)
        and is_trending(items, adapter.primary_metric)
    ):
        alerts.append(build_alert(adapter, entry, newest, AlertType.TRENDING_POST, now=now))

    session.add_all(alerts)
    logger.info(
        "%d new %s items for %s, %d alerts (watermark %s → %s)",
        len(new_items), adapter.network.value, entry.competitor_name,
        len(alerts), watermark, newest.id,
    )
    return ProfileOutcome(state=ProfileState.NEW_CONTENT, alerts_created=len(alerts))


def select_new_items(items: list[ContentItem], watermark: str) -> list[ContentItem]:
    """
    Items strictly newer than the watermark, newest first.

    If the watermark item is still in the list, anything with a later
    timestamp is new. If it scrolled out of the window, every identified
    item other than the watermark counts as new.
    """
    anchor = next((item for item in items if item.id == watermark), None)
    if anchor is None:
        return [item for item in items if item.id is not None and item.id != watermark]
    return [
        item for item in items
        if item.id is not None and item.id != watermark and item.timestamp_ms > anchor.timestamp_ms
    ]


def is_trending(
    items: list[ContentItem],
    metric: str,
    window: int | None = None,
    multiplier: float | None = None,
) -> bool:
    """Newest item's metric above multiplier × mean of the `window` items before it."""
    window = window or settings.monitor_trending_window
    multiplier = multiplier or settings.monitor_trending_multiplier
    if len(items) < window + 1:
        return False
    prior = items[1:window + 1]
    mean = sum(item.metric(metric) for item in prior) / window
    return items[0].metric(metric) > mean * multiplier


# ── Alert construction ────────────────────────────────────────────────

def build_alert(
    adapter: NetworkAdapter,
    entry: WatchlistEntryRef,
    item: ContentItem,
    alert_type: AlertType,
    *,
    initial_baseline: bool = False,
    now: datetime | None = None,
) -> Alert:
    now = now or datetime.now(timezone.utc)
    age = format_time_ago(item.timestamp_ms, now_ms=int(now.timestamp() * 1000))
    age_text = age if age in _NO_AGO else f"{age} ago"

    meta: dict[str, Any] = {
        "network": adapter.network.value,
        "competitor_name": entry.competitor_name,
        "external_id": item.id or f"{adapter.network.value}-{item.timestamp_ms}",
        **adapter.alert_meta(item),
        "timeAgo": age,
        "url": item.url,
        BASELINE_FLAG: initial_baseline,
    }
    return Alert(
        user_id=entry.user_id,
        watchlist_id=entry.id,
        type=alert_type,
        title=_TITLE_TEMPLATES[alert_type].format(name=entry.competitor_name, label=adapter.label),
        message=f"{age_text} | {adapter.headline_metric(item)}",
        meta=meta,
    )


async def _mark_checked(session: AsyncSession, profile: ProfileRef, now: datetime) -> None:
    """Best-effort last_checked_at update so a failing profile is not retried every cycle."""
    # A failed statement leaves the transaction aborted on PostgreSQL
    await session.rollback()
    try:
        await touch_profile(session, profile.id, now)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Could not update last_checked_at for profile %d", profile.id)


def _conflict(adapter: NetworkAdapter, profile: ProfileRef) -> ProfileOutcome:
    logger.warning(
        "Watermark for %s profile %d changed concurrently, skipping",
        adapter.network.value, profile.id,
    )
    return ProfileOutcome(state=ProfileState.CONFLICT)
