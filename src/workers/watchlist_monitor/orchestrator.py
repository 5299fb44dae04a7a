"""
Watchlist Monitor Orchestrator
==============================
Entry point of a monitoring run:
1. Reads active watchlist entries (optionally a single one)
2. Loads each entry's social profiles
3. Routes every profile to its network adapter via AdapterFactory
4. Runs the baseline / diff engine and aggregates run statistics

A failure on one profile is recorded and the run moves on; only the
initial watchlist query can abort a run.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from workers.watchlist_monitor.adapter_factory import AdapterFactory
from workers.watchlist_monitor.analyzers import MonitorCollaborators, build_apify_collaborators
from workers.watchlist_monitor.diff_engine import process_profile
from workers.watchlist_monitor.exceptions import MonitorError, UnknownNetworkError
from workers.watchlist_monitor.models import (
    MonitorOptions,
    MonitorResults,
    ProfileRef,
    WatchlistEntryRef,
)
from workers.watchlist_monitor.repository import load_social_profiles, load_watchlist_entries

logger = logging.getLogger(__name__)

ENUMERATION_ERROR = "Failed to fetch watchlist entries"


async def run_watchlist_monitor(
    options: MonitorOptions | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    collaborators: MonitorCollaborators | None = None,
    review_settle_seconds: float | None = None,
) -> MonitorResults:
    """Run one monitoring pass over the watchlist and return its statistics."""
    options = options or MonitorOptions()
    if session_factory is None:
        from core.database import async_session_factory
        session_factory = async_session_factory
    collaborators = collaborators or build_apify_collaborators(session_factory)

    results = MonitorResults()
    started = datetime.now(timezone.utc)
    logger.info(
        "Watchlist monitor started (only_watchlist_id=%s, initial_baseline=%s)",
        options.only_watchlist_id, options.initial_baseline,
    )

    async with session_factory() as session:
        try:
            entries = await load_watchlist_entries(session, options.only_watchlist_id)
        except SQLAlchemyError as exc:
            logger.error("%s: %s", ENUMERATION_ERROR, exc)
            results.errors.append(ENUMERATION_ERROR)
            return results

        factory = AdapterFactory(
            collaborators, session, review_settle_seconds=review_settle_seconds,
        )
        for entry in entries:
            results.processed += 1
            await _process_entry(session, factory, entry, options, results)

    elapsed = (datetime.now(timezone.utc) - started).total_seconds()
    logger.info(
        "Watchlist monitor finished in %.1fs: %d entries, %d alerts, %d errors",
        elapsed, results.processed, results.alerts_created, len(results.errors),
    )
    return results


async def _process_entry(
    session: AsyncSession,
    factory: AdapterFactory,
    entry: WatchlistEntryRef,
    options: MonitorOptions,
    results: MonitorResults,
) -> None:
    try:
        profiles = await load_social_profiles(session, entry.id)
    except SQLAlchemyError as exc:
        await session.rollback()
        message = f"Error loading profiles for {entry.competitor_name}: {exc}"
        logger.error(message)
        results.errors.append(message)
        return

    logger.info("Checking %s (%d profiles)", entry.competitor_name, len(profiles))
    for profile in profiles:
        await _process_profile(session, factory, entry, profile, options, results)


async def _process_profile(
    session: AsyncSession,
    factory: AdapterFactory,
    entry: WatchlistEntryRef,
    profile: ProfileRef,
    options: MonitorOptions,
    results: MonitorResults,
) -> None:
    try:
        adapter = factory.create(profile.network)
    except UnknownNetworkError:
        logger.warning(
            "Skipping profile %d of %s: unknown network %r",
            profile.id, entry.competitor_name, profile.network,
        )
        return

    try:
        outcome = await process_profile(
            session, adapter, entry, profile, initial_baseline=options.initial_baseline,
        )
    except MonitorError as exc:
        results.errors.append(str(exc))
        return
    except Exception as exc:
        await session.rollback()
        logger.exception("Unexpected error on profile %d (%s)", profile.id, entry.competitor_name)
        results.errors.append(f"Error processing {profile.network} for {entry.competitor_name}: {exc}")
        return

    results.alerts_created += outcome.alerts_created
    results.errors.extend(outcome.errors)
    logger.debug("Profile %d → %s (%d alerts)", profile.id, outcome.state.value, outcome.alerts_created)
