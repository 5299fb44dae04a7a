"""
ARQ Worker Settings — Registers the watchlist monitoring job.

Usage:
    arq src.workers.worker_settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from core.config import settings

logger = logging.getLogger(__name__)


async def run_watchlist_monitor(
    ctx: dict,
    only_watchlist_id: int | None = None,
    initial_baseline: bool = False,
) -> dict:
    """ARQ job: one monitoring pass over the active watchlist."""
    from workers.watchlist_monitor.models import MonitorOptions
    from workers.watchlist_monitor.orchestrator import run_watchlist_monitor as _run

    results = await _run(
        MonitorOptions(only_watchlist_id=only_watchlist_id, initial_baseline=initial_baseline),
        session_factory=ctx["session_factory"],
        collaborators=ctx["collaborators"],
    )
    for error in results.errors:
        logger.warning("  ⚠️ %s", error)
    return results.as_dict()


async def startup(ctx: dict) -> None:
    """Called on worker startup: wire the session factory and analyzers."""
    from core.database import async_session_factory
    from workers.watchlist_monitor.analyzers import build_apify_collaborators

    ctx["session_factory"] = async_session_factory
    ctx["collaborators"] = build_apify_collaborators(async_session_factory)


async def shutdown(ctx: dict) -> None:
    """Called on worker shutdown."""
    from core.database import engine

    await engine.dispose()


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [
        run_watchlist_monitor,
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = RedisSettings.from_dsn(settings.redis_url)

    # Upstream scrapes run for minutes per profile
    job_timeout = 3600

    # Cron schedule
    cron_jobs = [
        # Watchlist monitor: every day at 6 AM
        cron(run_watchlist_monitor, hour={6}, minute={0}),
    ]
