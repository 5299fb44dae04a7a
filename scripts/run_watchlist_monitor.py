"""Run the watchlist monitor once (admin backfills / manual checks).

Usage:
    python scripts/run_watchlist_monitor.py
    python scripts/run_watchlist_monitor.py --watchlist-id 42 --initial-baseline
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.database import engine
from workers.watchlist_monitor.models import MonitorOptions
from workers.watchlist_monitor.orchestrator import run_watchlist_monitor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("run_watchlist_monitor")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Check watched competitors for new content.")
    parser.add_argument("--watchlist-id", type=int, default=None, help="Only check this watchlist entry.")
    parser.add_argument(
        "--initial-baseline",
        action="store_true",
        help="Force every profile through the baseline path (one-time seed).",
    )
    return parser.parse_args()


async def main() -> int:
    args = parse_args()
    try:
        results = await run_watchlist_monitor(
            MonitorOptions(only_watchlist_id=args.watchlist_id, initial_baseline=args.initial_baseline)
        )
    finally:
        await engine.dispose()

    print(f"🚀 Processed {results.processed} entries, created {results.alerts_created} alerts")
    for error in results.errors:
        print(f"  ❌ {error}")
    return 1 if results.errors else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
