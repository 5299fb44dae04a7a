"""Data models for the watchlist monitoring pipeline (items, refs, run results)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from core.models import WatchlistCompetitor, WatchlistSocialProfile


class ProfileState(str, PyEnum):
    """Outcome of a single profile pass through the diff engine."""

    BASELINED = "BASELINED"      # watermark established (or re-established)
    UNCHANGED = "UNCHANGED"      # nothing newer than the watermark
    NEW_CONTENT = "NEW_CONTENT"  # alerts emitted, watermark advanced
    CONFLICT = "CONFLICT"        # another run advanced the watermark first
    FAILED = "FAILED"            # persistence failed, only last_checked_at touched


@dataclass(frozen=True, slots=True)
class WatchlistEntryRef:
    """Detached copy of a watchlist row, safe to use after a rollback."""

    id: int
    user_id: str
    competitor_place_id: str
    competitor_name: str

    @classmethod
    def from_row(cls, row: WatchlistCompetitor) -> WatchlistEntryRef:
        return cls(
            id=row.id,
            user_id=row.user_id,
            competitor_place_id=row.competitor_place_id,
            competitor_name=row.competitor_name,
        )


@dataclass(frozen=True, slots=True)
class ProfileRef:
    """Detached copy of a social profile row as read at the start of its pass."""

    id: int
    watchlist_id: int
    network: str
    handle_or_url: str
    last_seen_external_id: str | None = None
    last_checked_at: datetime | None = None

    @classmethod
    def from_row(cls, row: WatchlistSocialProfile) -> ProfileRef:
        return cls(
            id=row.id,
            watchlist_id=row.watchlist_id,
            network=row.network,
            handle_or_url=row.handle_or_url,
            last_seen_external_id=row.last_seen_external_id,
            last_checked_at=row.last_checked_at,
        )


@dataclass(frozen=True, slots=True)
class ContentItem:
    """One canonical review / post / video extracted by a network adapter."""

    id: str | None
    timestamp_ms: int                  # 0 when the upstream item carries no date
    metrics: dict[str, int] = field(default_factory=dict)
    url: str | None = None
    rating: float | None = None        # reviews platform only (1–5 stars)
    text: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def metric(self, name: str) -> int:
        return self.metrics.get(name, 0)


@dataclass(frozen=True, slots=True)
class MonitorOptions:
    """Per-invocation scope of a monitoring run."""

    only_watchlist_id: int | None = None
    initial_baseline: bool = False


@dataclass(slots=True)
class ProfileOutcome:
    """What happened to one profile during a run."""

    state: ProfileState
    alerts_created: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MonitorResults:
    """Aggregated statistics for a whole run."""

    processed: int = 0        # watchlist entries attempted, not profiles
    alerts_created: int = 0
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "alerts_created": self.alerts_created,
            "errors": list(self.errors),
        }
