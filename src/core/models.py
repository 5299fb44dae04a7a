"""
SQLAlchemy 2.0 ORM Models — Competitor Watchlist Monitoring
===========================================================

Conventions:
  - snake_case table names
  - BIGINT PKs (auto-increment)
  - Explicit FKs
  - created_at / updated_at on mutable tables

Tables are grouped by functional area:
  1. Watchlist configuration
  2. Raw upstream snapshots (written by analyzers, read-only here)
  3. Alerts (append-only audit trail)
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


# BIGINT identity on PostgreSQL, rowid alias on SQLite.
_PK = BigInteger().with_variant(Integer, "sqlite")
_JSON = JSON().with_variant(JSONB(), "postgresql")


# ══════════════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════════════

class Network(str, PyEnum):
    GOOGLE = "google"        # reviews platform
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TIKTOK = "tiktok"


class ProfileSource(str, PyEnum):
    GBP = "gbp"        # extracted from the business profile
    MANUAL = "manual"  # entered by the user


class AlertType(str, PyEnum):
    NEW_REVIEW = "competitor_new_review"
    NEGATIVE_REVIEW = "competitor_negative_review"
    NEW_POST = "competitor_new_post"
    TRENDING_POST = "competitor_trending_post"


# ══════════════════════════════════════════════════════════════════════
# 1. WATCHLIST CONFIGURATION
# ══════════════════════════════════════════════════════════════════════

class WatchlistCompetitor(Base):
    """
    A competitor business a user is tracking.
    Deactivated (active = False), never deleted, when tracking stops.
    """
    __tablename__ = "watchlist_competitors"

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    business_place_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    competitor_place_id: Mapped[str] = mapped_column(String(255), nullable=False)
    competitor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    competitor_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    social_profiles: Mapped[list["WatchlistSocialProfile"]] = relationship(
        "WatchlistSocialProfile", back_populates="watchlist"
    )
    alerts: Mapped[list["Alert"]] = relationship("Alert", back_populates="watchlist")


class WatchlistSocialProfile(Base):
    """
    One monitored (watchlist entry, network) pair.

    last_seen_external_id is the watermark: the id of the newest item
    observed. NULL means the profile has not been baselined yet.
    Only the diff engine writes it.
    """
    __tablename__ = "watchlist_social_profiles"
    __table_args__ = (
        UniqueConstraint("watchlist_id", "network", name="uq_watchlist_social"),
        Index("ix_watchlist_social_profiles_network_checked", "network", "last_checked_at"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    watchlist_id: Mapped[int] = mapped_column(
        ForeignKey("watchlist_competitors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Plain text (not Enum) so an unexpected value is skipped instead of breaking the load
    network: Mapped[str] = mapped_column(String(32), nullable=False)
    handle_or_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    source: Mapped[ProfileSource] = mapped_column(Enum(ProfileSource), default=ProfileSource.MANUAL)
    last_seen_external_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
    last_checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    watchlist: Mapped["WatchlistCompetitor"] = relationship(
        "WatchlistCompetitor", back_populates="social_profiles"
    )


# ══════════════════════════════════════════════════════════════════════
# 2. RAW UPSTREAM SNAPSHOTS
# ══════════════════════════════════════════════════════════════════════

class GoogleReviewSnapshot(Base):
    """
    Raw reviews payload stored by the reviews analyzer.
    The monitor only reads the latest row per business.
    """
    __tablename__ = "google_review_snapshots"
    __table_args__ = (
        UniqueConstraint("business_id", "snapshot_ts", name="uq_google_review_snapshot"),
        Index("ix_google_review_snapshots_latest", "business_id", "snapshot_ts"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    business_id: Mapped[str] = mapped_column(String(255), nullable=False)
    snapshot_ts: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    raw_data: Mapped[dict[str, Any]] = mapped_column(_JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ══════════════════════════════════════════════════════════════════════
# 3. ALERTS
# ══════════════════════════════════════════════════════════════════════

class Alert(Base):
    """
    An emitted notification. Never updated by the monitor once created;
    read_at is owned by the UI.
    """
    __tablename__ = "alerts"
    __table_args__ = (
        Index("ix_alerts_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(_PK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    watchlist_id: Mapped[int | None] = mapped_column(
        ForeignKey("watchlist_competitors.id", ondelete="SET NULL"), nullable=True, index=True
    )
    type: Mapped[AlertType] = mapped_column(Enum(AlertType), nullable=False)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    meta: Mapped[dict[str, Any]] = mapped_column(_JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    watchlist: Mapped["WatchlistCompetitor | None"] = relationship(
        "WatchlistCompetitor", back_populates="alerts"
    )
