"""create_watchlist_monitor_tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:40.118204

Adds:
- watchlist_competitors (tracked competitor businesses)
- watchlist_social_profiles (per-network watermark rows)
- google_review_snapshots (raw reviews payloads)
- alerts (append-only notifications)
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # -- Watchlist --
    op.create_table(
        "watchlist_competitors",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("business_place_id", sa.String(length=255), nullable=True),
        sa.Column("competitor_place_id", sa.String(length=255), nullable=False),
        sa.Column("competitor_name", sa.String(length=255), nullable=False),
        sa.Column("competitor_address", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_watchlist_competitors_user_id", "watchlist_competitors", ["user_id"])

    # -- Social profiles --
    op.create_table(
        "watchlist_social_profiles",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("watchlist_id", sa.BigInteger(), nullable=False),
        sa.Column("network", sa.String(length=32), nullable=False),
        sa.Column("handle_or_url", sa.String(length=2048), nullable=False),
        sa.Column("source", sa.Enum("GBP", "MANUAL", name="profilesource"), nullable=False, server_default="MANUAL"),
        sa.Column("last_seen_external_id", sa.String(length=512), nullable=True),
        sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["watchlist_id"], ["watchlist_competitors.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("watchlist_id", "network", name="uq_watchlist_social"),
    )
    op.create_index("ix_watchlist_social_profiles_watchlist_id", "watchlist_social_profiles", ["watchlist_id"])
    op.create_index(
        "ix_watchlist_social_profiles_network_checked",
        "watchlist_social_profiles",
        ["network", "last_checked_at"],
    )

    # -- Reviews snapshots --
    op.create_table(
        "google_review_snapshots",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("business_id", sa.String(length=255), nullable=False),
        sa.Column("snapshot_ts", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("total_reviews", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("raw_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("business_id", "snapshot_ts", name="uq_google_review_snapshot"),
    )
    op.create_index(
        "ix_google_review_snapshots_latest",
        "google_review_snapshots",
        ["business_id", "snapshot_ts"],
    )

    # -- Alerts --
    op.create_table(
        "alerts",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("watchlist_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "type",
            sa.Enum("NEW_REVIEW", "NEGATIVE_REVIEW", "NEW_POST", "TRENDING_POST", name="alerttype"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("meta", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["watchlist_id"], ["watchlist_competitors.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_alerts_watchlist_id", "alerts", ["watchlist_id"])
    op.create_index("ix_alerts_user_created", "alerts", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_table("alerts")
    op.execute("DROP TYPE IF EXISTS alerttype")
    op.drop_table("google_review_snapshots")
    op.drop_table("watchlist_social_profiles")
    op.execute("DROP TYPE IF EXISTS profilesource")
    op.drop_table("watchlist_competitors")
