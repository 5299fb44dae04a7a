"""
Configuration management with pydantic-settings.

All environment variables are validated at startup.
If a required variable is missing, the process fails immediately
with a clear message (fail-fast).
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────
    database_url: str = Field(
        description="Async connection string (postgresql+asyncpg://...)",
    )
    database_url_sync: str = Field(
        default="",
        description="Sync connection string for Alembic (postgresql://...)",
    )

    # ── Redis / ARQ ───────────────────────────────────────────────────
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection string for ARQ workers.",
    )

    # ── Apify (upstream content analyzers) ────────────────────────────
    apify_token: str = Field(
        default="",
        description="Apify API token used by the default network analyzers.",
    )
    apify_base_url: str = Field(default="https://api.apify.com/v2")
    apify_timeout_seconds: float = Field(default=300.0)
    apify_google_reviews_actor: str = Field(default="nwua9Gu5YrADL7ZDj")
    apify_instagram_actor: str = Field(default="shu8hvrXbJbY3Eb9W")
    apify_facebook_posts_actor: str = Field(default="KoJrdxJCTtpon81KY")
    apify_tiktok_actor: str = Field(default="GdWCkxBtKWOsKjdch")
    google_reviews_limit: int = Field(default=50)
    instagram_results_limit: int = Field(default=20)
    facebook_posts_limit: int = Field(default=10)
    tiktok_results_limit: int = Field(default=10)

    # ── Watchlist monitoring policy ───────────────────────────────────
    monitor_negative_review_max_stars: int = Field(
        default=3,
        description="New reviews at or below this rating also raise a negative-review alert.",
    )
    monitor_trending_window: int = Field(
        default=3,
        description="Number of posts preceding the newest one used for the engagement mean.",
    )
    monitor_trending_multiplier: float = Field(
        default=2.0,
        description="Newest post is trending when its likes exceed mean * multiplier.",
    )
    review_snapshot_settle_seconds: float = Field(
        default=1.0,
        description="Wait between triggering a reviews analysis and reading its snapshot.",
    )


# Singleton instance — import this everywhere
settings = Settings()  # type: ignore[call-arg]
