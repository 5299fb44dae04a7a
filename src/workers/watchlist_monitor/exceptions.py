"""Exceptions raised inside a monitoring run. All are caught per profile."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for watchlist monitoring errors."""


class CollaboratorFetchError(MonitorError):
    """An upstream analyzer failed; last_checked_at was still advanced."""

    def __init__(self, network: str, competitor_name: str, cause: BaseException) -> None:
        self.network = network
        self.competitor_name = competitor_name
        self.cause = cause
        super().__init__(f"Error fetching {network} for {competitor_name}: {cause}")


class UnknownNetworkError(MonitorError):
    """A profile references a network with no registered adapter."""

    def __init__(self, network: object) -> None:
        self.network = network
        super().__init__(f"Unknown network: {network!r}")


class ApifyError(MonitorError):
    """The Apify API could not be called (misconfiguration, bad payload)."""
