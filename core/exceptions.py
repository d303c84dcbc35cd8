"""Exception hierarchy for the people counter dashboard."""

from __future__ import annotations

from typing import Optional


class DashboardError(Exception):
    """Base exception for all dashboard errors."""


class ConfigError(DashboardError):
    """Invalid configuration value."""


class MalformedPayload(DashboardError):
    """Upstream payload is neither a list of events nor a device-grouped mapping."""


class InvalidSelector(DashboardError):
    """A period or hours selector could not be interpreted."""


class FetchError(DashboardError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, url: str = "") -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)
