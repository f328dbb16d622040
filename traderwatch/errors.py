"""Exception types for the trader watch engine."""
from __future__ import annotations


class TraderWatchError(Exception):
    """Base exception for trader watch errors."""
    pass


class ConfigError(TraderWatchError):
    """Configuration file or value is invalid."""
    pass


class TraderListError(TraderWatchError):
    """Trader list is missing or contains an invalid row."""
    pass


class FetchError(TraderWatchError):
    """A single upstream request failed."""

    def __init__(self, message: str, url: str = "", status: int | None = None):
        super().__init__(message)
        self.url = url
        self.status = status


class TransientUpstreamError(FetchError):
    """Rate limit, server error or network failure. Retried."""
    pass


class PermanentUpstreamError(FetchError):
    """Non-retryable HTTP status."""
    pass


class MalformedResponseError(FetchError):
    """Response body is not the JSON shape the endpoint returns."""
    pass
