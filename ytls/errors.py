"""Custom errors and exceptions."""

from __future__ import annotations


class LiveStreamError(Exception):
    """Custom Exception for all errors."""


class FetchError(LiveStreamError):
    """Base error for everything that goes wrong while fetching a resource."""


class InvalidUrl(FetchError):
    """Error raised when a URL is malformed or does not use https."""


class BadStatus(FetchError):
    """Error raised when the server answers with a non-2xx, non-redirect status."""

    def __init__(self, status: int, url: str | None = None) -> None:
        """Initialize."""
        self.status = status
        self.url = url
        super().__init__(f"Status code: {status}" + (f" ({url})" if url else ""))


class TooManyRedirects(FetchError):
    """Error raised when the redirect chain exceeds the configured maximum."""


class TransportError(FetchError):
    """Error raised on network level failures (connect, read, timeout)."""


class ExhaustedRetries(FetchError):
    """Error raised when all attempts to fetch a resource have failed."""

    def __init__(self, last_error: Exception) -> None:
        """Initialize."""
        self.last_error = last_error
        super().__init__(f"Could not load buffered stream after several tries: {last_error}")


class MissingExpiry(LiveStreamError):
    """Error raised when a playlist URL has no expire time."""


class MissingSequenceId(LiveStreamError):
    """Error raised when a segment URL has no sequence ID."""


class InvalidCacheDepth(LiveStreamError, ValueError):
    """Error raised when the segment cache depth is not an integer >= 3."""
