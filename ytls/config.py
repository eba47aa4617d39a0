"""Configuration for a LiveStream."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ytls.constants import (
    DEFAULT_BASE_INTERVAL,
    DEFAULT_CACHE_DEPTH,
    DEFAULT_HIGH_WATER_MARK,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_MAX_TRIES,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_DELAY,
    MIN_CACHE_DEPTH,
)
from ytls.errors import InvalidCacheDepth


def validate_cache_depth(cache_depth: Any) -> int:
    """Return the cache depth if it is an integer >= 3, raise InvalidCacheDepth otherwise."""
    if isinstance(cache_depth, bool) or not isinstance(cache_depth, int | float):
        raise InvalidCacheDepth(f"Segment cache count must be an integer, got {cache_depth!r}")
    if isinstance(cache_depth, float):
        if math.isnan(cache_depth) or not cache_depth.is_integer():
            raise InvalidCacheDepth(f"Segment cache count must be an integer, got {cache_depth!r}")
        cache_depth = int(cache_depth)
    if cache_depth < MIN_CACHE_DEPTH:
        raise InvalidCacheDepth(f"Segment cache count cannot be < {MIN_CACHE_DEPTH}")
    return cache_depth


@dataclass
class LiveStreamConfig:
    """
    Tunables for the playlist refresh loop and the segment fetcher.

    cache_depth: how many of the newest segments are taken on the first refresh.
        The more segments are cached, the more the stream is delayed.
    base_interval: seconds per cached segment (minus two) between playlist refreshes.
    max_tries: attempts per playlist/segment download before giving up.
    retry_delay: seconds to wait between two attempts (0 retries immediately).
    max_redirects: redirects followed per download.
    request_timeout: total timeout in seconds for one request (None disables it).
    high_water_mark: buffered bytes after which the output stream signals pressure.
    """

    cache_depth: int = DEFAULT_CACHE_DEPTH
    base_interval: float = DEFAULT_BASE_INTERVAL
    max_tries: int = DEFAULT_MAX_TRIES
    retry_delay: float = DEFAULT_RETRY_DELAY
    max_redirects: int = DEFAULT_MAX_REDIRECTS
    request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT
    high_water_mark: int = DEFAULT_HIGH_WATER_MARK

    def __post_init__(self) -> None:
        """Validate the configuration values."""
        self.cache_depth = validate_cache_depth(self.cache_depth)
        if self.base_interval <= 0:
            raise ValueError("base_interval must be > 0")
        if self.max_tries < 1:
            raise ValueError("max_tries must be >= 1")
        if self.retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
        if self.high_water_mark < 1:
            raise ValueError("high_water_mark must be >= 1")

    @property
    def interval(self) -> float:
        """Return the playlist refresh interval in seconds."""
        return (self.cache_depth - 2) * self.base_interval
