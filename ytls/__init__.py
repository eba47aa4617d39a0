"""Turn an expiring live M3U8 playlist into one continuous byte stream."""

from ytls.config import LiveStreamConfig
from ytls.errors import (
    BadStatus,
    ExhaustedRetries,
    FetchError,
    InvalidCacheDepth,
    InvalidUrl,
    LiveStreamError,
    MissingExpiry,
    MissingSequenceId,
    TooManyRedirects,
    TransportError,
)
from ytls.events import EventType, LiveStreamEvent
from ytls.live_stream import LiveStream, PlaylistSource

__all__ = [
    "BadStatus",
    "EventType",
    "ExhaustedRetries",
    "FetchError",
    "InvalidCacheDepth",
    "InvalidUrl",
    "LiveStream",
    "LiveStreamConfig",
    "LiveStreamError",
    "LiveStreamEvent",
    "MissingExpiry",
    "MissingSequenceId",
    "PlaylistSource",
    "TooManyRedirects",
    "TransportError",
]
