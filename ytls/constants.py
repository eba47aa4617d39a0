"""All constants for ytls."""

from typing import Final

LOGGER_NAME: Final[str] = "ytls"
VERBOSE_LOG_LEVEL: Final[int] = 5

# playlist polling
MIN_CACHE_DEPTH: Final[int] = 3
DEFAULT_CACHE_DEPTH: Final[int] = 3
DEFAULT_BASE_INTERVAL: Final[float] = 4.5  # seconds

# fetching
DEFAULT_MAX_TRIES: Final[int] = 3
DEFAULT_RETRY_DELAY: Final[float] = 0.0
DEFAULT_MAX_REDIRECTS: Final[int] = 3
DEFAULT_REQUEST_TIMEOUT: Final[float] = 30.0
REDIRECT_STATUS_CODES: Final[tuple[int, ...]] = (301, 302, 303, 307)

# output buffer
DEFAULT_HIGH_WATER_MARK: Final[int] = 4 * 1024 * 1024

# url patterns
SEQUENCE_QUERY_PARAM: Final[str] = "start_seq"
