"""Download a resource into memory, with a bounded number of retries."""

from __future__ import annotations

import asyncio
import io
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlparse

import aiohttp
from aiohttp import ClientTimeout

from ytls.constants import (
    DEFAULT_MAX_REDIRECTS,
    LOGGER_NAME,
    REDIRECT_STATUS_CODES,
    VERBOSE_LOG_LEVEL,
)
from ytls.errors import (
    BadStatus,
    ExhaustedRetries,
    FetchError,
    InvalidUrl,
    TooManyRedirects,
    TransportError,
)

if TYPE_CHECKING:
    from aiohttp import ClientSession

LOGGER = logging.getLogger(f"{LOGGER_NAME}.buffered_loader")

WarningCallbackType = Callable[[str, Exception], None]


async def fetch(
    session: ClientSession,
    url: str,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    timeout: float | None = None,
) -> bytes:
    """
    Download the given https URL and return the complete body.

    Redirects (301/302/303/307) are followed manually, at most max_redirects times.

    :param session: The aiohttp session to issue the request with.
    :param url: The https URL to download.
    :param max_redirects: Number of redirects that may be followed.
    :param timeout: Optional total timeout in seconds for every single request.
    :raises InvalidUrl: If the URL does not use the https scheme.
    :raises TooManyRedirects: If the redirect chain is too long.
    :raises BadStatus: If the server answers with a non-2xx status.
    :raises TransportError: On network level errors.
    """
    redirect_count = 0
    while True:
        parsed = urlparse(url)
        if parsed.scheme != "https" or not parsed.netloc:
            raise InvalidUrl(f"Invalid URL: {url}")
        LOGGER.log(VERBOSE_LOG_LEVEL, "GET %s", url)
        try:
            async with session.get(
                url,
                allow_redirects=False,
                timeout=ClientTimeout(total=timeout),
            ) as resp:
                if resp.status in REDIRECT_STATUS_CODES:
                    location = resp.headers.get("Location")
                    if not location:
                        raise BadStatus(resp.status, url)
                    if redirect_count >= max_redirects:
                        raise TooManyRedirects(f"Too many redirects ({url})")
                    redirect_count += 1
                    url = urljoin(url, location)
                    continue
                if resp.status < 200 or resp.status >= 300:
                    raise BadStatus(resp.status, url)
                data = await resp.read()
        except (aiohttp.ClientError, TimeoutError) as err:
            raise TransportError(f"Request to {url} failed: {err!r}") from err
        if LOGGER.isEnabledFor(VERBOSE_LOG_LEVEL):
            LOGGER.log(VERBOSE_LOG_LEVEL, "Received %s bytes from %s", len(data), url)
        return bytes(data)


async def fetch_with_retries(
    session: ClientSession,
    url: str,
    max_tries: int,
    on_warning: WarningCallbackType | None = None,
    retry_delay: float = 0.0,
    max_redirects: int = DEFAULT_MAX_REDIRECTS,
    timeout: float | None = None,
) -> bytes:
    """
    Download the given URL, retrying up to max_tries attempts in total.

    Every failed attempt is reported to on_warning (if given), the last one included.
    Attempts never overlap.

    :raises ExhaustedRetries: When all attempts failed, wraps the last error.
    """
    if max_tries < 1:
        raise ValueError("max_tries must be >= 1")
    tries_left = max_tries
    while True:
        try:
            return await fetch(session, url, max_redirects=max_redirects, timeout=timeout)
        except FetchError as err:
            tries_left -= 1
            LOGGER.debug(
                "Load attempt for %s failed (%s tries left): %s", url, tries_left, str(err)
            )
            if on_warning is not None:
                on_warning("StreamBuffer load attempt failed", err)
            if tries_left <= 0:
                raise ExhaustedRetries(err) from err
        if retry_delay:
            await asyncio.sleep(retry_delay)


def open_buffer(data: bytes) -> io.BytesIO:
    """Expose a downloaded buffer as a readable (file-like) source."""
    return io.BytesIO(data)
