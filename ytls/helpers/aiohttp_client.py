"""Helpers for setting up a aiohttp session (and related)."""

from __future__ import annotations

import sys
from types import MappingProxyType
from typing import Any

import aiohttp
from aiohttp.hdrs import USER_AGENT

from ytls.constants import LOGGER_NAME

MAXIMUM_CONNECTIONS = 100
MAXIMUM_CONNECTIONS_PER_HOST = 10


def get_user_agent() -> str:
    """Return the user agent ytls identifies with."""
    return (
        f"{LOGGER_NAME}/{_get_package_version()} "
        f"aiohttp/{aiohttp.__version__} Python/{sys.version_info[0]}.{sys.version_info[1]}"
    )


def create_clientsession(**kwargs: Any) -> aiohttp.ClientSession:
    """Create a new ClientSession with kwargs, i.e. for cookies.

    Must be called from within a running event loop.
    """
    clientsession = aiohttp.ClientSession(connector=_get_connector(), **kwargs)
    # Prevent packages accidentally overriding our default headers.
    # If a resource requires a different user agent, override it by passing a headers
    # dictionary to the request method.
    clientsession._default_headers = MappingProxyType(  # type: ignore[assignment]
        {USER_AGENT: get_user_agent()},
    )
    return clientsession


class LiveStreamTCPConnector(aiohttp.TCPConnector):
    """ytls TCP Connector.

    Same as aiohttp.TCPConnector but with a longer cleanup_closed timeout.

    A live stream churns through a lot of short-lived segment downloads, so we
    abort transports of broken connections after 60 seconds instead of 2.
    """

    # abort transport after 60 seconds (cleanup broken connections)
    _cleanup_closed_period = 60.0


def _get_connector() -> aiohttp.BaseConnector:
    """
    Return the connector pool for aiohttp.

    This method must be run in the event loop.
    """
    return LiveStreamTCPConnector(
        # Cleanup closed is no longer needed after https://github.com/python/cpython/pull/118960
        # which first appeared in Python 3.12.7 and 3.13.1
        enable_cleanup_closed=False,
        limit=MAXIMUM_CONNECTIONS,
        limit_per_host=MAXIMUM_CONNECTIONS_PER_HOST,
    )


def _get_package_version() -> str:
    from importlib.metadata import PackageNotFoundError, version  # noqa: PLC0415

    try:
        return version(LOGGER_NAME)
    except PackageNotFoundError:
        return "0.0.0"
