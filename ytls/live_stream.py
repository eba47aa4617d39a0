"""Turn an expiring live playlist into one continuous byte stream."""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from collections.abc import AsyncGenerator, Awaitable, Callable, Coroutine
from contextlib import suppress
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Self, TypeVar, cast
from urllib.parse import urljoin, urlsplit, urlunsplit

from ytls.config import LiveStreamConfig
from ytls.constants import LOGGER_NAME, SEQUENCE_QUERY_PARAM, VERBOSE_LOG_LEVEL
from ytls.errors import InvalidUrl, MissingExpiry, MissingSequenceId
from ytls.events import EventCallBackType, EventSubscriptionType, EventType, LiveStreamEvent
from ytls.helpers.aiohttp_client import create_clientsession
from ytls.helpers.buffered_loader import fetch_with_retries
from ytls.helpers.m3u8 import M3U8LineParser, PlaylistItem
from ytls.helpers.stream_buffer import StreamBuffer

if TYPE_CHECKING:
    from types import TracebackType

    from aiohttp import ClientSession

LOGGER = logging.getLogger(f"{LOGGER_NAME}.live_stream")

EXPIRE_PATTERN = re.compile(r"expire/([0-9]+)")
SEQUENCE_PATTERN = re.compile(r"sq/([0-9]+)")

ResolveFuncType = Callable[[bool], str | Awaitable[str]]

_R = TypeVar("_R")


@dataclass(frozen=True)
class PlaylistSource:
    """A resolved playlist URL together with the moment it expires."""

    url: str
    expire: int  # seconds since epoch

    @property
    def expired(self) -> bool:
        """Return whether the playlist URL needs to be resolved again."""
        return time.time() > self.expire


def get_expire_time(url: str) -> int:
    """Return the expire time (seconds since epoch) embedded in a playlist URL."""
    if not (match := EXPIRE_PATTERN.search(url)):
        raise MissingExpiry(f"A playlist URL had no expire time: {url}")
    return int(match.group(1))


def get_sequence_id(url: str) -> int:
    """Return the sequence number embedded in a segment URL."""
    if not (match := SEQUENCE_PATTERN.search(url)):
        raise MissingSequenceId(f"A segment URL had no sequence ID: {url}")
    return int(match.group(1))


def with_start_sequence(url: str, start_sequence: int | None) -> str:
    """Return the playlist URL that requests segments from start_sequence onwards."""
    if start_sequence is None:
        return url
    parts = urlsplit(url)
    param = f"{SEQUENCE_QUERY_PARAM}={start_sequence}"
    query = f"{parts.query}&{param}" if parts.query else param
    return urlunsplit(parts._replace(query=query))


class LiveStream:
    """
    Live stream of all segments of an (expiring) M3U8 playlist.

    The playlist is refreshed periodically; every segment that was not delivered
    yet is downloaded and appended, in order, to a single byte stream which can be
    consumed with read() or async iteration.

    Must be created from within a running event loop: creation immediately starts
    loading the newest segments.
    """

    def __init__(
        self,
        resolve_fn: ResolveFuncType | str,
        cache_depth: int | None = None,
        *,
        config: LiveStreamConfig | None = None,
        http_session: ClientSession | None = None,
    ) -> None:
        """
        Initialize and start the LiveStream.

        :param resolve_fn: Function (or coroutine function) that returns the playlist URL.
            It receives True on the very first resolution. A plain URL is accepted too.
        :param cache_depth: How many segments should be buffered. Minimum is 3.
            The more data is cached the more the stream is delayed.
        :param config: Optional tunables, cache_depth overrides the configured one.
        :param http_session: Optional aiohttp session, one is created (and closed) otherwise.
        """
        if isinstance(resolve_fn, str):
            playlist_url = resolve_fn
            resolve_fn = lambda _first: playlist_url  # noqa: E731
        elif not callable(resolve_fn):
            raise TypeError("First parameter is not a function")
        config = config or LiveStreamConfig()
        if cache_depth is not None:
            config = replace(config, cache_depth=cache_depth)
        self.config = config
        self._resolve_fn = resolve_fn
        self._loop = asyncio.get_running_loop()
        self._buffer = StreamBuffer(high_water_mark=config.high_water_mark)
        self._owns_session = http_session is None
        self._http_session = http_session or create_clientsession()
        self._subscribers: set[EventSubscriptionType] = set()
        self._tracked_tasks: set[asyncio.Task[Any]] = set()
        self._source: PlaylistSource | None = None
        self._start_sequence: int | None = None
        self._is_loading_segments = False
        self._closed = False
        self._error_signalled = False
        self._available_signalled = False

        # Start loading segments, the stream will then start
        self._create_task(self._load_segments_or_fail())
        # The refresh interval is calculated by how much data is cached
        self._interval_task: asyncio.Task[None] | None = self._loop.create_task(
            self._run_interval()
        )
        LOGGER.debug(
            "Started live stream (cache depth %s, refresh interval %.1fs)",
            config.cache_depth,
            self.interval,
        )

    @property
    def interval(self) -> float:
        """Return the playlist refresh interval in seconds."""
        return self.config.interval

    @property
    def closed(self) -> bool:
        """Return whether the stream has been torn down."""
        return self._closed

    @property
    def sequence_cursor(self) -> int | None:
        """Return the sequence number of the next segment to request (None before the first)."""
        return self._start_sequence

    @property
    def playlist_source(self) -> PlaylistSource | None:
        """Return the currently resolved playlist source."""
        return self._source

    @property
    def buffer(self) -> StreamBuffer:
        """Return the output stream the segments are written to."""
        return self._buffer

    @property
    def bytes_available(self) -> int:
        """Return the number of bytes that can be read without waiting."""
        return self._buffer.bytes_available

    async def read(self, n: int = -1) -> bytes:
        """Read up to n bytes of the stream, b"" once the stream has ended."""
        return await self._buffer.read(n)

    async def wait_for_data(self) -> None:
        """Wait until data can be read (or the stream has ended)."""
        await self._buffer.wait_for_data()

    def __aiter__(self) -> AsyncGenerator[bytes, None]:
        """Iterate over the segment data until the stream has ended."""
        return self._buffer.iter_chunks()

    def subscribe(
        self,
        cb_func: EventCallBackType,
        event_filter: EventType | tuple[EventType, ...] | None = None,
    ) -> Callable[[], None]:
        """Add callback to event listeners.

        Returns function to remove the listener.
            :param cb_func: callback function or coroutine
            :param event_filter: Optionally only listen for these events
        """
        if isinstance(event_filter, EventType):
            event_filter = (event_filter,)
        listener = (cb_func, event_filter)
        self._subscribers.add(listener)

        def remove_listener() -> None:
            self._subscribers.discard(listener)

        return remove_listener

    async def load_segments(self) -> None:
        """Refresh the playlist and append all new segments to the stream."""
        if self._closed:
            LOGGER.debug("Ignoring segment load, stream is closed")
            return
        # Prevent this function from getting stuck and getting called again by the interval
        if self._is_loading_segments:
            self._signal_event(
                EventType.WARNING,
                "A segment load was attempted while another one was still running",
            )
            return
        self._is_loading_segments = True
        try:
            await self._load_segments()
        finally:
            self._is_loading_segments = False
            if self._closed:
                # close() deferred the session cleanup to us
                await self._close_session()

    async def join(self) -> None:
        """Wait until all currently running segment loads have finished."""
        while pending := [task for task in self._tracked_tasks if not task.done()]:
            await asyncio.wait(pending)

    async def close(self) -> None:
        """
        Stop refreshing and end the stream.

        A segment load that is in progress is not interrupted, it stops at its next
        checkpoint. Segments that were already written stay available for reading.
        """
        if self._closed:
            return
        self._closed = True
        LOGGER.debug("Closing live stream")
        if self._interval_task is not None:
            self._interval_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._interval_task
            self._interval_task = None
        self._buffer.set_eof()
        if not self._is_loading_segments:
            await self._close_session()

    async def __aenter__(self) -> Self:
        """Return Context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        await self.close()

    async def _load_segments(self) -> None:
        source = await self._ensure_source()
        playlist_url = with_start_sequence(source.url, self._start_sequence)

        # Download and parse the M3U8 file
        playlist = await self._fetch(playlist_url)
        parser = M3U8LineParser()
        items = [
            urljoin(playlist_url, event.uri)
            for event in (*parser.feed(playlist), *parser.finish())
            if isinstance(event, PlaylistItem)
        ]

        # Check if the stream is still open and we got some new items
        if self._closed or not items:
            LOGGER.log(VERBOSE_LOG_LEVEL, "No new segments (closed: %s)", self._closed)
            return

        # Only take the last X elements if no start sequence
        if self._start_sequence is None:
            items = items[-self.config.cache_depth :]

        for item in items:
            if self._closed:
                LOGGER.debug("Stream closed while loading segments, stopping")
                return
            segment = await self._fetch(item)
            if self._closed:
                LOGGER.debug("Stream closed while loading segments, stopping")
                return
            self._append(segment)

        # Set the sequence ID for the next request to the one of the last item + 1
        self._start_sequence = get_sequence_id(items[-1]) + 1
        LOGGER.log(
            VERBOSE_LOG_LEVEL,
            "Loaded %s segments, next sequence is %s",
            len(items),
            self._start_sequence,
        )

    async def _ensure_source(self) -> PlaylistSource:
        """Return the playlist source, resolve it (again) if missing or expired."""
        if self._source is not None and not self._source.expired:
            return self._source
        first_resolve = self._source is None
        url = self._resolve_fn(first_resolve)
        if inspect.isawaitable(url):
            url = await url
        if not isinstance(url, str):
            raise InvalidUrl(f"Resolve function did not return a URL but {url!r}")
        self._source = PlaylistSource(url=url, expire=get_expire_time(url))
        LOGGER.debug(
            "Resolved playlist URL (first: %s, expires: %s)", first_resolve, self._source.expire
        )
        return self._source

    async def _fetch(self, url: str) -> bytes:
        return await fetch_with_retries(
            self._http_session,
            url,
            self.config.max_tries,
            on_warning=self._on_fetch_warning,
            retry_delay=self.config.retry_delay,
            max_redirects=self.config.max_redirects,
            timeout=self.config.request_timeout,
        )

    def _append(self, segment: bytes) -> None:
        if not self._buffer.write(segment) and not self._buffer.eof:
            # we do not wait for the consumer to catch up, a live stream moves on
            LOGGER.debug(
                "Consumer is not keeping up (%s bytes buffered)", self._buffer.bytes_available
            )
        if segment and not self._available_signalled:
            self._available_signalled = True
            self._signal_event(EventType.AVAILABLE)

    def _on_fetch_warning(self, message: str, error: Exception) -> None:
        self._signal_event(EventType.WARNING, message, error)

    async def _load_segments_or_fail(self) -> None:
        try:
            await self.load_segments()
        except Exception as err:
            await self._fail(err)

    async def _fail(self, err: Exception) -> None:
        """Tear down the stream and signal the (one and only) error."""
        if self._error_signalled or self._closed:
            LOGGER.debug("Ignoring error on closed stream: %s", str(err))
            return
        self._error_signalled = True
        await self.close()
        self._signal_event(EventType.ERROR, str(err), err)

    async def _run_interval(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self._create_task(self._load_segments_or_fail())

    async def _close_session(self) -> None:
        if self._owns_session and not self._http_session.closed:
            await self._http_session.close()

    def _signal_event(
        self,
        event: EventType,
        message: str | None = None,
        error: Exception | None = None,
    ) -> None:
        """Signal event to subscribers."""
        event_obj = LiveStreamEvent(event=event, message=message, error=error)
        listeners = [
            cb_func
            for cb_func, event_filter in self._subscribers
            if event_filter is None or event in event_filter
        ]
        if not listeners:
            # never drop errors and warnings silently
            if event == EventType.ERROR:
                LOGGER.error(
                    "Live stream failed: %s",
                    message,
                    exc_info=error if LOGGER.isEnabledFor(logging.DEBUG) else None,
                )
            elif event == EventType.WARNING:
                LOGGER.warning("%s%s", message, f": {error}" if error else "")
            return
        LOGGER.log(VERBOSE_LOG_LEVEL, "Signal %s: %s", event.value, message or "")
        for cb_func in listeners:
            if inspect.iscoroutinefunction(cb_func):
                if TYPE_CHECKING:
                    cb_func = cast(
                        "Callable[[LiveStreamEvent], Coroutine[Any, Any, None]]", cb_func
                    )
                self._create_task(cb_func(event_obj))
                continue
            try:
                cb_func(event_obj)
            except Exception as err:
                LOGGER.exception("Error in %s listener %s: %s", event.value, cb_func, err)

    def _create_task(self, target: Coroutine[Any, Any, _R]) -> asyncio.Task[_R]:
        """Create a task that is tracked until it is done."""
        task = self._loop.create_task(target)
        self._tracked_tasks.add(task)
        task.add_done_callback(self._tracked_tasks.discard)
        return task
