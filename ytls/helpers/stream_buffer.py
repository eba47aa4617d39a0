"""In-memory byte stream that connects the segment loader to a consumer."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncGenerator

from ytls.constants import DEFAULT_HIGH_WATER_MARK, LOGGER_NAME, VERBOSE_LOG_LEVEL

LOGGER = logging.getLogger(f"{LOGGER_NAME}.stream_buffer")


class StreamBuffer:
    """Ordered byte buffer with a non-blocking writable end and an async readable end.

    Chunks are stored in a deque for O(1) append and popleft operations.
    Writers are never blocked: write() returns False once the buffered size reaches
    the high water mark, so a producer can detect that the consumer lags behind,
    and drain() can be awaited to wait for it to catch up.
    """

    def __init__(self, high_water_mark: int = DEFAULT_HIGH_WATER_MARK) -> None:
        """
        Initialize StreamBuffer.

        Args:
            high_water_mark: Buffered bytes from which on write() signals back pressure
        """
        self.high_water_mark = high_water_mark
        self._chunks: deque[bytes] = deque()
        self._size = 0
        self._total_written = 0
        self._eof_received = False
        self._data_available = asyncio.Event()
        self._space_available = asyncio.Event()
        self._space_available.set()

    @property
    def bytes_available(self) -> int:
        """Return number of bytes currently buffered."""
        return self._size

    @property
    def total_written(self) -> int:
        """Return number of bytes written over the lifetime of the buffer."""
        return self._total_written

    @property
    def eof(self) -> bool:
        """Return whether no more data will be written."""
        return self._eof_received

    @property
    def need_drain(self) -> bool:
        """Return whether the consumer does not keep up with the producer."""
        return self._size >= self.high_water_mark

    def write(self, data: bytes) -> bool:
        """
        Append data to the buffer without blocking.

        Returns False if the data was rejected (EOF) or the buffer is at or above
        its high water mark after the write.
        """
        if self._eof_received:
            LOGGER.log(VERBOSE_LOG_LEVEL, "StreamBuffer.write: EOF already received, rejecting")
            return False
        if data:
            self._chunks.append(bytes(data))
            self._size += len(data)
            self._total_written += len(data)
            if LOGGER.isEnabledFor(VERBOSE_LOG_LEVEL):
                LOGGER.log(
                    VERBOSE_LOG_LEVEL,
                    "StreamBuffer.write: Added %s bytes (buffer size: %s bytes)",
                    len(data),
                    self._size,
                )
            self._data_available.set()
        if self.need_drain:
            self._space_available.clear()
            return False
        return True

    async def drain(self) -> None:
        """Wait until the buffered size dropped below the high water mark (or EOF)."""
        while self.need_drain and not self._eof_received:
            await self._space_available.wait()

    async def wait_for_data(self) -> None:
        """Wait until there is data available (or EOF was received)."""
        while not self._chunks and not self._eof_received:
            self._data_available.clear()
            await self._data_available.wait()

    async def read(self, n: int = -1) -> bytes:
        """
        Read up to n bytes, all buffered bytes if n is -1.

        Waits until data is available. Returns b"" on EOF once the buffer is empty.
        """
        if n == 0:
            return b""
        await self.wait_for_data()
        if not self._chunks:
            return b""
        if n < 0 or n >= self._size:
            data = b"".join(self._chunks)
            self._chunks.clear()
        else:
            parts: list[bytes] = []
            remaining = n
            while remaining > 0:
                chunk = self._chunks.popleft()
                if len(chunk) > remaining:
                    self._chunks.appendleft(chunk[remaining:])
                    chunk = chunk[:remaining]
                parts.append(chunk)
                remaining -= len(chunk)
            data = b"".join(parts)
        self._consumed(len(data))
        return data

    async def iter_chunks(self) -> AsyncGenerator[bytes, None]:
        """Iterate over the written chunks until EOF."""
        while True:
            await self.wait_for_data()
            if not self._chunks:
                return
            chunk = self._chunks.popleft()
            self._consumed(len(chunk))
            yield chunk

    def __aiter__(self) -> AsyncGenerator[bytes, None]:
        """Iterate over the written chunks until EOF."""
        return self.iter_chunks()

    def set_eof(self) -> None:
        """Signal that no more data will be added to the buffer."""
        if self._eof_received:
            return
        LOGGER.log(
            VERBOSE_LOG_LEVEL,
            "StreamBuffer.set_eof: Marking EOF (buffer has %s bytes)",
            self._size,
        )
        self._eof_received = True
        # Wake up all waiting consumers and producers
        self._data_available.set()
        self._space_available.set()

    def _consumed(self, size: int) -> None:
        self._size -= size
        if not self._chunks:
            self._data_available.clear()
        if not self.need_drain:
            # Notify producers waiting for space
            self._space_available.set()
