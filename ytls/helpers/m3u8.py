"""
Incremental M3U8 line parser.

Unlike a whole-document parser this one is fed the playlist piece by piece,
as it comes in from the network, and emits an event for every complete line.
"""

from __future__ import annotations

import codecs
import re
from dataclasses import dataclass
from urllib.parse import urljoin

TAG_PATTERN = re.compile(r"^#(EXT[A-Z0-9-]+)(?::(.*))?")


@dataclass(frozen=True)
class PlaylistTag:
    """A directive line like #EXTINF:5.0, or #EXTM3U."""

    name: str
    payload: str | None = None


@dataclass(frozen=True)
class PlaylistItem:
    """A plain line referencing a media segment (or sub-playlist)."""

    uri: str


@dataclass(frozen=True)
class PlaylistEnd:
    """Terminal event, emitted once the document has been fully parsed."""


PlaylistEvent = PlaylistTag | PlaylistItem | PlaylistEnd


class M3U8LineParser:
    """Line based parser for one M3U8 playlist document."""

    def __init__(self) -> None:
        """Initialize parser."""
        self._last_line = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._finished = False

    @property
    def finished(self) -> bool:
        """Return whether finish() has been called."""
        return self._finished

    def feed(self, data: bytes | str) -> list[PlaylistEvent]:
        """
        Feed the next piece of the document.

        Returns the events for all lines that were completed by this piece.
        The trailing (possibly partial) line is held back until the next feed or finish.
        """
        if self._finished:
            raise RuntimeError("Cannot feed a parser that has already finished")
        text = data if isinstance(data, str) else self._decoder.decode(data)
        lines = text.split("\n")
        lines[0] = self._last_line + lines[0]
        self._last_line = lines.pop()
        events: list[PlaylistEvent] = []
        for line in lines:
            if event := self.parse_line(line):
                events.append(event)
        return events

    def finish(self) -> list[PlaylistEvent]:
        """
        Parse the remaining partial line and emit the end event.

        Calling finish more than once is a no-op.
        """
        if self._finished:
            return []
        self._finished = True
        line = self._last_line + self._decoder.decode(b"", final=True)
        self._last_line = ""
        events: list[PlaylistEvent] = []
        if event := self.parse_line(line):
            events.append(event)
        events.append(PlaylistEnd())
        return events

    @staticmethod
    def parse_line(line: str) -> PlaylistTag | PlaylistItem | None:
        """Classify a single complete line, None for blank and comment lines."""
        line = line.removesuffix("\r")
        if tag := TAG_PATTERN.match(line):
            return PlaylistTag(tag.group(1), tag.group(2) or None)
        if not line.startswith("#") and (item := line.strip()):
            return PlaylistItem(item)
        return None


def parse_playlist_items(data: bytes | str, base_url: str | None = None) -> list[str]:
    """
    Return all segment URIs of a complete playlist document, in document order.

    Relative URIs are resolved against base_url when given.
    """
    parser = M3U8LineParser()
    events = [*parser.feed(data), *parser.finish()]
    items = [event.uri for event in events if isinstance(event, PlaylistItem)]
    if base_url:
        items = [urljoin(base_url, item) for item in items]
    return items
