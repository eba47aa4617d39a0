"""Events signalled by a LiveStream."""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class EventType(StrEnum):
    """Enum with possible LiveStream events."""

    ERROR = "error"
    WARNING = "warning"
    AVAILABLE = "available"


@dataclass(frozen=True)
class LiveStreamEvent:
    """A single event as passed to subscribers."""

    event: EventType
    message: str | None = None
    error: Exception | None = None


EventCallBackType = (
    Callable[[LiveStreamEvent], None] | Callable[[LiveStreamEvent], Coroutine[Any, Any, None]]
)
EventSubscriptionType = tuple[EventCallBackType, tuple[EventType, ...] | None]
