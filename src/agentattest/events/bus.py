"""
Event bus for registry notifications.

Every committed state transition emits exactly one event. Subscribers
(indexers, dashboards) attach with glob-style patterns.
"""

from __future__ import annotations

import fnmatch
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Standard event types
EVENT_FEEDBACK_GIVEN = "feedback.given"
EVENT_FEEDBACK_REVOKED = "feedback.revoked"
EVENT_RESPONSE_APPENDED = "response.appended"
EVENT_VALIDATION_REQUESTED = "validation.requested"
EVENT_VALIDATION_RESPONDED = "validation.responded"

ALL_EVENT_TYPES = [
    EVENT_FEEDBACK_GIVEN,
    EVENT_FEEDBACK_REVOKED,
    EVENT_RESPONSE_APPENDED,
    EVENT_VALIDATION_REQUESTED,
    EVENT_VALIDATION_RESPONDED,
]


@dataclass
class Event:
    """A notification emitted by a registry."""

    event_type: str
    source: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: f"evt-{time.monotonic_ns()}")


EventHandler = Callable[[Event], Any]


class EventBus(ABC):
    """Abstract base class for event bus implementations."""

    @abstractmethod
    def emit(self, event: Event) -> None:
        """Emit an event to all matching subscribers."""

    @abstractmethod
    def subscribe(self, pattern: str, handler: EventHandler) -> None:
        """Subscribe a handler to events matching a glob-style pattern.

        Args:
            pattern: Glob-style pattern (e.g., ``feedback.*``, ``*``).
            handler: Callable invoked with the matching Event.
        """

    @abstractmethod
    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler from all subscriptions."""


class InMemoryEventBus(EventBus):
    """Synchronous in-process event bus with glob-style pattern matching.

    Events are emitted after the registry has committed the transition, so a
    failing handler cannot roll anything back; its error is logged and the
    remaining handlers still run.

    Args:
        max_history: Number of recent events kept for inspection. The
            default of 0 keeps none.
    """

    def __init__(self, max_history: int = 0) -> None:
        self._subscriptions: list[tuple[str, EventHandler]] = []
        self._history: deque[Event] = deque(maxlen=max(max_history, 0))

    @property
    def history(self) -> list[Event]:
        return list(self._history)

    def emit(self, event: Event) -> None:
        self._history.append(event)
        for pattern, handler in self._subscriptions:
            if fnmatch.fnmatch(event.event_type, pattern):
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Event handler failed for %s (%s)", event.event_type, event.event_id
                    )

    def subscribe(self, pattern: str, handler: EventHandler) -> None:
        self._subscriptions.append((pattern, handler))

    def unsubscribe(self, handler: EventHandler) -> None:
        self._subscriptions = [
            (p, h) for p, h in self._subscriptions if h is not handler
        ]
