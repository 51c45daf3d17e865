"""Registry notifications."""

from .bus import (
    ALL_EVENT_TYPES,
    EVENT_FEEDBACK_GIVEN,
    EVENT_FEEDBACK_REVOKED,
    EVENT_RESPONSE_APPENDED,
    EVENT_VALIDATION_REQUESTED,
    EVENT_VALIDATION_RESPONDED,
    Event,
    EventBus,
    EventHandler,
    InMemoryEventBus,
)

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "InMemoryEventBus",
    "EVENT_FEEDBACK_GIVEN",
    "EVENT_FEEDBACK_REVOKED",
    "EVENT_RESPONSE_APPENDED",
    "EVENT_VALIDATION_REQUESTED",
    "EVENT_VALIDATION_RESPONDED",
    "ALL_EVENT_TYPES",
]
