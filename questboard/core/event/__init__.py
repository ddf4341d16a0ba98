"""In-process event bus for progression notifications."""

from questboard.core.event.bus import EventBus
from questboard.core.event.types import EventListener, EventPayload, ListenerPriority

__all__ = ["EventBus", "EventListener", "EventPayload", "ListenerPriority"]
