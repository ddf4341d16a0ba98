"""
Core Event Types for the Questboard EventBus.

Purpose
-------
Fundamental type definitions for the event system: event payloads, listener
priorities, callback types, and the listener record.

Priority Levels
---------------
- CRITICAL (0): Sequential, awaited, timeout-protected.
- HIGH (10): Sequential, awaited, timeout-protected. Use for reward follow-ups.
- NORMAL (50): Concurrent, awaited. Use for notifications and analytics.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

# Simple dict structure that should be JSON-serializable for best observability
EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    """Priority levels for event listeners (lower value runs earlier)."""

    CRITICAL = 0
    HIGH = 10
    NORMAL = 50


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    Represents a registered event listener.

    Attributes
    ----------
    callback:
        Async or sync callable invoked with the event payload.
    priority:
        ListenerPriority enum value determining execution order and concurrency.
    identifier:
        Unique string identifier for deduplication and unsubscription.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
    ) -> EventListener:
        """
        Create an EventListener, deriving an identifier from callback metadata.

        >>> EventListener.from_callback("progression.leveled_up", on_level, ListenerPriority.NORMAL, None).identifier
        'mymodule.on_level@progression.leveled_up'
        """
        if identifier is None:
            module = getattr(callback, "__module__", None) or "unknown"
            name = getattr(callback, "__qualname__", None) or repr(callback)
            identifier = f"{module}.{name}@{event_name}"
        return cls(callback=callback, priority=priority, identifier=identifier)
