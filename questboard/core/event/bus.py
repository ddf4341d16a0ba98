"""
EventBus for Questboard.

Purpose
-------
In-process publish/subscribe used by services to announce progression changes
(`progression.task_rewarded`, `progression.leveled_up`,
`progression.milestones_completed`, ...) without coupling to whoever reacts
to them (notifications, badge UI, analytics).

Concurrency Model
-----------------
- CRITICAL / HIGH: sequential, ordered, awaited with timeout
- NORMAL: concurrent (asyncio.gather), awaited

Listener failures are isolated: they are logged and never propagate to the
publisher, so a broken notification hook cannot undo a committed reward.

Thread Safety
-------------
Designed for single-threaded asyncio usage. Instance-based: every service
graph (and every test) may own its own bus.
"""

from __future__ import annotations

import asyncio
import inspect
from fnmatch import fnmatchcase
from typing import Any, Optional

from questboard.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from questboard.core.logging.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """
    Async event bus with wildcard subscriptions.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("progression.leveled_up", on_level_up)
    >>> bus.subscribe("progression.*", audit_progression, priority=ListenerPriority.HIGH)
    >>> await bus.publish("progression.leveled_up", {"user_id": "u-1", "new_level": 5})
    """

    def __init__(self, *, listener_timeout_seconds: Optional[float] = 5.0) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._timeout = listener_timeout_seconds

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Ensure callback accepts exactly one positional parameter."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            callback_name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{callback_name}'"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
    ) -> str:
        """
        Subscribe a callback to an event name or wildcard pattern.

        Returns
        -------
        str:
            The listener identifier (for unsubscribing later).

        Raises
        ------
        ValueError:
            If callback signature is invalid.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
        )

        bucket = self._listeners.setdefault(event_name, [])
        if any(existing.identifier == listener.identifier for existing in bucket):
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        bucket.append(listener)
        logger.debug(
            "EventBus: subscribed listener",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        bucket = self._listeners.get(event_name, [])
        remaining = [lst for lst in bucket if lst.identifier != identifier]
        removed = len(remaining) != len(bucket)
        if remaining:
            self._listeners[event_name] = remaining
        else:
            self._listeners.pop(event_name, None)
        return removed

    def clear(self) -> None:
        self._listeners.clear()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return sum(len(bucket) for bucket in self._listeners.values())
        return len(self._listeners_for(event_name))

    def _listeners_for(self, event_name: str) -> list[EventListener]:
        matched = [
            listener
            for pattern, bucket in self._listeners.items()
            if pattern == event_name or ("*" in pattern and fnmatchcase(event_name, pattern))
            for listener in bucket
        ]
        # sorted() is stable, so registration order is kept within a tier
        return sorted(matched, key=lambda lst: lst.priority.value)

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to all subscribed listeners.

        Returns
        -------
        list[Any]:
            Listener results in execution order (None for failed listeners).
        """
        listeners = self._listeners_for(event_name)

        logger.debug(
            "EventBus: publishing event",
            extra={
                "event_name": event_name,
                "payload_keys": sorted(data.keys()),
                "listener_count": len(listeners),
            },
        )

        results: list[Any] = []
        ordered = [lst for lst in listeners if lst.priority is not ListenerPriority.NORMAL]
        concurrent = [lst for lst in listeners if lst.priority is ListenerPriority.NORMAL]

        for listener in ordered:
            results.append(await self._run_with_timeout(listener, event_name, data))

        if concurrent:
            results.extend(
                await asyncio.gather(
                    *(self._run_listener(lst, event_name, data) for lst in concurrent)
                )
            )

        return results

    async def _run_with_timeout(
        self, listener: EventListener, event_name: str, payload: EventPayload
    ) -> Any:
        if self._timeout is None or self._timeout <= 0:
            return await self._run_listener(listener, event_name, payload)

        try:
            return await asyncio.wait_for(
                self._run_listener(listener, event_name, payload),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "EventBus listener timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "timeout_seconds": self._timeout,
                },
            )
            return None

    async def _run_listener(
        self, listener: EventListener, event_name: str, payload: EventPayload
    ) -> Any:
        """Run a single listener with error isolation."""
        try:
            result = listener.callback(payload)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as exc:
            logger.error(
                "EventBus listener failed",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                },
                exc_info=True,
            )
            return None
