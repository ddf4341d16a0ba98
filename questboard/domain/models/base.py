"""
Domain model foundations.

- Value objects are frozen dataclasses that validate in ``__post_init__``
  with the ``validate_*`` helpers below and raise ``DomainValidationError``.
- ``AggregateRoot`` is the consistency boundary for one user's progression.
  It records ``DomainEvent``s while state changes; the service publishes
  them only after the unit of work has committed.

>>> progress = UserProgress(snapshot)
>>> progress.apply_level(result)
>>> for event in progress.clear_domain_events():
...     await bus.publish(event.event_name, event.payload)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class DomainEvent:
    """A state change recorded by an aggregate, e.g. ``progression.leveled_up``."""

    event_name: str
    payload: Dict[str, Any]
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Entity:
    """Identity-based equality plus a pending event buffer."""

    def __init__(self, entity_id: str) -> None:
        self._id = entity_id
        self._pending: List[DomainEvent] = []

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Entity) and type(self) is type(other) and self._id == other._id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._id))

    def add_domain_event(self, event_name: str, payload: Dict[str, Any]) -> None:
        self._pending.append(DomainEvent(event_name, payload))

    def clear_domain_events(self) -> List[DomainEvent]:
        """Hand over pending events in the order they were raised."""
        events, self._pending = self._pending, []
        return events

    def get_pending_events(self) -> List[DomainEvent]:
        return list(self._pending)


class AggregateRoot(Entity):
    """Entity that owns a consistency boundary; all writes go through it."""


# ============================================================================
# VALIDATION
# ============================================================================


class DomainValidationError(Exception):
    """A value object or aggregate was given values that break its invariants."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


def validate_positive(value: float, field_name: str) -> None:
    if value <= 0:
        raise DomainValidationError(f"{field_name} must be positive, got {value}", field_name)


def validate_non_negative(value: float, field_name: str) -> None:
    if value < 0:
        raise DomainValidationError(f"{field_name} must be non-negative, got {value}", field_name)


def validate_range(value: float, min_val: float, max_val: float, field_name: str) -> None:
    """Inclusive on both ends."""
    if not min_val <= value <= max_val:
        raise DomainValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}", field_name
        )


def validate_not_empty(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise DomainValidationError(f"{field_name} cannot be empty", field_name)
