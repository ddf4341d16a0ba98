"""
Domain exceptions for progression services.

Services raise these for rule violations: a blank id, an unknown badge, a
replayed task completion, an unknown leaderboard metric. Calculators never
raise; bad inputs there degrade to neutral values.

The structured fields and the ``is_transient_error`` / ``get_error_severity`` /
``should_alert`` helpers come from ``questboard.core.exceptions`` and are
re-exported here so service code has one import site.
"""

from __future__ import annotations

from typing import Any, Optional

from questboard.core.exceptions import (
    ErrorSeverity,
    QuestboardError,
    get_error_severity,
    is_transient_error,
    should_alert,
)

__all__ = [
    "QuestboardDomainException",
    "NotFoundError",
    "ValidationError",
    "InvalidOperationError",
    "RewardAlreadyClaimedError",
    "ConcurrentUpdateError",
    "is_transient_error",
    "get_error_severity",
    "should_alert",
]


class QuestboardDomainException(QuestboardError):
    """Base for every progression rule violation."""


class NotFoundError(QuestboardDomainException):
    """
    A referenced resource does not exist.

    >>> raise NotFoundError("Badge", "golden-gear")
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, resource_type: str, identifier: Optional[Any] = None) -> None:
        self.resource_type = resource_type
        self.identifier = identifier
        message = f"{resource_type} not found"
        if identifier is not None:
            message = f"{message}: {identifier}"
        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class ValidationError(QuestboardDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


class InvalidOperationError(QuestboardDomainException):
    """
    The request is well-formed but the progression rules forbid it.

    Args:
        action: What was attempted, e.g. ``"leaderboard"``
        reason: Why it is not allowed
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, action: str, reason: str) -> None:
        self.action = action
        self.reason = reason
        super().__init__(
            f"Invalid operation '{action}': {reason}",
            details={"action": action, "reason": reason},
            error_code=f"INVALID_{action.upper()}",
        )


class RewardAlreadyClaimedError(InvalidOperationError):
    """
    The idempotency key of a reward grant is already recorded.

    The first claim wins; every replay ends here with nothing applied.

    Args:
        user_id: User the reward belongs to
        claim_key: e.g. ``task_completion:task-42``
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG

    def __init__(self, user_id: str, claim_key: str) -> None:
        self.user_id = user_id
        self.claim_key = claim_key
        super().__init__("claim_reward", f"reward '{claim_key}' already claimed")
        self.details.update(user_id=user_id, claim_key=claim_key)
        self.error_code = "REWARD_ALREADY_CLAIMED"


class ConcurrentUpdateError(QuestboardDomainException):
    """The locked stats changed underneath the unit of work. Retryable."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(self, user_id: str, reason: str = "stats row was modified concurrently") -> None:
        self.user_id = user_id
        super().__init__(
            f"Concurrent update for user {user_id}: {reason}",
            details={"user_id": user_id, "reason": reason},
            error_code="CONCURRENT_UPDATE",
        )
