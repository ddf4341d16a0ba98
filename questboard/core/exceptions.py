"""
Exception roots shared by every Questboard layer.

``QuestboardError`` carries the structured fields that logging and callers
rely on: ``message``, ``details``, ``severity``, ``is_retryable`` and
``error_code``. Two branches hang off it:

- ``QuestboardInfrastructureException`` (this module): database and
  configuration failures.
- ``QuestboardDomainException`` (``questboard.modules.shared.exceptions``):
  progression rule violations.

Subclasses set ``DEFAULT_SEVERITY`` / ``DEFAULT_RETRYABLE`` instead of passing
them on every raise.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """How loudly an error should be logged."""

    DEBUG = "debug"  # expected, e.g. a replayed task completion
    INFO = "info"  # caller mistakes, e.g. a blank user id
    WARNING = "warning"  # handled and retryable
    ERROR = "error"
    CRITICAL = "critical"  # the process cannot work correctly


class QuestboardError(Exception):
    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.severity = severity or self.DEFAULT_SEVERITY
        self.is_retryable = self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        self.error_code = error_code or type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, details={self.details!r}, "
            f"severity={self.severity.value!r}, is_retryable={self.is_retryable!r})"
        )


class QuestboardInfrastructureException(QuestboardError):
    """Database and configuration failures."""


class ConfigurationError(QuestboardInfrastructureException):
    """A balance or settings value is missing or malformed."""

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(QuestboardInfrastructureException):
    """
    A store operation failed in the database.

    Retryable: lock timeouts, serialization failures and dropped connections
    are the usual causes, and the whole unit of work can be run again.

    Args:
        operation: Store operation that failed, e.g. ``"lock_user"``
        original_error: The SQLAlchemy exception
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class DatabaseInitializationError(QuestboardInfrastructureException):
    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="DATABASE_INIT_FAILED")


class DatabaseNotInitializedError(QuestboardInfrastructureException):
    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, message: str) -> None:
        super().__init__(message, error_code="DATABASE_NOT_INITIALIZED")


def is_transient_error(exc: BaseException) -> bool:
    """True if the failed operation may simply be retried."""
    return isinstance(exc, QuestboardError) and exc.is_retryable


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    if isinstance(exc, QuestboardError):
        return exc.severity
    return ErrorSeverity.ERROR


def should_alert(exc: BaseException) -> bool:
    return get_error_severity(exc) in (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)
