"""
Base Service Foundation

Purpose
-------
Provides the foundational class for Questboard domain services. Services
orchestrate domain calculations, enforce business rules through the
progression store, and emit domain events.

Design Notes
------------
This base class provides:
- Structured logging with operation context
- Safe config access patterns
- Event emission helpers
- Validation error wrapping

What this class does NOT do:
- Manage database transactions (that's the ProgressionStore's job)
- Handle SQLAlchemy sessions
- Contain reward or level formulas

Usage
-----
    class MilestoneTracker(BaseService):
        def __init__(self, store, config_manager, event_bus, logger):
            super().__init__(config_manager, event_bus, logger)
            self._store = store

        async def check_milestone_completions(self, user_id: str):
            # Service logic here, using self.log, self.get_config, self.emit_event
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from questboard.core.exceptions import (
    ConfigurationError,
    ErrorSeverity,
    get_error_severity,
    is_transient_error,
)
from questboard.modules.shared.exceptions import ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from questboard.core.config.manager import ConfigManager
    from questboard.core.event.bus import EventBus

_LOG_METHODS = {
    ErrorSeverity.DEBUG: "debug",
    ErrorSeverity.INFO: "info",
    ErrorSeverity.WARNING: "warning",
    ErrorSeverity.CRITICAL: "critical",
}


class BaseService:
    """
    Base class for all domain services.

    Args:
        config_manager: Application configuration manager
        event_bus: Event bus for cross-module communication
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Emit a domain event for cross-module communication.

        Args:
            event_type: Type/name of the event
            data: Event payload data
            context: Optional additional context (user_id, task_id, etc.)
        """
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log a service operation with structured context."""
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: Exception,
        **context: Any,
    ) -> None:
        """
        Log a service error with full context.

        Args:
            operation: Name of the operation that failed
            error: The exception that occurred
            **context: Additional context data
        """
        severity = get_error_severity(error)
        log_method = getattr(self.log, _LOG_METHODS.get(severity, "error"))
        log_method(
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "severity": severity.value,
                "is_retryable": is_transient_error(error),
                **context,
            },
        )

    def validate_not_blank(self, value: str, name: str) -> None:
        """
        Validate that an identifier is a non-empty string.

        Raises:
            ValidationError: If value is empty or not a string
        """
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(name, f"{name} must be a non-empty string")

    def validate_positive_int(self, value: int, name: str) -> None:
        """
        Validate that a value is a positive integer.

        Raises:
            ValidationError: If value is not positive
        """
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            raise ValidationError(
                name, f"{name} must be a positive integer, got {value}"
            )
