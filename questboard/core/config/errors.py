"""
Configuration error hierarchy for Questboard.

Purpose
-------
Provides exceptions for configuration loading and rule construction with
clear error classification and helpful error messages.

Exception Hierarchy
-------------------
ConfigError (base)
├── ConfigValidationError (type/shape validation failures)
└── ConfigInitializationError (startup/load failures)
"""


class ConfigError(Exception):
    """
    Base exception for all configuration-related errors.

    Example
    -------
    >>> try:
    ...     rules = RewardRules.from_config(config_manager)
    ... except ConfigError as e:
    ...     logger.error(f"Config operation failed: {e}")
    """


class ConfigValidationError(ConfigError):
    """
    Raised when a configuration value has the wrong type or shape.

    Attributes
    ----------
    key:
        Dot-notation key of the offending value.
    reason:
        Explanation of why validation failed.
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration for '{key}': {reason}")


class ConfigInitializationError(ConfigError):
    """Raised when configuration files cannot be loaded at startup."""
