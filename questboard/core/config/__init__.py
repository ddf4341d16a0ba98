"""
Configuration subsystem for Questboard.

- **config.py**: static configuration from environment variables (.env support)
- **manager.py**: YAML-backed balance configuration (import it explicitly;
  it depends on the logging subsystem, which itself reads ``Config``)
- **errors.py**: configuration exception hierarchy
"""

from questboard.core.config.config import Config, Environment
from questboard.core.config.errors import (
    ConfigError,
    ConfigInitializationError,
    ConfigValidationError,
)

__all__ = [
    "Config",
    "Environment",
    "ConfigError",
    "ConfigInitializationError",
    "ConfigValidationError",
]
