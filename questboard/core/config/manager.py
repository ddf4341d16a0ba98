"""
ConfigManager: YAML-backed balance configuration access for Questboard.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable balance values.
- Back configuration with YAML defaults from the `config/` directory.
- Allow in-process overrides (tests, per-deployment ladders).

Responsibilities
----------------
- Load and deep-merge every YAML file under the configured directory.
- Serve reads via `get("rewards.xp.early_completion_rate", default)`.
- Return whole sections (`section("milestones")`) for rule construction.

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides layer on top.
- Instance-based rather than class-level so that each service graph (and each
  test) can own an isolated configuration.
- Reads never raise; missing keys resolve to the caller's default.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

import yaml

from questboard.core.config.errors import ConfigInitializationError
from questboard.core.logging.logger import get_logger

logger = get_logger(__name__)

__all__ = ["ConfigManager"]

_MISSING = object()


class ConfigManager:
    """
    Balance configuration with YAML defaults and in-memory overrides.

    Examples
    --------
    >>> manager = ConfigManager.from_directory(Path("config"))
    >>> manager.get("leveling.growth_rate", 1.5)
    1.5
    >>> manager.set_override("leveling.growth_rate", 1.4)
    """

    def __init__(self, defaults: Optional[Mapping[str, Any]] = None) -> None:
        self._defaults: Dict[str, Any] = copy.deepcopy(dict(defaults or {}))
        self._overrides: Dict[str, Any] = {}

    # =========================================================================
    # YAML LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: Mapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @classmethod
    def from_directory(cls, config_dir: Path, *, strict: bool = False) -> "ConfigManager":
        """
        Build a manager from every `*.yaml` / `*.yml` file under `config_dir`.

        Files are merged in sorted path order so later files win on conflicts.

        Parameters
        ----------
        config_dir:
            Directory to scan recursively.
        strict:
            When True, a missing directory or an unreadable file raises
            `ConfigInitializationError` instead of being logged and skipped.
        """
        defaults: Dict[str, Any] = {}

        if not config_dir.exists():
            if strict:
                raise ConfigInitializationError(f"Config directory not found: {config_dir}")
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return cls(defaults)

        yaml_files = sorted(list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml")))
        loaded_count = 0

        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                if strict:
                    raise ConfigInitializationError(
                        f"Failed to load {yaml_file}: {exc}"
                    ) from exc
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

        logger.info(
            "YAML configs loaded",
            extra={"yaml_file_count": loaded_count, "top_level_keys": sorted(defaults)},
        )
        return cls(defaults)

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _lookup(tree: Mapping[str, Any], key: str) -> Any:
        value: Any = tree
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return _MISSING
            value = value[part]
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Overrides take precedence over YAML defaults; `default` is returned
        when neither defines the key (or the stored value is None).
        """
        if key in self._overrides:
            return self._overrides[key]

        value = self._lookup(self._defaults, key)
        if value is _MISSING or value is None:
            return default
        return value

    def section(self, key: str) -> Dict[str, Any]:
        """Return a deep copy of a nested section, or an empty dict."""
        value = self.get(key)
        if not isinstance(value, Mapping):
            return {}
        return copy.deepcopy(dict(value))

    # =========================================================================
    # OVERRIDES
    # =========================================================================

    def set_override(self, key: str, value: Any) -> None:
        """Set an in-memory override for a single dot-notation key."""
        self._overrides[key] = value
        logger.info("Config override set", extra={"config_key": key})

    def clear_overrides(self) -> None:
        self._overrides.clear()
