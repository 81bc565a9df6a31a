"""
Tunable configuration for questlog.

Purpose
-------
Holds every gameplay and scheduling value that operators may want to tune
without a code change: XP tables, level thresholds, streak milestones,
leaderboard caps and schedule horizons.

Responsibilities
----------------
- Ship built-in defaults for every key the services read
- Deep-merge YAML files from ``Config.CONFIG_DIR`` over those defaults
- Serve values through dot-notation lookups (``"gamification.levels.max_level"``)
- Allow in-process overrides (tests, local experiments)

Non-Responsibilities
--------------------
- Environment/static settings (Config)
- Validating gameplay semantics (services validate what they read)

Design Notes
------------
- Instance-based: each ServiceContainer owns its ConfigManager, so tests can
  run several differently-tuned managers side by side.
- YAML is loaded with ``yaml.safe_load``; a malformed file is a
  ConfigurationError at startup, never a silent skip.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from questlog.core.config.config import Config
from questlog.core.exceptions import ConfigurationError
from questlog.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


DEFAULTS: Dict[str, Any] = {
    "gamification": {
        "xp": {
            "base": {
                "create_goal": 5,
                "complete_goal": 10,
                "update_progress": 2,
                "daily_login": 1,
                "share_achievement": 3,
                "help_other_user": 5,
                "complete_challenge": 15,
            },
            "difficulty_multipliers": {
                "easy": 1.0,
                "medium": 1.5,
                "hard": 2.0,
                "expert": 3.0,
            },
            "default_difficulty": "medium",
        },
        "levels": {
            "thresholds": [
                100, 250, 500, 1000, 1750, 2750, 4000, 5500, 7250, 9250,
                11500, 14000, 16750, 19750, 23000, 26500, 30250, 34250,
                38500, 43000,
            ],
            "max_level": 50,
        },
        "streak": {
            "milestone_interval_days": 7,
        },
    },
    "leaderboard": {
        "default_limit": 10,
        "max_limit": 100,
        "max_window_days": 365,
    },
    "schedule": {
        "default_horizon_days": 365,
        "max_horizon_days": 1096,
        "materialize_concurrency": 8,
        "preview_weeks": 4,
    },
    "core": {
        "event": {
            "listener_timeout_seconds": 5.0,
        },
    },
}


class ConfigManager:
    """
    Dot-notation access to defaults merged with YAML overrides.

    Example
    -------
    >>> manager = ConfigManager.from_directory(Path("config"))
    >>> manager.get("gamification.levels.max_level")
    50
    >>> manager.get("leaderboard.unknown_key", 7)
    7
    """

    def __init__(
        self,
        values: Optional[MutableMapping[str, Any]] = None,
        *,
        include_defaults: bool = True,
    ) -> None:
        self._values: Dict[str, Any] = copy.deepcopy(DEFAULTS) if include_defaults else {}
        self._sources: List[str] = ["defaults"] if include_defaults else []
        if values:
            self._deep_merge_dict(self._values, copy.deepcopy(dict(values)))
            self._sources.append("inline")

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def from_directory(cls, config_dir: Optional[Path] = None) -> "ConfigManager":
        """Build a manager from defaults plus every YAML file under ``config_dir``."""
        manager = cls()
        manager.load_yaml_directory(config_dir or Path(Config.CONFIG_DIR))
        return manager

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge ``source`` into ``target`` in place."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    def load_yaml_directory(self, config_dir: Path) -> int:
        """
        Merge every ``*.yaml`` / ``*.yml`` file under ``config_dir``.

        Files are applied in sorted path order so later files win
        deterministically. Returns the number of files merged.

        Raises
        ------
        ConfigurationError
            If a file cannot be parsed or does not hold a mapping.
        """
        if not config_dir.exists():
            logger.info(
                "Config directory not found; using built-in defaults",
                extra={"config_dir": str(config_dir)},
            )
            return 0

        yaml_files = sorted(
            list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
        )
        loaded = 0
        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                raise ConfigurationError(
                    relative, f"Failed to load YAML config: {exc}"
                ) from exc

            if data is None:
                continue
            if not isinstance(data, dict):
                raise ConfigurationError(
                    relative, "Top-level YAML value must be a mapping"
                )

            self._deep_merge_dict(self._values, data)
            self._sources.append(relative)
            loaded += 1

        logger.info(
            "YAML configuration loaded",
            extra={"config_dir": str(config_dir), "yaml_file_count": loaded},
        )
        return loaded

    # ------------------------------------------------------------------ #
    # Access
    # ------------------------------------------------------------------ #

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at dotted ``key`` or ``default`` when absent."""
        node: Any = self._values
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return copy.deepcopy(node)

    def require(self, key: str) -> Any:
        value = self.get(key, _MISSING)
        if value is _MISSING:
            raise ConfigurationError(key, f"Required configuration key '{key}' is missing")
        return value

    def override(self, key: str, value: Any) -> None:
        """Set dotted ``key`` in memory, creating intermediate sections."""
        parts = key.split(".")
        node = self._values
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
        logger.debug("Configuration override applied", extra={"config_key": key})

    @property
    def sources(self) -> List[str]:
        return list(self._sources)
