"""
Configuration subsystem.

- **config.py**: static settings from environment variables (.env support)
- **manager.py**: tunable values from built-in defaults merged with YAML files
"""

from questlog.core.config.config import Config
from questlog.core.config.manager import ConfigManager

__all__ = ["Config", "ConfigManager"]
