"""
Unit tests for ConfigManager: defaults, YAML overrides and required keys.
"""

from pathlib import Path

import pytest

from questlog.core.config.manager import ConfigManager
from questlog.core.exceptions import ConfigurationError

pytestmark = pytest.mark.unit

PROJECT_CONFIG_DIR = Path(__file__).resolve().parents[2] / "config"


class TestDefaults:
    def test_dotted_access(self, config_manager):
        assert config_manager.get("gamification.levels.max_level") == 50
        assert config_manager.get("gamification.xp.base.complete_goal") == 10
        assert config_manager.get("schedule.max_horizon_days") == 1096

    def test_missing_key_returns_default(self, config_manager):
        assert config_manager.get("leaderboard.unknown", 7) == 7

    def test_require_missing_key(self, config_manager):
        with pytest.raises(ConfigurationError):
            config_manager.require("gamification.nothing.here")

    def test_values_are_copies(self, config_manager):
        table = config_manager.get("gamification.xp.base")
        table["complete_goal"] = 9999

        assert config_manager.get("gamification.xp.base.complete_goal") == 10

    def test_override(self, config_manager):
        config_manager.override("leaderboard.max_limit", 25)

        assert config_manager.get("leaderboard.max_limit") == 25


class TestYamlLoading:
    def test_merges_nested_sections(self, tmp_path):
        # Arrange
        (tmp_path / "gamification").mkdir()
        (tmp_path / "gamification" / "xp.yaml").write_text(
            "gamification:\n  xp:\n    base:\n      complete_goal: 12\n"
        )

        # Act
        manager = ConfigManager.from_directory(tmp_path)

        # Assert
        assert manager.get("gamification.xp.base.complete_goal") == 12
        assert manager.get("gamification.xp.base.create_goal") == 5
        assert "gamification/xp.yaml" in manager.sources

    def test_missing_directory_uses_defaults(self, tmp_path):
        manager = ConfigManager.from_directory(tmp_path / "absent")

        assert manager.get("leaderboard.default_limit") == 10
        assert manager.sources == ["defaults"]

    def test_empty_file_ignored(self, tmp_path):
        (tmp_path / "empty.yaml").write_text("")

        manager = ConfigManager.from_directory(tmp_path)

        assert manager.sources == ["defaults"]

    def test_malformed_yaml_rejected(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("schedule: [unclosed\n")

        with pytest.raises(ConfigurationError):
            ConfigManager.from_directory(tmp_path)

    def test_non_mapping_rejected(self, tmp_path):
        (tmp_path / "list.yaml").write_text("- 1\n- 2\n")

        with pytest.raises(ConfigurationError):
            ConfigManager.from_directory(tmp_path)

    def test_shipped_config_matches_defaults(self):
        shipped = ConfigManager.from_directory(PROJECT_CONFIG_DIR)
        defaults = ConfigManager()

        for key in (
            "gamification.xp.base",
            "gamification.xp.difficulty_multipliers",
            "gamification.levels.thresholds",
            "gamification.levels.max_level",
            "leaderboard",
            "schedule",
        ):
            assert shipped.get(key) == defaults.get(key), key
