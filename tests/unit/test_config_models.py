"""Tests for veloce/config_models.py"""

from unittest.mock import patch

import pytest

from veloce.config_models import (
    BrainDumpConfig,
    FocusConfig,
    GamificationConfig,
    VeloceConfig,
    load_and_validate,
    load_config,
)


class TestVeloceConfig:
    def test_defaults(self):
        config = VeloceConfig()
        assert config.tasks.snooze_hour == 9
        assert config.gamification.daily_goal == 5
        assert config.gamification.weekly_goal == 25
        assert config.focus.focus_minutes == 25
        assert config.braindump.use_llm is True
        assert config.journal.preview_length == 120

    def test_valid_overrides(self):
        config = VeloceConfig(
            focus={"focus_minutes": 50, "sessions_until_long_break": 3},
            gamification={"daily_goal": 8},
        )
        assert config.focus.focus_minutes == 50
        assert config.focus.sessions_until_long_break == 3
        assert config.gamification.daily_goal == 8

    def test_extra_keys_allowed(self):
        config = VeloceConfig(experimental={"flag": True})
        assert config.tasks.default_star_rating == 2

    def test_invalid_star_rating(self):
        with pytest.raises(ValueError):
            VeloceConfig(tasks={"default_star_rating": 4})


class TestSectionConfigs:
    def test_focus_bonuses(self):
        config = FocusConfig()
        assert config.base_session_points == 25
        assert config.deep_focus_bonus == 50
        assert config.long_session_bonus == 15

    def test_gamification_curve(self):
        config = GamificationConfig()
        assert config.level_curve_base == 50
        assert config.max_streak_multiplier == 2.0
        assert config.focus_goal_minutes == 300

    def test_braindump_temperature_range(self):
        with pytest.raises(ValueError):
            BrainDumpConfig(temperature=1.5)


class TestLoadAndValidate:
    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_and_validate(tmp_path / "missing.yaml")
        assert isinstance(config, VeloceConfig)
        assert config.focus.focus_minutes == 25

    def test_valid_yaml_loads(self, tmp_path):
        yaml_file = tmp_path / "veloce.yaml"
        yaml_file.write_text("veloce:\n  focus:\n    focus_minutes: 45\n")
        config = load_and_validate(yaml_file)
        assert config.focus.focus_minutes == 45

    def test_unwrapped_yaml_loads(self, tmp_path):
        yaml_file = tmp_path / "veloce.yaml"
        yaml_file.write_text("tasks:\n  snooze_hour: 7\n")
        config = load_and_validate(yaml_file)
        assert config.tasks.snooze_hour == 7

    def test_invalid_yaml_returns_defaults(self, tmp_path):
        yaml_file = tmp_path / "veloce.yaml"
        yaml_file.write_text("veloce:\n  focus:\n    focus_minutes: -5\n")
        config = load_and_validate(yaml_file)
        assert config.focus.focus_minutes == 25

    def test_malformed_yaml_returns_defaults(self, tmp_path):
        yaml_file = tmp_path / "veloce.yaml"
        yaml_file.write_text("veloce: [unclosed\n")
        config = load_and_validate(yaml_file)
        assert isinstance(config, VeloceConfig)

    def test_empty_yaml_returns_defaults(self, tmp_path):
        yaml_file = tmp_path / "veloce.yaml"
        yaml_file.write_text("")
        config = load_and_validate(yaml_file)
        assert config.gamification.weekly_goal == 25

    def test_explicit_model_class(self, tmp_path):
        yaml_file = tmp_path / "focus.yaml"
        yaml_file.write_text("focus_minutes: 40\n")
        config = load_and_validate(yaml_file, FocusConfig)
        assert isinstance(config, FocusConfig)
        assert config.focus_minutes == 40

    def test_load_config_reads_config_path(self, tmp_path):
        yaml_file = tmp_path / "veloce.yaml"
        yaml_file.write_text("veloce:\n  gamification:\n    daily_goal: 3\n")
        with patch("veloce.config_models.CONFIG_PATH", yaml_file):
            load_config.cache_clear()
            assert load_config().gamification.daily_goal == 3
