from __future__ import annotations

from functools import lru_cache
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

from veloce import CONFIG_PATH
from veloce.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# VeloceConfig (args/veloce.yaml)
# =============================================================================

class TasksConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    default_star_rating: int = Field(default=2, ge=1, le=3)
    snooze_hour: int = Field(default=9, ge=0, le=23)
    default_limit: int = Field(default=100, ge=1)


class GamificationConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    daily_goal: int = Field(default=5, ge=1)
    weekly_goal: int = Field(default=25, ge=1)
    base_task_points: int = Field(default=10, ge=0)
    level_curve_base: int = Field(default=50, ge=1)
    max_streak_multiplier: float = Field(default=2.0, ge=1.0)
    focus_goal_minutes: int = Field(default=300, ge=1)


class FocusConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    focus_minutes: int = Field(default=25, ge=1)
    short_break_minutes: int = Field(default=5, ge=1)
    long_break_minutes: int = Field(default=15, ge=1)
    sessions_until_long_break: int = Field(default=4, ge=1)
    base_session_points: int = Field(default=25, ge=1)
    deep_focus_bonus: int = Field(default=50, ge=0)
    long_session_bonus: int = Field(default=15, ge=0)


class BrainDumpConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    use_llm: bool = Field(default=True)
    llm_model: str = Field(default="claude-3-5-haiku-20241022")
    max_tokens: int = Field(default=2048, ge=1)
    temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    max_tasks: int = Field(default=20, ge=1)
    time_buffer_percent: int = Field(default=40, ge=0)


class JournalConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    default_entry_type: str = Field(default="brain_dump")
    preview_length: int = Field(default=120, ge=10)
    mood_trend_days: int = Field(default=14, ge=1)


class VeloceConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    tasks: TasksConfig = Field(default_factory=TasksConfig)
    gamification: GamificationConfig = Field(default_factory=GamificationConfig)
    focus: FocusConfig = Field(default_factory=FocusConfig)
    braindump: BrainDumpConfig = Field(default_factory=BrainDumpConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)


def load_and_validate(path=None, model_class: Optional[type[BaseModel]] = None) -> BaseModel:
    yaml_path = path or CONFIG_PATH
    model_class = model_class or VeloceConfig

    try:
        if yaml_path.exists():
            with open(yaml_path) as f:
                raw = yaml.safe_load(f) or {}
        else:
            raw = {}

        return model_class.model_validate(raw.get("veloce", raw))
    except (OSError, yaml.YAMLError, ValueError) as e:
        logger.warning(f"Config validation failed for {yaml_path}: {e}, using defaults")
        return model_class()


@lru_cache(maxsize=1)
def load_config() -> VeloceConfig:
    """Cached application config."""
    return load_and_validate()


__all__ = [
    "BrainDumpConfig",
    "FocusConfig",
    "GamificationConfig",
    "JournalConfig",
    "TasksConfig",
    "VeloceConfig",
    "load_and_validate",
    "load_config",
]
