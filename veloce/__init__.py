"""
Veloce - local-first productivity engine

Tasks, journaling, brain-dump triage, focus sessions, templates and
gamified stats, each backed by its own SQLite file under ``data/``.

Components:
    tasks/: Task and list CRUD, recurrence
    journal/: Day-bound journal entries and insights
    braindump/: Free text -> extracted tasks (LLM with rule-based fallback)
    focus/: Pomodoro timer, session history, block lists, schedules
    templates/: Reusable task bundles
    gamification/: Points, levels, streaks, achievements, velocity score
    cli.py: ``veloce`` command
"""

import os
from pathlib import Path

__version__ = "0.4.0"

# Path constants
PROJECT_ROOT = Path(os.environ.get("VELOCE_HOME", Path(__file__).parent.parent))
DATA_DIR = PROJECT_ROOT / "data"
ARGS_DIR = PROJECT_ROOT / "args"
PROMPTS_DIR = PROJECT_ROOT / "hardprompts"
CONFIG_PATH = ARGS_DIR / "veloce.yaml"

__all__ = [
    "__version__",
    "PROJECT_ROOT",
    "DATA_DIR",
    "ARGS_DIR",
    "PROMPTS_DIR",
    "CONFIG_PATH",
]
