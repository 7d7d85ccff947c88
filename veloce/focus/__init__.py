"""Focus - Pomodoro timer, focus sessions, block lists and schedules

Philosophy:
    Starting is the hard part. A timer with a clear end, and the apps
    that pull attention away blocked until it ends, make starting easier.
    Deep Focus sessions with blocking can't be ended early.

Components:
    sessions.py: Focus session history, points and statistics
    timer.py: Persistent Pomodoro state machine
    blocklists.py: Saved sets of apps to block (or allow)
    schedule.py: One-shot and recurring scheduled sessions

Usage:
    from veloce.focus.timer import start_timer, advance_timer

    start_timer(user_id="alice", task_title="Write report")
    advance_timer(user_id="alice", seconds=60)
"""

from veloce import DATA_DIR

DB_PATH = DATA_DIR / "focus.db"

SESSION_TYPES = ("timed", "scheduled", "pomodoro", "recurring")

TIMER_STATES = ("idle", "running", "paused", "completed", "break")

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
FULL_DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

# Built-in block lists seeded for every user
PRESETS = (
    {
        "name": "Work Mode",
        "description": "Block social media and entertainment during work",
        "icon": "briefcase",
        "color": "#6B73F9",
        "is_allow_list": False,
    },
    {
        "name": "Social Media Detox",
        "description": "Block all social media apps",
        "icon": "chat-bubbles",
        "color": "#FF6B6B",
        "is_allow_list": False,
    },
    {
        "name": "Deep Work",
        "description": "Block everything except essential apps",
        "icon": "brain",
        "color": "#14CC8C",
        "is_allow_list": True,
    },
)

# Focus achievement thresholds
FOCUS_HOUR_SECONDS = 3600
DEEP_FOCUS_MASTER_TARGET = 10
FOCUS_STREAK_TARGET = 7

__all__ = [
    "DB_PATH",
    "SESSION_TYPES",
    "TIMER_STATES",
    "DAY_NAMES",
    "FULL_DAY_NAMES",
    "PRESETS",
    "FOCUS_HOUR_SECONDS",
    "DEEP_FOCUS_MASTER_TARGET",
    "FOCUS_STREAK_TARGET",
]
