"""Journal - one page per day, four kinds of writing

Philosophy:
    Writing things down gets them out of your head. Each day has a
    page per entry type; opening a day either finds it or starts it.

Components:
    manager.py: Entry CRUD, day navigation, pin/favorite, note import
    insights.py: Gratitude streak, mood trend, writing stats

Usage:
    from veloce.journal.manager import load_entry, save_entry

    entry = load_entry(user_id="alice", day=date.today())
    save_entry(entry["data"]["id"], content="Slept well, big day ahead", mood="good")
"""

from veloce import DATA_DIR

DB_PATH = DATA_DIR / "journal.db"

ENTRY_TYPES = ("brain_dump", "reminder", "gratitude", "reflection")

# Mood -> numeric value used for trends
MOODS = {
    "excellent": 1.0,
    "good": 0.75,
    "neutral": 0.5,
    "low": 0.25,
    "stressed": 0.15,
}

PROMPT_SUGGESTIONS = {
    "brain_dump": [
        "What's weighing on your mind?",
        "Dump all your thoughts here...",
        "No filter, just write...",
    ],
    "reminder": [
        "Don't forget to...",
        "Important: Remember...",
        "Note to self...",
    ],
    "gratitude": [
        "3 things you're grateful for today",
        "A small moment that made you smile",
        "Someone who helped you recently",
    ],
    "reflection": [
        "What did you learn today?",
        "What would you do differently?",
        "How did today align with your goals?",
    ],
}

# Reflection entries needed for the reflection_guru achievement
REFLECTION_GURU_TARGET = 30

__all__ = [
    "DB_PATH",
    "ENTRY_TYPES",
    "MOODS",
    "PROMPT_SUGGESTIONS",
    "REFLECTION_GURU_TARGET",
]
