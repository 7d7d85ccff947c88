"""Task Engine - lists, tasks and recurrence

Philosophy:
    Capturing a task should cost nothing. A title is enough; priority,
    schedule, category and recurrence can come later (or from a brain dump
    or template).

Components:
    manager.py: Task and list CRUD, completion, filters and sorting
    recurrence.py: Next-occurrence rules and recurring instances

Usage:
    from veloce.tasks.manager import create_task, complete_task

    task = create_task(user_id="alice", title="Book dentist", star_rating=3)
    complete_task(task["data"]["task_id"])
"""

from veloce import DATA_DIR

DB_PATH = DATA_DIR / "tasks.db"

# Star rating doubles as priority: 1 = low, 2 = medium, 3 = high
STAR_RATINGS = (1, 2, 3)
PRIORITY_TO_STARS = {"low": 1, "medium": 2, "high": 3}

CATEGORIES = ("work", "personal", "health", "finance", "social", "learning", "other")

# How a task spends the user's attention
TASK_TYPES = ("create", "communicate", "consume", "coordinate")
TASK_TYPE_DEFAULT_MINUTES = {"create": 90, "communicate": 30, "consume": 45, "coordinate": 15}

RECURRING_TYPES = ("once", "daily", "weekdays", "weekly", "biweekly", "monthly", "custom")

TASK_FILTERS = ("all", "today", "scheduled", "completed", "overdue")
TASK_SORTS = ("manual", "priority", "due_date", "created")

# Energy states for potential points
ENERGY_STATES = ("low", "medium", "high", "max")

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

__all__ = [
    "DB_PATH",
    "STAR_RATINGS",
    "PRIORITY_TO_STARS",
    "CATEGORIES",
    "TASK_TYPES",
    "TASK_TYPE_DEFAULT_MINUTES",
    "RECURRING_TYPES",
    "TASK_FILTERS",
    "TASK_SORTS",
    "ENERGY_STATES",
    "DAY_NAMES",
]
