"""Templates - reusable bundles of tasks

Philosophy:
    Routines shouldn't be retyped. A template captures a set of tasks
    once ("Weekly review", "Move house") and applies them to any day.
    Public templates can be rated and reused by others.

Components:
    manager.py: Template CRUD, apply, ratings, build from existing tasks

Usage:
    from veloce.templates.manager import create_template, apply_template

    tpl = create_template(user_id="alice", title="Weekly review",
                          tasks=[{"title": "Clear inbox"}, {"title": "Plan next week"}])
    apply_template(tpl["data"]["id"], user_id="alice")
"""

from veloce import DATA_DIR

DB_PATH = DATA_DIR / "templates.db"

CATEGORIES = ("productivity", "wellness", "work", "personal", "learning", "fitness", "other")

TEMPLATE_SORTS = ("popular", "recent", "rating")

RATING_RANGE = (1, 5)

# Defaults for template tasks that omit them
DEFAULT_TASK_MINUTES = 30
DEFAULT_TASK_STARS = 2

__all__ = [
    "DB_PATH",
    "CATEGORIES",
    "TEMPLATE_SORTS",
    "RATING_RANGE",
    "DEFAULT_TASK_MINUTES",
    "DEFAULT_TASK_STARS",
]
