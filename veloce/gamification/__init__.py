"""Gamification - points, levels, streaks and achievements

Philosophy:
    Progress should be visible. Every completed task, focus session and
    brain dump feeds one running score, a level curve and a daily streak.

Components:
    engine.py: Point calculation, level curve, streaks, achievements
    velocity.py: Single 0-100 productivity health number

Usage:
    from veloce.gamification.engine import award_points, record_task_completion

    record_task_completion(user_id="alice", on_time=True)
    award_points(user_id="alice", points=30)
"""

from veloce import DATA_DIR

DB_PATH = DATA_DIR / "gamification.db"

# Achievement catalog. Metric-based achievements unlock when the stat
# reaches the target; the rest are unlocked by the feature that owns them.
ACHIEVEMENTS = {
    "first_task": {"title": "Getting Started", "bonus_points": 50, "metric": "tasks_completed", "target": 1},
    "ten_tasks": {"title": "Task Apprentice", "bonus_points": 100, "metric": "tasks_completed", "target": 10},
    "hundred_tasks": {"title": "Task Champion", "bonus_points": 500, "metric": "tasks_completed", "target": 100},
    "thousand_tasks": {"title": "Task Legend", "bonus_points": 2000, "metric": "tasks_completed", "target": 1000},
    "week_streak": {"title": "Streak Keeper", "bonus_points": 200, "metric": "current_streak", "target": 7},
    "month_streak": {"title": "Streak Master", "bonus_points": 1000, "metric": "current_streak", "target": 30},
    "century_streak": {"title": "Streak Legend", "bonus_points": 5000, "metric": "current_streak", "target": 100},
    "level_five": {"title": "Rising Star", "bonus_points": 300, "metric": "current_level", "target": 5},
    "level_ten": {"title": "Veteran", "bonus_points": 750, "metric": "current_level", "target": 10},
    "productive_day": {"title": "Productive Day", "bonus_points": 150, "metric": "tasks_completed_today", "target": 10},
    "early_bird": {"title": "Early Bird", "bonus_points": 100, "metric": None, "target": 1},
    "night_owl": {"title": "Night Owl", "bonus_points": 100, "metric": None, "target": 1},
    "brain_dump_master": {"title": "Brain Dump Master", "bonus_points": 200, "metric": None, "target": 10},
    "reflection_guru": {"title": "Reflection Guru", "bonus_points": 250, "metric": None, "target": 30},
    "focus_first": {"title": "First Focus", "bonus_points": 100, "metric": None, "target": 1},
    "focus_hour": {"title": "Hour of Power", "bonus_points": 150, "metric": None, "target": 1},
    "deep_focus_master": {"title": "Deep Focus Master", "bonus_points": 500, "metric": None, "target": 10},
    "focus_streak": {"title": "Focus Streak", "bonus_points": 300, "metric": None, "target": 7},
}

# Hours (local) for time-of-day achievements
EARLY_BIRD_BEFORE_HOUR = 8
NIGHT_OWL_FROM_HOUR = 22

__all__ = [
    "DB_PATH",
    "ACHIEVEMENTS",
    "EARLY_BIRD_BEFORE_HOUR",
    "NIGHT_OWL_FROM_HOUR",
]
