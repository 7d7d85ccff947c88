"""
Tool: Velocity Score
Purpose: One 0-100 number for how the week is going

Four components, each worth up to 25:
    streak      current streak vs. the personal best (at least 7)
    completion  tasks completed this week vs. the weekly goal
    focus       focus minutes this week vs. the focus goal
    on time     share of completed tasks finished on time (0.5 with no history)

Usage:
    python -m veloce.gamification.velocity --user alice

Dependencies:
    - None (gathers inputs from tasks, focus and gamification)

Output:
    JSON result with score, tier, message and components
"""

import argparse
import json
import sys
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from veloce.config_models import load_config

# (minimum score, tier, message), highest first
TIERS = (
    (90, "Legendary", "Legendary productivity master!"),
    (75, "Excellent", "Outstanding performance!"),
    (60, "Good", "You're on fire! Keep it up"),
    (40, "Building", "Great progress this week!"),
    (20, "Starting", "You're building momentum"),
    (0, "Beginning", "Every journey starts somewhere"),
)

COMPONENT_MAX = 25


def _component(ratio: float) -> float:
    return min(COMPONENT_MAX, ratio * COMPONENT_MAX)


def calculate_velocity(
    current_streak: int,
    longest_streak: int,
    tasks_completed_this_week: int,
    weekly_goal: int,
    focus_minutes_this_week: int,
    focus_goal_minutes: int,
    tasks_on_time: int,
    total_tasks_completed: int,
) -> Dict[str, Any]:
    """Compute the score from raw inputs."""
    streak_ratio = current_streak / max(longest_streak, 7) if longest_streak > 0 else 0
    completion_ratio = tasks_completed_this_week / weekly_goal if weekly_goal > 0 else 0
    focus_ratio = focus_minutes_this_week / focus_goal_minutes if focus_goal_minutes > 0 else 0
    on_time_ratio = tasks_on_time / total_tasks_completed if total_tasks_completed > 0 else 0.5

    components = {
        "streak": round(_component(streak_ratio), 2),
        "completion": round(_component(completion_ratio), 2),
        "focus": round(_component(focus_ratio), 2),
        "on_time": round(_component(on_time_ratio), 2),
    }
    total = int(sum(_component(r) for r in (streak_ratio, completion_ratio, focus_ratio, on_time_ratio)))

    tier, message = score_tier(total)

    return {"score": total, "tier": tier, "message": message, "components": components}


def score_tier(score: int) -> tuple:
    for minimum, tier, message in TIERS:
        if score >= minimum:
            return tier, message
    return TIERS[-1][1], TIERS[-1][2]


def get_velocity_score(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Gather this week's inputs (weeks start Monday) and compute the score.

    Args:
        user_id: User to score
        now: Reference time

    Returns:
        dict with score, tier, message, components and the inputs used
    """
    from veloce.focus.sessions import focus_minutes_since
    from veloce.tasks.manager import get_task_stats

    from .engine import get_stats

    now = now or datetime.now()
    week_start = datetime.combine(now.date() - timedelta(days=now.weekday()), datetime.min.time())

    stats = get_stats(user_id, today=now.date())["data"]
    task_stats = get_task_stats(user_id, now=now)["data"]

    inputs = {
        "current_streak": stats["current_streak"],
        "longest_streak": stats["longest_streak"],
        "tasks_completed_this_week": task_stats["completed_this_week"],
        "weekly_goal": stats["weekly_goal"],
        "focus_minutes_this_week": focus_minutes_since(user_id, week_start),
        "focus_goal_minutes": load_config().gamification.focus_goal_minutes,
        "tasks_on_time": stats["tasks_completed_on_time"],
        "total_tasks_completed": stats["tasks_completed"],
    }

    velocity = calculate_velocity(**inputs)
    velocity["inputs"] = inputs

    return {"success": True, "data": velocity}


def main():
    parser = argparse.ArgumentParser(description="Velocity Score - weekly productivity health")
    parser.add_argument("--user", required=True, help="User ID")

    args = parser.parse_args()

    result = get_velocity_score(args.user)

    print(json.dumps(result, indent=2))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
