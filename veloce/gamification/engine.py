"""
Tool: Gamification Engine
Purpose: Points, levels, daily streaks and achievements per user

Every completion flows through here:
- calculate_points() prices a completed task
- award_points() adds points and reports level-ups
- record_task_completion() updates counters and the daily streak
- unlock_achievement() grants one-time bonus points

The day rolls over lazily: the first call on a new day checks whether
the last active day met the daily goal and breaks the streak if not.

Usage:
    python -m veloce.gamification.engine --action stats --user alice
    python -m veloce.gamification.engine --action award --user alice --points 40
    python -m veloce.gamification.engine --action goals --user alice --daily 3 --weekly 15
    python -m veloce.gamification.engine --action acknowledge --user alice

Dependencies:
    - sqlite3 (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import sqlite3
import sys
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from veloce.config_models import load_config
from veloce.logging_config import get_logger

from . import ACHIEVEMENTS, DB_PATH, EARLY_BIRD_BEFORE_HOUR, NIGHT_OWL_FROM_HOUR

logger = get_logger(__name__)


def get_connection() -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row

    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS user_stats (
            user_id TEXT PRIMARY KEY,
            total_points INTEGER DEFAULT 0,
            current_level INTEGER DEFAULT 1,
            current_streak INTEGER DEFAULT 0,
            longest_streak INTEGER DEFAULT 0,
            tasks_completed INTEGER DEFAULT 0,
            tasks_completed_today INTEGER DEFAULT 0,
            tasks_completed_on_time INTEGER DEFAULT 0,
            daily_goal INTEGER DEFAULT 5,
            weekly_goal INTEGER DEFAULT 25,
            last_active_date TEXT,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS achievements (
            user_id TEXT NOT NULL,
            achievement TEXT NOT NULL,
            unlocked_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            acknowledged INTEGER DEFAULT 0,
            PRIMARY KEY (user_id, achievement)
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_achievements_pending ON achievements(user_id, acknowledged)")

    conn.commit()
    return conn


def _ensure_stats(cursor: sqlite3.Cursor, user_id: str) -> Dict[str, Any]:
    """Fetch the stats row for a user, creating it with configured goals."""
    config = load_config().gamification
    cursor.execute("""
        INSERT OR IGNORE INTO user_stats (user_id, daily_goal, weekly_goal)
        VALUES (?, ?, ?)
    """, (user_id, config.daily_goal, config.weekly_goal))
    cursor.execute("SELECT * FROM user_stats WHERE user_id = ?", (user_id,))
    return dict(cursor.fetchone())


# =============================================================================
# Points and levels
# =============================================================================


def calculate_points(
    task: Dict[str, Any],
    completed_on_time: bool = True,
    current_streak: int = 0,
) -> int:
    """
    Price a completed task.

    Args:
        task: Task record (star_rating, estimated_minutes)
        completed_on_time: Whether it beat its scheduled time
        current_streak: Streak length, used as a multiplier

    Returns:
        Points earned
    """
    config = load_config().gamification
    points = config.base_task_points
    star_rating = task.get("star_rating") or 2

    # Priority bonus
    if star_rating >= 3:
        points += 15
    elif star_rating == 2:
        points += 5

    points += star_rating * 5

    if completed_on_time:
        points += 5

    if current_streak > 0:
        multiplier = min(1.0 + current_streak * 0.1, config.max_streak_multiplier)
        points = int(points * multiplier)

    # Longer tasks are worth more
    if task.get("estimated_minutes"):
        points += task["estimated_minutes"] // 10

    return points


def points_for_level(level: int) -> int:
    """Total points needed to reach a level (level 1 starts at 0)."""
    if level <= 1:
        return 0
    base = load_config().gamification.level_curve_base
    return int(base * level ** 1.5)


def calculate_level(points: int) -> int:
    """Highest level whose threshold has been reached."""
    level = 1
    while points_for_level(level + 1) <= points:
        level += 1
    return level


def level_progress(total_points: int, level: int) -> float:
    """Progress from the current level to the next, 0.0 - 1.0."""
    current = points_for_level(level)
    required = points_for_level(level + 1) - current
    if required <= 0:
        return 1.0
    return max(0.0, min(1.0, (total_points - current) / required))


def level_up_info(previous_level: int, new_level: int, total_points: int) -> Dict[str, Any]:
    """Level-up details between two levels, or an empty dict when the level did not rise."""
    if new_level <= previous_level:
        return {}
    return {
        "previous_level": previous_level,
        "new_level": new_level,
        "levels_gained": new_level - previous_level,
        "points_required": points_for_level(new_level),
        "total_points": total_points,
    }


def _add_points(cursor: sqlite3.Cursor, user_id: str, points: int) -> Dict[str, Any]:
    """Add points and recompute level. Returns level-up info or empty dict."""
    stats = _ensure_stats(cursor, user_id)
    previous_level = stats["current_level"]
    total = max(0, stats["total_points"] + points)
    new_level = calculate_level(total)

    cursor.execute("""
        UPDATE user_stats
        SET total_points = ?, current_level = ?, updated_at = ?
        WHERE user_id = ?
    """, (total, new_level, datetime.now().isoformat(), user_id))

    if new_level > previous_level:
        logger.info("level_up", user_id=user_id, previous_level=previous_level, new_level=new_level)
    return level_up_info(previous_level, new_level, total)


def award_points(user_id: str, points: int) -> Dict[str, Any]:
    """
    Award points and check for level up.

    Args:
        user_id: User earning the points
        points: Points to add (must be positive)

    Returns:
        dict with new total, level and level_up info (None if no level up)
    """
    if points <= 0:
        return {"success": False, "error": "Points must be positive"}

    conn = get_connection()
    cursor = conn.cursor()

    previous_level = _ensure_stats(cursor, user_id)["current_level"]
    _add_points(cursor, user_id, points)
    unlocked = _check_achievements(cursor, user_id)
    stats = _ensure_stats(cursor, user_id)
    level_up = level_up_info(previous_level, stats["current_level"], stats["total_points"])

    conn.commit()
    conn.close()

    return {
        "success": True,
        "data": {
            "points_awarded": points,
            "total_points": stats["total_points"],
            "current_level": stats["current_level"],
            "level_up": level_up or None,
            "unlocked": unlocked,
        },
    }


def deduct_points(user_id: str, points: int) -> Dict[str, Any]:
    """Take back points (e.g. a task was un-completed). Never goes below zero."""
    if points <= 0:
        return {"success": False, "error": "Points must be positive"}

    conn = get_connection()
    cursor = conn.cursor()

    _add_points(cursor, user_id, -points)
    stats = _ensure_stats(cursor, user_id)

    conn.commit()
    conn.close()

    return {"success": True, "data": {"total_points": stats["total_points"], "current_level": stats["current_level"]}}


# =============================================================================
# Streaks
# =============================================================================


def _roll_day(cursor: sqlite3.Cursor, user_id: str, today: date) -> Dict[str, Any]:
    stats = _ensure_stats(cursor, user_id)
    last_active = stats["last_active_date"]

    if last_active is None:
        cursor.execute("UPDATE user_stats SET last_active_date = ? WHERE user_id = ?", (today.isoformat(), user_id))
        return _ensure_stats(cursor, user_id)

    last_day = date.fromisoformat(last_active)
    if last_day >= today:
        return stats

    missed_goal = stats["tasks_completed_today"] < stats["daily_goal"]
    skipped_day = (today - last_day).days > 1
    streak = 0 if (missed_goal or skipped_day) else stats["current_streak"]

    if streak == 0 and stats["current_streak"] > 0:
        logger.info("streak_broken", user_id=user_id, streak=stats["current_streak"])

    cursor.execute("""
        UPDATE user_stats
        SET current_streak = ?, tasks_completed_today = 0, last_active_date = ?
        WHERE user_id = ?
    """, (streak, today.isoformat(), user_id))

    return _ensure_stats(cursor, user_id)


def roll_day(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Start a new day for the user.

    Breaks the streak if the last active day missed the daily goal or a
    whole day was skipped, then resets today's counter.

    Args:
        user_id: User to roll over
        today: Override for the current date

    Returns:
        dict with updated stats
    """
    conn = get_connection()
    cursor = conn.cursor()

    stats = _roll_day(cursor, user_id, today or date.today())

    conn.commit()
    conn.close()

    return {"success": True, "data": stats}


def record_task_completion(
    user_id: str,
    on_time: bool = False,
    completed_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Update counters after a task completion.

    The streak grows once per day, when the daily goal is first reached.

    Args:
        user_id: User who completed the task
        on_time: Whether the task beat its scheduled time
        completed_at: Completion time (defaults to now)

    Returns:
        dict with stats, whether the streak was extended, and new unlocks
    """
    completed_at = completed_at or datetime.now()

    conn = get_connection()
    cursor = conn.cursor()

    stats = _roll_day(cursor, user_id, completed_at.date())

    completed_today = stats["tasks_completed_today"] + 1
    streak = stats["current_streak"]
    streak_extended = completed_today == stats["daily_goal"]
    if streak_extended:
        streak += 1

    cursor.execute("""
        UPDATE user_stats
        SET tasks_completed = tasks_completed + 1,
            tasks_completed_today = ?,
            tasks_completed_on_time = tasks_completed_on_time + ?,
            current_streak = ?,
            longest_streak = MAX(longest_streak, ?),
            updated_at = ?
        WHERE user_id = ?
    """, (completed_today, 1 if on_time else 0, streak, streak, completed_at.isoformat(), user_id))

    unlocked = _check_achievements(cursor, user_id)

    if completed_at.hour < EARLY_BIRD_BEFORE_HOUR and _unlock(cursor, user_id, "early_bird"):
        unlocked.append("early_bird")
    if completed_at.hour >= NIGHT_OWL_FROM_HOUR and _unlock(cursor, user_id, "night_owl"):
        unlocked.append("night_owl")

    stats = _ensure_stats(cursor, user_id)

    conn.commit()
    conn.close()

    return {
        "success": True,
        "data": {"stats": stats, "streak_extended": streak_extended, "unlocked": unlocked},
    }


def set_goals(user_id: str, daily_goal: Optional[int] = None, weekly_goal: Optional[int] = None) -> Dict[str, Any]:
    """Change the daily and/or weekly task goals."""
    if daily_goal is not None and daily_goal < 1:
        return {"success": False, "error": "Daily goal must be at least 1"}
    if weekly_goal is not None and weekly_goal < 1:
        return {"success": False, "error": "Weekly goal must be at least 1"}
    if daily_goal is None and weekly_goal is None:
        return {"success": False, "error": "No goals to update"}

    conn = get_connection()
    cursor = conn.cursor()
    _ensure_stats(cursor, user_id)

    if daily_goal is not None:
        cursor.execute("UPDATE user_stats SET daily_goal = ? WHERE user_id = ?", (daily_goal, user_id))
    if weekly_goal is not None:
        cursor.execute("UPDATE user_stats SET weekly_goal = ? WHERE user_id = ?", (weekly_goal, user_id))

    stats = _ensure_stats(cursor, user_id)
    conn.commit()
    conn.close()

    return {"success": True, "data": stats, "message": "Goals updated"}


# =============================================================================
# Achievements
# =============================================================================


def _unlock(cursor: sqlite3.Cursor, user_id: str, achievement: str) -> bool:
    """Insert an achievement and grant its bonus. False if already unlocked."""
    cursor.execute("""
        INSERT OR IGNORE INTO achievements (user_id, achievement, unlocked_at)
        VALUES (?, ?, ?)
    """, (user_id, achievement, datetime.now().isoformat()))

    if cursor.rowcount == 0:
        return False

    logger.info("achievement_unlocked", user_id=user_id, achievement=achievement)
    _add_points(cursor, user_id, ACHIEVEMENTS[achievement]["bonus_points"])
    return True


def _check_achievements(cursor: sqlite3.Cursor, user_id: str) -> List[str]:
    stats = _ensure_stats(cursor, user_id)
    unlocked = []

    for name, spec in ACHIEVEMENTS.items():
        metric = spec["metric"]
        if metric and stats[metric] >= spec["target"] and _unlock(cursor, user_id, name):
            unlocked.append(name)

    return unlocked


def unlock_achievement(user_id: str, achievement: str) -> Dict[str, Any]:
    """
    Unlock an achievement (idempotent).

    Args:
        user_id: User earning the achievement
        achievement: Key from ACHIEVEMENTS

    Returns:
        dict with unlocked flag (False if it was already unlocked)
    """
    if achievement not in ACHIEVEMENTS:
        return {"success": False, "error": f"Unknown achievement: {achievement}"}

    conn = get_connection()
    cursor = conn.cursor()

    unlocked = _unlock(cursor, user_id, achievement)

    conn.commit()
    conn.close()

    return {
        "success": True,
        "data": {
            "achievement": achievement,
            "unlocked": unlocked,
            "bonus_points": ACHIEVEMENTS[achievement]["bonus_points"] if unlocked else 0,
        },
    }


def is_unlocked(user_id: str, achievement: str) -> bool:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT 1 FROM achievements WHERE user_id = ? AND achievement = ?", (user_id, achievement))
    found = cursor.fetchone() is not None
    conn.close()
    return found


def acknowledge_achievements(user_id: str) -> Dict[str, Any]:
    """
    Pop pending (not yet shown) achievements, oldest first.

    Returns:
        dict with the achievements that were pending
    """
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        SELECT achievement, unlocked_at FROM achievements
        WHERE user_id = ? AND acknowledged = 0
        ORDER BY unlocked_at, rowid
    """, (user_id,))
    pending = [
        {"achievement": row["achievement"], "title": ACHIEVEMENTS[row["achievement"]]["title"], "unlocked_at": row["unlocked_at"]}
        for row in cursor.fetchall()
    ]

    cursor.execute("UPDATE achievements SET acknowledged = 1 WHERE user_id = ? AND acknowledged = 0", (user_id,))
    conn.commit()
    conn.close()

    return {"success": True, "data": {"achievements": pending, "count": len(pending)}}


def _feature_count(user_id: str, achievement: str) -> int:
    """Count for an achievement whose counter lives in another feature's database.

    One-off achievements (early_bird, focus_first, ...) have no counter and
    stay at 0 until unlocked.
    """
    if achievement == "brain_dump_master":
        from veloce.braindump.session import count_processed_dumps

        return count_processed_dumps(user_id)
    if achievement == "reflection_guru":
        from veloce.journal.manager import count_reflections

        return count_reflections(user_id)
    if achievement == "deep_focus_master":
        from veloce.focus.sessions import count_deep_focus_completed

        return count_deep_focus_completed(user_id)
    if achievement == "focus_streak":
        from veloce.focus.sessions import get_statistics

        return get_statistics(user_id)["data"]["current_streak"]
    return 0


def achievement_progress(user_id: str, achievement: str) -> Dict[str, Any]:
    """Progress toward an achievement, 0.0 - 1.0."""
    spec = ACHIEVEMENTS.get(achievement)
    if spec is None:
        return {"success": False, "error": f"Unknown achievement: {achievement}"}

    if is_unlocked(user_id, achievement):
        return {"success": True, "data": {"achievement": achievement, "progress": 1.0}}

    if spec["metric"]:
        conn = get_connection()
        cursor = conn.cursor()
        stats = _ensure_stats(cursor, user_id)
        conn.commit()
        conn.close()
        count = stats[spec["metric"]]
    else:
        count = _feature_count(user_id, achievement)

    progress = min(1.0, count / spec["target"])

    return {"success": True, "data": {"achievement": achievement, "progress": progress}}


def get_stats(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Get the user's gamification stats, rolling the day over first.

    Returns:
        dict with stats, level progress and unlocked achievements
    """
    conn = get_connection()
    cursor = conn.cursor()

    stats = _roll_day(cursor, user_id, today or date.today())

    cursor.execute("""
        SELECT achievement, unlocked_at FROM achievements
        WHERE user_id = ? ORDER BY unlocked_at
    """, (user_id,))
    achievements = [dict(row) for row in cursor.fetchall()]

    conn.commit()
    conn.close()

    stats["level_progress"] = level_progress(stats["total_points"], stats["current_level"])
    stats["points_to_next_level"] = points_for_level(stats["current_level"] + 1) - stats["total_points"]
    stats["achievements"] = achievements

    return {"success": True, "data": stats}


def main():
    parser = argparse.ArgumentParser(description="Gamification Engine - points, levels and streaks")
    parser.add_argument(
        "--action",
        required=True,
        choices=["stats", "award", "goals", "acknowledge", "progress"],
        help="Action to perform",
    )
    parser.add_argument("--user", required=True, help="User ID")
    parser.add_argument("--points", type=int, help="Points to award")
    parser.add_argument("--daily", type=int, help="Daily task goal")
    parser.add_argument("--weekly", type=int, help="Weekly task goal")
    parser.add_argument("--achievement", help="Achievement key")

    args = parser.parse_args()
    result = None

    if args.action == "stats":
        result = get_stats(args.user)

    elif args.action == "award":
        if not args.points:
            print(json.dumps({"success": False, "error": "--points required for award"}))
            sys.exit(1)
        result = award_points(args.user, args.points)

    elif args.action == "goals":
        result = set_goals(args.user, args.daily, args.weekly)

    elif args.action == "acknowledge":
        result = acknowledge_achievements(args.user)

    elif args.action == "progress":
        if not args.achievement:
            print(json.dumps({"success": False, "error": "--achievement required for progress"}))
            sys.exit(1)
        result = achievement_progress(args.user, args.achievement)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
