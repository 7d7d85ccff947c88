"""
Tool: Focus Sessions
Purpose: Record focus sessions, award points and compute statistics

A focus session is a block of time the user commits to one thing,
optionally with apps blocked. Completing one earns points:
    25 base, +50 for Deep Focus, +15 for sessions of an hour or more

Deep Focus sessions with blocking can't be cancelled before their
scheduled end.

Usage:
    python -m veloce.focus.sessions --action start --user alice --title "Write report" --minutes 50
    python -m veloce.focus.sessions --action complete --session-id abc123
    python -m veloce.focus.sessions --action cancel --session-id abc123
    python -m veloce.focus.sessions --action list --user alice
    python -m veloce.focus.sessions --action stats --user alice

Dependencies:
    - sqlite3 (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import sqlite3
import sys
import uuid
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from veloce.config_models import load_config
from veloce.gamification import engine as gamification
from veloce.logging_config import get_logger

from . import (
    DB_PATH,
    DEEP_FOCUS_MASTER_TARGET,
    FOCUS_HOUR_SECONDS,
    FOCUS_STREAK_TARGET,
    FULL_DAY_NAMES,
    SESSION_TYPES,
)

logger = get_logger(__name__)


def get_connection() -> sqlite3.Connection:
    """Get database connection, creating all focus tables if needed."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row

    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS focus_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            session_type TEXT DEFAULT 'timed'
                CHECK(session_type IN ('timed', 'scheduled', 'pomodoro', 'recurring')),
            started_at DATETIME NOT NULL,
            ended_at DATETIME,
            scheduled_seconds INTEGER NOT NULL,
            actual_seconds INTEGER,
            is_deep_focus INTEGER DEFAULT 0,
            blocking_enabled INTEGER DEFAULT 0,
            was_completed INTEGER DEFAULT 0,
            was_canceled INTEGER DEFAULT 0,
            task_id TEXT,
            task_title TEXT,
            block_list_id TEXT,
            blocked_apps TEXT,
            points_earned INTEGER DEFAULT 0,
            created_at DATETIME
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS block_lists (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            icon TEXT,
            color TEXT,
            is_default INTEGER DEFAULT 0,
            is_allow_list INTEGER DEFAULT 0,
            apps TEXT,
            use_count INTEGER DEFAULT 0,
            last_used_at DATETIME,
            created_at DATETIME,
            updated_at DATETIME
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS scheduled_sessions (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            start_time DATETIME,
            start_hour INTEGER,
            start_minute INTEGER DEFAULT 0,
            duration_seconds INTEGER NOT NULL,
            is_recurring INTEGER DEFAULT 0,
            recurring_days TEXT,
            recurring_end_date DATETIME,
            is_enabled INTEGER DEFAULT 1,
            is_deep_focus INTEGER DEFAULT 0,
            block_list_id TEXT,
            last_triggered_at DATETIME,
            created_at DATETIME,
            updated_at DATETIME
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS timer_state (
            user_id TEXT PRIMARY KEY,
            state TEXT DEFAULT 'idle'
                CHECK(state IN ('idle', 'running', 'paused', 'completed', 'break')),
            task_id TEXT,
            task_title TEXT,
            total_seconds INTEGER DEFAULT 0,
            remaining_seconds INTEGER DEFAULT 0,
            sessions_completed INTEGER DEFAULT 0,
            is_long_break INTEGER DEFAULT 0,
            enable_app_blocking INTEGER DEFAULT 0,
            is_deep_focus INTEGER DEFAULT 0,
            block_list_id TEXT,
            focus_session_id TEXT,
            started_at DATETIME,
            paused_at DATETIME,
            last_tick_at DATETIME
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_focus_sessions_user ON focus_sessions(user_id, started_at)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_block_lists_user ON block_lists(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_scheduled_user ON scheduled_sessions(user_id)")

    conn.commit()
    return conn


def generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


def timestamp(dt: Optional[datetime] = None) -> str:
    return (dt or datetime.now()).replace(microsecond=0).isoformat()


def row_to_session(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    session = dict(row)
    for field in ("is_deep_focus", "blocking_enabled", "was_completed", "was_canceled"):
        session[field] = bool(session[field])
    session["blocked_apps"] = json.loads(session["blocked_apps"]) if session.get("blocked_apps") else []
    return session


def format_duration(seconds: int) -> str:
    minutes = seconds // 60
    if minutes >= 60:
        hours, mins = divmod(minutes, 60)
        return f"{hours}h {mins}m" if mins else f"{hours}h"
    return f"{minutes}m"


def calculate_session_points(scheduled_seconds: int, is_deep_focus: bool) -> int:
    config = load_config().focus
    points = config.base_session_points
    if is_deep_focus:
        points += config.deep_focus_bonus
    if scheduled_seconds >= FOCUS_HOUR_SECONDS:
        points += config.long_session_bonus
    return points


# =============================================================================
# Session lifecycle
# =============================================================================


def start_session(
    user_id: str,
    title: str,
    scheduled_seconds: int,
    session_type: str = "timed",
    is_deep_focus: bool = False,
    enable_blocking: bool = False,
    task_id: Optional[str] = None,
    task_title: Optional[str] = None,
    block_list_id: Optional[str] = None,
    blocked_apps: Optional[List[str]] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Start a focus session. A user has at most one active session.

    Args:
        user_id: User focusing
        title: What the session is for
        scheduled_seconds: Planned length
        session_type: One of SESSION_TYPES
        is_deep_focus: Unbreakable when blocking is on
        enable_blocking: Request app blocking for the session
        task_id: Linked task
        task_title: Linked task title
        block_list_id: Block list to apply (implies blocking)
        blocked_apps: Explicit app identifiers to block

    Returns:
        dict with the new session
    """
    if session_type not in SESSION_TYPES:
        return {"success": False, "error": f"Invalid session type. Must be one of: {SESSION_TYPES}"}
    if scheduled_seconds <= 0:
        return {"success": False, "error": "Session duration must be positive"}
    if not title or not title.strip():
        return {"success": False, "error": "Title cannot be empty"}

    now = now or datetime.now()
    blocking = enable_blocking or block_list_id is not None or bool(blocked_apps)

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute(
        "SELECT id FROM focus_sessions WHERE user_id = ? AND ended_at IS NULL",
        (user_id,),
    )
    active = cursor.fetchone()
    if active:
        conn.close()
        return {"success": False, "error": f"A focus session is already active: {active['id']}"}

    session_id = generate_id()
    cursor.execute("""
        INSERT INTO focus_sessions (
            id, user_id, title, session_type, started_at, scheduled_seconds,
            is_deep_focus, blocking_enabled, task_id, task_title, block_list_id,
            blocked_apps, created_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        session_id, user_id, title.strip(), session_type, timestamp(now), scheduled_seconds,
        1 if is_deep_focus else 0, 1 if blocking else 0, task_id, task_title, block_list_id,
        json.dumps(blocked_apps) if blocked_apps else None, timestamp(now),
    ))
    conn.commit()
    conn.close()

    if block_list_id:
        from .blocklists import mark_used

        mark_used(block_list_id, now=now)

    logger.info("focus_session_started", session_id=session_id, user_id=user_id, deep_focus=is_deep_focus)
    return get_session(session_id)


def get_session(session_id: str) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM focus_sessions WHERE id = ?", (session_id,))
    session = row_to_session(cursor.fetchone())
    conn.close()

    if not session:
        return {"success": False, "error": f"Focus session not found: {session_id}"}

    session["formatted_duration"] = format_duration(session["actual_seconds"] or session["scheduled_seconds"])
    return {"success": True, "data": session}


def can_cancel(session: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """Deep Focus with blocking can't end before its scheduled end."""
    if not (session["is_deep_focus"] and session["blocking_enabled"]):
        return True
    started = datetime.fromisoformat(session["started_at"])
    return (now or datetime.now()) >= started + timedelta(seconds=session["scheduled_seconds"])


def complete_session(
    session_id: str,
    now: Optional[datetime] = None,
    actual_seconds: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Complete a session and award its points.

    Args:
        session_id: Session to complete
        now: End time (defaults to now)
        actual_seconds: Focused time, when it differs from wall-clock time

    Returns:
        dict with the session, points earned and achievements unlocked
    """
    result = get_session(session_id)
    if not result["success"]:
        return result
    session = result["data"]

    if session["ended_at"]:
        return {"success": False, "error": f"Focus session already ended: {session_id}"}

    now = now or datetime.now()
    if actual_seconds is None:
        actual_seconds = max(0, int((now - datetime.fromisoformat(session["started_at"])).total_seconds()))

    points = calculate_session_points(session["scheduled_seconds"], session["is_deep_focus"])

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE focus_sessions
        SET ended_at = ?, actual_seconds = ?, was_completed = 1, was_canceled = 0, points_earned = ?
        WHERE id = ?
    """, (timestamp(now), actual_seconds, points, session_id))
    conn.commit()
    conn.close()

    award = gamification.award_points(session["user_id"], points)
    unlocked = award["data"]["unlocked"] + _check_focus_achievements(
        session["user_id"], session, actual_seconds, now.date()
    )

    logger.info("focus_session_completed", session_id=session_id, seconds=actual_seconds, points=points)

    return {
        "success": True,
        "data": {
            "session": get_session(session_id)["data"],
            "points_earned": points,
            "level_up": award["data"]["level_up"],
            "unlocked": unlocked,
        },
    }


def count_deep_focus_completed(user_id: str) -> int:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT COUNT(*) as count FROM focus_sessions
        WHERE user_id = ? AND is_deep_focus = 1 AND was_completed = 1
    """, (user_id,))
    count = cursor.fetchone()["count"]
    conn.close()
    return count


def _check_focus_achievements(
    user_id: str,
    session: Dict[str, Any],
    actual_seconds: int,
    today: date,
) -> List[str]:
    candidates = []

    if session["blocking_enabled"]:
        candidates.append("focus_first")
        if actual_seconds >= FOCUS_HOUR_SECONDS:
            candidates.append("focus_hour")

    if session["is_deep_focus"] and count_deep_focus_completed(user_id) >= DEEP_FOCUS_MASTER_TARGET:
        candidates.append("deep_focus_master")

    stats = get_statistics(user_id, today=today)["data"]
    if stats["current_streak"] >= FOCUS_STREAK_TARGET:
        candidates.append("focus_streak")

    return [
        name for name in candidates
        if gamification.unlock_achievement(user_id, name)["data"]["unlocked"]
    ]


def cancel_session(session_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Cancel a session. No points are awarded.

    Returns:
        dict with the cancelled session, or an error for an active Deep Focus session
    """
    result = get_session(session_id)
    if not result["success"]:
        return result
    session = result["data"]

    if session["ended_at"]:
        return {"success": False, "error": f"Focus session already ended: {session_id}"}

    now = now or datetime.now()
    if not can_cancel(session, now):
        return {"success": False, "error": "Deep Focus sessions cannot be ended early. Stay focused!"}

    actual_seconds = max(0, int((now - datetime.fromisoformat(session["started_at"])).total_seconds()))

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE focus_sessions
        SET ended_at = ?, actual_seconds = ?, was_completed = 0, was_canceled = 1, points_earned = 0
        WHERE id = ?
    """, (timestamp(now), actual_seconds, session_id))
    conn.commit()
    conn.close()

    logger.info("focus_session_canceled", session_id=session_id, seconds=actual_seconds)
    return get_session(session_id)


def list_sessions(user_id: str, completed_only: bool = False, limit: int = 50) -> Dict[str, Any]:
    """List a user's sessions, newest first."""
    conn = get_connection()
    cursor = conn.cursor()

    query = "SELECT * FROM focus_sessions WHERE user_id = ?"
    if completed_only:
        query += " AND was_completed = 1"
    query += " ORDER BY started_at DESC LIMIT ?"

    cursor.execute(query, (user_id, limit))
    sessions = [row_to_session(row) for row in cursor.fetchall()]
    conn.close()

    return {"success": True, "data": {"sessions": sessions, "total": len(sessions)}}


def get_statistics(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Aggregate completed sessions.

    The day streak counts consecutive days with a completed session and is
    current only if the last such day is today or yesterday.

    Returns:
        dict with completed count, total and average minutes, deep focus
        count, current/longest streak, most used block list and best day
    """
    today = today or date.today()

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        SELECT started_at, actual_seconds, is_deep_focus FROM focus_sessions
        WHERE user_id = ? AND was_completed = 1
    """, (user_id,))
    completed = cursor.fetchall()

    cursor.execute("""
        SELECT name FROM block_lists
        WHERE user_id = ? AND use_count > 0
        ORDER BY use_count DESC, last_used_at DESC
        LIMIT 1
    """, (user_id,))
    most_used = cursor.fetchone()

    conn.close()

    total_minutes = sum(row["actual_seconds"] or 0 for row in completed) // 60
    days = sorted({datetime.fromisoformat(row["started_at"]).date() for row in completed})

    longest = 0
    streak = 0
    previous = None
    for day in days:
        streak = streak + 1 if previous and (day - previous).days == 1 else 1
        longest = max(longest, streak)
        previous = day

    if not days or (today - days[-1]).days > 1:
        streak = 0

    weekday_counts = Counter(
        (datetime.fromisoformat(row["started_at"]).weekday() + 1) % 7 for row in completed
    )
    best_day = FULL_DAY_NAMES[weekday_counts.most_common(1)[0][0]] if weekday_counts else None

    return {
        "success": True,
        "data": {
            "total_sessions_completed": len(completed),
            "total_minutes_focused": total_minutes,
            "deep_focus_sessions_completed": sum(1 for row in completed if row["is_deep_focus"]),
            "average_session_minutes": total_minutes // len(completed) if completed else 0,
            "current_streak": streak,
            "longest_streak": longest,
            "most_used_block_list": most_used["name"] if most_used else None,
            "best_focus_day": best_day,
        },
    }


def focus_minutes_since(user_id: str, since: datetime) -> int:
    """Completed focus minutes since a point in time."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT COALESCE(SUM(actual_seconds), 0) AS seconds FROM focus_sessions
        WHERE user_id = ? AND was_completed = 1 AND started_at >= ?
    """, (user_id, timestamp(since)))
    seconds = cursor.fetchone()["seconds"]
    conn.close()
    return seconds // 60


def main():
    parser = argparse.ArgumentParser(description="Focus Sessions - history, points and statistics")
    parser.add_argument(
        "--action",
        required=True,
        choices=["start", "complete", "cancel", "get", "list", "stats"],
        help="Action to perform",
    )
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--session-id", help="Session ID")
    parser.add_argument("--title", help="Session title")
    parser.add_argument("--minutes", type=int, default=25, help="Planned minutes")
    parser.add_argument("--deep", action="store_true", help="Deep Focus (unbreakable with blocking)")
    parser.add_argument("--block", action="store_true", help="Request app blocking")
    parser.add_argument("--block-list", help="Block list ID")

    args = parser.parse_args()
    result = None

    if args.action in ("start", "list", "stats") and not args.user:
        print(json.dumps({"success": False, "error": f"--user required for {args.action}"}))
        sys.exit(1)
    if args.action in ("complete", "cancel", "get") and not args.session_id:
        print(json.dumps({"success": False, "error": f"--session-id required for {args.action}"}))
        sys.exit(1)

    if args.action == "start":
        result = start_session(
            args.user,
            title=args.title or "Focus",
            scheduled_seconds=args.minutes * 60,
            is_deep_focus=args.deep,
            enable_blocking=args.block,
            block_list_id=args.block_list,
        )
    elif args.action == "complete":
        result = complete_session(args.session_id)
    elif args.action == "cancel":
        result = cancel_session(args.session_id)
    elif args.action == "get":
        result = get_session(args.session_id)
    elif args.action == "list":
        result = list_sessions(args.user)
    elif args.action == "stats":
        result = get_statistics(args.user)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
