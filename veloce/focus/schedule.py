"""
Tool: Scheduled Focus Sessions
Purpose: One-shot and recurring focus sessions that start on their own

A one-shot schedule fires once at its start time. A recurring schedule
fires at hour:minute on its weekdays (0 = Sunday .. 6 = Saturday) until
its end date. due_sessions() is polled by whatever runs the timer; each
occurrence is reported once.

Usage:
    python -m veloce.focus.schedule --action create --user alice --title "Morning focus" --hour 9 --days 1,2,3,4,5
    python -m veloce.focus.schedule --action list --user alice
    python -m veloce.focus.schedule --action due --user alice
    python -m veloce.focus.schedule --action disable --schedule-id abc123

Dependencies:
    - sqlite3 (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import sqlite3
import sys
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from veloce.logging_config import get_logger

from . import DAY_NAMES
from .sessions import format_duration, generate_id, get_connection, timestamp

logger = get_logger(__name__)


def row_to_schedule(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    schedule = dict(row)
    for field in ("is_recurring", "is_enabled", "is_deep_focus"):
        schedule[field] = bool(schedule[field])
    schedule["recurring_days"] = json.loads(schedule["recurring_days"]) if schedule.get("recurring_days") else []
    return schedule


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def format_recurring_days(days: Optional[List[int]]) -> str:
    """[1..5] -> "Weekdays", [0, 6] -> "Weekends", all -> "Every day", else names."""
    if not days:
        return "No days selected"

    ordered = sorted(set(days))
    if ordered == [1, 2, 3, 4, 5]:
        return "Weekdays"
    if ordered == [0, 6]:
        return "Weekends"
    if ordered == list(range(7)):
        return "Every day"

    return ", ".join(DAY_NAMES[day] for day in ordered)


def _sunday_index(dt: datetime) -> int:
    return (dt.weekday() + 1) % 7


def next_occurrence(schedule: Dict[str, Any], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    When the schedule fires next.

    One-shot: its start time, if still in the future. Recurring: the next
    listed weekday at hour:minute strictly after now, looking up to 8 days
    ahead, and not past the end date.
    """
    if not schedule["is_enabled"]:
        return None

    now = now or datetime.now()

    if not schedule["is_recurring"]:
        start = _parse(schedule["start_time"])
        return start if start and start > now else None

    days = schedule["recurring_days"]
    if not days:
        return None

    end_date = _parse(schedule.get("recurring_end_date"))

    for offset in range(8):
        day = now + timedelta(days=offset)
        if _sunday_index(day) not in days:
            continue
        candidate = day.replace(
            hour=schedule["start_hour"], minute=schedule["start_minute"] or 0, second=0, microsecond=0
        )
        if candidate > now:
            if end_date and candidate > end_date:
                return None
            return candidate

    return None


def last_occurrence(schedule: Dict[str, Any], now: datetime) -> Optional[datetime]:
    """Most recent time the schedule should have fired, at or before now."""
    if not schedule["is_recurring"]:
        start = _parse(schedule["start_time"])
        return start if start and start <= now else None

    days = schedule["recurring_days"]
    end_date = _parse(schedule.get("recurring_end_date"))

    for offset in range(8):
        day = now - timedelta(days=offset)
        if _sunday_index(day) not in days:
            continue
        candidate = day.replace(
            hour=schedule["start_hour"], minute=schedule["start_minute"] or 0, second=0, microsecond=0
        )
        if candidate <= now:
            if end_date and candidate > end_date:
                continue
            return candidate

    return None


def _with_derived(schedule: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    upcoming = next_occurrence(schedule, now)
    schedule["next_occurrence"] = upcoming.isoformat() if upcoming else None
    schedule["formatted_days"] = format_recurring_days(schedule["recurring_days"]) if schedule["is_recurring"] else None
    schedule["formatted_duration"] = format_duration(schedule["duration_seconds"])
    return schedule


def create_scheduled_session(
    user_id: str,
    title: str,
    duration_seconds: int,
    start_time: Optional[datetime] = None,
    start_hour: Optional[int] = None,
    start_minute: int = 0,
    recurring_days: Optional[List[int]] = None,
    recurring_end_date: Optional[datetime] = None,
    is_deep_focus: bool = False,
    block_list_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a scheduled session.

    Pass start_time for a one-shot session, or start_hour/start_minute
    with recurring_days for a recurring one.

    Returns:
        dict with the new schedule
    """
    if not title or not title.strip():
        return {"success": False, "error": "Title cannot be empty"}
    if duration_seconds <= 0:
        return {"success": False, "error": "Duration must be positive"}

    is_recurring = bool(recurring_days)
    if is_recurring:
        if start_hour is None or not 0 <= start_hour <= 23:
            return {"success": False, "error": "Recurring sessions need a start hour between 0 and 23"}
        if not 0 <= start_minute <= 59:
            return {"success": False, "error": "Start minute must be between 0 and 59"}
        if any(day not in range(7) for day in recurring_days):
            return {"success": False, "error": "Recurring days must be between 0 (Sunday) and 6 (Saturday)"}
    elif start_time is None:
        return {"success": False, "error": "One-time sessions need a start time"}

    schedule_id = generate_id()
    now = timestamp()

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO scheduled_sessions (
            id, user_id, title, start_time, start_hour, start_minute, duration_seconds,
            is_recurring, recurring_days, recurring_end_date, is_deep_focus, block_list_id,
            created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        schedule_id, user_id, title.strip(),
        timestamp(start_time) if start_time else None,
        start_hour if is_recurring else (start_time.hour if start_time else None),
        start_minute if is_recurring else (start_time.minute if start_time else 0),
        duration_seconds, 1 if is_recurring else 0,
        json.dumps(sorted(set(recurring_days))) if is_recurring else None,
        timestamp(recurring_end_date) if recurring_end_date else None,
        1 if is_deep_focus else 0, block_list_id, now, now,
    ))
    conn.commit()
    conn.close()

    return get_scheduled_session(schedule_id)


def get_scheduled_session(schedule_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM scheduled_sessions WHERE id = ?", (schedule_id,))
    schedule = row_to_schedule(cursor.fetchone())
    conn.close()

    if not schedule:
        return {"success": False, "error": f"Scheduled session not found: {schedule_id}"}

    return {"success": True, "data": _with_derived(schedule, now)}


def list_scheduled_sessions(
    user_id: str,
    enabled_only: bool = False,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """List schedules, soonest next occurrence first."""
    conn = get_connection()
    cursor = conn.cursor()

    query = "SELECT * FROM scheduled_sessions WHERE user_id = ?"
    if enabled_only:
        query += " AND is_enabled = 1"
    cursor.execute(query, (user_id,))
    schedules = [_with_derived(row_to_schedule(row), now) for row in cursor.fetchall()]
    conn.close()

    schedules.sort(key=lambda s: (s["next_occurrence"] is None, s["next_occurrence"] or ""))
    return {"success": True, "data": {"schedules": schedules, "total": len(schedules)}}


def set_enabled(schedule_id: str, enabled: bool) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE scheduled_sessions SET is_enabled = ?, updated_at = ? WHERE id = ?",
        (1 if enabled else 0, timestamp(), schedule_id),
    )

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Scheduled session not found: {schedule_id}"}

    conn.commit()
    conn.close()

    return get_scheduled_session(schedule_id)


def delete_scheduled_session(schedule_id: str) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM scheduled_sessions WHERE id = ?", (schedule_id,))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Scheduled session not found: {schedule_id}"}

    conn.commit()
    conn.close()

    return {"success": True, "message": f"Scheduled session {schedule_id} deleted"}


def due_sessions(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Enabled schedules whose latest occurrence has arrived and not fired yet.

    Occurrences before the schedule existed don't count. Each due
    schedule is stamped as triggered, so it is returned only once per
    occurrence.

    Returns:
        dict with due schedules and the occurrence that fired
    """
    now = now or datetime.now()

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM scheduled_sessions WHERE user_id = ? AND is_enabled = 1", (user_id,))
    schedules = [row_to_schedule(row) for row in cursor.fetchall()]

    due = []
    for schedule in schedules:
        occurrence = last_occurrence(schedule, now)
        if occurrence is None:
            continue

        created = _parse(schedule["created_at"])
        triggered = _parse(schedule["last_triggered_at"])
        if schedule["is_recurring"] and created and occurrence < created:
            continue
        if triggered and triggered >= occurrence:
            continue

        cursor.execute(
            "UPDATE scheduled_sessions SET last_triggered_at = ? WHERE id = ?",
            (timestamp(now), schedule["id"]),
        )
        schedule["occurrence"] = occurrence.isoformat()
        due.append(schedule)

    conn.commit()
    conn.close()

    for schedule in due:
        logger.info("scheduled_session_due", schedule_id=schedule["id"], occurrence=schedule["occurrence"])

    return {"success": True, "data": {"due": due, "total": len(due)}}


def main():
    parser = argparse.ArgumentParser(description="Scheduled Focus Sessions")
    parser.add_argument(
        "--action",
        required=True,
        choices=["create", "get", "list", "enable", "disable", "delete", "due"],
        help="Action to perform",
    )
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--schedule-id", help="Schedule ID")
    parser.add_argument("--title", help="Session title")
    parser.add_argument("--minutes", type=int, default=25, help="Duration in minutes")
    parser.add_argument("--at", help="Start time for one-time sessions (ISO format)")
    parser.add_argument("--hour", type=int, help="Start hour for recurring sessions")
    parser.add_argument("--minute", type=int, default=0, help="Start minute for recurring sessions")
    parser.add_argument("--days", help="Comma-separated weekdays, 0 = Sunday")
    parser.add_argument("--deep", action="store_true", help="Deep Focus")

    args = parser.parse_args()
    result = None

    if args.action in ("create", "list", "due") and not args.user:
        print(json.dumps({"success": False, "error": f"--user required for {args.action}"}))
        sys.exit(1)
    if args.action in ("get", "enable", "disable", "delete") and not args.schedule_id:
        print(json.dumps({"success": False, "error": f"--schedule-id required for {args.action}"}))
        sys.exit(1)

    if args.action == "create":
        result = create_scheduled_session(
            args.user,
            title=args.title or "Focus",
            duration_seconds=args.minutes * 60,
            start_time=datetime.fromisoformat(args.at) if args.at else None,
            start_hour=args.hour,
            start_minute=args.minute,
            recurring_days=[int(day) for day in args.days.split(",")] if args.days else None,
            is_deep_focus=args.deep,
        )
    elif args.action == "get":
        result = get_scheduled_session(args.schedule_id)
    elif args.action == "list":
        result = list_scheduled_sessions(args.user)
    elif args.action == "enable":
        result = set_enabled(args.schedule_id, True)
    elif args.action == "disable":
        result = set_enabled(args.schedule_id, False)
    elif args.action == "delete":
        result = delete_scheduled_session(args.schedule_id)
    elif args.action == "due":
        result = due_sessions(args.user)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
