"""
Tool: Pomodoro Timer
Purpose: Persistent focus/break countdown per user

States:
    idle -> running <-> paused
    running -> completed -> break -> idle

The timer does not tick on its own. The caller advances it (one second
per tick, or in bulk) and gets back events:
    minute_elapsed   a whole minute boundary was crossed
    focus_completed  the focus countdown hit zero (session recorded, points awarded)
    break_completed  the break countdown hit zero

State is written to the database on every transition. refresh_timer()
applies the wall-clock time since the last tick, so a restarted process
picks up where the old one left off.

Every focus countdown is recorded as a "pomodoro" focus session.

Usage:
    python -m veloce.focus.timer --action start --user alice --title "Write report"
    python -m veloce.focus.timer --action status --user alice
    python -m veloce.focus.timer --action pause --user alice
    python -m veloce.focus.timer --action resume --user alice
    python -m veloce.focus.timer --action break --user alice

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

from veloce.config_models import load_config
from veloce.logging_config import get_logger

from .sessions import cancel_session, complete_session, get_connection, start_session, timestamp

logger = get_logger(__name__)

ACTIVE_STATES = ("running", "break")


def _idle_state(user_id: str) -> Dict[str, Any]:
    return {
        "user_id": user_id,
        "state": "idle",
        "task_id": None,
        "task_title": None,
        "total_seconds": 0,
        "remaining_seconds": 0,
        "sessions_completed": 0,
        "is_long_break": False,
        "enable_app_blocking": False,
        "is_deep_focus": False,
        "block_list_id": None,
        "focus_session_id": None,
        "started_at": None,
        "paused_at": None,
        "last_tick_at": None,
    }


def _load(cursor: sqlite3.Cursor, user_id: str) -> Dict[str, Any]:
    cursor.execute("SELECT * FROM timer_state WHERE user_id = ?", (user_id,))
    row = cursor.fetchone()
    if row is None:
        return _idle_state(user_id)
    timer = dict(row)
    for field in ("is_long_break", "enable_app_blocking", "is_deep_focus"):
        timer[field] = bool(timer[field])
    return timer


def _save(cursor: sqlite3.Cursor, timer: Dict[str, Any]) -> None:
    cursor.execute("""
        INSERT OR REPLACE INTO timer_state (
            user_id, state, task_id, task_title, total_seconds, remaining_seconds,
            sessions_completed, is_long_break, enable_app_blocking, is_deep_focus,
            block_list_id, focus_session_id, started_at, paused_at, last_tick_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        timer["user_id"], timer["state"], timer["task_id"], timer["task_title"],
        timer["total_seconds"], timer["remaining_seconds"], timer["sessions_completed"],
        int(timer["is_long_break"]), int(timer["enable_app_blocking"]), int(timer["is_deep_focus"]),
        timer["block_list_id"], timer["focus_session_id"], timer["started_at"],
        timer["paused_at"], timer["last_tick_at"],
    ))


def _view(timer: Dict[str, Any]) -> Dict[str, Any]:
    """Timer state plus display fields."""
    view = dict(timer)
    minutes, seconds = divmod(timer["remaining_seconds"], 60)
    view["formatted_remaining"] = f"{minutes:02d}:{seconds:02d}"
    total = timer["total_seconds"]
    view["progress"] = round(1 - timer["remaining_seconds"] / total, 4) if total else 0.0
    view["can_stop"] = can_stop(timer)
    return view


def can_stop(timer: Dict[str, Any]) -> bool:
    """Deep Focus with blocking can't be stopped during the focus countdown."""
    if timer["is_deep_focus"] and timer["enable_app_blocking"]:
        return timer["state"] not in ("running", "paused")
    return True


def get_timer(user_id: str) -> Dict[str, Any]:
    """Current timer state (idle if the user never started one)."""
    conn = get_connection()
    timer = _load(conn.cursor(), user_id)
    conn.close()
    return {"success": True, "data": _view(timer)}


def start_timer(
    user_id: str,
    task_title: str,
    duration: Optional[int] = None,
    task_id: Optional[str] = None,
    enable_app_blocking: bool = False,
    is_deep_focus: bool = False,
    block_list_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Start a focus countdown.

    Args:
        user_id: User focusing
        task_title: What the countdown is for
        duration: Seconds (defaults to the configured focus length)
        task_id: Linked task
        enable_app_blocking: Request app blocking
        is_deep_focus: Unbreakable while blocking
        block_list_id: Block list to apply
        now: Start time

    Returns:
        dict with the timer state
    """
    now = now or datetime.now()
    if duration is None:
        duration = load_config().focus.focus_minutes * 60
    if duration <= 0:
        return {"success": False, "error": "Duration must be positive"}

    conn = get_connection()
    cursor = conn.cursor()
    timer = _load(cursor, user_id)
    conn.close()

    if timer["state"] in ("running", "paused"):
        return {"success": False, "error": "A focus timer is already active. Stop it first."}

    session = start_session(
        user_id,
        title=task_title,
        scheduled_seconds=duration,
        session_type="pomodoro",
        is_deep_focus=is_deep_focus,
        enable_blocking=enable_app_blocking,
        task_id=task_id,
        task_title=task_title,
        block_list_id=block_list_id,
        now=now,
    )
    if not session["success"]:
        return session

    timer.update({
        "state": "running",
        "task_id": task_id,
        "task_title": task_title,
        "total_seconds": duration,
        "remaining_seconds": duration,
        "is_long_break": False,
        "enable_app_blocking": enable_app_blocking or block_list_id is not None,
        "is_deep_focus": is_deep_focus,
        "block_list_id": block_list_id,
        "focus_session_id": session["data"]["id"],
        "started_at": timestamp(now),
        "paused_at": None,
        "last_tick_at": timestamp(now),
    })

    conn = get_connection()
    _save(conn.cursor(), timer)
    conn.commit()
    conn.close()

    logger.info("timer_started", user_id=user_id, seconds=duration, deep_focus=is_deep_focus)
    return {"success": True, "data": _view(timer)}


def _transition(user_id: str, expected: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    timer = _load(cursor, user_id)

    if timer["state"] != expected:
        conn.close()
        return {"success": False, "error": f"Timer is {timer['state']}, not {expected}"}

    timer.update(updates)
    _save(cursor, timer)
    conn.commit()
    conn.close()

    return {"success": True, "data": _view(timer)}


def pause_timer(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    return _transition(user_id, "running", {"state": "paused", "paused_at": timestamp(now)})


def resume_timer(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    return _transition(user_id, "paused", {"state": "running", "paused_at": None, "last_tick_at": timestamp(now)})


def stop_timer(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Abandon the timer and reset it to idle. The focus session is cancelled."""
    conn = get_connection()
    cursor = conn.cursor()
    timer = _load(cursor, user_id)
    conn.close()

    if not can_stop(timer):
        return {"success": False, "error": "Deep Focus sessions cannot be ended early. Stay focused!"}

    if timer["focus_session_id"] and timer["state"] in ("running", "paused"):
        cancelled = cancel_session(timer["focus_session_id"], now=now)
        if not cancelled["success"]:
            return cancelled

    conn = get_connection()
    conn.execute("DELETE FROM timer_state WHERE user_id = ?", (user_id,))
    conn.commit()
    conn.close()

    return {"success": True, "data": _view(_idle_state(user_id)), "message": "Timer stopped"}


def advance_timer(user_id: str, seconds: int = 1, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Count the timer down.

    Seconds beyond the end of the countdown are dropped.

    Args:
        user_id: Timer owner
        seconds: Seconds elapsed
        now: Time of this tick

    Returns:
        dict with the timer state and the events that fired
    """
    if seconds < 0:
        return {"success": False, "error": "Seconds cannot be negative"}

    conn = get_connection()
    cursor = conn.cursor()
    timer = _load(cursor, user_id)
    conn.close()

    if timer["state"] not in ACTIVE_STATES:
        return {"success": True, "data": _view(timer), "events": []}

    last_tick = datetime.fromisoformat(timer["last_tick_at"]) if timer["last_tick_at"] else None
    now = now or ((last_tick + timedelta(seconds=seconds)) if last_tick else datetime.now())

    before = timer["remaining_seconds"]
    after = max(before - seconds, 0)
    events: List[Dict[str, Any]] = [
        {"type": "minute_elapsed", "minutes_remaining": boundary // 60}
        for boundary in range((before - 1) // 60 * 60, after - 1, -60)
        if 0 < boundary < before
    ]

    timer["remaining_seconds"] = after
    timer["last_tick_at"] = timestamp(now)

    if after == 0:
        if timer["state"] == "running":
            timer["sessions_completed"] += 1
            timer["state"] = "completed"
            finished_at = (last_tick + timedelta(seconds=before)) if last_tick else now
            event: Dict[str, Any] = {"type": "focus_completed", "sessions_completed": timer["sessions_completed"]}
            if timer["focus_session_id"]:
                completed = complete_session(
                    timer["focus_session_id"], now=finished_at, actual_seconds=timer["total_seconds"]
                )
                if completed["success"]:
                    event["points_earned"] = completed["data"]["points_earned"]
                    event["unlocked"] = completed["data"]["unlocked"]
            events.append(event)
            logger.info("timer_focus_completed", user_id=user_id, sessions_completed=timer["sessions_completed"])
        else:
            timer["state"] = "idle"
            timer["is_long_break"] = False
            events.append({"type": "break_completed"})
            logger.info("timer_break_completed", user_id=user_id)

    conn = get_connection()
    _save(conn.cursor(), timer)
    conn.commit()
    conn.close()

    return {"success": True, "data": _view(timer), "events": events}


def refresh_timer(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Apply the wall-clock time elapsed since the last tick."""
    now = now or datetime.now()

    result = get_timer(user_id)
    timer = result["data"]
    if timer["state"] not in ACTIVE_STATES or not timer["last_tick_at"]:
        return {**result, "events": []}

    elapsed = int((now - datetime.fromisoformat(timer["last_tick_at"])).total_seconds())
    if elapsed <= 0:
        return {**result, "events": []}

    return advance_timer(user_id, elapsed, now=now)


def start_break(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Start a break after a focus countdown.

    Every Nth completed session earns a long break.
    """
    conn = get_connection()
    cursor = conn.cursor()
    timer = _load(cursor, user_id)
    conn.close()

    if timer["state"] not in ("completed", "idle"):
        return {"success": False, "error": f"Can't start a break while the timer is {timer['state']}"}

    config = load_config().focus
    completed = timer["sessions_completed"]
    is_long = completed > 0 and completed % config.sessions_until_long_break == 0
    duration = (config.long_break_minutes if is_long else config.short_break_minutes) * 60

    timer.update({
        "state": "break",
        "total_seconds": duration,
        "remaining_seconds": duration,
        "is_long_break": is_long,
        "focus_session_id": None,
        "paused_at": None,
        "last_tick_at": timestamp(now),
    })

    conn = get_connection()
    _save(conn.cursor(), timer)
    conn.commit()
    conn.close()

    return {"success": True, "data": _view(timer)}


def skip_break(user_id: str) -> Dict[str, Any]:
    """End the break early. The completed-session count is unchanged."""
    return _transition(user_id, "break", {"state": "idle", "remaining_seconds": 0, "is_long_break": False})


def main():
    parser = argparse.ArgumentParser(description="Pomodoro Timer")
    parser.add_argument(
        "--action",
        required=True,
        choices=["start", "status", "pause", "resume", "stop", "tick", "refresh", "break", "skip-break"],
        help="Action to perform",
    )
    parser.add_argument("--user", required=True, help="User ID")
    parser.add_argument("--title", help="Task title")
    parser.add_argument("--task-id", help="Linked task ID")
    parser.add_argument("--minutes", type=int, help="Focus length in minutes")
    parser.add_argument("--seconds", type=int, default=1, help="Seconds to advance (tick)")
    parser.add_argument("--block", action="store_true", help="Request app blocking")
    parser.add_argument("--deep", action="store_true", help="Deep Focus")
    parser.add_argument("--block-list", help="Block list ID")

    args = parser.parse_args()

    if args.action == "start":
        result = start_timer(
            args.user,
            task_title=args.title or "Focus",
            duration=args.minutes * 60 if args.minutes else None,
            task_id=args.task_id,
            enable_app_blocking=args.block,
            is_deep_focus=args.deep,
            block_list_id=args.block_list,
        )
    elif args.action == "status":
        result = get_timer(args.user)
    elif args.action == "pause":
        result = pause_timer(args.user)
    elif args.action == "resume":
        result = resume_timer(args.user)
    elif args.action == "stop":
        result = stop_timer(args.user)
    elif args.action == "tick":
        result = advance_timer(args.user, args.seconds)
    elif args.action == "refresh":
        result = refresh_timer(args.user)
    elif args.action == "break":
        result = start_break(args.user)
    else:
        result = skip_break(args.user)

    print(json.dumps(result, indent=2, default=str))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
