"""
Tool: Task Manager
Purpose: CRUD operations for tasks and task lists

This provides the task lifecycle behind every task surface:
- Create tasks from a bare title (everything else optional)
- Filter (all/today/scheduled/completed/overdue) and sort
- Complete / un-complete with points and streak bookkeeping
- Snooze, reschedule, duplicate and manual reordering
- Spawn the next instance of recurring tasks on completion

Usage:
    python -m veloce.tasks.manager --action create --user alice --title "Call the bank" --stars 3
    python -m veloce.tasks.manager --action list --user alice --filter today --sort priority
    python -m veloce.tasks.manager --action get --task-id abc123
    python -m veloce.tasks.manager --action update --task-id abc123 --category finance
    python -m veloce.tasks.manager --action complete --task-id abc123
    python -m veloce.tasks.manager --action snooze --task-id abc123
    python -m veloce.tasks.manager --action stats --user alice

Dependencies:
    - sqlite3 (stdlib)
    - uuid (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import sqlite3
import sys
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from veloce.config_models import load_config
from veloce.gamification import engine as gamification
from veloce.logging_config import get_logger

from . import (
    CATEGORIES,
    DB_PATH,
    RECURRING_TYPES,
    STAR_RATINGS,
    TASK_FILTERS,
    TASK_SORTS,
    TASK_TYPES,
)

logger = get_logger(__name__)

# Fields update_task() accepts
UPDATABLE_FIELDS = (
    "title",
    "notes",
    "category",
    "task_type",
    "star_rating",
    "ai_priority",
    "ai_advice",
    "estimated_minutes",
    "actual_minutes",
    "scheduled_time",
    "duration_minutes",
    "reminder_enabled",
    "list_id",
    "recurring_type",
    "recurring_days",
    "recurring_end_date",
    "enable_app_blocking",
)

# Columns update_task() may change but never clear
REQUIRED_FIELDS = ("title", "star_rating", "reminder_enabled", "enable_app_blocking")

BOOLEAN_FIELDS = ("is_completed", "reminder_enabled", "enable_app_blocking")

SORT_CLAUSES = {
    "manual": "sort_order ASC, created_at ASC",
    "priority": "star_rating DESC, sort_order ASC",
    "due_date": "scheduled_time IS NULL, scheduled_time ASC, sort_order ASC",
    "created": "created_at DESC",
}


def get_connection() -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS task_lists (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT NOT NULL,
            icon TEXT,
            sort_order INTEGER DEFAULT 0,
            created_at DATETIME
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS tasks (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            list_id TEXT,
            title TEXT NOT NULL,
            notes TEXT,
            category TEXT,
            task_type TEXT,
            star_rating INTEGER DEFAULT 2 CHECK(star_rating BETWEEN 1 AND 3),
            ai_priority TEXT,
            ai_advice TEXT,
            ai_processed_at DATETIME,
            estimated_minutes INTEGER,
            actual_minutes INTEGER,
            scheduled_time DATETIME,
            duration_minutes INTEGER,
            reminder_enabled INTEGER DEFAULT 0,
            is_completed INTEGER DEFAULT 0,
            completed_at DATETIME,
            completed_on_time INTEGER,
            points_earned INTEGER DEFAULT 0,
            sort_order INTEGER DEFAULT 0,
            times_rescheduled INTEGER DEFAULT 0,
            recurring_type TEXT,
            recurring_days TEXT,
            recurring_end_date DATETIME,
            recurring_parent_id TEXT,
            last_recurrence_date DATETIME,
            enable_app_blocking INTEGER DEFAULT 0,
            template_id TEXT,
            created_at DATETIME,
            updated_at DATETIME,
            FOREIGN KEY(list_id) REFERENCES task_lists(id) ON DELETE SET NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_completed ON tasks(is_completed)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_scheduled ON tasks(scheduled_time)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_tasks_list ON tasks(list_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_lists_user ON task_lists(user_id)")

    conn.commit()
    return conn


def timestamp(dt: Optional[datetime] = None) -> str:
    """ISO timestamp at second precision so string comparison sorts correctly."""
    return (dt or datetime.now()).replace(microsecond=0).isoformat()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def row_to_task(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    """Convert sqlite3.Row to a task dict with decoded JSON and booleans."""
    if row is None:
        return None
    task = dict(row)
    for field in BOOLEAN_FIELDS:
        if field in task:
            task[field] = bool(task[field])
    if task.get("completed_on_time") is not None:
        task["completed_on_time"] = bool(task["completed_on_time"])
    task["recurring_days"] = json.loads(task["recurring_days"]) if task.get("recurring_days") else None
    return task


def generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


def _validate_fields(fields: Dict[str, Any]) -> Optional[str]:
    """Return an error message for invalid field values, or None."""
    if "title" in fields and (fields["title"] is None or not str(fields["title"]).strip()):
        return "Title cannot be empty"
    if fields.get("star_rating") is not None and fields["star_rating"] not in STAR_RATINGS:
        return f"Invalid star rating. Must be one of: {STAR_RATINGS}"
    if fields.get("category") and fields["category"] not in CATEGORIES:
        return f"Invalid category. Must be one of: {CATEGORIES}"
    if fields.get("task_type") and fields["task_type"] not in TASK_TYPES:
        return f"Invalid task type. Must be one of: {TASK_TYPES}"
    if fields.get("recurring_type") and fields["recurring_type"] not in RECURRING_TYPES:
        return f"Invalid recurring type. Must be one of: {RECURRING_TYPES}"
    if fields.get("recurring_days") and any(d not in range(7) for d in fields["recurring_days"]):
        return "Recurring days must be between 0 (Sunday) and 6 (Saturday)"
    for field in ("estimated_minutes", "actual_minutes", "duration_minutes"):
        if fields.get(field) is not None and fields[field] < 0:
            return f"{field} cannot be negative"
    return None


def _encode(field: str, value: Any) -> Any:
    if field == "recurring_days":
        return json.dumps(sorted(set(value))) if value else None
    if field in BOOLEAN_FIELDS:
        return 1 if value else 0
    if isinstance(value, datetime):
        return timestamp(value)
    return value


# =============================================================================
# Task CRUD
# =============================================================================


def create_task(
    user_id: str,
    title: str,
    notes: Optional[str] = None,
    category: Optional[str] = None,
    task_type: Optional[str] = None,
    star_rating: Optional[int] = None,
    estimated_minutes: Optional[int] = None,
    scheduled_time: Optional[datetime] = None,
    duration_minutes: Optional[int] = None,
    list_id: Optional[str] = None,
    recurring_type: Optional[str] = None,
    recurring_days: Optional[List[int]] = None,
    recurring_end_date: Optional[datetime] = None,
    recurring_parent_id: Optional[str] = None,
    enable_app_blocking: bool = False,
    template_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a new task.

    Args:
        user_id: User who owns the task
        title: What to do
        notes: Free-form context
        category: One of CATEGORIES
        task_type: One of TASK_TYPES
        star_rating: 1-3 (low/medium/high priority)
        estimated_minutes: Time estimate
        scheduled_time: When it should happen
        duration_minutes: Planned duration on the calendar
        list_id: Owning task list
        recurring_type: One of RECURRING_TYPES
        recurring_days: Weekdays (0 = Sunday) for custom recurrence
        recurring_end_date: Stop recurring after this date
        recurring_parent_id: Root task of a recurring series
        enable_app_blocking: Block apps while working on it
        template_id: Template this task was created from

    Returns:
        dict with success status and task data
    """
    if star_rating is None:
        star_rating = load_config().tasks.default_star_rating

    fields = {
        "title": title,
        "category": category,
        "task_type": task_type,
        "star_rating": star_rating,
        "estimated_minutes": estimated_minutes,
        "duration_minutes": duration_minutes,
        "recurring_type": recurring_type,
        "recurring_days": recurring_days,
    }
    error = _validate_fields(fields)
    if error:
        return {"success": False, "error": error}

    task_id = generate_id()
    now = timestamp()

    conn = get_connection()
    cursor = conn.cursor()

    if list_id:
        cursor.execute("SELECT id FROM task_lists WHERE id = ?", (list_id,))
        if not cursor.fetchone():
            conn.close()
            return {"success": False, "error": f"List not found: {list_id}"}

    cursor.execute("SELECT COALESCE(MAX(sort_order), 0) AS max_order FROM tasks WHERE user_id = ?", (user_id,))
    sort_order = cursor.fetchone()["max_order"] + 1

    cursor.execute("""
        INSERT INTO tasks (
            id, user_id, list_id, title, notes, category, task_type, star_rating,
            estimated_minutes, scheduled_time, duration_minutes, sort_order,
            recurring_type, recurring_days, recurring_end_date, recurring_parent_id,
            enable_app_blocking, template_id, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        task_id, user_id, list_id, title.strip(), notes, category, task_type, star_rating,
        estimated_minutes, _encode("scheduled_time", scheduled_time), duration_minutes, sort_order,
        recurring_type, _encode("recurring_days", recurring_days),
        _encode("recurring_end_date", recurring_end_date), recurring_parent_id,
        1 if enable_app_blocking else 0, template_id, now, now,
    ))

    conn.commit()

    cursor.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
    task = row_to_task(cursor.fetchone())

    conn.close()

    return {
        "success": True,
        "data": {"task_id": task_id, "task": task},
        "message": f"Task created with ID {task_id}",
    }


def get_task(task_id: str, include_derived: bool = False, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Get task details by ID.

    Args:
        task_id: Task ID to fetch
        include_derived: Add potential_points, energy_state and is_overdue

    Returns:
        dict with task data
    """
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
    task = row_to_task(cursor.fetchone())

    conn.close()

    if not task:
        return {"success": False, "error": f"Task not found: {task_id}"}

    if include_derived:
        points = potential_points(task, now)
        task["is_overdue"] = is_overdue(task, now)
        task["potential_points"] = points
        task["energy_state"] = energy_state(points)

    return {"success": True, "data": task}


def list_tasks(
    user_id: str,
    filter: str = "all",
    sort: str = "manual",
    search: Optional[str] = None,
    list_id: Optional[str] = None,
    category: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    List tasks for a user with a filter, optional search and sort.

    Args:
        user_id: User whose tasks to list
        filter: all (open), today, scheduled, completed, overdue
        sort: manual, priority, due_date, created
        search: Case-insensitive title substring
        list_id: Only tasks in this list
        category: Only tasks in this category
        limit: Maximum results
        offset: Pagination offset

    Returns:
        dict with task list and total
    """
    if filter not in TASK_FILTERS:
        return {"success": False, "error": f"Invalid filter. Must be one of: {TASK_FILTERS}"}
    if sort not in TASK_SORTS:
        return {"success": False, "error": f"Invalid sort. Must be one of: {TASK_SORTS}"}

    now = now or datetime.now()
    limit = limit or load_config().tasks.default_limit

    conditions = ["user_id = ?"]
    params: List[Any] = [user_id]

    if filter == "completed":
        conditions.append("is_completed = 1")
    else:
        conditions.append("is_completed = 0")

    if filter == "today":
        today = now.date().isoformat()
        conditions.append("(date(scheduled_time) = ? OR date(created_at) = ?)")
        params.extend([today, today])
    elif filter == "scheduled":
        conditions.append("scheduled_time IS NOT NULL")
    elif filter == "overdue":
        conditions.append("scheduled_time IS NOT NULL AND scheduled_time < ?")
        params.append(timestamp(now))

    if search:
        conditions.append("title LIKE ?")
        params.append(f"%{search}%")

    if list_id:
        conditions.append("list_id = ?")
        params.append(list_id)

    if category:
        conditions.append("category = ?")
        params.append(category)

    where_clause = " AND ".join(conditions)

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute(f"""
        SELECT * FROM tasks
        WHERE {where_clause}
        ORDER BY {SORT_CLAUSES[sort]}
        LIMIT ? OFFSET ?
    """, params + [limit, offset])

    tasks = [row_to_task(row) for row in cursor.fetchall()]

    cursor.execute(f"SELECT COUNT(*) as count FROM tasks WHERE {where_clause}", params)
    total = cursor.fetchone()["count"]

    conn.close()

    return {
        "success": True,
        "data": {"tasks": tasks, "total": total, "limit": limit, "offset": offset},
    }


def update_task(task_id: str, **fields: Any) -> Dict[str, Any]:
    """
    Update task fields.

    Only the fields passed are touched. Passing None clears a field, e.g.
    scheduled_time=None unschedules the task.

    Args:
        task_id: Task to update
        **fields: Any of UPDATABLE_FIELDS

    Returns:
        dict with updated task
    """
    unknown = [name for name in fields if name not in UPDATABLE_FIELDS]
    if unknown:
        return {"success": False, "error": f"Unknown fields: {', '.join(unknown)}"}

    if not fields:
        return {"success": False, "error": "No fields to update"}

    required = [name for name in REQUIRED_FIELDS if name in fields and fields[name] is None]
    if required:
        return {"success": False, "error": f"Cannot clear required fields: {', '.join(required)}"}

    error = _validate_fields(fields)
    if error:
        return {"success": False, "error": error}

    if "title" in fields:
        fields["title"] = str(fields["title"]).strip()

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT id FROM tasks WHERE id = ?", (task_id,))
    if not cursor.fetchone():
        conn.close()
        return {"success": False, "error": f"Task not found: {task_id}"}

    updates = [f"{name} = ?" for name in fields]
    params: List[Any] = [_encode(name, value) for name, value in fields.items()]

    updates.append("updated_at = ?")
    params.append(timestamp())

    params.append(task_id)
    cursor.execute(f"UPDATE tasks SET {', '.join(updates)} WHERE id = ?", params)
    conn.commit()

    cursor.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
    task = row_to_task(cursor.fetchone())

    conn.close()

    return {"success": True, "data": task, "message": f"Task {task_id} updated"}


def complete_task(task_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Mark a task as completed, award points and spawn the next recurrence.

    A task with no scheduled time counts as on time.

    Args:
        task_id: Task to complete
        now: Completion time (defaults to now)

    Returns:
        dict with the task, points earned, level-up info and the next
        recurring instance (if any)
    """
    now = now or datetime.now()

    result = get_task(task_id)
    if not result["success"]:
        return result
    task = result["data"]

    if task["is_completed"]:
        return {"success": False, "error": f"Task already completed: {task_id}"}

    scheduled = parse_timestamp(task["scheduled_time"])
    completed_on_time = now <= scheduled if scheduled else None
    on_time = completed_on_time is not False

    stats = gamification.get_stats(task["user_id"], today=now.date())["data"]
    points = gamification.calculate_points(task, completed_on_time=on_time, current_streak=stats["current_streak"])

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE tasks
        SET is_completed = 1, completed_at = ?, completed_on_time = ?, points_earned = ?, updated_at = ?
        WHERE id = ?
    """, (
        timestamp(now),
        None if completed_on_time is None else int(completed_on_time),
        points,
        timestamp(now),
        task_id,
    ))
    conn.commit()
    conn.close()

    # Achievement bonuses land before the task points, so compare levels across both
    completion = gamification.record_task_completion(task["user_id"], on_time=on_time, completed_at=now)
    award = gamification.award_points(task["user_id"], points)
    level_up = gamification.level_up_info(
        stats["current_level"], award["data"]["current_level"], award["data"]["total_points"]
    )

    next_instance = None
    if task["recurring_type"] and task["recurring_type"] != "once":
        from .recurrence import create_recurring_instance

        spawned = create_recurring_instance(task_id, now=now)
        if spawned["success"]:
            next_instance = spawned["data"]

    updated = get_task(task_id)["data"]

    return {
        "success": True,
        "data": {
            "task": updated,
            "points_earned": points,
            "streak_extended": completion["data"]["streak_extended"],
            "level_up": level_up or None,
            "unlocked": completion["data"]["unlocked"] + award["data"]["unlocked"],
            "next_instance": next_instance,
        },
        "message": "Task completed",
    }


def uncomplete_task(task_id: str) -> Dict[str, Any]:
    """
    Reopen a completed task. Points it earned are taken back.

    Args:
        task_id: Task to reopen

    Returns:
        dict with updated task
    """
    result = get_task(task_id)
    if not result["success"]:
        return result
    task = result["data"]

    if not task["is_completed"]:
        return {"success": False, "error": f"Task is not completed: {task_id}"}

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE tasks
        SET is_completed = 0, completed_at = NULL, completed_on_time = NULL, points_earned = 0, updated_at = ?
        WHERE id = ?
    """, (timestamp(), task_id))
    conn.commit()
    conn.close()

    if task["points_earned"]:
        gamification.deduct_points(task["user_id"], task["points_earned"])

    return {"success": True, "data": get_task(task_id)["data"], "message": "Task reopened"}


def delete_task(task_id: str) -> Dict[str, Any]:
    """
    Delete a task.

    Args:
        task_id: Task to delete

    Returns:
        dict with success status
    """
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Task not found: {task_id}"}

    conn.commit()
    conn.close()

    return {"success": True, "message": f"Task {task_id} deleted"}


def duplicate_task(task_id: str) -> Dict[str, Any]:
    """Copy a task's content (not its completion or recurrence) into a new task."""
    result = get_task(task_id)
    if not result["success"]:
        return result
    task = result["data"]

    return create_task(
        user_id=task["user_id"],
        title=f"{task['title']} (copy)",
        notes=task["notes"],
        category=task["category"],
        task_type=task["task_type"],
        star_rating=task["star_rating"],
        estimated_minutes=task["estimated_minutes"],
        scheduled_time=parse_timestamp(task["scheduled_time"]),
        list_id=task["list_id"],
    )


def reschedule_task(task_id: str, scheduled_time: datetime) -> Dict[str, Any]:
    """
    Move a task to a new time. Moving an already scheduled task counts
    as a reschedule.
    """
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT scheduled_time FROM tasks WHERE id = ?", (task_id,))
    row = cursor.fetchone()
    if not row:
        conn.close()
        return {"success": False, "error": f"Task not found: {task_id}"}

    increment = 1 if row["scheduled_time"] else 0
    cursor.execute("""
        UPDATE tasks
        SET scheduled_time = ?, times_rescheduled = times_rescheduled + ?, updated_at = ?
        WHERE id = ?
    """, (timestamp(scheduled_time), increment, timestamp(), task_id))
    conn.commit()

    cursor.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
    task = row_to_task(cursor.fetchone())
    conn.close()

    return {"success": True, "data": task, "message": f"Task {task_id} rescheduled"}


def snooze_task(task_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Push a task to tomorrow morning."""
    now = now or datetime.now()
    hour = load_config().tasks.snooze_hour
    tomorrow = (now + timedelta(days=1)).replace(hour=hour, minute=0, second=0, microsecond=0)

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE tasks
        SET scheduled_time = ?, times_rescheduled = times_rescheduled + 1, updated_at = ?
        WHERE id = ?
    """, (timestamp(tomorrow), timestamp(now), task_id))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Task not found: {task_id}"}

    conn.commit()
    cursor.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
    task = row_to_task(cursor.fetchone())
    conn.close()

    return {"success": True, "data": task, "message": "Snoozed until tomorrow"}


def reorder_tasks(user_id: str, task_ids: List[str]) -> Dict[str, Any]:
    """
    Apply a manual order. Position in task_ids becomes the sort order.

    Args:
        user_id: Owner of the tasks
        task_ids: Task IDs in their new order

    Returns:
        dict with the number of tasks reordered
    """
    conn = get_connection()
    cursor = conn.cursor()

    placeholders = ", ".join("?" for _ in task_ids)
    cursor.execute(
        f"SELECT id FROM tasks WHERE user_id = ? AND id IN ({placeholders})",
        [user_id] + list(task_ids),
    )
    found = {row["id"] for row in cursor.fetchall()}
    missing = [task_id for task_id in task_ids if task_id not in found]
    if missing:
        conn.close()
        return {"success": False, "error": f"Tasks not found: {', '.join(missing)}"}

    cursor.executemany(
        "UPDATE tasks SET sort_order = ? WHERE id = ?",
        [(index, task_id) for index, task_id in enumerate(task_ids)],
    )
    conn.commit()
    conn.close()

    return {"success": True, "data": {"reordered": len(task_ids)}}


def get_task_stats(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Counts for the stats surfaces.

    Returns:
        dict with total, completed, pending, completed_today,
        completed_this_week (Monday-based), completed_on_time, overdue
    """
    now = now or datetime.now()
    today = now.date()
    week_start = today - timedelta(days=today.weekday())

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        SELECT
            COUNT(*) AS total,
            COALESCE(SUM(is_completed), 0) AS completed,
            COALESCE(SUM(CASE WHEN is_completed = 1 AND date(completed_at) = ? THEN 1 ELSE 0 END), 0) AS completed_today,
            COALESCE(SUM(CASE WHEN is_completed = 1 AND date(completed_at) >= ? THEN 1 ELSE 0 END), 0) AS completed_this_week,
            COALESCE(SUM(CASE WHEN is_completed = 1 AND completed_on_time IS NOT 0 THEN 1 ELSE 0 END), 0) AS completed_on_time,
            COALESCE(SUM(CASE WHEN is_completed = 0 AND scheduled_time < ? THEN 1 ELSE 0 END), 0) AS overdue
        FROM tasks WHERE user_id = ?
    """, (today.isoformat(), week_start.isoformat(), timestamp(now), user_id))
    stats = dict(cursor.fetchone())

    conn.close()

    stats["pending"] = stats["total"] - stats["completed"]
    return {"success": True, "data": stats}


# =============================================================================
# Derived values
# =============================================================================


def is_overdue(task: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    scheduled = parse_timestamp(task.get("scheduled_time"))
    if scheduled is None or task.get("is_completed"):
        return False
    return scheduled < (now or datetime.now())


def potential_points(task: Dict[str, Any], now: Optional[datetime] = None) -> int:
    """Points preview before completion, 10 - 100."""
    star_rating = task.get("star_rating") or 2
    points = load_config().gamification.base_task_points

    if star_rating == 3:
        points += 15
    elif star_rating == 2:
        points += 5

    points += star_rating * 5

    if task.get("ai_advice"):
        points += 5
    if task.get("scheduled_time"):
        points += 5
    if task.get("estimated_minutes"):
        points += min(task["estimated_minutes"] // 10, 20)

    if is_overdue(task, now):
        points = max(points - 10, 10)

    return min(points, 100)


def energy_state(points: int) -> str:
    if points <= 25:
        return "low"
    if points <= 50:
        return "medium"
    if points <= 75:
        return "high"
    return "max"


# =============================================================================
# Lists
# =============================================================================


def create_list(user_id: str, name: str, icon: Optional[str] = None) -> Dict[str, Any]:
    """Create a task list."""
    if not name or not name.strip():
        return {"success": False, "error": "List name cannot be empty"}

    list_id = generate_id()

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT COALESCE(MAX(sort_order), 0) AS max_order FROM task_lists WHERE user_id = ?", (user_id,))
    sort_order = cursor.fetchone()["max_order"] + 1

    cursor.execute("""
        INSERT INTO task_lists (id, user_id, name, icon, sort_order, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
    """, (list_id, user_id, name.strip(), icon, sort_order, timestamp()))
    conn.commit()

    cursor.execute("SELECT * FROM task_lists WHERE id = ?", (list_id,))
    task_list = dict(cursor.fetchone())
    conn.close()

    return {"success": True, "data": task_list, "message": f"List created with ID {list_id}"}


def list_lists(user_id: str) -> Dict[str, Any]:
    """List a user's task lists with open/total task counts."""
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        SELECT l.*,
               COUNT(t.id) AS task_count,
               COALESCE(SUM(CASE WHEN t.is_completed = 0 THEN 1 ELSE 0 END), 0) AS open_count
        FROM task_lists l
        LEFT JOIN tasks t ON t.list_id = l.id
        WHERE l.user_id = ?
        GROUP BY l.id
        ORDER BY l.sort_order
    """, (user_id,))
    lists = [dict(row) for row in cursor.fetchall()]

    conn.close()

    return {"success": True, "data": {"lists": lists, "total": len(lists)}}


def delete_list(list_id: str) -> Dict[str, Any]:
    """Delete a list. Its tasks stay, unassigned."""
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("DELETE FROM task_lists WHERE id = ?", (list_id,))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"List not found: {list_id}"}

    conn.commit()
    conn.close()

    return {"success": True, "message": f"List {list_id} deleted"}


def main():
    parser = argparse.ArgumentParser(description="Task Manager - task and list CRUD operations")
    parser.add_argument(
        "--action",
        required=True,
        choices=[
            "create", "list", "get", "update", "complete", "uncomplete", "delete",
            "duplicate", "snooze", "reschedule", "stats",
        ],
        help="Action to perform",
    )

    parser.add_argument("--task-id", help="Task ID for operations")
    parser.add_argument("--user", help="User ID")

    parser.add_argument("--title", help="Task title")
    parser.add_argument("--notes", help="Task notes")
    parser.add_argument("--category", choices=CATEGORIES, help="Category")
    parser.add_argument("--type", dest="task_type", choices=TASK_TYPES, help="Task type")
    parser.add_argument("--stars", type=int, choices=STAR_RATINGS, help="Star rating / priority")
    parser.add_argument("--minutes", type=int, help="Estimated minutes")
    parser.add_argument("--at", help="Scheduled time (ISO format)")
    parser.add_argument("--list-id", help="Task list ID")
    parser.add_argument("--recurring", choices=RECURRING_TYPES, help="Recurring type")

    parser.add_argument("--filter", default="all", choices=TASK_FILTERS, help="List filter")
    parser.add_argument("--sort", default="manual", choices=TASK_SORTS, help="List sort")
    parser.add_argument("--search", help="Title search")
    parser.add_argument("--limit", type=int, help="Max results")
    parser.add_argument("--offset", type=int, default=0, help="Pagination offset")

    args = parser.parse_args()
    result = None
    scheduled = datetime.fromisoformat(args.at) if args.at else None

    if args.action in ("create", "list", "stats") and not args.user:
        print(json.dumps({"success": False, "error": f"--user required for {args.action}"}))
        sys.exit(1)
    if args.action not in ("create", "list", "stats") and not args.task_id:
        print(json.dumps({"success": False, "error": f"--task-id required for {args.action}"}))
        sys.exit(1)

    if args.action == "create":
        if not args.title:
            print(json.dumps({"success": False, "error": "--title required for create"}))
            sys.exit(1)
        result = create_task(
            user_id=args.user,
            title=args.title,
            notes=args.notes,
            category=args.category,
            task_type=args.task_type,
            star_rating=args.stars,
            estimated_minutes=args.minutes,
            scheduled_time=scheduled,
            list_id=args.list_id,
            recurring_type=args.recurring,
        )

    elif args.action == "list":
        result = list_tasks(
            user_id=args.user,
            filter=args.filter,
            sort=args.sort,
            search=args.search,
            list_id=args.list_id,
            category=args.category,
            limit=args.limit,
            offset=args.offset,
        )

    elif args.action == "get":
        result = get_task(args.task_id, include_derived=True)

    elif args.action == "update":
        fields = {
            "title": args.title,
            "notes": args.notes,
            "category": args.category,
            "task_type": args.task_type,
            "star_rating": args.stars,
            "estimated_minutes": args.minutes,
            "scheduled_time": scheduled,
            "list_id": args.list_id,
            "recurring_type": args.recurring,
        }
        result = update_task(args.task_id, **{k: v for k, v in fields.items() if v is not None})

    elif args.action == "complete":
        result = complete_task(args.task_id)

    elif args.action == "uncomplete":
        result = uncomplete_task(args.task_id)

    elif args.action == "delete":
        result = delete_task(args.task_id)

    elif args.action == "duplicate":
        result = duplicate_task(args.task_id)

    elif args.action == "snooze":
        result = snooze_task(args.task_id)

    elif args.action == "reschedule":
        if not scheduled:
            print(json.dumps({"success": False, "error": "--at required for reschedule"}))
            sys.exit(1)
        result = reschedule_task(args.task_id, scheduled)

    elif args.action == "stats":
        result = get_task_stats(args.user)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
