"""
Tool: Task Recurrence
Purpose: Compute the next occurrence of a recurring task and spawn it

Rules (from the completion date):
    daily     +1 day
    weekdays  +1 day, skipping Saturday and Sunday
    weekly    +7 days
    biweekly  +14 days
    monthly   +1 month, clamped to the last day of the month
    custom    next listed weekday (0 = Sunday) within the coming week

The new instance keeps the time of day of the original schedule.

Usage:
    python -m veloce.tasks.recurrence --task-id abc123 --preview
    python -m veloce.tasks.recurrence --task-id abc123

Dependencies:
    - calendar (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import calendar
import json
import sys
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from veloce.logging_config import get_logger

from .manager import create_task, get_connection, get_task, parse_timestamp, timestamp

logger = get_logger(__name__)


def sunday_index(dt: datetime) -> int:
    """Weekday with 0 = Sunday .. 6 = Saturday."""
    return (dt.weekday() + 1) % 7


def add_month(dt: datetime) -> datetime:
    year = dt.year + dt.month // 12
    month = dt.month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def next_occurrence(task: Dict[str, Any], from_time: Optional[datetime] = None) -> Optional[datetime]:
    """
    Compute when the next instance of a recurring task is due.

    Args:
        task: Task record with recurring_type / recurring_days
        from_time: Reference time (defaults to completed_at, then now)

    Returns:
        datetime of the next occurrence, or None if the task does not recur
    """
    recurring_type = task.get("recurring_type")
    if not recurring_type or recurring_type == "once":
        return None

    base = from_time or parse_timestamp(task.get("completed_at")) or datetime.now()

    scheduled = parse_timestamp(task.get("scheduled_time"))
    if scheduled:
        base = base.replace(hour=scheduled.hour, minute=scheduled.minute, second=0, microsecond=0)

    if recurring_type == "daily":
        return base + timedelta(days=1)

    if recurring_type == "weekdays":
        candidate = base + timedelta(days=1)
        while candidate.weekday() >= 5:
            candidate += timedelta(days=1)
        return candidate

    if recurring_type == "weekly":
        return base + timedelta(days=7)

    if recurring_type == "biweekly":
        return base + timedelta(days=14)

    if recurring_type == "monthly":
        return add_month(base)

    if recurring_type == "custom":
        days = task.get("recurring_days") or []
        for offset in range(1, 8):
            candidate = base + timedelta(days=offset)
            if sunday_index(candidate) in days:
                return candidate
        return None

    return None


def create_recurring_instance(task_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Spawn the next instance of a recurring task.

    The instance links to the root of the series and the source task is
    stamped with last_recurrence_date.

    Args:
        task_id: The (usually just completed) recurring task
        now: Reference time when the task has no completed_at

    Returns:
        dict with the new task, or an error when the series has ended
    """
    result = get_task(task_id)
    if not result["success"]:
        return result
    task = result["data"]

    next_time = next_occurrence(task, from_time=now)
    if next_time is None:
        return {"success": False, "error": f"Task does not recur: {task_id}"}

    end_date = parse_timestamp(task.get("recurring_end_date"))
    if end_date and next_time > end_date:
        logger.info("recurrence_ended", task_id=task_id, end_date=task["recurring_end_date"])
        return {"success": False, "error": "Recurring series has ended"}

    created = create_task(
        user_id=task["user_id"],
        title=task["title"],
        notes=task["notes"],
        category=task["category"],
        task_type=task["task_type"],
        star_rating=task["star_rating"],
        estimated_minutes=task["estimated_minutes"],
        scheduled_time=next_time,
        duration_minutes=task["duration_minutes"],
        list_id=task["list_id"],
        recurring_type=task["recurring_type"],
        recurring_days=task["recurring_days"],
        recurring_end_date=end_date,
        recurring_parent_id=task["recurring_parent_id"] or task["id"],
        enable_app_blocking=task["enable_app_blocking"],
        template_id=task["template_id"],
    )
    if not created["success"]:
        return created

    conn = get_connection()
    conn.execute(
        "UPDATE tasks SET last_recurrence_date = ? WHERE id = ?",
        (timestamp(next_time), task_id),
    )
    conn.commit()
    conn.close()

    logger.info("recurring_instance_created", task_id=task_id, next_task_id=created["data"]["task_id"])
    return {"success": True, "data": created["data"]["task"]}


def main():
    parser = argparse.ArgumentParser(description="Task Recurrence - spawn recurring instances")
    parser.add_argument("--task-id", required=True, help="Recurring task ID")
    parser.add_argument("--preview", action="store_true", help="Only show the next occurrence")

    args = parser.parse_args()

    if args.preview:
        result = get_task(args.task_id)
        if result["success"]:
            next_time = next_occurrence(result["data"])
            result = {"success": True, "data": {"next_occurrence": next_time.isoformat() if next_time else None}}
    else:
        result = create_recurring_instance(args.task_id)

    print(json.dumps(result, indent=2, default=str))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
