"""
Tool: Template Manager
Purpose: Create, share, rate and apply task templates

A template is a titled list of task blueprints (title, notes, star
rating, estimated minutes). Applying it creates real tasks scheduled
on a chosen day, each tagged with the template it came from.

Usage:
    python -m veloce.templates.manager --action create --user alice --title "Weekly review" --tasks '[{"title": "Clear inbox"}]'
    python -m veloce.templates.manager --action list --user alice --sort popular
    python -m veloce.templates.manager --action apply --template-id abc123 --user alice --date 2026-03-16
    python -m veloce.templates.manager --action rate --template-id abc123 --user bob --rating 5
    python -m veloce.templates.manager --action from-tasks --user alice --title "Morning" --task-ids a1,b2

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
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from veloce.config_models import load_config
from veloce.logging_config import get_logger
from veloce.tasks import STAR_RATINGS
from veloce.tasks import manager as task_manager

from . import (
    CATEGORIES,
    DB_PATH,
    DEFAULT_TASK_MINUTES,
    DEFAULT_TASK_STARS,
    RATING_RANGE,
    TEMPLATE_SORTS,
)

logger = get_logger(__name__)

SORT_CLAUSES = {
    "popular": "use_count DESC, rating_avg DESC",
    "recent": "created_at DESC",
    "rating": "rating_avg DESC, rating_count DESC",
}


def get_connection() -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS templates (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            title TEXT NOT NULL,
            description TEXT,
            category TEXT DEFAULT 'other',
            icon TEXT,
            tasks TEXT NOT NULL,
            is_public INTEGER DEFAULT 0,
            use_count INTEGER DEFAULT 0,
            rating_avg REAL DEFAULT 0,
            rating_count INTEGER DEFAULT 0,
            last_used_at DATETIME,
            created_at DATETIME,
            updated_at DATETIME
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS template_ratings (
            template_id TEXT NOT NULL,
            user_id TEXT NOT NULL,
            rating INTEGER NOT NULL CHECK(rating BETWEEN 1 AND 5),
            review TEXT,
            created_at DATETIME,
            PRIMARY KEY (template_id, user_id),
            FOREIGN KEY(template_id) REFERENCES templates(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_templates_user ON templates(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_templates_public ON templates(is_public)")

    conn.commit()
    return conn


def generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


def row_to_template(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    template = dict(row)
    template["tasks"] = json.loads(template["tasks"])
    template["is_public"] = bool(template["is_public"])
    template["task_count"] = len(template["tasks"])
    template["total_minutes"] = sum(task["estimated_minutes"] for task in template["tasks"])
    return template


def normalize_template_tasks(tasks: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Validate and fill defaults for task blueprints.

    Raises:
        ValueError: If the list is empty or a task is invalid
    """
    if not tasks:
        raise ValueError("A template needs at least one task")
    if not isinstance(tasks, list):
        raise ValueError("Template tasks must be a list")

    normalized = []
    for index, task in enumerate(tasks, start=1):
        if not isinstance(task, dict):
            raise ValueError(f"Task {index} must be an object with a title")

        title = task.get("title")
        title = title.strip() if isinstance(title, str) else ""
        if not title:
            raise ValueError(f"Task {index} needs a title")

        star_rating = task.get("star_rating") or DEFAULT_TASK_STARS
        if star_rating not in STAR_RATINGS:
            raise ValueError(f"Task {index} has an invalid star rating")

        try:
            minutes = int(task.get("estimated_minutes") or DEFAULT_TASK_MINUTES)
        except (TypeError, ValueError):
            raise ValueError(f"Task {index} has invalid minutes") from None
        if minutes < 0:
            raise ValueError(f"Task {index} has negative minutes")

        normalized.append({
            "title": title,
            "notes": task.get("notes"),
            "star_rating": star_rating,
            "estimated_minutes": minutes,
        })

    return normalized


# =============================================================================
# Template CRUD
# =============================================================================


def create_template(
    user_id: str,
    title: str,
    tasks: List[Dict[str, Any]],
    description: Optional[str] = None,
    category: str = "other",
    icon: Optional[str] = None,
    is_public: bool = False,
) -> Dict[str, Any]:
    """
    Create a template.

    Args:
        user_id: Owner
        title: Template name
        tasks: Task blueprints (title required; notes, star_rating, estimated_minutes)
        description: What it's for
        category: One of CATEGORIES
        icon: Icon name
        is_public: Visible to other users

    Returns:
        dict with the new template
    """
    if not title or not title.strip():
        return {"success": False, "error": "Title cannot be empty"}
    if category not in CATEGORIES:
        return {"success": False, "error": f"Invalid category. Must be one of: {CATEGORIES}"}

    try:
        normalized = normalize_template_tasks(tasks)
    except ValueError as e:
        return {"success": False, "error": str(e)}

    template_id = generate_id()
    now = _now()

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO templates (
            id, user_id, title, description, category, icon, tasks, is_public, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        template_id, user_id, title.strip(), description, category, icon,
        json.dumps(normalized), 1 if is_public else 0, now, now,
    ))
    conn.commit()
    conn.close()

    return get_template(template_id)


def get_template(template_id: str) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM templates WHERE id = ?", (template_id,))
    template = row_to_template(cursor.fetchone())
    conn.close()

    if not template:
        return {"success": False, "error": f"Template not found: {template_id}"}

    return {"success": True, "data": template}


def list_templates(
    user_id: str,
    category: Optional[str] = None,
    search: Optional[str] = None,
    include_public: bool = True,
    sort: str = "popular",
    limit: int = 50,
) -> Dict[str, Any]:
    """
    List the user's templates, plus public ones from others.

    Args:
        user_id: Viewer
        category: Only this category
        search: Substring of title or description
        include_public: Include other users' public templates
        sort: popular, recent or rating
        limit: Maximum results

    Returns:
        dict with templates and total
    """
    if sort not in TEMPLATE_SORTS:
        return {"success": False, "error": f"Invalid sort. Must be one of: {TEMPLATE_SORTS}"}

    conditions = ["(user_id = ? OR is_public = 1)" if include_public else "user_id = ?"]
    params: List[Any] = [user_id]

    if category:
        conditions.append("category = ?")
        params.append(category)

    if search:
        conditions.append("(title LIKE ? OR description LIKE ?)")
        params.extend([f"%{search}%", f"%{search}%"])

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(f"""
        SELECT * FROM templates
        WHERE {' AND '.join(conditions)}
        ORDER BY {SORT_CLAUSES[sort]}
        LIMIT ?
    """, params + [limit])
    templates = [row_to_template(row) for row in cursor.fetchall()]
    conn.close()

    return {"success": True, "data": {"templates": templates, "total": len(templates)}}


def _owned(template_id: str, user_id: str) -> Dict[str, Any]:
    result = get_template(template_id)
    if result["success"] and result["data"]["user_id"] != user_id:
        return {"success": False, "error": "Only the owner can change this template"}
    return result


def update_template(
    template_id: str,
    user_id: str,
    title: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    icon: Optional[str] = None,
    is_public: Optional[bool] = None,
    tasks: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Update a template (owner only)."""
    result = _owned(template_id, user_id)
    if not result["success"]:
        return result

    if title is not None and not title.strip():
        return {"success": False, "error": "Title cannot be empty"}
    if category is not None and category not in CATEGORIES:
        return {"success": False, "error": f"Invalid category. Must be one of: {CATEGORIES}"}

    updates = []
    params: List[Any] = []

    for field, value in (("title", title), ("description", description), ("category", category), ("icon", icon)):
        if value is not None:
            updates.append(f"{field} = ?")
            params.append(value.strip() if field == "title" else value)

    if is_public is not None:
        updates.append("is_public = ?")
        params.append(1 if is_public else 0)

    if tasks is not None:
        try:
            updates.append("tasks = ?")
            params.append(json.dumps(normalize_template_tasks(tasks)))
        except ValueError as e:
            return {"success": False, "error": str(e)}

    if not updates:
        return {"success": False, "error": "No fields to update"}

    updates.append("updated_at = ?")
    params.append(_now())
    params.append(template_id)

    conn = get_connection()
    conn.execute(f"UPDATE templates SET {', '.join(updates)} WHERE id = ?", params)
    conn.commit()
    conn.close()

    return get_template(template_id)


def delete_template(template_id: str, user_id: str) -> Dict[str, Any]:
    """Delete a template (owner only). Tasks created from it stay."""
    result = _owned(template_id, user_id)
    if not result["success"]:
        return result

    conn = get_connection()
    conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
    conn.commit()
    conn.close()

    return {"success": True, "message": f"Template {template_id} deleted"}


# =============================================================================
# Apply / rate / build
# =============================================================================


def apply_template(template_id: str, user_id: str, due_date: Optional[date] = None) -> Dict[str, Any]:
    """
    Create tasks from a template, scheduled on the due date.

    Tasks land at the configured morning hour of the due date (today by
    default). If any task fails, the ones already created are removed.

    Args:
        template_id: Template to apply
        user_id: User receiving the tasks
        due_date: Day to schedule the tasks on

    Returns:
        dict with created task IDs
    """
    result = get_template(template_id)
    if not result["success"]:
        return result
    template = result["data"]

    if template["user_id"] != user_id and not template["is_public"]:
        return {"success": False, "error": "Template is private"}

    due_date = due_date or date.today()
    scheduled = datetime.combine(due_date, time(hour=load_config().tasks.snooze_hour))

    created: List[str] = []
    try:
        for blueprint in template["tasks"]:
            task_result = task_manager.create_task(
                user_id=user_id,
                title=blueprint["title"],
                notes=blueprint.get("notes"),
                star_rating=blueprint["star_rating"],
                estimated_minutes=blueprint["estimated_minutes"],
                scheduled_time=scheduled,
                template_id=template_id,
            )
            if not task_result["success"]:
                raise ValueError(task_result["error"])
            created.append(task_result["data"]["task_id"])
    except (sqlite3.Error, ValueError) as e:
        for task_id in created:
            task_manager.delete_task(task_id)
        logger.error("template_apply_failed", template_id=template_id, error=str(e))
        return {"success": False, "error": f"Failed to apply template: {e}"}

    conn = get_connection()
    conn.execute(
        "UPDATE templates SET use_count = use_count + 1, last_used_at = ? WHERE id = ?",
        (_now(), template_id),
    )
    conn.commit()
    conn.close()

    logger.info("template_applied", template_id=template_id, user_id=user_id, tasks=len(created))

    return {
        "success": True,
        "data": {"task_ids": created, "count": len(created), "scheduled_time": scheduled.isoformat()},
        "message": f"Created {len(created)} tasks from {template['title']}",
    }


def rate_template(template_id: str, user_id: str, rating: int, review: Optional[str] = None) -> Dict[str, Any]:
    """
    Rate a template 1-5. Rating again replaces the earlier rating.

    Returns:
        dict with the new average and count
    """
    low, high = RATING_RANGE
    if not low <= rating <= high:
        return {"success": False, "error": f"Rating must be between {low} and {high}"}

    result = get_template(template_id)
    if not result["success"]:
        return result

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO template_ratings (template_id, user_id, rating, review, created_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(template_id, user_id) DO UPDATE SET rating = excluded.rating, review = excluded.review
    """, (template_id, user_id, rating, review, _now()))

    cursor.execute("""
        SELECT AVG(rating) AS average, COUNT(*) AS count
        FROM template_ratings WHERE template_id = ?
    """, (template_id,))
    row = cursor.fetchone()
    average = round(row["average"], 2)

    cursor.execute(
        "UPDATE templates SET rating_avg = ?, rating_count = ? WHERE id = ?",
        (average, row["count"], template_id),
    )
    conn.commit()
    conn.close()

    return {"success": True, "data": {"rating_avg": average, "rating_count": row["count"]}}


def create_from_tasks(
    user_id: str,
    title: str,
    task_ids: List[str],
    description: Optional[str] = None,
    category: str = "other",
    is_public: bool = False,
) -> Dict[str, Any]:
    """Build a template from existing tasks the user owns."""
    blueprints = []
    for task_id in task_ids:
        result = task_manager.get_task(task_id)
        if not result["success"]:
            return result
        task = result["data"]
        if task["user_id"] != user_id:
            return {"success": False, "error": f"Task {task_id} belongs to another user"}
        blueprints.append({
            "title": task["title"],
            "notes": task["notes"],
            "star_rating": task["star_rating"],
            "estimated_minutes": task["estimated_minutes"],
        })

    return create_template(
        user_id,
        title,
        blueprints,
        description=description,
        category=category,
        is_public=is_public,
    )


def main():
    parser = argparse.ArgumentParser(description="Template Manager - reusable task bundles")
    parser.add_argument(
        "--action",
        required=True,
        choices=["create", "get", "list", "update", "delete", "apply", "rate", "from-tasks"],
        help="Action to perform",
    )
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--template-id", help="Template ID")
    parser.add_argument("--title", help="Template title")
    parser.add_argument("--description", help="Description")
    parser.add_argument("--category", choices=CATEGORIES, help="Category")
    parser.add_argument("--tasks", help="JSON list of task blueprints")
    parser.add_argument("--task-ids", help="Comma-separated task IDs (from-tasks)")
    parser.add_argument("--public", action="store_true", help="Share publicly")
    parser.add_argument("--sort", default="popular", choices=TEMPLATE_SORTS, help="List sort")
    parser.add_argument("--search", help="Search text")
    parser.add_argument("--date", help="Due date for apply (YYYY-MM-DD)")
    parser.add_argument("--rating", type=int, help="Rating 1-5")
    parser.add_argument("--review", help="Review text")

    args = parser.parse_args()
    result = None

    if args.action != "get" and not args.user:
        print(json.dumps({"success": False, "error": f"--user required for {args.action}"}))
        sys.exit(1)
    if args.action in ("get", "update", "delete", "apply", "rate") and not args.template_id:
        print(json.dumps({"success": False, "error": f"--template-id required for {args.action}"}))
        sys.exit(1)

    if args.action == "create":
        result = create_template(
            args.user,
            args.title or "",
            json.loads(args.tasks) if args.tasks else [],
            description=args.description,
            category=args.category or "other",
            is_public=args.public,
        )
    elif args.action == "get":
        result = get_template(args.template_id)
    elif args.action == "list":
        result = list_templates(args.user, category=args.category, search=args.search, sort=args.sort)
    elif args.action == "update":
        result = update_template(
            args.template_id,
            args.user,
            title=args.title,
            description=args.description,
            category=args.category,
            tasks=json.loads(args.tasks) if args.tasks else None,
        )
    elif args.action == "delete":
        result = delete_template(args.template_id, args.user)
    elif args.action == "apply":
        result = apply_template(
            args.template_id,
            args.user,
            due_date=date.fromisoformat(args.date) if args.date else None,
        )
    elif args.action == "rate":
        if args.rating is None:
            print(json.dumps({"success": False, "error": "--rating required for rate"}))
            sys.exit(1)
        result = rate_template(args.template_id, args.user, args.rating, args.review)
    elif args.action == "from-tasks":
        result = create_from_tasks(
            args.user,
            args.title or "",
            [task_id.strip() for task_id in (args.task_ids or "").split(",") if task_id.strip()],
            description=args.description,
            category=args.category or "other",
            is_public=args.public,
        )

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
