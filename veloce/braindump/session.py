"""
Tool: Brain Dump Sessions
Purpose: Persist brain dumps, let the user pick extracted tasks, add them

Lifecycle:
    input -> processing -> results -> added
                       \\-> error

Every extracted task starts selected; the user deselects what they
don't want and adds the rest to their task list in one go.

Usage:
    python -m veloce.braindump.session --action process --user alice --text "call mom, pay rent asap"
    python -m veloce.braindump.session --action get --dump-id abc123
    python -m veloce.braindump.session --action toggle --extracted-id def456
    python -m veloce.braindump.session --action add --dump-id abc123
    python -m veloce.braindump.session --action list --user alice

Dependencies:
    - sqlite3 (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import re
import sqlite3
import sys
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from veloce.config_models import load_config
from veloce.gamification import engine as gamification
from veloce.logging_config import get_logger
from veloce.tasks import PRIORITY_TO_STARS
from veloce.tasks import manager as task_manager

from . import BRAIN_DUMP_MASTER_TARGET, DB_PATH
from .extractor import WEEKDAYS, extract_tasks

logger = get_logger(__name__)


def get_connection() -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")

    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS brain_dumps (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            raw_text TEXT NOT NULL,
            state TEXT DEFAULT 'input'
                CHECK(state IN ('input', 'processing', 'results', 'error', 'added')),
            overall_mood TEXT,
            gentle_observation TEXT,
            detected_themes TEXT,
            source TEXT,
            error TEXT,
            created_at DATETIME,
            processed_at DATETIME,
            added_at DATETIME
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS extracted_tasks (
            id TEXT PRIMARY KEY,
            dump_id TEXT NOT NULL,
            position INTEGER NOT NULL,
            title TEXT NOT NULL,
            estimated_minutes INTEGER,
            priority TEXT DEFAULT 'medium',
            category TEXT,
            suggestion TEXT,
            related_person TEXT,
            due_context TEXT,
            is_selected INTEGER DEFAULT 1,
            task_id TEXT,
            FOREIGN KEY(dump_id) REFERENCES brain_dumps(id) ON DELETE CASCADE
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_dumps_user ON brain_dumps(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_extracted_dump ON extracted_tasks(dump_id)")

    conn.commit()
    return conn


def generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


def _dump_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    dump = dict(row)
    dump["detected_themes"] = json.loads(dump["detected_themes"]) if dump.get("detected_themes") else []
    return dump


def _extracted_from_row(row: sqlite3.Row) -> Dict[str, Any]:
    item = dict(row)
    item["is_selected"] = bool(item["is_selected"])
    return item


def format_minutes(minutes: int) -> str:
    """45 -> "45m", 120 -> "2h", 90 -> "1h 30m"."""
    if minutes < 60:
        return f"{minutes}m"
    hours, remaining = divmod(minutes, 60)
    return f"{hours}h" if remaining == 0 else f"{hours}h {remaining}m"


def parse_due_context(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Turn a due context like "tomorrow" or "Friday" into a time.

    Weekdays resolve to the next such day (never today) at the snooze
    hour. Unrecognized text returns None.
    """
    if not text:
        return None

    now = now or datetime.now()
    lower = text.lower()

    def has(word: str) -> bool:
        return re.search(rf"\b{word}\b", lower) is not None

    if has("today"):
        return now
    if has("tomorrow"):
        return now + timedelta(days=1)

    for index, weekday in enumerate(WEEKDAYS):
        if has(weekday):
            days_ahead = (index - now.weekday()) % 7 or 7
            hour = load_config().tasks.snooze_hour
            return (now + timedelta(days=days_ahead)).replace(hour=hour, minute=0, second=0, microsecond=0)

    if has("this week"):
        return now + timedelta(days=3)
    if has("next week"):
        return now + timedelta(days=7)
    if has("soon"):
        return now + timedelta(days=2)

    return None


# =============================================================================
# Processing
# =============================================================================


def process_brain_dump(user_id: str, text: str, use_llm: Optional[bool] = None) -> Dict[str, Any]:
    """
    Store a brain dump and extract tasks from it.

    Args:
        user_id: Author
        text: The brain dump
        use_llm: Try the LLM first (defaults to config)

    Returns:
        dict with the dump, its extracted tasks and any achievements unlocked
    """
    text = (text or "").strip()
    if not text:
        return {"success": False, "error": "Brain dump is empty"}

    dump_id = generate_id()

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO brain_dumps (id, user_id, raw_text, state, created_at)
        VALUES (?, ?, ?, 'processing', ?)
    """, (dump_id, user_id, text, _now()))
    conn.commit()

    result = {"success": False, "error": "Extraction did not finish"}
    try:
        result = extract_tasks(text, use_llm=use_llm)
    except Exception as e:
        logger.exception("brain_dump_extraction_crashed", dump_id=dump_id)
        result = {"success": False, "error": f"Extraction failed: {e}"}
    finally:
        if not result["success"]:
            cursor.execute(
                "UPDATE brain_dumps SET state = 'error', error = ?, processed_at = ? WHERE id = ?",
                (result["error"], _now(), dump_id),
            )
            conn.commit()
            conn.close()

    if not result["success"]:
        logger.warning("brain_dump_failed", dump_id=dump_id, error=result["error"])
        return {"success": False, "error": f"Failed to process: {result['error']}", "dump_id": dump_id}

    data = result["data"]

    try:
        cursor.executemany("""
            INSERT INTO extracted_tasks (
                id, dump_id, position, title, estimated_minutes, priority, category,
                suggestion, related_person, due_context, is_selected
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
        """, [
            (
                generate_id(), dump_id, position, task["title"], task["estimated_minutes"],
                task["priority"], task["category"], task["suggestion"], task["related_person"],
                task["due_context"],
            )
            for position, task in enumerate(data["tasks"])
        ])

        cursor.execute("""
            UPDATE brain_dumps
            SET state = 'results', overall_mood = ?, gentle_observation = ?,
                detected_themes = ?, source = ?, processed_at = ?
            WHERE id = ?
        """, (
            data["overall_mood"], data["gentle_observation"], json.dumps(data["detected_themes"]),
            data["source"], _now(), dump_id,
        ))
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        cursor.execute(
            "UPDATE brain_dumps SET state = 'error', error = ? WHERE id = ?",
            (str(e), dump_id),
        )
        conn.commit()
        conn.close()
        logger.error("brain_dump_store_failed", dump_id=dump_id, error=str(e))
        return {"success": False, "error": f"Failed to store extracted tasks: {e}", "dump_id": dump_id}

    conn.close()

    unlocked = []
    if count_processed_dumps(user_id) >= BRAIN_DUMP_MASTER_TARGET:
        if gamification.unlock_achievement(user_id, "brain_dump_master")["data"]["unlocked"]:
            unlocked.append("brain_dump_master")

    logger.info("brain_dump_processed", dump_id=dump_id, tasks=len(data["tasks"]), source=data["source"])

    dump = get_brain_dump(dump_id)
    dump["unlocked"] = unlocked
    return dump


def count_processed_dumps(user_id: str) -> int:
    """Dumps that reached results (or were added since)."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT COUNT(*) as count FROM brain_dumps
        WHERE user_id = ? AND state IN ('results', 'added')
    """, (user_id,))
    count = cursor.fetchone()["count"]
    conn.close()
    return count


def get_brain_dump(dump_id: str) -> Dict[str, Any]:
    """Get a dump with its extracted tasks."""
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT * FROM brain_dumps WHERE id = ?", (dump_id,))
    row = cursor.fetchone()
    if not row:
        conn.close()
        return {"success": False, "error": f"Brain dump not found: {dump_id}"}

    dump = _dump_from_row(row)

    cursor.execute("SELECT * FROM extracted_tasks WHERE dump_id = ? ORDER BY position", (dump_id,))
    dump["tasks"] = [_extracted_from_row(r) for r in cursor.fetchall()]

    conn.close()

    return {"success": True, "data": dump}


def list_brain_dumps(user_id: str, state: Optional[str] = None, limit: int = 20) -> Dict[str, Any]:
    """List a user's dumps, newest first, with task counts."""
    conn = get_connection()
    cursor = conn.cursor()

    query = """
        SELECT d.*, COUNT(e.id) AS task_count
        FROM brain_dumps d
        LEFT JOIN extracted_tasks e ON e.dump_id = d.id
        WHERE d.user_id = ?
    """
    params: List[Any] = [user_id]
    if state:
        query += " AND d.state = ?"
        params.append(state)
    query += " GROUP BY d.id ORDER BY d.created_at DESC, d.rowid DESC LIMIT ?"
    params.append(limit)

    cursor.execute(query, params)
    dumps = [_dump_from_row(row) for row in cursor.fetchall()]
    conn.close()

    return {"success": True, "data": {"dumps": dumps, "total": len(dumps)}}


# =============================================================================
# Selection
# =============================================================================


def _editable_dump(cursor: sqlite3.Cursor, dump_id: str) -> Optional[str]:
    """Return an error message if the dump's selection can't change."""
    cursor.execute("SELECT state FROM brain_dumps WHERE id = ?", (dump_id,))
    row = cursor.fetchone()
    if not row:
        return f"Brain dump not found: {dump_id}"
    if row["state"] != "results":
        return f"Brain dump is not awaiting selection (state: {row['state']})"
    return None


def toggle_task_selection(extracted_id: str) -> Dict[str, Any]:
    """Flip whether an extracted task will be added."""
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("SELECT dump_id FROM extracted_tasks WHERE id = ?", (extracted_id,))
    row = cursor.fetchone()
    if not row:
        conn.close()
        return {"success": False, "error": f"Extracted task not found: {extracted_id}"}

    error = _editable_dump(cursor, row["dump_id"])
    if error:
        conn.close()
        return {"success": False, "error": error}

    cursor.execute("UPDATE extracted_tasks SET is_selected = 1 - is_selected WHERE id = ?", (extracted_id,))
    conn.commit()

    cursor.execute("SELECT * FROM extracted_tasks WHERE id = ?", (extracted_id,))
    item = _extracted_from_row(cursor.fetchone())
    conn.close()

    return {"success": True, "data": item}


def _set_all(dump_id: str, selected: bool) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()

    error = _editable_dump(cursor, dump_id)
    if error:
        conn.close()
        return {"success": False, "error": error}

    cursor.execute("UPDATE extracted_tasks SET is_selected = ? WHERE dump_id = ?", (1 if selected else 0, dump_id))
    conn.commit()
    conn.close()

    return summarize_selection(dump_id)


def select_all(dump_id: str) -> Dict[str, Any]:
    return _set_all(dump_id, True)


def deselect_all(dump_id: str) -> Dict[str, Any]:
    return _set_all(dump_id, False)


def summarize_selection(dump_id: str) -> Dict[str, Any]:
    """Selected count and total estimated time."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT COUNT(*) AS selected, COALESCE(SUM(estimated_minutes), 0) AS minutes
        FROM extracted_tasks WHERE dump_id = ? AND is_selected = 1
    """, (dump_id,))
    row = cursor.fetchone()
    conn.close()

    return {
        "success": True,
        "data": {
            "selected_count": row["selected"],
            "total_minutes": row["minutes"],
            "formatted_time": format_minutes(row["minutes"]),
        },
    }


def add_selected_to_tasks(dump_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Create a task for every selected extracted task.

    A dump can only be added once. If a task fails to save, the tasks
    already created for this dump are removed again.

    Args:
        dump_id: Dump whose selection to add
        now: Reference time for due contexts

    Returns:
        dict with the number of tasks added and their IDs
    """
    result = get_brain_dump(dump_id)
    if not result["success"]:
        return result
    dump = result["data"]

    if dump["state"] == "added":
        return {"success": False, "error": "Tasks from this brain dump were already added"}
    if dump["state"] != "results":
        return {"success": False, "error": f"Brain dump has no results to add (state: {dump['state']})"}

    selected = [item for item in dump["tasks"] if item["is_selected"]]
    created: List[tuple] = []

    try:
        for item in selected:
            task_result = task_manager.create_task(
                user_id=dump["user_id"],
                title=item["title"],
                notes=item["suggestion"],
                category=item["category"],
                star_rating=PRIORITY_TO_STARS.get(item["priority"], 2),
                estimated_minutes=item["estimated_minutes"],
                scheduled_time=parse_due_context(item["due_context"], now),
            )
            if not task_result["success"]:
                raise ValueError(task_result["error"])
            created.append((item["id"], task_result["data"]["task_id"]))
    except (sqlite3.Error, ValueError) as e:
        for _, task_id in created:
            task_manager.delete_task(task_id)
        logger.error("brain_dump_add_failed", dump_id=dump_id, error=str(e))
        return {"success": False, "error": f"Failed to add tasks: {e}"}

    conn = get_connection()
    cursor = conn.cursor()
    cursor.executemany(
        "UPDATE extracted_tasks SET task_id = ? WHERE id = ?",
        [(task_id, extracted_id) for extracted_id, task_id in created],
    )
    cursor.execute("UPDATE brain_dumps SET state = 'added', added_at = ? WHERE id = ?", (_now(), dump_id))
    conn.commit()
    conn.close()

    return {
        "success": True,
        "data": {"added": len(created), "task_ids": [task_id for _, task_id in created]},
        "message": f"Added {len(created)} tasks",
    }


def delete_brain_dump(dump_id: str) -> Dict[str, Any]:
    """Delete a dump and its extracted tasks. Tasks already added stay."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM brain_dumps WHERE id = ?", (dump_id,))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Brain dump not found: {dump_id}"}

    conn.commit()
    conn.close()

    return {"success": True, "message": f"Brain dump {dump_id} deleted"}


def main():
    parser = argparse.ArgumentParser(description="Brain Dump Sessions - process, select, add")
    parser.add_argument(
        "--action",
        required=True,
        choices=["process", "get", "list", "toggle", "select-all", "deselect-all", "summary", "add", "delete"],
        help="Action to perform",
    )
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--text", help="Brain dump text")
    parser.add_argument("--dump-id", help="Brain dump ID")
    parser.add_argument("--extracted-id", help="Extracted task ID")
    parser.add_argument("--no-llm", action="store_true", help="Use rule-based extraction only")

    args = parser.parse_args()
    result = None

    if args.action == "process":
        if not args.user or not args.text:
            print(json.dumps({"success": False, "error": "--user and --text required for process"}))
            sys.exit(1)
        result = process_brain_dump(args.user, args.text, use_llm=False if args.no_llm else None)

    elif args.action == "list":
        if not args.user:
            print(json.dumps({"success": False, "error": "--user required for list"}))
            sys.exit(1)
        result = list_brain_dumps(args.user)

    elif args.action == "toggle":
        if not args.extracted_id:
            print(json.dumps({"success": False, "error": "--extracted-id required for toggle"}))
            sys.exit(1)
        result = toggle_task_selection(args.extracted_id)

    else:
        if not args.dump_id:
            print(json.dumps({"success": False, "error": f"--dump-id required for {args.action}"}))
            sys.exit(1)
        actions = {
            "get": get_brain_dump,
            "select-all": select_all,
            "deselect-all": deselect_all,
            "summary": summarize_selection,
            "add": add_selected_to_tasks,
            "delete": delete_brain_dump,
        }
        result = actions[args.action](args.dump_id)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
