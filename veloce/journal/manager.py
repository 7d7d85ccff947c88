"""
Tool: Journal Manager
Purpose: Day-bound journal entries (brain dump, reminder, gratitude, reflection)

An entry belongs to a day. Opening a day loads its entry of the chosen
type or creates an empty one, so the editor always has a page to write on.

Usage:
    python -m veloce.journal.manager --action load --user alice --date 2026-03-14
    python -m veloce.journal.manager --action save --entry-id abc123 --content "..." --mood good
    python -m veloce.journal.manager --action list --user alice --type gratitude
    python -m veloce.journal.manager --action pin --entry-id abc123
    python -m veloce.journal.manager --action prompts --type reflection

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
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from veloce.config_models import load_config
from veloce.gamification import engine as gamification
from veloce.logging_config import get_logger

from . import DB_PATH, ENTRY_TYPES, MOODS, PROMPT_SUGGESTIONS, REFLECTION_GURU_TARGET

logger = get_logger(__name__)

DayLike = Union[date, str]

JSON_FIELDS = ("gratitude_items", "ai_themes")
BOOLEAN_FIELDS = ("is_pinned", "is_favorite", "is_migrated")


def get_connection() -> sqlite3.Connection:
    """Get database connection, creating tables if needed."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row

    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS journal_entries (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            date TEXT NOT NULL,
            entry_type TEXT NOT NULL,
            mood TEXT,
            title TEXT,
            content TEXT DEFAULT '',
            word_count INTEGER DEFAULT 0,
            gratitude_items TEXT,
            ai_prompt TEXT,
            ai_summary TEXT,
            ai_sentiment REAL,
            ai_themes TEXT,
            is_pinned INTEGER DEFAULT 0,
            is_favorite INTEGER DEFAULT 0,
            is_migrated INTEGER DEFAULT 0,
            created_at DATETIME,
            updated_at DATETIME
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_journal_user_date ON journal_entries(user_id, date)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_journal_type ON journal_entries(entry_type)")

    conn.commit()
    return conn


def row_to_entry(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    entry = dict(row)
    for field in JSON_FIELDS:
        entry[field] = json.loads(entry[field]) if entry.get(field) else []
    for field in BOOLEAN_FIELDS:
        entry[field] = bool(entry[field])
    return entry


def generate_id() -> str:
    """Generate a short unique ID."""
    return uuid.uuid4().hex[:12]


def to_day(value: Optional[DayLike]) -> str:
    """Normalize a date or YYYY-MM-DD string to YYYY-MM-DD."""
    if value is None:
        return date.today().isoformat()
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return date.fromisoformat(value).isoformat()


def count_words(text: Optional[str]) -> int:
    return len(text.split()) if text else 0


def preview(text: Optional[str], length: Optional[int] = None) -> str:
    length = length or load_config().journal.preview_length
    text = (text or "").strip()
    if len(text) > length:
        return text[:length] + "..."
    return text


def _now() -> str:
    return datetime.now().replace(microsecond=0).isoformat()


# =============================================================================
# Entry CRUD
# =============================================================================


def create_entry(
    user_id: str,
    day: Optional[DayLike] = None,
    entry_type: Optional[str] = None,
    content: str = "",
    title: Optional[str] = None,
    mood: Optional[str] = None,
    gratitude_items: Optional[List[str]] = None,
    ai_prompt: Optional[str] = None,
    is_migrated: bool = False,
) -> Dict[str, Any]:
    """
    Create a journal entry for a day.

    Args:
        user_id: Author
        day: Day the entry belongs to (defaults to today)
        entry_type: One of ENTRY_TYPES (defaults to config)
        content: Entry text
        title: Optional title
        mood: One of MOODS
        gratitude_items: List of things the user is grateful for
        ai_prompt: Prompt the entry answers
        is_migrated: True when imported from note lines

    Returns:
        dict with success status and entry data
    """
    entry_type = entry_type or load_config().journal.default_entry_type
    if entry_type not in ENTRY_TYPES:
        return {"success": False, "error": f"Invalid entry type. Must be one of: {ENTRY_TYPES}"}
    if mood and mood not in MOODS:
        return {"success": False, "error": f"Invalid mood. Must be one of: {tuple(MOODS)}"}

    try:
        day_str = to_day(day)
    except ValueError:
        return {"success": False, "error": f"Invalid date: {day}"}

    entry_id = generate_id()
    now = _now()

    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        INSERT INTO journal_entries (
            id, user_id, date, entry_type, mood, title, content, word_count,
            gratitude_items, ai_prompt, is_migrated, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        entry_id, user_id, day_str, entry_type, mood, title, content, count_words(content),
        json.dumps(gratitude_items) if gratitude_items else None, ai_prompt,
        1 if is_migrated else 0, now, now,
    ))

    conn.commit()

    cursor.execute("SELECT * FROM journal_entries WHERE id = ?", (entry_id,))
    entry = row_to_entry(cursor.fetchone())
    conn.close()

    return {"success": True, "data": entry, "message": f"Entry created with ID {entry_id}"}


def get_entry(entry_id: str) -> Dict[str, Any]:
    """Get an entry by ID."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM journal_entries WHERE id = ?", (entry_id,))
    entry = row_to_entry(cursor.fetchone())
    conn.close()

    if not entry:
        return {"success": False, "error": f"Entry not found: {entry_id}"}

    return {"success": True, "data": entry}


def load_entry(user_id: str, day: Optional[DayLike] = None, entry_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the day's entry of a type, creating an empty one if there is none.

    Args:
        user_id: Author
        day: Day to open (defaults to today)
        entry_type: Entry type (defaults to config)

    Returns:
        dict with entry data and whether it was just created
    """
    entry_type = entry_type or load_config().journal.default_entry_type
    if entry_type not in ENTRY_TYPES:
        return {"success": False, "error": f"Invalid entry type. Must be one of: {ENTRY_TYPES}"}

    try:
        day_str = to_day(day)
    except ValueError:
        return {"success": False, "error": f"Invalid date: {day}"}

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT * FROM journal_entries
        WHERE user_id = ? AND date = ? AND entry_type = ?
        ORDER BY updated_at DESC
        LIMIT 1
    """, (user_id, day_str, entry_type))
    entry = row_to_entry(cursor.fetchone())
    conn.close()

    if entry:
        return {"success": True, "data": entry, "created": False}

    result = create_entry(user_id, day=day_str, entry_type=entry_type)
    if result["success"]:
        result["created"] = True
    return result


def save_entry(
    entry_id: str,
    content: Optional[str] = None,
    title: Optional[str] = None,
    mood: Optional[str] = None,
    entry_type: Optional[str] = None,
    ai_summary: Optional[str] = None,
    ai_sentiment: Optional[float] = None,
    ai_themes: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Save changes to an entry. Content changes recount words.

    Returns:
        dict with updated entry and any achievements unlocked
    """
    if mood and mood not in MOODS:
        return {"success": False, "error": f"Invalid mood. Must be one of: {tuple(MOODS)}"}
    if entry_type and entry_type not in ENTRY_TYPES:
        return {"success": False, "error": f"Invalid entry type. Must be one of: {ENTRY_TYPES}"}
    if ai_sentiment is not None and not -1.0 <= ai_sentiment <= 1.0:
        return {"success": False, "error": "Sentiment must be between -1 and 1"}

    updates = []
    params: List[Any] = []

    if content is not None:
        updates.append("content = ?")
        params.append(content)
        updates.append("word_count = ?")
        params.append(count_words(content))

    for field, value in (
        ("title", title),
        ("mood", mood),
        ("entry_type", entry_type),
        ("ai_summary", ai_summary),
        ("ai_sentiment", ai_sentiment),
    ):
        if value is not None:
            updates.append(f"{field} = ?")
            params.append(value)

    if ai_themes is not None:
        updates.append("ai_themes = ?")
        params.append(json.dumps(ai_themes))

    if not updates:
        return {"success": False, "error": "No fields to update"}

    updates.append("updated_at = ?")
    params.append(_now())
    params.append(entry_id)

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(f"UPDATE journal_entries SET {', '.join(updates)} WHERE id = ?", params)

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Entry not found: {entry_id}"}

    conn.commit()
    cursor.execute("SELECT * FROM journal_entries WHERE id = ?", (entry_id,))
    entry = row_to_entry(cursor.fetchone())
    conn.close()

    unlocked = []
    if entry["entry_type"] == "reflection" and entry["word_count"] > 0:
        unlocked = _check_reflection_guru(entry["user_id"])

    return {"success": True, "data": entry, "unlocked": unlocked, "message": "Entry saved"}


def count_reflections(user_id: str) -> int:
    """Reflection entries with something written in them."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT COUNT(*) as count FROM journal_entries
        WHERE user_id = ? AND entry_type = 'reflection' AND word_count > 0
    """, (user_id,))
    count = cursor.fetchone()["count"]
    conn.close()
    return count


def _check_reflection_guru(user_id: str) -> List[str]:
    if count_reflections(user_id) < REFLECTION_GURU_TARGET:
        return []

    result = gamification.unlock_achievement(user_id, "reflection_guru")
    return ["reflection_guru"] if result["data"]["unlocked"] else []


def delete_entry(entry_id: str) -> Dict[str, Any]:
    """Delete an entry."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM journal_entries WHERE id = ?", (entry_id,))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Entry not found: {entry_id}"}

    conn.commit()
    conn.close()

    return {"success": True, "message": f"Entry {entry_id} deleted"}


def set_gratitude_items(entry_id: str, items: List[str]) -> Dict[str, Any]:
    """Replace the gratitude list. Blank items are dropped."""
    cleaned = [item.strip() for item in items if item and item.strip()]

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(
        "UPDATE journal_entries SET gratitude_items = ?, updated_at = ? WHERE id = ?",
        (json.dumps(cleaned), _now(), entry_id),
    )

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Entry not found: {entry_id}"}

    conn.commit()
    conn.close()

    return get_entry(entry_id)


def _toggle(entry_id: str, field: str) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(
        f"UPDATE journal_entries SET {field} = 1 - {field}, updated_at = ? WHERE id = ?",
        (_now(), entry_id),
    )

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Entry not found: {entry_id}"}

    conn.commit()
    conn.close()

    return get_entry(entry_id)


def toggle_pin(entry_id: str) -> Dict[str, Any]:
    return _toggle(entry_id, "is_pinned")


def toggle_favorite(entry_id: str) -> Dict[str, Any]:
    return _toggle(entry_id, "is_favorite")


def list_entries(
    user_id: str,
    entry_type: Optional[str] = None,
    mood: Optional[str] = None,
    search: Optional[str] = None,
    start: Optional[DayLike] = None,
    end: Optional[DayLike] = None,
    favorites_only: bool = False,
    limit: int = 50,
) -> Dict[str, Any]:
    """
    The journal feed: pinned entries first, then newest day first.

    Args:
        user_id: Author
        entry_type: Only this type
        mood: Only this mood
        search: Substring of title or content
        start: First day (inclusive)
        end: Last day (inclusive)
        favorites_only: Only favorites
        limit: Maximum results

    Returns:
        dict with entries (each with a preview) and total
    """
    conditions = ["user_id = ?"]
    params: List[Any] = [user_id]

    if entry_type:
        if entry_type not in ENTRY_TYPES:
            return {"success": False, "error": f"Invalid entry type. Must be one of: {ENTRY_TYPES}"}
        conditions.append("entry_type = ?")
        params.append(entry_type)

    if mood:
        conditions.append("mood = ?")
        params.append(mood)

    if search:
        conditions.append("(title LIKE ? OR content LIKE ?)")
        params.extend([f"%{search}%", f"%{search}%"])

    for bound, operator in ((start, ">="), (end, "<=")):
        if not bound:
            continue
        try:
            params.append(to_day(bound))
        except ValueError:
            return {"success": False, "error": f"Invalid date: {bound}"}
        conditions.append(f"date {operator} ?")

    if favorites_only:
        conditions.append("is_favorite = 1")

    where_clause = " AND ".join(conditions)

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(f"""
        SELECT * FROM journal_entries
        WHERE {where_clause}
        ORDER BY is_pinned DESC, date DESC, updated_at DESC
        LIMIT ?
    """, params + [limit])

    entries = []
    for row in cursor.fetchall():
        entry = row_to_entry(row)
        entry["preview"] = preview(entry["content"])
        entries.append(entry)

    conn.close()

    return {"success": True, "data": {"entries": entries, "total": len(entries)}}


# =============================================================================
# Day navigation
# =============================================================================


def previous_day(day: DayLike) -> str:
    return (date.fromisoformat(to_day(day)) - timedelta(days=1)).isoformat()


def next_day(day: DayLike) -> str:
    return (date.fromisoformat(to_day(day)) + timedelta(days=1)).isoformat()


def daily_prompts(entry_type: Optional[str] = None) -> Dict[str, Any]:
    """Prompt suggestions for one entry type, or all of them."""
    if entry_type is None:
        return {"success": True, "data": PROMPT_SUGGESTIONS}
    if entry_type not in ENTRY_TYPES:
        return {"success": False, "error": f"Invalid entry type. Must be one of: {ENTRY_TYPES}"}
    return {"success": True, "data": {entry_type: PROMPT_SUGGESTIONS[entry_type]}}


# =============================================================================
# Note import
# =============================================================================


def format_note_line(line: Dict[str, Any]) -> str:
    """Render a note line with its checkbox and star prefix."""
    prefix = ""
    if line.get("has_checkbox"):
        prefix = "☑ " if line.get("is_checked") else "☐ "
    stars = line.get("star_rating") or 0
    if stars > 0:
        prefix += "★" * stars + " "
    return prefix + line.get("text", "")


def import_note_lines(user_id: str, day: DayLike, lines: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Combine a day's note lines into one migrated entry. Runs once per day.

    Args:
        user_id: Author
        day: Day the notes belong to
        lines: Dicts with text, has_checkbox, is_checked, star_rating, sort_order

    Returns:
        dict with the new entry, or skipped=True when already imported
    """
    if not lines:
        return {"success": False, "error": "No note lines to import"}

    try:
        day_str = to_day(day)
    except ValueError:
        return {"success": False, "error": f"Invalid date: {day}"}

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(
        "SELECT id FROM journal_entries WHERE user_id = ? AND date = ? AND is_migrated = 1",
        (user_id, day_str),
    )
    existing = cursor.fetchone()
    conn.close()

    if existing:
        return {"success": True, "data": {"entry_id": existing["id"]}, "skipped": True}

    ordered = sorted(lines, key=lambda line: line.get("sort_order", 0))
    content = "\n".join(format_note_line(line) for line in ordered)

    result = create_entry(user_id, day=day_str, content=content, is_migrated=True)
    if result["success"]:
        logger.info("notes_imported", user_id=user_id, date=day_str, lines=len(lines))
        result["skipped"] = False
    return result


def main():
    parser = argparse.ArgumentParser(description="Journal Manager - day-bound journal entries")
    parser.add_argument(
        "--action",
        required=True,
        choices=["load", "create", "get", "save", "delete", "list", "pin", "favorite", "prompts"],
        help="Action to perform",
    )
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--entry-id", help="Entry ID")
    parser.add_argument("--date", help="Day (YYYY-MM-DD)")
    parser.add_argument("--type", dest="entry_type", choices=ENTRY_TYPES, help="Entry type")
    parser.add_argument("--content", help="Entry text")
    parser.add_argument("--title", help="Entry title")
    parser.add_argument("--mood", choices=list(MOODS), help="Mood")
    parser.add_argument("--search", help="Search text")
    parser.add_argument("--limit", type=int, default=50, help="Max results")

    args = parser.parse_args()
    result = None

    if args.action in ("load", "create", "list") and not args.user:
        print(json.dumps({"success": False, "error": f"--user required for {args.action}"}))
        sys.exit(1)
    if args.action in ("get", "save", "delete", "pin", "favorite") and not args.entry_id:
        print(json.dumps({"success": False, "error": f"--entry-id required for {args.action}"}))
        sys.exit(1)

    if args.action == "load":
        result = load_entry(args.user, day=args.date, entry_type=args.entry_type)

    elif args.action == "create":
        result = create_entry(
            args.user,
            day=args.date,
            entry_type=args.entry_type,
            content=args.content or "",
            title=args.title,
            mood=args.mood,
        )

    elif args.action == "get":
        result = get_entry(args.entry_id)

    elif args.action == "save":
        result = save_entry(args.entry_id, content=args.content, title=args.title, mood=args.mood)

    elif args.action == "delete":
        result = delete_entry(args.entry_id)

    elif args.action == "list":
        result = list_entries(
            args.user,
            entry_type=args.entry_type,
            mood=args.mood,
            search=args.search,
            limit=args.limit,
        )

    elif args.action == "pin":
        result = toggle_pin(args.entry_id)

    elif args.action == "favorite":
        result = toggle_favorite(args.entry_id)

    elif args.action == "prompts":
        result = daily_prompts(args.entry_type)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
