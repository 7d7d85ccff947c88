"""
Tool: Block Lists
Purpose: Saved sets of apps to block during focus

A block list names the apps to block. An allow list inverts that:
everything except the listed apps is blocked. Every user gets three
presets (Work Mode, Social Media Detox, Deep Work).

Usage:
    python -m veloce.focus.blocklists --action seed --user alice
    python -m veloce.focus.blocklists --action create --user alice --name "Evenings" --apps com.tiktok,com.netflix
    python -m veloce.focus.blocklists --action list --user alice
    python -m veloce.focus.blocklists --action default --list-id abc123

Dependencies:
    - sqlite3 (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import sqlite3
import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from veloce.logging_config import get_logger

from . import PRESETS
from .sessions import generate_id, get_connection, timestamp

logger = get_logger(__name__)


def row_to_block_list(row: Optional[sqlite3.Row]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    block_list = dict(row)
    block_list["is_default"] = bool(block_list["is_default"])
    block_list["is_allow_list"] = bool(block_list["is_allow_list"])
    block_list["apps"] = json.loads(block_list["apps"]) if block_list.get("apps") else []
    return block_list


def create_block_list(
    user_id: str,
    name: str,
    description: Optional[str] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
    is_allow_list: bool = False,
    apps: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Create a block list.

    Args:
        user_id: Owner
        name: Display name
        description: What it's for
        icon: Icon name
        color: Hex color
        is_allow_list: Block everything except apps
        apps: App identifiers

    Returns:
        dict with the new block list
    """
    if not name or not name.strip():
        return {"success": False, "error": "Block list name cannot be empty"}

    list_id = generate_id()
    now = timestamp()

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        INSERT INTO block_lists (
            id, user_id, name, description, icon, color, is_allow_list, apps, created_at, updated_at
        )
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """, (
        list_id, user_id, name.strip(), description, icon, color,
        1 if is_allow_list else 0, json.dumps(sorted(set(apps or []))), now, now,
    ))
    conn.commit()
    conn.close()

    return get_block_list(list_id)


def get_block_list(list_id: str) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT * FROM block_lists WHERE id = ?", (list_id,))
    block_list = row_to_block_list(cursor.fetchone())
    conn.close()

    if not block_list:
        return {"success": False, "error": f"Block list not found: {list_id}"}

    return {"success": True, "data": block_list}


def list_block_lists(user_id: str) -> Dict[str, Any]:
    """List a user's block lists: default first, then most used."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT * FROM block_lists WHERE user_id = ?
        ORDER BY is_default DESC, use_count DESC, created_at ASC
    """, (user_id,))
    block_lists = [row_to_block_list(row) for row in cursor.fetchall()]
    conn.close()

    return {"success": True, "data": {"block_lists": block_lists, "total": len(block_lists)}}


def update_block_list(
    list_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    icon: Optional[str] = None,
    color: Optional[str] = None,
    is_allow_list: Optional[bool] = None,
    apps: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Update block list fields. Passing apps replaces the selection."""
    if name is not None and not name.strip():
        return {"success": False, "error": "Block list name cannot be empty"}

    updates = []
    params: List[Any] = []

    for field, value in (("name", name), ("description", description), ("icon", icon), ("color", color)):
        if value is not None:
            updates.append(f"{field} = ?")
            params.append(value.strip() if field == "name" else value)

    if is_allow_list is not None:
        updates.append("is_allow_list = ?")
        params.append(1 if is_allow_list else 0)

    if apps is not None:
        updates.append("apps = ?")
        params.append(json.dumps(sorted(set(apps))))

    if not updates:
        return {"success": False, "error": "No fields to update"}

    updates.append("updated_at = ?")
    params.append(timestamp())
    params.append(list_id)

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute(f"UPDATE block_lists SET {', '.join(updates)} WHERE id = ?", params)

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Block list not found: {list_id}"}

    conn.commit()
    conn.close()

    return get_block_list(list_id)


def delete_block_list(list_id: str) -> Dict[str, Any]:
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("DELETE FROM block_lists WHERE id = ?", (list_id,))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Block list not found: {list_id}"}

    conn.commit()
    conn.close()

    return {"success": True, "message": f"Block list {list_id} deleted"}


def mark_used(list_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Bump the use count and last-used time."""
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        UPDATE block_lists
        SET use_count = use_count + 1, last_used_at = ?, updated_at = ?
        WHERE id = ?
    """, (timestamp(now), timestamp(now), list_id))

    if cursor.rowcount == 0:
        conn.close()
        return {"success": False, "error": f"Block list not found: {list_id}"}

    conn.commit()
    conn.close()

    return get_block_list(list_id)


def set_default(list_id: str) -> Dict[str, Any]:
    """Make a block list the user's default. Only one default per user."""
    result = get_block_list(list_id)
    if not result["success"]:
        return result

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("UPDATE block_lists SET is_default = 0 WHERE user_id = ?", (result["data"]["user_id"],))
    cursor.execute("UPDATE block_lists SET is_default = 1, updated_at = ? WHERE id = ?", (timestamp(), list_id))
    conn.commit()
    conn.close()

    return get_block_list(list_id)


def seed_presets(user_id: str) -> Dict[str, Any]:
    """
    Create the built-in presets the user doesn't have yet.

    Returns:
        dict with the names of presets created (empty when already seeded)
    """
    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("SELECT name FROM block_lists WHERE user_id = ?", (user_id,))
    existing = {row["name"] for row in cursor.fetchall()}
    conn.close()

    created = []
    for preset in PRESETS:
        if preset["name"] in existing:
            continue
        result = create_block_list(user_id, **preset)
        if result["success"]:
            created.append(preset["name"])

    if created:
        logger.info("block_list_presets_seeded", user_id=user_id, presets=created)

    return {"success": True, "data": {"created": created}}


def main():
    parser = argparse.ArgumentParser(description="Block Lists - apps to block during focus")
    parser.add_argument(
        "--action",
        required=True,
        choices=["create", "get", "list", "update", "delete", "seed", "default"],
        help="Action to perform",
    )
    parser.add_argument("--user", help="User ID")
    parser.add_argument("--list-id", help="Block list ID")
    parser.add_argument("--name", help="Block list name")
    parser.add_argument("--description", help="Description")
    parser.add_argument("--apps", help="Comma-separated app identifiers")
    parser.add_argument("--allow-list", action="store_true", help="Block everything except these apps")

    args = parser.parse_args()
    result = None
    apps = [app.strip() for app in args.apps.split(",") if app.strip()] if args.apps else None

    if args.action in ("create", "list", "seed") and not args.user:
        print(json.dumps({"success": False, "error": f"--user required for {args.action}"}))
        sys.exit(1)
    if args.action in ("get", "update", "delete", "default") and not args.list_id:
        print(json.dumps({"success": False, "error": f"--list-id required for {args.action}"}))
        sys.exit(1)

    if args.action == "create":
        result = create_block_list(
            args.user, args.name or "", description=args.description, is_allow_list=args.allow_list, apps=apps
        )
    elif args.action == "get":
        result = get_block_list(args.list_id)
    elif args.action == "list":
        result = list_block_lists(args.user)
    elif args.action == "update":
        result = update_block_list(args.list_id, name=args.name, description=args.description, apps=apps)
    elif args.action == "delete":
        result = delete_block_list(args.list_id)
    elif args.action == "seed":
        result = seed_presets(args.user)
    elif args.action == "default":
        result = set_default(args.list_id)

    if result:
        print(json.dumps(result, indent=2, default=str))
        if not result.get("success"):
            sys.exit(1)


if __name__ == "__main__":
    main()
