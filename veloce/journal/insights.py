"""
Tool: Journal Insights
Purpose: Derive patterns from journal history

Insights:
- Gratitude streak: consecutive days with a gratitude entry
- Mood trend: average mood value per day over a window
- Writing stats: entries, words, journaling days, breakdown by type

Usage:
    python -m veloce.journal.insights --action gratitude-streak --user alice
    python -m veloce.journal.insights --action mood-trend --user alice --days 14
    python -m veloce.journal.insights --action stats --user alice

Dependencies:
    - sqlite3 (stdlib)
    - statistics (stdlib)

Output:
    JSON result with success status and data
"""

import argparse
import json
import sys
from datetime import date, timedelta
from statistics import mean
from typing import Any, Dict, List, Optional

from veloce.config_models import load_config

from . import MOODS
from .manager import get_connection


def gratitude_streak(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Count consecutive days with a gratitude entry.

    The streak may end today or yesterday; today not being written yet
    does not break it.

    Args:
        user_id: Author
        today: Override for the current date

    Returns:
        dict with streak length and the last gratitude day
    """
    today = today or date.today()

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT DISTINCT date FROM journal_entries
        WHERE user_id = ? AND entry_type = 'gratitude' AND date <= ?
        ORDER BY date DESC
    """, (user_id, today.isoformat()))
    days = {date.fromisoformat(row["date"]) for row in cursor.fetchall()}
    conn.close()

    cursor_day = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor_day in days:
        streak += 1
        cursor_day -= timedelta(days=1)

    return {
        "success": True,
        "data": {
            "streak": streak,
            "last_day": max(days).isoformat() if days else None,
        },
    }


def mood_trend(user_id: str, days: Optional[int] = None, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Average mood value per day over the last N days.

    Days without a mood are omitted rather than counted as neutral.

    Returns:
        dict with per-day points, overall average and direction
    """
    days = days or load_config().journal.mood_trend_days
    today = today or date.today()
    start = today - timedelta(days=days - 1)

    conn = get_connection()
    cursor = conn.cursor()
    cursor.execute("""
        SELECT date, mood FROM journal_entries
        WHERE user_id = ? AND mood IS NOT NULL AND date BETWEEN ? AND ?
        ORDER BY date
    """, (user_id, start.isoformat(), today.isoformat()))
    rows = cursor.fetchall()
    conn.close()

    by_day: Dict[str, List[float]] = {}
    for row in rows:
        if row["mood"] in MOODS:
            by_day.setdefault(row["date"], []).append(MOODS[row["mood"]])

    points = [{"date": day, "value": round(mean(values), 3)} for day, values in sorted(by_day.items())]

    direction = "flat"
    if len(points) >= 2:
        half = len(points) // 2
        earlier = mean(p["value"] for p in points[:half])
        later = mean(p["value"] for p in points[half:])
        if later - earlier > 0.05:
            direction = "improving"
        elif earlier - later > 0.05:
            direction = "declining"

    return {
        "success": True,
        "data": {
            "days": days,
            "points": points,
            "average": round(mean(p["value"] for p in points), 3) if points else None,
            "direction": direction,
        },
    }


def writing_stats(user_id: str) -> Dict[str, Any]:
    """Totals across the whole journal."""
    conn = get_connection()
    cursor = conn.cursor()

    cursor.execute("""
        SELECT COUNT(*) AS entries,
               COALESCE(SUM(word_count), 0) AS words,
               COUNT(DISTINCT date) AS journaling_days,
               COALESCE(SUM(is_favorite), 0) AS favorites
        FROM journal_entries WHERE user_id = ?
    """, (user_id,))
    totals = dict(cursor.fetchone())

    cursor.execute("""
        SELECT entry_type, COUNT(*) AS count FROM journal_entries
        WHERE user_id = ? GROUP BY entry_type
    """, (user_id,))
    totals["by_type"] = {row["entry_type"]: row["count"] for row in cursor.fetchall()}

    conn.close()

    totals["average_words"] = round(totals["words"] / totals["entries"], 1) if totals["entries"] else 0
    return {"success": True, "data": totals}


def main():
    parser = argparse.ArgumentParser(description="Journal Insights")
    parser.add_argument(
        "--action",
        required=True,
        choices=["gratitude-streak", "mood-trend", "stats"],
        help="Action to perform",
    )
    parser.add_argument("--user", required=True, help="User ID")
    parser.add_argument("--days", type=int, help="Window for mood trend")

    args = parser.parse_args()

    if args.action == "gratitude-streak":
        result = gratitude_streak(args.user)
    elif args.action == "mood-trend":
        result = mood_trend(args.user, days=args.days)
    else:
        result = writing_stats(args.user)

    print(json.dumps(result, indent=2))
    if not result.get("success"):
        sys.exit(1)


if __name__ == "__main__":
    main()
