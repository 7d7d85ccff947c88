"""Tests for veloce/focus/sessions.py

Focus session history. Key functionality:
- One active session per user
- Points for completed sessions, none for cancelled ones
- Deep Focus with blocking cannot be cancelled early
- Statistics and focus achievements
"""

from datetime import date, datetime, timedelta

import pytest


START = datetime(2025, 6, 11, 9, 0)


def run_session(sessions, user_id, start, minutes=25, **kwargs):
    """Start and complete a session that ran for its full length."""
    session_id = sessions.start_session(user_id, "Focus", minutes * 60, now=start, **kwargs)["data"]["id"]
    return sessions.complete_session(session_id, now=start + timedelta(minutes=minutes))


# ─────────────────────────────────────────────────────────────────────────────
# Points Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestSessionPoints:
    """Tests for session pricing."""

    def test_base_points(self, focus_module):
        assert focus_module.calculate_session_points(25 * 60, False) == 25

    def test_deep_focus_bonus(self, focus_module):
        assert focus_module.calculate_session_points(25 * 60, True) == 75

    def test_long_session_bonus(self, focus_module):
        assert focus_module.calculate_session_points(3600, False) == 40

    @pytest.mark.parametrize("seconds,text", [(1500, "25m"), (3600, "1h"), (5400, "1h 30m"), (59, "0m")])
    def test_format_duration(self, focus_module, seconds, text):
        assert focus_module.format_duration(seconds) == text


# ─────────────────────────────────────────────────────────────────────────────
# Lifecycle Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestSessionLifecycle:
    """Tests for starting, completing and cancelling sessions."""

    def test_start_session(self, focus_module, mock_user_id):
        result = focus_module.start_session(mock_user_id, "Write report", 1500, now=START)

        session = result["data"]
        assert session["title"] == "Write report"
        assert session["started_at"] == "2025-06-11T09:00:00"
        assert session["ended_at"] is None
        assert session["blocking_enabled"] is False
        assert session["formatted_duration"] == "25m"

    def test_one_active_session_per_user(self, focus_module, mock_user_id):
        focus_module.start_session(mock_user_id, "First", 1500, now=START)

        result = focus_module.start_session(mock_user_id, "Second", 1500, now=START)

        assert result["success"] is False
        assert "already active" in result["error"]

    def test_other_users_are_independent(self, focus_module, mock_user_id):
        focus_module.start_session(mock_user_id, "Mine", 1500, now=START)

        assert focus_module.start_session("someone_else", "Theirs", 1500, now=START)["success"] is True

    @pytest.mark.parametrize(
        "kwargs,error",
        [
            ({"title": "Focus", "scheduled_seconds": 0}, "positive"),
            ({"title": " ", "scheduled_seconds": 60}, "Title"),
            ({"title": "Focus", "scheduled_seconds": 60, "session_type": "nap"}, "session type"),
        ],
    )
    def test_start_validation(self, focus_module, mock_user_id, kwargs, error):
        result = focus_module.start_session(mock_user_id, **kwargs)

        assert result["success"] is False
        assert error in result["error"]

    def test_block_list_implies_blocking(self, focus_module, mock_user_id):
        from veloce.focus import blocklists

        list_id = blocklists.create_block_list(mock_user_id, "Evenings", apps=["com.tiktok"])["data"]["id"]

        session = focus_module.start_session(mock_user_id, "Focus", 1500, block_list_id=list_id, now=START)["data"]

        assert session["blocking_enabled"] is True
        assert blocklists.get_block_list(list_id)["data"]["use_count"] == 1

    def test_complete_awards_points(self, focus_module, mock_user_id):
        from veloce.gamification import engine

        result = run_session(focus_module, mock_user_id, START)

        assert result["data"]["points_earned"] == 25
        assert result["data"]["session"]["was_completed"] is True
        assert result["data"]["session"]["actual_seconds"] == 1500
        assert engine.get_stats(mock_user_id)["data"]["total_points"] == 25

    def test_complete_uses_given_actual_seconds(self, focus_module, mock_user_id):
        session_id = focus_module.start_session(mock_user_id, "Focus", 1500, now=START)["data"]["id"]

        result = focus_module.complete_session(session_id, now=START + timedelta(hours=2), actual_seconds=1500)

        assert result["data"]["session"]["actual_seconds"] == 1500

    def test_cannot_complete_twice(self, focus_module, mock_user_id):
        result = run_session(focus_module, mock_user_id, START)
        session_id = result["data"]["session"]["id"]

        assert focus_module.complete_session(session_id, now=START)["success"] is False

    def test_cancel_earns_nothing(self, focus_module, mock_user_id):
        session_id = focus_module.start_session(mock_user_id, "Focus", 1500, now=START)["data"]["id"]

        result = focus_module.cancel_session(session_id, now=START + timedelta(minutes=5))

        assert result["data"]["was_canceled"] is True
        assert result["data"]["points_earned"] == 0
        assert result["data"]["actual_seconds"] == 300

    def test_deep_focus_with_blocking_cannot_be_cancelled_early(self, focus_module, mock_user_id):
        session_id = focus_module.start_session(
            mock_user_id, "Deep", 1500, is_deep_focus=True, enable_blocking=True, now=START
        )["data"]["id"]

        early = focus_module.cancel_session(session_id, now=START + timedelta(minutes=10))
        late = focus_module.cancel_session(session_id, now=START + timedelta(minutes=25))

        assert early["success"] is False
        assert early["error"] == "Deep Focus sessions cannot be ended early. Stay focused!"
        assert late["success"] is True

    def test_deep_focus_without_blocking_can_be_cancelled(self, focus_module, mock_user_id):
        session_id = focus_module.start_session(mock_user_id, "Deep", 1500, is_deep_focus=True, now=START)["data"]["id"]

        assert focus_module.cancel_session(session_id, now=START + timedelta(minutes=1))["success"] is True

    def test_list_sessions(self, focus_module, mock_user_id):
        run_session(focus_module, mock_user_id, START)
        session_id = focus_module.start_session(mock_user_id, "Later", 1500, now=START + timedelta(hours=1))["data"]["id"]
        focus_module.cancel_session(session_id, now=START + timedelta(hours=1, minutes=1))

        everything = focus_module.list_sessions(mock_user_id)["data"]
        completed = focus_module.list_sessions(mock_user_id, completed_only=True)["data"]

        assert [s["title"] for s in everything["sessions"]] == ["Later", "Focus"]
        assert completed["total"] == 1


# ─────────────────────────────────────────────────────────────────────────────
# Achievement Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestFocusAchievements:
    """Tests for focus achievements."""

    def test_first_blocked_session(self, focus_module, mock_user_id):
        result = run_session(focus_module, mock_user_id, START, enable_blocking=True)

        assert "focus_first" in result["data"]["unlocked"]
        assert "focus_hour" not in result["data"]["unlocked"]

    def test_unblocked_session_unlocks_nothing(self, focus_module, mock_user_id):
        result = run_session(focus_module, mock_user_id, START)

        assert result["data"]["unlocked"] == []

    def test_hour_of_power(self, focus_module, mock_user_id):
        result = run_session(focus_module, mock_user_id, START, minutes=60, enable_blocking=True)

        assert "focus_hour" in result["data"]["unlocked"]
        assert result["data"]["points_earned"] == 40

    def test_focus_streak(self, focus_module, mock_user_id):
        results = [run_session(focus_module, mock_user_id, START + timedelta(days=offset)) for offset in range(7)]

        assert "focus_streak" not in results[5]["data"]["unlocked"]
        assert "focus_streak" in results[6]["data"]["unlocked"]


# ─────────────────────────────────────────────────────────────────────────────
# Statistics Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestStatistics:
    """Tests for focus statistics."""

    def test_empty(self, focus_module, mock_user_id):
        stats = focus_module.get_statistics(mock_user_id, today=START.date())["data"]

        assert stats["total_sessions_completed"] == 0
        assert stats["average_session_minutes"] == 0
        assert stats["best_focus_day"] is None

    def test_aggregates(self, focus_module, mock_user_id):
        run_session(focus_module, mock_user_id, START, minutes=30)
        run_session(focus_module, mock_user_id, START + timedelta(hours=2), minutes=60, is_deep_focus=True)
        run_session(focus_module, mock_user_id, START + timedelta(days=1), minutes=30)

        stats = focus_module.get_statistics(mock_user_id, today=date(2025, 6, 12))["data"]

        assert stats["total_sessions_completed"] == 3
        assert stats["total_minutes_focused"] == 120
        assert stats["average_session_minutes"] == 40
        assert stats["deep_focus_sessions_completed"] == 1
        assert stats["current_streak"] == 2
        assert stats["best_focus_day"] == "Wednesday"

    def test_streak_lapses_after_a_missed_day(self, focus_module, mock_user_id):
        run_session(focus_module, mock_user_id, START)
        run_session(focus_module, mock_user_id, START + timedelta(days=1))

        stats = focus_module.get_statistics(mock_user_id, today=date(2025, 6, 14))["data"]

        assert stats["current_streak"] == 0
        assert stats["longest_streak"] == 2

    def test_most_used_block_list(self, focus_module, mock_user_id):
        from veloce.focus import blocklists

        work = blocklists.create_block_list(mock_user_id, "Work")["data"]["id"]
        blocklists.create_block_list(mock_user_id, "Unused")
        run_session(focus_module, mock_user_id, START, block_list_id=work)

        stats = focus_module.get_statistics(mock_user_id, today=START.date())["data"]

        assert stats["most_used_block_list"] == "Work"

    def test_focus_minutes_since(self, focus_module, mock_user_id):
        run_session(focus_module, mock_user_id, START - timedelta(days=3), minutes=45)
        run_session(focus_module, mock_user_id, START, minutes=30)

        assert focus_module.focus_minutes_since(mock_user_id, START - timedelta(days=1)) == 30
