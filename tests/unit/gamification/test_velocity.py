"""Tests for veloce/gamification/velocity.py"""

from datetime import datetime, timedelta

import pytest

from veloce.gamification import velocity


class TestCalculateVelocity:
    """Tests for the score from raw inputs."""

    def test_no_history_scores_neutral_on_time(self):
        result = velocity.calculate_velocity(0, 0, 0, 25, 0, 300, 0, 0)

        assert result["score"] == 12
        assert result["tier"] == "Beginning"
        assert result["components"] == {"streak": 0, "completion": 0, "focus": 0, "on_time": 12.5}

    def test_perfect_week(self):
        result = velocity.calculate_velocity(7, 7, 25, 25, 300, 300, 10, 10)

        assert result["score"] == 100
        assert result["tier"] == "Legendary"
        assert result["message"] == "Legendary productivity master!"

    def test_mixed_week(self):
        result = velocity.calculate_velocity(3, 14, 10, 25, 150, 300, 8, 10)

        assert result["score"] == 47
        assert result["tier"] == "Building"
        assert result["components"]["streak"] == pytest.approx(5.36, abs=0.01)
        assert result["components"]["focus"] == 12.5

    def test_components_are_capped(self):
        result = velocity.calculate_velocity(30, 30, 100, 25, 1000, 300, 10, 10)

        assert result["components"]["completion"] == 25
        assert result["components"]["focus"] == 25
        assert result["score"] == 100

    def test_short_best_streak_measured_against_a_week(self):
        result = velocity.calculate_velocity(2, 2, 0, 25, 0, 300, 0, 0)

        assert result["components"]["streak"] == pytest.approx(7.14, abs=0.01)

    @pytest.mark.parametrize(
        "score,tier",
        [(95, "Legendary"), (75, "Excellent"), (60, "Good"), (59, "Building"), (20, "Starting"), (0, "Beginning")],
    )
    def test_tiers(self, score, tier):
        assert velocity.score_tier(score)[0] == tier


class TestGetVelocityScore:
    """Tests for gathering inputs from the other features."""

    def test_fresh_user(self, tasks_module, mock_user_id, wednesday_noon):
        result = velocity.get_velocity_score(mock_user_id, now=wednesday_noon)

        assert result["data"]["score"] == 12
        assert result["data"]["inputs"]["weekly_goal"] == 25
        assert result["data"]["inputs"]["focus_goal_minutes"] == 300

    def test_counts_this_week_only(self, tasks_module, mock_user_id, wednesday_noon):
        from veloce.focus import sessions

        for title in ("Pay rent", "Call mom"):
            task_id = tasks_module.create_task(mock_user_id, title)["data"]["task_id"]
            tasks_module.complete_task(task_id, now=wednesday_noon - timedelta(hours=2))

        last_sunday = datetime(2025, 6, 8, 9, 0)
        old = sessions.start_session(mock_user_id, "Old", 3600, now=last_sunday)["data"]["id"]
        sessions.complete_session(old, now=last_sunday + timedelta(hours=1))
        current = sessions.start_session(mock_user_id, "Report", 1800, now=wednesday_noon - timedelta(hours=1))["data"]["id"]
        sessions.complete_session(current, now=wednesday_noon - timedelta(minutes=30))

        result = velocity.get_velocity_score(mock_user_id, now=wednesday_noon)["data"]

        assert result["inputs"]["tasks_completed_this_week"] == 2
        assert result["inputs"]["focus_minutes_this_week"] == 30
        assert result["inputs"]["tasks_on_time"] == 2
        # completion 2 + focus 2.5 + on time 25
        assert result["score"] == 29
        assert result["tier"] == "Starting"
