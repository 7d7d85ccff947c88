"""Tests for veloce/gamification/engine.py

The engine owns every user's running score:
- Point pricing for completed tasks
- The level curve
- Daily streaks with lazy day roll-over
- Achievements and their bonus points
"""

from datetime import date, datetime, timedelta

import pytest


# ─────────────────────────────────────────────────────────────────────────────
# Point Calculation Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestCalculatePoints:
    """Tests for task point pricing."""

    def test_medium_task_on_time(self, gamification_module):
        """Two stars, on time, no streak: base + priority + stars + on-time."""
        assert gamification_module.calculate_points({"star_rating": 2}) == 30

    def test_high_priority_task(self, gamification_module):
        assert gamification_module.calculate_points({"star_rating": 3}) == 45

    def test_late_low_priority_task(self, gamification_module):
        points = gamification_module.calculate_points({"star_rating": 1}, completed_on_time=False)

        assert points == 15

    def test_streak_multiplies(self, gamification_module):
        points = gamification_module.calculate_points({"star_rating": 2}, current_streak=5)

        assert points == 45

    def test_streak_multiplier_is_capped(self, gamification_module):
        points = gamification_module.calculate_points({"star_rating": 2}, current_streak=50)

        assert points == 60

    def test_long_tasks_earn_more(self, gamification_module):
        """Should add a point per ten estimated minutes."""
        points = gamification_module.calculate_points({"star_rating": 2, "estimated_minutes": 45})

        assert points == 34


# ─────────────────────────────────────────────────────────────────────────────
# Level Curve Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestLevels:
    """Tests for the level curve."""

    def test_level_one_starts_at_zero(self, gamification_module):
        assert gamification_module.points_for_level(1) == 0
        assert gamification_module.calculate_level(0) == 1

    @pytest.mark.parametrize(
        "points,level",
        [(140, 1), (141, 2), (259, 3), (400, 4), (559, 5), (1581, 10)],
    )
    def test_level_thresholds(self, gamification_module, points, level):
        assert gamification_module.calculate_level(points) == level

    def test_level_progress_halfway(self, gamification_module):
        # Level 4 starts at 400, level 5 at 559
        progress = gamification_module.level_progress(480, 4)

        assert progress == pytest.approx(80 / 159)

    def test_level_progress_is_clamped(self, gamification_module):
        assert gamification_module.level_progress(10_000, 2) == 1.0


# ─────────────────────────────────────────────────────────────────────────────
# Award / Deduct Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestAwardPoints:
    """Tests for awarding and deducting points."""

    def test_award_adds_points(self, gamification_module, mock_user_id):
        result = gamification_module.award_points(mock_user_id, 30)

        assert result["success"] is True
        assert result["data"]["total_points"] == 30
        assert result["data"]["level_up"] is None

    def test_award_reports_level_up(self, gamification_module, mock_user_id):
        gamification_module.award_points(mock_user_id, 100)
        result = gamification_module.award_points(mock_user_id, 50)

        level_up = result["data"]["level_up"]
        assert level_up["previous_level"] == 1
        assert level_up["new_level"] == 2
        assert result["data"]["current_level"] == 2

    def test_level_up_info(self, gamification_module):
        info = gamification_module.level_up_info(2, 4, 430)

        assert info["levels_gained"] == 2
        assert info["points_required"] == 400

    def test_level_up_info_without_rise(self, gamification_module):
        assert gamification_module.level_up_info(3, 3, 300) == {}

    def test_rejects_non_positive_points(self, gamification_module, mock_user_id):
        result = gamification_module.award_points(mock_user_id, 0)

        assert result["success"] is False

    def test_deduct_never_goes_negative(self, gamification_module, mock_user_id):
        gamification_module.award_points(mock_user_id, 20)
        result = gamification_module.deduct_points(mock_user_id, 50)

        assert result["data"]["total_points"] == 0

    def test_deduct_lowers_level(self, gamification_module, mock_user_id):
        gamification_module.award_points(mock_user_id, 300)
        result = gamification_module.deduct_points(mock_user_id, 200)

        assert result["data"]["current_level"] == 1


# ─────────────────────────────────────────────────────────────────────────────
# Streak Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestStreaks:
    """Tests for task completions and streaks."""

    def complete(self, engine, user_id, when, count=1, on_time=True):
        result = None
        for _ in range(count):
            result = engine.record_task_completion(user_id, on_time=on_time, completed_at=when)
        return result

    def test_first_completion_unlocks_first_task(self, gamification_module, mock_user_id):
        result = self.complete(gamification_module, mock_user_id, datetime(2025, 6, 11, 12))

        assert "first_task" in result["data"]["unlocked"]
        assert result["data"]["stats"]["tasks_completed"] == 1
        assert result["data"]["stats"]["total_points"] == 50

    def test_streak_grows_when_daily_goal_reached(self, gamification_module, mock_user_id):
        noon = datetime(2025, 6, 11, 12)
        self.complete(gamification_module, mock_user_id, noon, count=4)
        result = self.complete(gamification_module, mock_user_id, noon)

        assert result["data"]["streak_extended"] is True
        assert result["data"]["stats"]["current_streak"] == 1

    def test_streak_grows_once_per_day(self, gamification_module, mock_user_id):
        noon = datetime(2025, 6, 11, 12)
        result = self.complete(gamification_module, mock_user_id, noon, count=8)

        assert result["data"]["streak_extended"] is False
        assert result["data"]["stats"]["current_streak"] == 1

    def test_streak_carries_into_next_day(self, gamification_module, mock_user_id):
        day_one = datetime(2025, 6, 11, 12)
        self.complete(gamification_module, mock_user_id, day_one, count=5)
        result = self.complete(gamification_module, mock_user_id, day_one + timedelta(days=1), count=5)

        assert result["data"]["stats"]["current_streak"] == 2
        assert result["data"]["stats"]["longest_streak"] == 2
        assert result["data"]["stats"]["tasks_completed_today"] == 5

    def test_missed_goal_breaks_streak(self, gamification_module, mock_user_id):
        day_one = datetime(2025, 6, 11, 12)
        self.complete(gamification_module, mock_user_id, day_one, count=5)
        self.complete(gamification_module, mock_user_id, day_one + timedelta(days=1), count=2)

        stats = gamification_module.get_stats(mock_user_id, today=date(2025, 6, 13))["data"]

        assert stats["current_streak"] == 0
        assert stats["longest_streak"] == 1
        assert stats["tasks_completed_today"] == 0

    def test_skipped_day_breaks_streak(self, gamification_module, mock_user_id):
        day_one = datetime(2025, 6, 11, 12)
        self.complete(gamification_module, mock_user_id, day_one, count=5)

        stats = gamification_module.roll_day(mock_user_id, today=date(2025, 6, 13))["data"]

        assert stats["current_streak"] == 0

    def test_counts_on_time_completions(self, gamification_module, mock_user_id):
        noon = datetime(2025, 6, 11, 12)
        self.complete(gamification_module, mock_user_id, noon, count=2, on_time=True)
        result = self.complete(gamification_module, mock_user_id, noon, on_time=False)

        assert result["data"]["stats"]["tasks_completed_on_time"] == 2

    def test_early_bird(self, gamification_module, mock_user_id):
        result = self.complete(gamification_module, mock_user_id, datetime(2025, 6, 11, 6, 30))

        assert "early_bird" in result["data"]["unlocked"]

    def test_night_owl(self, gamification_module, mock_user_id):
        result = self.complete(gamification_module, mock_user_id, datetime(2025, 6, 11, 23, 15))

        assert "night_owl" in result["data"]["unlocked"]

    def test_custom_daily_goal(self, gamification_module, mock_user_id):
        gamification_module.set_goals(mock_user_id, daily_goal=2)
        result = self.complete(gamification_module, mock_user_id, datetime(2025, 6, 11, 12), count=2)

        assert result["data"]["stats"]["current_streak"] == 1


# ─────────────────────────────────────────────────────────────────────────────
# Goals Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestGoals:
    """Tests for daily and weekly goals."""

    def test_defaults_come_from_config(self, gamification_module, mock_user_id):
        stats = gamification_module.get_stats(mock_user_id)["data"]

        assert stats["daily_goal"] == 5
        assert stats["weekly_goal"] == 25

    def test_updates_goals(self, gamification_module, mock_user_id):
        result = gamification_module.set_goals(mock_user_id, daily_goal=3, weekly_goal=12)

        assert result["success"] is True
        assert result["data"]["daily_goal"] == 3
        assert result["data"]["weekly_goal"] == 12

    def test_rejects_zero_goal(self, gamification_module, mock_user_id):
        result = gamification_module.set_goals(mock_user_id, daily_goal=0)

        assert result["success"] is False

    def test_requires_a_goal(self, gamification_module, mock_user_id):
        result = gamification_module.set_goals(mock_user_id)

        assert result["success"] is False


# ─────────────────────────────────────────────────────────────────────────────
# Achievement Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestAchievements:
    """Tests for achievement unlocking and acknowledgement."""

    def test_unlock_grants_bonus_once(self, gamification_module, mock_user_id):
        first = gamification_module.unlock_achievement(mock_user_id, "focus_first")
        second = gamification_module.unlock_achievement(mock_user_id, "focus_first")

        assert first["data"]["unlocked"] is True
        assert first["data"]["bonus_points"] == 100
        assert second["data"]["unlocked"] is False
        assert gamification_module.get_stats(mock_user_id)["data"]["total_points"] == 100

    def test_rejects_unknown_achievement(self, gamification_module, mock_user_id):
        result = gamification_module.unlock_achievement(mock_user_id, "moon_landing")

        assert result["success"] is False

    def test_is_unlocked(self, gamification_module, mock_user_id):
        assert gamification_module.is_unlocked(mock_user_id, "night_owl") is False

        gamification_module.unlock_achievement(mock_user_id, "night_owl")

        assert gamification_module.is_unlocked(mock_user_id, "night_owl") is True

    def test_acknowledge_pops_pending(self, gamification_module, mock_user_id):
        gamification_module.unlock_achievement(mock_user_id, "focus_first")
        gamification_module.unlock_achievement(mock_user_id, "night_owl")

        first = gamification_module.acknowledge_achievements(mock_user_id)
        second = gamification_module.acknowledge_achievements(mock_user_id)

        assert [a["achievement"] for a in first["data"]["achievements"]] == ["focus_first", "night_owl"]
        assert second["data"]["count"] == 0

    def test_progress_for_metric_achievement(self, gamification_module, mock_user_id):
        noon = datetime(2025, 6, 11, 12)
        for _ in range(3):
            gamification_module.record_task_completion(mock_user_id, completed_at=noon)

        result = gamification_module.achievement_progress(mock_user_id, "ten_tasks")

        assert result["data"]["progress"] == pytest.approx(0.3)

    def test_progress_counts_brain_dumps(self, gamification_module, mock_user_id):
        from veloce.braindump import session

        for _ in range(3):
            session.process_brain_dump(mock_user_id, "call mom", use_llm=False)

        result = gamification_module.achievement_progress(mock_user_id, "brain_dump_master")

        assert result["data"]["progress"] == pytest.approx(0.3)

    def test_progress_counts_written_reflections(self, gamification_module, mock_user_id):
        from veloce.journal import manager as journal

        for day in ("2025-06-09", "2025-06-10", "2025-06-11"):
            journal.create_entry(mock_user_id, day=day, entry_type="reflection", content="Went well")
        journal.create_entry(mock_user_id, day="2025-06-12", entry_type="reflection")

        result = gamification_module.achievement_progress(mock_user_id, "reflection_guru")

        assert result["data"]["progress"] == pytest.approx(0.1)

    def test_one_off_achievement_without_counter(self, gamification_module, mock_user_id):
        result = gamification_module.achievement_progress(mock_user_id, "night_owl")

        assert result["data"]["progress"] == 0.0

    def test_progress_for_unlocked_is_full(self, gamification_module, mock_user_id):
        gamification_module.unlock_achievement(mock_user_id, "early_bird")

        result = gamification_module.achievement_progress(mock_user_id, "early_bird")

        assert result["data"]["progress"] == 1.0

    def test_stats_include_level_info(self, gamification_module, mock_user_id):
        gamification_module.award_points(mock_user_id, 100)

        stats = gamification_module.get_stats(mock_user_id)["data"]

        assert stats["points_to_next_level"] == 41
        assert stats["level_progress"] == pytest.approx(100 / 141)
