"""Tests for veloce/journal/insights.py"""

from datetime import date

import pytest

from veloce.journal import insights


TODAY = date(2025, 6, 11)


class TestGratitudeStreak:
    """Tests for consecutive gratitude days."""

    def write(self, journal, user_id, *days):
        for day in days:
            journal.create_entry(user_id, day=day, entry_type="gratitude", content="thanks")

    def test_no_entries(self, journal_module, mock_user_id):
        result = insights.gratitude_streak(mock_user_id, today=TODAY)

        assert result["data"] == {"streak": 0, "last_day": None}

    def test_counts_back_from_today(self, journal_module, mock_user_id):
        self.write(journal_module, mock_user_id, "2025-06-09", "2025-06-10", "2025-06-11")

        assert insights.gratitude_streak(mock_user_id, today=TODAY)["data"]["streak"] == 3

    def test_unwritten_today_keeps_streak(self, journal_module, mock_user_id):
        self.write(journal_module, mock_user_id, "2025-06-09", "2025-06-10")

        result = insights.gratitude_streak(mock_user_id, today=TODAY)

        assert result["data"]["streak"] == 2
        assert result["data"]["last_day"] == "2025-06-10"

    def test_gap_breaks_streak(self, journal_module, mock_user_id):
        self.write(journal_module, mock_user_id, "2025-06-05", "2025-06-06", "2025-06-11")

        assert insights.gratitude_streak(mock_user_id, today=TODAY)["data"]["streak"] == 1

    def test_other_entry_types_do_not_count(self, journal_module, mock_user_id):
        journal_module.create_entry(mock_user_id, day=TODAY, entry_type="reflection", content="hm")

        assert insights.gratitude_streak(mock_user_id, today=TODAY)["data"]["streak"] == 0


class TestMoodTrend:
    """Tests for mood averages and direction."""

    def test_improving(self, journal_module, mock_user_id):
        for day, mood in (("2025-06-08", "low"), ("2025-06-09", "low"), ("2025-06-10", "good"), ("2025-06-11", "excellent")):
            journal_module.create_entry(mock_user_id, day=day, mood=mood)

        result = insights.mood_trend(mock_user_id, days=7, today=TODAY)["data"]

        assert len(result["points"]) == 4
        assert result["direction"] == "improving"
        assert result["average"] == pytest.approx((0.25 + 0.25 + 0.75 + 1.0) / 4, abs=0.001)

    def test_declining(self, journal_module, mock_user_id):
        journal_module.create_entry(mock_user_id, day="2025-06-10", mood="excellent")
        journal_module.create_entry(mock_user_id, day="2025-06-11", mood="stressed")

        assert insights.mood_trend(mock_user_id, days=7, today=TODAY)["data"]["direction"] == "declining"

    def test_averages_multiple_entries_per_day(self, journal_module, mock_user_id):
        journal_module.create_entry(mock_user_id, day=TODAY, mood="good")
        journal_module.create_entry(mock_user_id, day=TODAY, entry_type="reflection", mood="neutral")

        points = insights.mood_trend(mock_user_id, days=7, today=TODAY)["data"]["points"]

        assert points == [{"date": "2025-06-11", "value": 0.625}]

    def test_ignores_days_outside_window(self, journal_module, mock_user_id):
        journal_module.create_entry(mock_user_id, day="2025-05-01", mood="good")

        result = insights.mood_trend(mock_user_id, days=7, today=TODAY)["data"]

        assert result["points"] == []
        assert result["average"] is None
        assert result["direction"] == "flat"


def test_writing_stats(journal_module, mock_user_id):
    journal_module.create_entry(mock_user_id, day="2025-06-10", content="one two three")
    fav = journal_module.create_entry(mock_user_id, day="2025-06-11", entry_type="gratitude", content="four")
    journal_module.toggle_favorite(fav["data"]["id"])

    stats = insights.writing_stats(mock_user_id)["data"]

    assert stats["entries"] == 2
    assert stats["words"] == 4
    assert stats["journaling_days"] == 2
    assert stats["favorites"] == 1
    assert stats["by_type"] == {"brain_dump": 1, "gratitude": 1}
    assert stats["average_words"] == 2.0
