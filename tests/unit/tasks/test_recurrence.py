"""Tests for veloce/tasks/recurrence.py

Covers the next-occurrence rules for each recurring type and spawning
new instances of a series.
"""

from datetime import datetime

import pytest

from veloce.tasks import recurrence


WEDNESDAY = datetime(2025, 6, 11, 12, 0)
FRIDAY = datetime(2025, 6, 13, 12, 0)


class TestNextOccurrence:
    """Tests for next_occurrence rules."""

    @pytest.mark.parametrize(
        "recurring_type,expected",
        [
            ("daily", datetime(2025, 6, 12, 12, 0)),
            ("weekly", datetime(2025, 6, 18, 12, 0)),
            ("biweekly", datetime(2025, 6, 25, 12, 0)),
            ("monthly", datetime(2025, 7, 11, 12, 0)),
        ],
    )
    def test_fixed_intervals(self, recurring_type, expected):
        task = {"recurring_type": recurring_type}

        assert recurrence.next_occurrence(task, from_time=WEDNESDAY) == expected

    def test_weekdays_skips_weekend(self):
        task = {"recurring_type": "weekdays"}

        assert recurrence.next_occurrence(task, from_time=FRIDAY) == datetime(2025, 6, 16, 12, 0)

    def test_weekdays_midweek(self):
        task = {"recurring_type": "weekdays"}

        assert recurrence.next_occurrence(task, from_time=WEDNESDAY) == datetime(2025, 6, 12, 12, 0)

    def test_monthly_clamps_to_month_end(self):
        task = {"recurring_type": "monthly"}

        assert recurrence.next_occurrence(task, from_time=datetime(2025, 1, 31, 9)) == datetime(2025, 2, 28, 9)

    def test_monthly_wraps_year(self):
        task = {"recurring_type": "monthly"}

        assert recurrence.next_occurrence(task, from_time=datetime(2025, 12, 15, 9)) == datetime(2026, 1, 15, 9)

    def test_custom_days(self):
        # Monday (1) and Thursday (4)
        task = {"recurring_type": "custom", "recurring_days": [1, 4]}

        assert recurrence.next_occurrence(task, from_time=WEDNESDAY) == datetime(2025, 6, 12, 12, 0)
        assert recurrence.next_occurrence(task, from_time=FRIDAY) == datetime(2025, 6, 16, 12, 0)

    def test_custom_same_weekday_is_next_week(self):
        # Wednesday (3) only
        task = {"recurring_type": "custom", "recurring_days": [3]}

        assert recurrence.next_occurrence(task, from_time=WEDNESDAY) == datetime(2025, 6, 18, 12, 0)

    def test_custom_without_days(self):
        task = {"recurring_type": "custom", "recurring_days": []}

        assert recurrence.next_occurrence(task, from_time=WEDNESDAY) is None

    def test_keeps_scheduled_time_of_day(self):
        task = {"recurring_type": "daily", "scheduled_time": "2025-06-10T07:30:00"}

        assert recurrence.next_occurrence(task, from_time=WEDNESDAY) == datetime(2025, 6, 12, 7, 30)

    def test_defaults_to_completed_at(self):
        task = {"recurring_type": "daily", "completed_at": "2025-06-11T18:00:00"}

        assert recurrence.next_occurrence(task) == datetime(2025, 6, 12, 18, 0)

    def test_once_does_not_recur(self):
        assert recurrence.next_occurrence({"recurring_type": "once"}, from_time=WEDNESDAY) is None
        assert recurrence.next_occurrence({"recurring_type": None}, from_time=WEDNESDAY) is None


def test_sunday_index():
    assert recurrence.sunday_index(datetime(2025, 6, 15)) == 0
    assert recurrence.sunday_index(WEDNESDAY) == 3
    assert recurrence.sunday_index(datetime(2025, 6, 14)) == 6


class TestCreateRecurringInstance:
    """Tests for spawning the next task in a series."""

    def test_instances_link_to_series_root(self, tasks_module, mock_user_id):
        root_id = tasks_module.create_task(mock_user_id, "Standup", recurring_type="weekdays")["data"]["task_id"]

        first = recurrence.create_recurring_instance(root_id, now=WEDNESDAY)["data"]
        second = recurrence.create_recurring_instance(first["id"], now=FRIDAY)["data"]

        assert first["recurring_parent_id"] == root_id
        assert second["recurring_parent_id"] == root_id
        assert second["scheduled_time"] == "2025-06-16T12:00:00"

    def test_copies_task_content(self, tasks_module, mock_user_id):
        root_id = tasks_module.create_task(
            mock_user_id, "Review budget", category="finance", star_rating=3, recurring_type="monthly"
        )["data"]["task_id"]

        instance = recurrence.create_recurring_instance(root_id, now=WEDNESDAY)["data"]

        assert instance["category"] == "finance"
        assert instance["star_rating"] == 3
        assert instance["recurring_type"] == "monthly"
        assert instance["is_completed"] is False

    def test_stamps_last_recurrence_date(self, tasks_module, mock_user_id):
        root_id = tasks_module.create_task(mock_user_id, "Plants", recurring_type="daily")["data"]["task_id"]

        recurrence.create_recurring_instance(root_id, now=WEDNESDAY)

        assert tasks_module.get_task(root_id)["data"]["last_recurrence_date"] == "2025-06-12T12:00:00"

    def test_stops_after_end_date(self, tasks_module, mock_user_id):
        root_id = tasks_module.create_task(
            mock_user_id, "Course", recurring_type="weekly", recurring_end_date=datetime(2025, 6, 15)
        )["data"]["task_id"]

        result = recurrence.create_recurring_instance(root_id, now=WEDNESDAY)

        assert result["success"] is False
        assert "ended" in result["error"]

    def test_non_recurring_task(self, tasks_module, mock_user_id):
        task_id = tasks_module.create_task(mock_user_id, "Once")["data"]["task_id"]

        result = recurrence.create_recurring_instance(task_id, now=WEDNESDAY)

        assert result["success"] is False
