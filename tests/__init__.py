"""Veloce Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - tasks/: Task manager and recurrence
  - journal/: Journal entries and insights
  - braindump/: Extraction and brain dump sessions
  - focus/: Sessions, timer, block lists, schedules
  - templates/: Task templates
  - gamification/: Points, streaks, achievements, velocity
- integration/: Cross-feature flows and the CLI

Running tests:
    # All tests
    pytest

    # Specific module
    pytest tests/unit/focus/
"""
