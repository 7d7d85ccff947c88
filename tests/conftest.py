"""Shared test fixtures for Veloce tests.

Every feature keeps its own SQLite file. The ``*_module`` fixtures point
one feature at a temporary file and yield its module; ``isolated_dbs``
points all of them at a temporary directory for cross-feature tests.

Usage:
    def test_something(tasks_module, mock_user_id):
        tasks_module.create_task(mock_user_id, "Pay rent")
"""

import os
import tempfile
from collections.abc import Generator
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from veloce.config_models import load_config


# ─────────────────────────────────────────────────────────────────────────────
# Path Constants
# ─────────────────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).parent.parent

# Modules that own a get_connection(), by feature database
DB_OWNERS = {
    "tasks": "veloce.tasks.manager.DB_PATH",
    "journal": "veloce.journal.manager.DB_PATH",
    "braindump": "veloce.braindump.session.DB_PATH",
    "focus": "veloce.focus.sessions.DB_PATH",
    "templates": "veloce.templates.manager.DB_PATH",
    "gamification": "veloce.gamification.engine.DB_PATH",
}


# ─────────────────────────────────────────────────────────────────────────────
# Database Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def temp_db() -> Generator[Path, None, None]:
    """Create a temporary database file for testing.

    Yields:
        Path to the temporary database file
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    if db_path.exists():
        os.unlink(db_path)


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload config defaults for every test."""
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def isolated_dbs(tmp_path: Path) -> Generator[dict, None, None]:
    """Point every feature database at its own file under tmp_path.

    Yields:
        dict mapping feature name to its database path
    """
    paths = {feature: tmp_path / f"{feature}.db" for feature in DB_OWNERS}
    patches = [patch(target, paths[feature]) for feature, target in DB_OWNERS.items()]

    for p in patches:
        p.start()
    yield paths
    for p in reversed(patches):
        p.stop()


@pytest.fixture
def gamification_module(isolated_dbs):
    from veloce.gamification import engine

    yield engine


@pytest.fixture
def tasks_module(isolated_dbs):
    from veloce.tasks import manager

    conn = manager.get_connection()
    conn.close()

    yield manager


@pytest.fixture
def journal_module(isolated_dbs):
    from veloce.journal import manager

    yield manager


@pytest.fixture
def braindump_module(isolated_dbs):
    from veloce.braindump import session

    yield session


@pytest.fixture
def focus_module(isolated_dbs):
    from veloce.focus import sessions

    yield sessions


@pytest.fixture
def templates_module(isolated_dbs):
    from veloce.templates import manager

    yield manager


# ─────────────────────────────────────────────────────────────────────────────
# User and Time Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_user_id() -> str:
    """Standard test user ID."""
    return "test_user_123"


@pytest.fixture
def wednesday_noon() -> datetime:
    """A fixed reference time: Wednesday 2025-06-11 12:00."""
    return datetime(2025, 6, 11, 12, 0, 0)
