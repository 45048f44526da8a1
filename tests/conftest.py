"""Global test fixtures and utilities for recovery tracker tests"""
import pytest
from contextlib import asynccontextmanager
from datetime import date, timedelta
from unittest.mock import AsyncMock, MagicMock

from recovery.models.achievement import Achievement
from recovery.models.drink import DrinkLog
from recovery.models.profile import Level


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def mock_cursor():
    """Mock cursor handed out by Database.transaction()"""
    cursor = AsyncMock()
    cursor.execute = AsyncMock()
    cursor.fetchone = AsyncMock(return_value=None)
    cursor.fetchall = AsyncMock(return_value=[])
    return cursor


@pytest.fixture
def mock_db(mock_cursor):
    """
    Mock Database whose transaction() yields mock_cursor

    db.committed / db.rolled_back record how the last unit of work ended.
    """
    db = MagicMock()
    db.committed = False
    db.rolled_back = False

    @asynccontextmanager
    async def transaction():
        try:
            yield mock_cursor
        except BaseException:
            db.rolled_back = True
            raise
        db.committed = True

    db.transaction = transaction
    return db


@pytest.fixture
def mock_connection(mock_cursor):
    """Mock for `async with db.connection() as conn` plus `conn.cursor()`"""
    conn = AsyncMock()
    conn.cursor = MagicMock()
    conn.cursor.return_value.__aenter__ = AsyncMock(return_value=mock_cursor)
    conn.cursor.return_value.__aexit__ = AsyncMock(return_value=False)
    conn.commit = AsyncMock()
    return conn


# ============================================================================
# Domain Fixtures
# ============================================================================

@pytest.fixture
def today():
    return date(2024, 3, 15)


@pytest.fixture
def level_catalog():
    """Seed level catalog, ordered by points_required"""
    return [
        Level(id=1, level_name="Newcomer", points_required=0, avatar_unlock="basic"),
        Level(id=2, level_name="Committed", points_required=100, avatar_unlock="bronze"),
        Level(id=3, level_name="Warrior", points_required=500, avatar_unlock="silver"),
        Level(id=4, level_name="Champion", points_required=1000, avatar_unlock="gold"),
    ]


@pytest.fixture
def achievement_catalog():
    return [
        Achievement(id=1, achievement_name="First Day", points_reward=50,
                    requirement_type="days_sober", requirement_value=1),
        Achievement(id=2, achievement_name="One Week Strong", points_reward=100,
                    requirement_type="streak", requirement_value=7),
        Achievement(id=3, achievement_name="Task Starter", points_reward=25,
                    requirement_type="tasks_completed", requirement_value=5),
        Achievement(id=4, achievement_name="Ten Drinks Avoided", points_reward=75,
                    requirement_type="drinks_avoided", requirement_value=10),
    ]


@pytest.fixture
def test_profile():
    return {
        "user_id": 42,
        "total_points": 80,
        "current_streak": 2,
        "longest_streak": 5,
        "days_sober": 3,
        "level_id": 1,
        "avatar_type": "basic",
    }


@pytest.fixture
def make_drink_logs():
    """
    Factory for drink logs ending at a given day

    counts[0] is today's drink count, counts[1] yesterday's and so on;
    None leaves that day without a log.
    """
    def build(today, counts, user_id=42):
        return [
            DrinkLog(
                id=offset + 1,
                user_id=user_id,
                log_date=today - timedelta(days=offset),
                drink_count=count,
            )
            for offset, count in enumerate(counts)
            if count is not None
        ]
    return build
