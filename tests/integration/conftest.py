"""
Shared fixtures for database integration tests

Runs against the PostgreSQL database named by TEST_DATABASE_URL; every
test in this directory is skipped when it is not set. Tables are created
if missing and emptied before each test.
"""
import os
from typing import AsyncGenerator

import pytest

from recovery.db.connection import db as global_db

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(255) UNIQUE NOT NULL,
    password_hash VARCHAR(255) NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS levels (
    id SERIAL PRIMARY KEY,
    level_name VARCHAR(100) NOT NULL,
    points_required INTEGER NOT NULL,
    avatar_unlock VARCHAR(50),
    description TEXT
);

CREATE TABLE IF NOT EXISTS user_profiles (
    user_id INTEGER PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
    total_points INTEGER NOT NULL DEFAULT 0 CHECK (total_points >= 0),
    current_streak INTEGER NOT NULL DEFAULT 0,
    longest_streak INTEGER NOT NULL DEFAULT 0,
    days_sober INTEGER NOT NULL DEFAULT 0,
    level_id INTEGER REFERENCES levels(id),
    avatar_type VARCHAR(50) DEFAULT 'basic',
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS drink_logs (
    id SERIAL PRIMARY KEY,
    user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
    log_date DATE NOT NULL,
    drink_count INTEGER NOT NULL DEFAULT 0 CHECK (drink_count >= 0),
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (user_id, log_date)
);

CREATE TABLE IF NOT EXISTS achievements (
    id SERIAL PRIMARY KEY,
    achievement_name VARCHAR(100) NOT NULL,
    description TEXT,
    points_reward INTEGER NOT NULL DEFAULT 0,
    requirement_type VARCHAR(50),
    requirement_value INTEGER NOT NULL DEFAULT 0,
    icon VARCHAR(50)
);

CREATE TABLE IF NOT EXISTS user_achievements (
    id SERIAL PRIMARY KEY,
    user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
    achievement_id INTEGER REFERENCES achievements(id),
    earned_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (user_id, achievement_id)
);

CREATE TABLE IF NOT EXISTS daily_tasks (
    id SERIAL PRIMARY KEY,
    task_name VARCHAR(200) NOT NULL,
    description TEXT,
    category VARCHAR(50),
    points_reward INTEGER NOT NULL DEFAULT 10,
    is_active BOOLEAN DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS user_daily_tasks (
    id SERIAL PRIMARY KEY,
    user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
    task_id INTEGER REFERENCES daily_tasks(id),
    completion_date DATE NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (user_id, task_id, completion_date)
);

CREATE TABLE IF NOT EXISTS mood_logs (
    id SERIAL PRIMARY KEY,
    user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
    log_date DATE NOT NULL,
    mood_type VARCHAR(20) NOT NULL,
    mood_score INTEGER CHECK (mood_score BETWEEN 1 AND 10),
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (user_id, log_date)
);

CREATE TABLE IF NOT EXISTS trigger_logs (
    id SERIAL PRIMARY KEY,
    user_id INTEGER REFERENCES users(id) ON DELETE CASCADE,
    log_date DATE NOT NULL,
    trigger_type VARCHAR(50) NOT NULL,
    intensity INTEGER CHECK (intensity BETWEEN 1 AND 10),
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS motivational_quotes (
    id SERIAL PRIMARY KEY,
    quote TEXT NOT NULL,
    author VARCHAR(100),
    category VARCHAR(50),
    is_active BOOLEAN DEFAULT TRUE
);

CREATE TABLE IF NOT EXISTS healthy_alternatives (
    id SERIAL PRIMARY KEY,
    activity_name VARCHAR(100) NOT NULL,
    description TEXT,
    category VARCHAR(50),
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

SEED = """
INSERT INTO levels (id, level_name, points_required, avatar_unlock) VALUES
    (1, 'Newcomer', 0, 'basic'),
    (2, 'Committed', 100, 'bronze'),
    (3, 'Warrior', 500, 'silver'),
    (4, 'Champion', 1000, 'gold');

INSERT INTO achievements (id, achievement_name, points_reward, requirement_type, requirement_value) VALUES
    (1, 'First Day', 50, 'days_sober', 1),
    (2, 'Three Day Streak', 100, 'streak', 3),
    (3, 'Task Starter', 25, 'tasks_completed', 3),
    (4, 'Point Collector', 500, 'points', 100);

INSERT INTO daily_tasks (id, task_name, category, points_reward) VALUES
    (1, 'Morning walk', 'exercise', 15),
    (2, 'Gratitude journal', 'reflection', 10);

INSERT INTO motivational_quotes (quote, author, category) VALUES
    ('One day at a time.', NULL, 'daily');

INSERT INTO healthy_alternatives (activity_name, description, category) VALUES
    ('Go for a walk', 'Take a 20-minute walk in nature', 'physical'),
    ('Call a friend', 'Reach out to someone you care about', 'social'),
    ('Exercise', 'Go to the gym or do a home workout', 'physical');
"""

TABLES = (
    "trigger_logs, mood_logs, user_daily_tasks, daily_tasks, user_achievements, achievements, "
    "drink_logs, user_profiles, levels, users, motivational_quotes, healthy_alternatives"
)


@pytest.fixture
async def database() -> AsyncGenerator:
    """Point the global Database at the test database with a fresh schema"""
    if not TEST_DATABASE_URL:
        pytest.skip("TEST_DATABASE_URL not set")

    original_url = global_db.connection_string
    global_db.connection_string = TEST_DATABASE_URL
    await global_db.init_pool()

    async with global_db.connection() as conn:
        await conn.execute(SCHEMA)
        await conn.execute(f"TRUNCATE {TABLES} RESTART IDENTITY CASCADE")
        await conn.execute(SEED)
        await conn.commit()

    yield global_db

    await global_db.close_pool()
    global_db.connection_string = original_url


@pytest.fixture
async def user_id(database) -> int:
    """Registered user with a fresh level-1 profile"""
    async with database.connection() as conn:
        cur = await conn.execute(
            "INSERT INTO users (email, password_hash) VALUES (%s, %s) RETURNING id",
            ("sober@example.com", "not-a-real-hash")
        )
        row = await cur.fetchone()
        await conn.execute(
            "INSERT INTO user_profiles (user_id, level_id) VALUES (%s, 1)",
            (row["id"],)
        )
        await conn.commit()
    return row["id"]


async def fetch_profile(database, user_id: int) -> dict:
    async with database.connection() as conn:
        cur = await conn.execute("SELECT * FROM user_profiles WHERE user_id = %s", (user_id,))
        return await cur.fetchone()


async def count_rows(database, table: str, user_id: int) -> int:
    async with database.connection() as conn:
        cur = await conn.execute(f"SELECT COUNT(*) AS count FROM {table} WHERE user_id = %s", (user_id,))
        row = await cur.fetchone()
        return row["count"]


@pytest.fixture
def profile_reader(database):
    """Read helpers bound to the test database"""
    class Reader:
        async def profile(self, user_id):
            return await fetch_profile(database, user_id)

        async def count(self, table, user_id):
            return await count_rows(database, table, user_id)

    return Reader()
