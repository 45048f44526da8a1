"""Daily task and task completion queries"""
import logging
from datetime import date
from typing import Optional

import psycopg

from recovery.db.connection import db

logger = logging.getLogger(__name__)


async def get_daily_tasks(category: Optional[str] = None, limit: int = 100) -> list[dict]:
    """
    Get active tasks from the catalog

    Args:
        category: Optional category filter
        limit: Maximum rows returned

    Returns:
        Tasks ordered by points_reward DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, task_name, description, category, points_reward, is_active
                FROM daily_tasks
                WHERE COALESCE(is_active, TRUE)
                  AND (%s::text IS NULL OR category = %s::text)
                ORDER BY points_reward DESC, id ASC
                LIMIT %s
                """,
                (category, category, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def fetch_task(cur: psycopg.AsyncCursor, task_id: int) -> Optional[dict]:
    """Get a catalog task by ID on an existing cursor"""
    await cur.execute(
        """
        SELECT id, task_name, description, category, points_reward, is_active
        FROM daily_tasks
        WHERE id = %s
        """,
        (task_id,)
    )
    row = await cur.fetchone()
    return dict(row) if row else None


async def insert_task_completion(
    cur: psycopg.AsyncCursor,
    user_id: int,
    task_id: int,
    completion_date: date
) -> Optional[dict]:
    """
    Record a task completion

    Returns:
        The inserted row, or None if the task was already completed that day
    """
    await cur.execute(
        """
        INSERT INTO user_daily_tasks (user_id, task_id, completion_date)
        VALUES (%s, %s, %s)
        ON CONFLICT (user_id, task_id, completion_date) DO NOTHING
        RETURNING id, user_id, task_id, completion_date, created_at
        """,
        (user_id, task_id, completion_date)
    )
    row = await cur.fetchone()
    return dict(row) if row else None


async def delete_task_completion(cur: psycopg.AsyncCursor, user_id: int, completion_id: int) -> Optional[dict]:
    """
    Delete one of the user's completions

    Returns:
        The deleted row joined with the task's points_reward, or None
    """
    await cur.execute(
        """
        DELETE FROM user_daily_tasks udt
        USING daily_tasks dt
        WHERE udt.id = %s AND udt.user_id = %s AND dt.id = udt.task_id
        RETURNING udt.id, udt.user_id, udt.task_id, udt.completion_date, dt.points_reward
        """,
        (completion_id, user_id)
    )
    row = await cur.fetchone()
    return dict(row) if row else None


async def count_completed_tasks(cur: psycopg.AsyncCursor, user_id: int) -> int:
    """Total task completions for a user, on an existing cursor"""
    await cur.execute(
        "SELECT COUNT(*) AS count FROM user_daily_tasks WHERE user_id = %s",
        (user_id,)
    )
    row = await cur.fetchone()
    return row['count'] if row else 0


async def get_completed_tasks(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = 50
) -> list[dict]:
    """
    Get a user's task completions joined with task details

    Returns:
        Completions ordered by completion_date DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT udt.id, udt.user_id, udt.task_id, udt.completion_date, udt.created_at,
                       dt.task_name, dt.description, dt.category, dt.points_reward
                FROM user_daily_tasks udt
                JOIN daily_tasks dt ON dt.id = udt.task_id
                WHERE udt.user_id = %s
                  AND (%s::date IS NULL OR udt.completion_date >= %s::date)
                  AND (%s::date IS NULL OR udt.completion_date <= %s::date)
                ORDER BY udt.completion_date DESC, udt.id DESC
                LIMIT %s
                """,
                (user_id, start_date, start_date, end_date, end_date, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]
