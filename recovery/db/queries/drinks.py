"""Drink log queries"""
import logging
from datetime import date
from typing import Optional

import psycopg

from recovery.db.connection import db

logger = logging.getLogger(__name__)

_DRINK_LOG_COLUMNS = "id, user_id, log_date, drink_count, notes, created_at, updated_at"


async def get_all_drink_logs(user_id: int) -> list[dict]:
    """
    Get every drink log for a user

    Returns:
        Logs ordered by log_date DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            return await fetch_all_drink_logs(cur, user_id)


async def fetch_all_drink_logs(cur: psycopg.AsyncCursor, user_id: int) -> list[dict]:
    """Same as get_all_drink_logs, on an existing cursor"""
    await cur.execute(
        f"""
        SELECT {_DRINK_LOG_COLUMNS}
        FROM drink_logs
        WHERE user_id = %s
        ORDER BY log_date DESC
        """,
        (user_id,)
    )
    rows = await cur.fetchall()
    return [dict(row) for row in rows]


async def get_drink_logs(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = 30
) -> list[dict]:
    """
    Get drink logs in an optional date range

    Args:
        user_id: Log owner
        start_date: Inclusive lower bound
        end_date: Inclusive upper bound
        limit: Maximum rows returned

    Returns:
        Logs ordered by log_date DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_DRINK_LOG_COLUMNS}
                FROM drink_logs
                WHERE user_id = %s
                  AND (%s::date IS NULL OR log_date >= %s::date)
                  AND (%s::date IS NULL OR log_date <= %s::date)
                ORDER BY log_date DESC
                LIMIT %s
                """,
                (user_id, start_date, start_date, end_date, end_date, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def get_drink_log(user_id: int, log_date: date) -> Optional[dict]:
    """Get the log for one day, or None"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_DRINK_LOG_COLUMNS}
                FROM drink_logs
                WHERE user_id = %s AND log_date = %s
                """,
                (user_id, log_date)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def fetch_drink_log_for_update(cur: psycopg.AsyncCursor, user_id: int, log_date: date) -> Optional[dict]:
    """Read and lock the log for one day inside a transaction"""
    await cur.execute(
        f"""
        SELECT {_DRINK_LOG_COLUMNS}
        FROM drink_logs
        WHERE user_id = %s AND log_date = %s
        FOR UPDATE
        """,
        (user_id, log_date)
    )
    row = await cur.fetchone()
    return dict(row) if row else None


async def upsert_drink_log(
    cur: psycopg.AsyncCursor,
    user_id: int,
    log_date: date,
    drink_count: int,
    notes: Optional[str] = None
) -> dict:
    """
    Insert the day's log or update the existing one

    Existing notes are kept when no new notes are given.
    """
    await cur.execute(
        f"""
        INSERT INTO drink_logs (user_id, log_date, drink_count, notes)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (user_id, log_date) DO UPDATE
        SET drink_count = EXCLUDED.drink_count,
            notes = COALESCE(EXCLUDED.notes, drink_logs.notes),
            updated_at = CURRENT_TIMESTAMP
        RETURNING {_DRINK_LOG_COLUMNS}
        """,
        (user_id, log_date, drink_count, notes)
    )
    row = await cur.fetchone()
    return dict(row)


async def get_or_create_drink_log(
    cur: psycopg.AsyncCursor,
    user_id: int,
    log_date: date,
    drink_count: int,
    notes: Optional[str] = None
) -> tuple[Optional[dict], dict]:
    """
    Store the day's log inside the caller's transaction

    The row is written with the reported count only; an unreported day has
    no row. The (user_id, log_date) unique key keeps exactly one row per day.

    Returns:
        (previous row or None, stored row)
    """
    previous = await fetch_drink_log_for_update(cur, user_id, log_date)
    stored = await upsert_drink_log(cur, user_id, log_date, drink_count, notes)
    return previous, stored


async def delete_drink_log(cur: psycopg.AsyncCursor, user_id: int, log_id: int) -> Optional[dict]:
    """
    Delete one of the user's logs

    Returns:
        The deleted row, or None if no such log belongs to the user
    """
    await cur.execute(
        f"""
        DELETE FROM drink_logs
        WHERE id = %s AND user_id = %s
        RETURNING {_DRINK_LOG_COLUMNS}
        """,
        (log_id, user_id)
    )
    row = await cur.fetchone()
    return dict(row) if row else None
