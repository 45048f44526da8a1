"""Mood and trigger log queries"""
import logging
from datetime import date
from typing import Optional

from recovery.db.connection import db

logger = logging.getLogger(__name__)


async def upsert_mood_log(
    user_id: int,
    log_date: date,
    mood_type: str,
    mood_score: int,
    notes: Optional[str] = None
) -> dict:
    """
    Save the day's mood, replacing an earlier entry for the same date

    Returns:
        The stored row
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO mood_logs (user_id, log_date, mood_type, mood_score, notes)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (user_id, log_date) DO UPDATE
                SET mood_type = EXCLUDED.mood_type,
                    mood_score = EXCLUDED.mood_score,
                    notes = COALESCE(EXCLUDED.notes, mood_logs.notes),
                    updated_at = CURRENT_TIMESTAMP
                RETURNING id, user_id, log_date, mood_type, mood_score, notes, created_at
                """,
                (user_id, log_date, mood_type, mood_score, notes)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row)


async def get_mood_logs(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = 30
) -> list[dict]:
    """Get mood logs ordered by log_date DESC"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, user_id, log_date, mood_type, mood_score, notes, created_at
                FROM mood_logs
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


async def delete_mood_log(user_id: int, log_id: int) -> bool:
    """Delete one of the user's mood logs; False if it did not exist"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM mood_logs WHERE id = %s AND user_id = %s RETURNING id",
                (log_id, user_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            return row is not None


async def insert_trigger_log(
    user_id: int,
    log_date: date,
    trigger_type: str,
    intensity: int,
    notes: Optional[str] = None
) -> dict:
    """Record a craving trigger; several per day are allowed"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                INSERT INTO trigger_logs (user_id, log_date, trigger_type, intensity, notes)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING id, user_id, log_date, trigger_type, intensity, notes, created_at
                """,
                (user_id, log_date, trigger_type, intensity, notes)
            )
            row = await cur.fetchone()
            await conn.commit()
            return dict(row)


async def get_trigger_logs(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = 50
) -> list[dict]:
    """Get trigger logs ordered by log_date DESC"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, user_id, log_date, trigger_type, intensity, notes, created_at
                FROM trigger_logs
                WHERE user_id = %s
                  AND (%s::date IS NULL OR log_date >= %s::date)
                  AND (%s::date IS NULL OR log_date <= %s::date)
                ORDER BY log_date DESC, id DESC
                LIMIT %s
                """,
                (user_id, start_date, start_date, end_date, end_date, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def delete_trigger_log(user_id: int, log_id: int) -> bool:
    """Delete one of the user's trigger logs; False if it did not exist"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "DELETE FROM trigger_logs WHERE id = %s AND user_id = %s RETURNING id",
                (log_id, user_id)
            )
            row = await cur.fetchone()
            await conn.commit()
            return row is not None
