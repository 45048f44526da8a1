"""Achievement catalog and user achievement queries"""
import logging
from datetime import date
from typing import Optional, Sequence

import psycopg

from recovery.db.connection import db
from recovery.db.queries.ledger import apply_points_delta, insert_user_achievement, lock_profile
from recovery.models.achievement import Achievement

logger = logging.getLogger(__name__)


async def get_achievement_catalog() -> list[Achievement]:
    """
    Get every achievement definition

    Returns:
        Achievements ordered by points_reward ASC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            return await fetch_achievement_catalog(cur)


async def fetch_achievement_catalog(cur: psycopg.AsyncCursor) -> list[Achievement]:
    """Same as get_achievement_catalog, on an existing cursor"""
    await cur.execute(
        """
        SELECT id, achievement_name, description, points_reward,
               requirement_type, requirement_value, icon
        FROM achievements
        ORDER BY points_reward ASC, id ASC
        """
    )
    rows = await cur.fetchall()
    return [Achievement(**row) for row in rows]


async def get_earned_achievement_ids(user_id: int) -> set[int]:
    """IDs of achievements the user has earned"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            return await fetch_earned_achievement_ids(cur, user_id)


async def fetch_earned_achievement_ids(cur: psycopg.AsyncCursor, user_id: int) -> set[int]:
    """Same as get_earned_achievement_ids, on an existing cursor"""
    await cur.execute(
        "SELECT achievement_id FROM user_achievements WHERE user_id = %s",
        (user_id,)
    )
    rows = await cur.fetchall()
    return {row['achievement_id'] for row in rows}


async def get_user_achievements(
    user_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: Optional[int] = None
) -> list[dict]:
    """
    Get a user's earned achievements joined with their definitions

    Args:
        user_id: User ID
        start_date: Only achievements earned on or after this day
        end_date: Only achievements earned on or before this day
        limit: Maximum rows returned (all if None)

    Returns:
        Achievements ordered by earned_at DESC
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT ua.achievement_id, ua.earned_at,
                       a.achievement_name, a.description, a.points_reward,
                       a.requirement_type, a.requirement_value, a.icon
                FROM user_achievements ua
                JOIN achievements a ON a.id = ua.achievement_id
                WHERE ua.user_id = %s
                  AND (%s::date IS NULL OR ua.earned_at::date >= %s::date)
                  AND (%s::date IS NULL OR ua.earned_at::date <= %s::date)
                ORDER BY ua.earned_at DESC
                LIMIT %s
                """,
                (user_id, start_date, start_date, end_date, end_date, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def record_achievements(user_id: int, achievements: Sequence[Achievement]) -> dict:
    """
    Award achievements and their summed points as one unit

    All user_achievements rows and the points delta commit together; any
    failure rolls every write back. Achievements the user already holds
    are skipped and not rewarded again.

    Returns:
        {
            'awarded': list[Achievement],
            'points_awarded': int,
            'total_points': int | None,
            'leveled_up': bool,
            'level': dict | None
        }
    """
    result = {
        'awarded': [],
        'points_awarded': 0,
        'total_points': None,
        'leveled_up': False,
        'level': None,
    }
    if not achievements:
        return result

    async with db.transaction() as cur:
        await lock_profile(cur, user_id)
        result.update(await award_achievements_in_transaction(cur, user_id, achievements))

    return result


async def award_achievements_in_transaction(cur, user_id: int, achievements: Sequence[Achievement]) -> dict:
    """
    Insert earned achievements and apply their reward on an open transaction

    The caller must hold the profile lock.
    """
    awarded = []
    points = 0
    for achievement in achievements:
        row = await insert_user_achievement(cur, user_id, achievement.id)
        if row is None:
            logger.info(f"User {user_id} already holds achievement {achievement.id}, skipping")
            continue
        awarded.append(achievement)
        points += achievement.points_reward

    result = {
        'awarded': awarded,
        'points_awarded': points,
        'total_points': None,
        'leveled_up': False,
        'level': None,
    }

    if awarded:
        ledger = await apply_points_delta(cur, user_id, points)
        result.update(
            total_points=ledger['total_points'],
            leveled_up=ledger['leveled_up'],
            level=ledger['level'],
        )
        logger.info(
            f"User {user_id} earned {len(awarded)} achievement(s): "
            f"{', '.join(a.achievement_name for a in awarded)} (+{points} points)"
        )

    return result
