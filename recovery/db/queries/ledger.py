"""
Points ledger statements

Every function here takes the cursor of an open transaction (see
Database.transaction) so the caller can combine a record insert/delete
with its point change in one all-or-nothing unit. Points are always
changed as a relative delta in SQL, never written back from a value
read earlier.
"""
import logging
from typing import Optional, Sequence

import psycopg

from recovery.db.queries.levels import fetch_levels
from recovery.exceptions import RecordNotFoundError
from recovery.gamification.level_system import resolve_level

logger = logging.getLogger(__name__)


async def lock_profile(cur: psycopg.AsyncCursor, user_id: int) -> dict:
    """
    Lock the user's profile row for the rest of the transaction

    Concurrent units of work for the same user queue here, so counters
    read afterwards are never stale.

    Raises:
        RecordNotFoundError: If the user has no profile
    """
    await cur.execute(
        """
        SELECT user_id, total_points, current_streak, longest_streak, days_sober,
               level_id, avatar_type, created_at, updated_at
        FROM user_profiles
        WHERE user_id = %s
        FOR UPDATE
        """,
        (user_id,)
    )
    row = await cur.fetchone()
    if not row:
        raise RecordNotFoundError(
            f"Profile not found for user {user_id}",
            record_type="Profile",
            record_id=str(user_id),
            user_id=str(user_id),
            operation="lock_profile"
        )
    return dict(row)


async def apply_points_delta(cur: psycopg.AsyncCursor, user_id: int, delta: int) -> dict:
    """
    Add delta to total_points (clamped at zero) and re-resolve the level

    Args:
        cur: Cursor of the surrounding transaction
        user_id: Profile owner
        delta: Points to add; negative for deductions

    Returns:
        {
            'total_points': int,
            'old_level_id': int,
            'level': dict,        # resolved level row
            'leveled_up': bool,
            'level_changed': bool
        }
    """
    await cur.execute(
        """
        UPDATE user_profiles
        SET total_points = GREATEST(total_points + %s, 0),
            updated_at = CURRENT_TIMESTAMP
        WHERE user_id = %s
        RETURNING total_points, level_id
        """,
        (delta, user_id)
    )
    row = await cur.fetchone()
    if not row:
        raise RecordNotFoundError(
            f"Profile not found for user {user_id}",
            record_type="Profile",
            record_id=str(user_id),
            user_id=str(user_id),
            operation="apply_points_delta"
        )

    total_points = row['total_points']
    old_level_id = row['level_id']
    levels = await fetch_levels(cur)
    level_result = await sync_level(cur, user_id, total_points, old_level_id, levels)

    logger.info(f"Applied {delta:+d} points to user {user_id}: total {total_points}")

    return {
        'total_points': total_points,
        'old_level_id': old_level_id,
        **level_result,
    }


async def sync_level(
    cur: psycopg.AsyncCursor,
    user_id: int,
    total_points: int,
    current_level_id: Optional[int],
    levels: Sequence,
) -> dict:
    """Point the profile at the level that matches total_points"""
    new_level = resolve_level(total_points, levels)
    old_level = next((lvl for lvl in levels if lvl.id == current_level_id), None)

    level_changed = new_level.id != current_level_id
    leveled_up = level_changed and (
        old_level is None or new_level.points_required > old_level.points_required
    )

    if level_changed:
        await cur.execute(
            """
            UPDATE user_profiles
            SET level_id = %s,
                avatar_type = COALESCE(%s, avatar_type),
                updated_at = CURRENT_TIMESTAMP
            WHERE user_id = %s
            """,
            (new_level.id, new_level.avatar_unlock, user_id)
        )
        logger.info(f"User {user_id} moved from level {current_level_id} to {new_level.id} ({new_level.level_name})")

    return {
        'level': new_level.model_dump(),
        'leveled_up': leveled_up,
        'level_changed': level_changed,
    }


async def update_streak_counters(
    cur: psycopg.AsyncCursor,
    user_id: int,
    current_streak: int,
    days_sober: int
) -> dict:
    """
    Store recomputed streak counters

    longest_streak only ever grows, enforced in SQL so concurrent writers
    cannot lower it.
    """
    await cur.execute(
        """
        UPDATE user_profiles
        SET current_streak = %s,
            longest_streak = GREATEST(longest_streak, %s),
            days_sober = %s,
            updated_at = CURRENT_TIMESTAMP
        WHERE user_id = %s
        RETURNING current_streak, longest_streak, days_sober
        """,
        (current_streak, current_streak, days_sober, user_id)
    )
    row = await cur.fetchone()
    return dict(row) if row else {}


async def insert_user_achievement(cur: psycopg.AsyncCursor, user_id: int, achievement_id: int) -> Optional[dict]:
    """
    Record an earned achievement

    Returns:
        The inserted row, or None if the user already had it
    """
    await cur.execute(
        """
        INSERT INTO user_achievements (user_id, achievement_id)
        VALUES (%s, %s)
        ON CONFLICT (user_id, achievement_id) DO NOTHING
        RETURNING id, user_id, achievement_id, earned_at
        """,
        (user_id, achievement_id)
    )
    row = await cur.fetchone()
    return dict(row) if row else None
