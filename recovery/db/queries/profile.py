"""User and profile queries"""
import logging
from typing import Any, Optional

import psycopg
from psycopg import sql

from recovery.db.connection import db
from recovery.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Points, level and the streak counters are derived; only the ledger writes them
UPDATABLE_PROFILE_FIELDS = frozenset({"avatar_type"})


async def get_profile(user_id: int) -> Optional[dict]:
    """
    Get a user's profile

    Returns:
        {
            'user_id': int,
            'total_points': int,
            'current_streak': int,
            'longest_streak': int,
            'days_sober': int,
            'level_id': int,
            'avatar_type': str,
            'created_at': datetime,
            'updated_at': datetime
        }
        or None if the user has no profile
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT user_id, total_points, current_streak, longest_streak, days_sober,
                       level_id, avatar_type, created_at, updated_at
                FROM user_profiles
                WHERE user_id = %s
                """,
                (user_id,)
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def update_profile(user_id: int, fields: dict[str, Any]) -> Optional[dict]:
    """
    Update plain profile fields

    Args:
        user_id: Profile owner
        fields: Column -> value; only UPDATABLE_PROFILE_FIELDS are accepted

    Returns:
        Updated profile row, or None if the user has no profile

    Raises:
        ValidationError: If a field is not updatable this way
    """
    if not fields:
        return await get_profile(user_id)
    _check_updatable(user_id, fields)

    async with db.connection() as conn:
        async with conn.cursor() as cur:
            row = await apply_profile_update(cur, user_id, fields)
            await conn.commit()
            return row


async def apply_profile_update(cur: psycopg.AsyncCursor, user_id: int, fields: dict[str, Any]) -> Optional[dict]:
    """Same as update_profile, on the caller's transaction"""
    _check_updatable(user_id, fields)

    assignments = sql.SQL(", ").join(
        sql.SQL("{} = %s").format(sql.Identifier(column)) for column in fields
    )
    query = sql.SQL(
        """
        UPDATE user_profiles
        SET {assignments}, updated_at = CURRENT_TIMESTAMP
        WHERE user_id = %s
        RETURNING user_id, total_points, current_streak, longest_streak, days_sober,
                  level_id, avatar_type, created_at, updated_at
        """
    ).format(assignments=assignments)

    await cur.execute(query, (*fields.values(), user_id))
    row = await cur.fetchone()
    return dict(row) if row else None


async def get_user_created_at(user_id: int):
    """Registration timestamp of a user, or None if the user does not exist"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT created_at FROM users WHERE id = %s",
                (user_id,)
            )
            row = await cur.fetchone()
            return row['created_at'] if row else None


def _check_updatable(user_id: int, fields: dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_PROFILE_FIELDS
    if unknown:
        raise ValidationError(
            f"Profile fields cannot be updated directly: {', '.join(sorted(unknown))}",
            field="fields",
            value=sorted(unknown),
            user_id=str(user_id),
            operation="update_profile"
        )
