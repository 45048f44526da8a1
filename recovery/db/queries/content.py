"""Motivational content and healthy alternative queries"""
from typing import Optional

from recovery.db.connection import db

_ALTERNATIVE_COLUMNS = "id, activity_name, description, category, created_at"


async def get_random_quote() -> Optional[dict]:
    """Pick one active motivational quote, or None if there are none"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                """
                SELECT id, quote, author, category
                FROM motivational_quotes
                WHERE COALESCE(is_active, TRUE)
                ORDER BY random()
                LIMIT 1
                """
            )
            row = await cur.fetchone()
            return dict(row) if row else None


async def get_healthy_alternatives(category: Optional[str] = None, limit: int = 10) -> list[dict]:
    """
    List activities to do instead of drinking

    Args:
        category: Only this category (e.g. 'physical', 'social'); all when None
        limit: Maximum rows returned
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_ALTERNATIVE_COLUMNS}
                FROM healthy_alternatives
                WHERE (%s::text IS NULL OR category = %s::text)
                ORDER BY id
                LIMIT %s
                """,
                (category, category, limit)
            )
            rows = await cur.fetchall()
            return [dict(row) for row in rows]


async def get_random_alternative(category: Optional[str] = None) -> Optional[dict]:
    """Pick one healthy alternative, optionally from one category"""
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {_ALTERNATIVE_COLUMNS}
                FROM healthy_alternatives
                WHERE (%s::text IS NULL OR category = %s::text)
                ORDER BY random()
                LIMIT 1
                """,
                (category, category)
            )
            row = await cur.fetchone()
            return dict(row) if row else None
