"""Level catalog queries"""
import logging

import psycopg

from recovery.db.connection import db
from recovery.models.profile import Level

logger = logging.getLogger(__name__)

_LEVELS_SQL = """
    SELECT id, level_name, points_required, avatar_unlock, description
    FROM levels
    ORDER BY points_required ASC, id ASC
"""


async def fetch_levels(cur: psycopg.AsyncCursor) -> list[Level]:
    """Load the level catalog on an existing cursor"""
    await cur.execute(_LEVELS_SQL)
    rows = await cur.fetchall()
    return [Level(**row) for row in rows]


async def get_levels() -> list[Level]:
    """
    Get the level catalog

    Returns:
        Levels sorted ascending by points_required
    """
    async with db.connection() as conn:
        async with conn.cursor() as cur:
            return await fetch_levels(cur)
