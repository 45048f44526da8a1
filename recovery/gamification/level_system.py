"""
Level Resolver

Maps a points total onto the level catalog. Levels are static reference
data ordered by an increasing points_required threshold; the catalog
normally starts with a 0-point tier so every user resolves to a level.
"""

from typing import Optional, Sequence
import logging

from recovery.exceptions import RecordNotFoundError
from recovery.models.profile import Level

logger = logging.getLogger(__name__)


def resolve_level(points: int, levels: Sequence[Level]) -> Level:
    """
    Return the highest level whose points_required <= points

    Args:
        points: Total points
        levels: Level catalog sorted ascending by points_required

    Returns:
        Qualifying level (the first tier if points are below every threshold)

    Raises:
        RecordNotFoundError: If the catalog is empty
    """
    if not levels:
        raise RecordNotFoundError(
            "Level catalog is empty",
            record_type="Level",
            operation="resolve_level"
        )

    current = levels[0]
    for level in levels:
        if points >= level.points_required:
            current = level
        else:
            break

    return current


def get_next_level(current: Level, levels: Sequence[Level]) -> Optional[Level]:
    """Return the tier directly above current, or None at the top"""
    for level in levels:
        if level.points_required > current.points_required:
            return level
    return None


def progress_to_next_level(points: int, current: Level, next_level: Optional[Level]) -> float:
    """
    Percentage of the way from current to next level

    Returns:
        0..100 rounded to 2 decimals; 100.0 when there is no next level
    """
    if next_level is None:
        return 100.0

    span = next_level.points_required - current.points_required
    if span <= 0:
        return 100.0

    earned = points - current.points_required
    percent = max(0.0, min(100.0, earned / span * 100))
    return round(percent, 2)
