"""
Sobriety Streak Engine

Derives streak counters from a user's drink-log history:
- current streak: consecutive explicit zero-drink days ending today
- sober days: every zero-drink log ever recorded
- longest streak: high-water mark of the current streak

A day without a log is not proof of sobriety. It breaks the streak
exactly like a day with drinks does.
"""

from typing import Iterable, Dict, Optional
from datetime import date, timedelta
import logging

from recovery.exceptions import DataIntegrityError
from recovery.models.drink import DrinkLog

logger = logging.getLogger(__name__)


def _index_by_date(drink_logs: Iterable[DrinkLog]) -> Dict[date, DrinkLog]:
    """Map log_date -> log, failing fast on duplicate dates"""
    by_date: Dict[date, DrinkLog] = {}
    for log in drink_logs:
        if log.log_date in by_date:
            raise DataIntegrityError(
                f"Multiple drink logs found for {log.log_date.isoformat()}",
                user_id=str(log.user_id),
                operation="compute_streak",
                context={"log_date": log.log_date.isoformat()}
            )
        by_date[log.log_date] = log
    return by_date


def compute_streak(drink_logs: Iterable[DrinkLog], today: Optional[date] = None) -> int:
    """
    Count consecutive zero-drink days walking backward from today

    Args:
        drink_logs: All of a user's drink logs, in any order
        today: Day the walk starts from (defaults to date.today())

    Returns:
        Streak length; 0 when today's log is missing or has drinks

    Raises:
        DataIntegrityError: If two logs share a date
    """
    if today is None:
        today = date.today()

    by_date = _index_by_date(drink_logs)

    streak = 0
    day = today
    while True:
        log = by_date.get(day)
        if log is None or log.drink_count > 0:
            break
        streak += 1
        day -= timedelta(days=1)

    return streak


def compute_sober_days(drink_logs: Iterable[DrinkLog]) -> int:
    """Count logs with zero drinks"""
    return sum(1 for log in drink_logs if log.drink_count == 0)


def compute_drinks_avoided(drink_logs: Iterable[DrinkLog]) -> int:
    """
    Count days a drink was avoided

    Every zero-drink log counts as one avoided day, so this matches
    compute_sober_days. It is kept separate because achievements
    reference it under its own requirement type.
    """
    return compute_sober_days(drink_logs)


def compute_longest_streak(current_streak: int, previous_longest: int) -> int:
    """High-water mark of the current streak"""
    return max(current_streak, previous_longest)


def compute_total_drinks(drink_logs: Iterable[DrinkLog]) -> int:
    return sum(log.drink_count for log in drink_logs)
