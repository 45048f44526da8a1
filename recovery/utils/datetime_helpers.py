"""
Date range helpers for progress reports

Weeks run Monday to Sunday (the Sunday may still be in the future);
months are calendar months; a year is the 365 days ending today.
"""

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

PERIODS = ("week", "month", "year")


def get_date_range(period: str = "week", today: Optional[date] = None) -> Tuple[date, date]:
    """
    Inclusive (start_date, end_date) for a reporting period

    Args:
        period: 'week', 'month' or 'year'; anything else falls back to 'week'
        today: Reference day (defaults to date.today())
    """
    if today is None:
        today = date.today()

    if period == "month":
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)

    if period == "year":
        try:
            start = today.replace(year=today.year - 1)
        except ValueError:
            # Feb 29 -> Feb 28 of the previous year
            start = today.replace(year=today.year - 1, day=28)
        return start, today

    if period != "week":
        logger.debug(f"Unknown period {period!r}, using week")

    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def clip_to_registration(start_date: date, registered_at: Optional[Union[date, datetime]]) -> date:
    """Start a report no earlier than the day the user registered"""
    if registered_at is None:
        return start_date
    if isinstance(registered_at, datetime):
        registered_at = registered_at.date()
    return max(start_date, registered_at)


def days_between(start: Union[date, datetime], end: Union[date, datetime]) -> int:
    """Whole days from start to end"""
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return (end - start).days
