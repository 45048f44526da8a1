"""
ProgressService - Read-side reports and mood/trigger logging

Builds the profile summary, drink statistics, weekly/monthly/overall
progress reports and the dashboard from the log store. Nothing here
changes points, so each query runs on its own pooled connection
through recovery.db.queries.
"""

import logging
from collections import Counter
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from recovery.db import queries
from recovery.exceptions import RecordNotFoundError, ValidationError
from recovery.gamification.level_system import get_next_level, progress_to_next_level
from recovery.gamification.streak_system import compute_sober_days, compute_streak, compute_total_drinks
from recovery.models.drink import DrinkLog
from recovery.models.mood import MoodLogInput, TriggerLogInput
from recovery.observability.metrics import logs_recorded_total
from recovery.utils.datetime_helpers import clip_to_registration, days_between, get_date_range
from recovery.utils.validation import build_input

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 100


class ProgressService:
    """
    Service for progress reporting.

    Responsibilities:
    - Profile summary with level progress
    - Level and achievement catalogs
    - Drink and task statistics
    - Weekly, monthly and overall reports, dashboard
    - Mood and trigger logs, mood statistics
    - Healthy alternatives
    """

    def __init__(self) -> None:
        logger.debug("ProgressService initialized")

    # ------------------------------------------------------------------
    # Profile and catalogs
    # ------------------------------------------------------------------

    async def _require_profile(self, user_id: int, operation: str) -> dict:
        profile = await queries.get_profile(user_id)
        if profile is None:
            raise RecordNotFoundError(
                f"Profile not found for user {user_id}",
                record_type="Profile",
                record_id=str(user_id),
                user_id=str(user_id),
                operation=operation
            )
        return profile

    async def _require_levels(self, operation: str) -> list:
        levels = await queries.get_levels()
        if not levels:
            raise RecordNotFoundError(
                "Level catalog is empty",
                record_type="Level",
                operation=operation
            )
        return levels

    async def get_profile_summary(self, user_id: int) -> Dict[str, Any]:
        """
        Profile with its level, the next level and earned achievements

        Returns:
            {
                'profile': dict,
                'current_level': dict,
                'next_level': dict | None,
                'achievements': list[dict],
                'progress_to_next_level': float
            }
        """
        profile = await self._require_profile(user_id, "get_profile_summary")
        levels = await self._require_levels("get_profile_summary")

        current = next((lvl for lvl in levels if lvl.id == profile['level_id']), None)
        if current is None:
            raise RecordNotFoundError(
                f"Level {profile['level_id']} not found",
                record_type="Level",
                record_id=str(profile['level_id']),
                user_id=str(user_id),
                operation="get_profile_summary"
            )
        next_level = get_next_level(current, levels)

        return {
            'profile': profile,
            'current_level': current.model_dump(),
            'next_level': next_level.model_dump() if next_level else None,
            'achievements': await queries.get_user_achievements(user_id),
            'progress_to_next_level': progress_to_next_level(profile['total_points'], current, next_level),
        }

    async def get_levels(self) -> List[dict]:
        return [level.model_dump() for level in await queries.get_levels()]

    async def get_achievements(self, user_id: int) -> Dict[str, Any]:
        """Achievement catalog flagged with what the user has earned"""
        catalog = await queries.get_achievement_catalog()
        earned_ids = await queries.get_earned_achievement_ids(user_id)

        return {
            'achievements': [
                {**achievement.model_dump(), 'earned': achievement.id in earned_ids}
                for achievement in catalog
            ],
            'total_achievements': len(catalog),
            'earned_count': len(earned_ids),
        }

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    async def get_drink_statistics(self, user_id: int, today: Optional[date] = None) -> Dict[str, int]:
        """Lifetime drink totals plus the last 7 days"""
        if today is None:
            today = date.today()

        logs = [DrinkLog(**row) for row in await queries.get_all_drink_logs(user_id)]
        week_ago = today - timedelta(days=7)

        return {
            'total_drinks': compute_total_drinks(logs),
            'total_sober_days': compute_sober_days(logs),
            'current_streak': compute_streak(logs, today=today),
            'weekly_drinks': compute_total_drinks(log for log in logs if log.log_date >= week_ago),
            'total_logs': len(logs),
        }

    async def get_task_statistics(self, user_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Completion counts per category and points earned from tasks"""
        if today is None:
            today = date.today()

        completions = await queries.get_completed_tasks(user_id, limit=None)
        week_ago = today - timedelta(days=7)

        return {
            'total_tasks_completed': len(completions),
            'category_counts': dict(Counter(c.get('category') or 'unknown' for c in completions)),
            'total_points_from_tasks': sum(c.get('points_reward') or 0 for c in completions),
            'tasks_completed_last_7_days': sum(1 for c in completions if c['completion_date'] >= week_ago),
        }

    async def get_today_tasks(self, user_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Tasks done today and the ones still available"""
        if today is None:
            today = date.today()

        completed = await queries.get_completed_tasks(user_id, start_date=today, end_date=today, limit=None)
        all_tasks = await queries.get_daily_tasks()
        completed_ids = {c['task_id'] for c in completed}

        return {
            'today': today,
            'completed_tasks': completed,
            'available_tasks': [t for t in all_tasks if t['id'] not in completed_ids],
            'completed_count': len(completed),
            'total_points_earned_today': sum(c.get('points_reward') or 0 for c in completed),
        }

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def get_weekly_progress(self, user_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Report for the current Monday-Sunday week"""
        profile = await self._require_profile(user_id, "get_weekly_progress")
        report = await self._period_report(user_id, profile, "week", today)

        achievements = await queries.get_user_achievements(
            user_id, start_date=report['period']['start_date'], end_date=report['period']['end_date']
        )
        report['new_achievements'] = len(achievements)
        report['achievements'] = achievements
        return report

    async def get_monthly_progress(self, user_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Report for the current calendar month, with trigger breakdown"""
        profile = await self._require_profile(user_id, "get_monthly_progress")
        report = await self._period_report(user_id, profile, "month", today)

        triggers = await queries.get_trigger_logs(
            user_id,
            start_date=report['period']['start_date'],
            end_date=report['period']['end_date'],
            limit=None
        )
        report.update(
            longest_streak=profile['longest_streak'],
            total_days_sober=profile['days_sober'],
            total_points=profile['total_points'],
            current_level=profile['level_id'],
            trigger_counts=dict(Counter(t['trigger_type'] for t in triggers)),
            trigger_logs_count=len(triggers),
        )
        return report

    async def _period_report(self, user_id: int, profile: dict, period: str, today: Optional[date]) -> Dict[str, Any]:
        """Drink, task and mood figures shared by the weekly and monthly reports"""
        start, end = get_date_range(period, today)
        start = clip_to_registration(start, await queries.get_user_created_at(user_id))

        drink_logs = await queries.get_drink_logs(user_id, start_date=start, end_date=end, limit=None)
        completions = await queries.get_completed_tasks(user_id, start_date=start, end_date=end, limit=None)
        mood_logs = await queries.get_mood_logs(user_id, start_date=start, end_date=end, limit=None)

        logs = [DrinkLog(**row) for row in drink_logs]
        average_mood = sum(m['mood_score'] for m in mood_logs) / len(mood_logs) if mood_logs else 0

        return {
            'period': {'start_date': start, 'end_date': end},
            'sober_days': compute_sober_days(logs),
            'total_drinks': compute_total_drinks(logs),
            'current_streak': profile['current_streak'],
            'tasks_completed': len(completions),
            'tasks_by_category': dict(Counter(c.get('category') or 'unknown' for c in completions)),
            'points_earned': sum(c.get('points_reward') or 0 for c in completions),
            'average_mood': round(average_mood, 2),
            'mood_logs_count': len(mood_logs),
            'drink_logs': sorted(drink_logs, key=lambda row: row['log_date']),
            'mood_logs': mood_logs,
        }

    async def get_overall_progress(self, user_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Lifetime totals since registration"""
        if today is None:
            today = date.today()

        profile = await self._require_profile(user_id, "get_overall_progress")
        levels = await self._require_levels("get_overall_progress")
        level = next((lvl for lvl in levels if lvl.id == profile['level_id']), None)

        logs = [DrinkLog(**row) for row in await queries.get_all_drink_logs(user_id)]
        completions = await queries.get_completed_tasks(user_id, limit=None)
        earned = await queries.get_user_achievements(user_id)
        catalog = await queries.get_achievement_catalog()
        registered_at = await queries.get_user_created_at(user_id)

        achievement_progress = round(len(earned) / len(catalog) * 100, 2) if catalog else 0.0

        return {
            'profile': {
                'total_points': profile['total_points'],
                'current_streak': profile['current_streak'],
                'longest_streak': profile['longest_streak'],
                'days_sober': profile['days_sober'],
                'level': level.model_dump() if level else None,
                'avatar': profile['avatar_type'],
            },
            'statistics': {
                'days_in_app': days_between(registered_at, today) if registered_at else 0,
                'total_drinks': compute_total_drinks(logs),
                'sober_days': compute_sober_days(logs),
                'tasks_completed': len(completions),
                'achievements_earned': len(earned),
                'total_achievements': len(catalog),
                'achievement_progress': achievement_progress,
            },
            'recent_achievements': earned[:5],
        }

    async def get_dashboard(self, user_id: int, today: Optional[date] = None) -> Dict[str, Any]:
        """Today's snapshot for the home screen"""
        if today is None:
            today = date.today()

        profile = await self._require_profile(user_id, "get_dashboard")
        levels = await self._require_levels("get_dashboard")
        level = next((lvl for lvl in levels if lvl.id == profile['level_id']), None)

        mood_today = await queries.get_mood_logs(user_id, start_date=today, end_date=today, limit=1)
        tasks_today = await queries.get_completed_tasks(user_id, start_date=today, end_date=today, limit=None)

        return {
            'profile': {
                'total_points': profile['total_points'],
                'current_streak': profile['current_streak'],
                'days_sober': profile['days_sober'],
                'level': level.model_dump() if level else None,
                'avatar': profile['avatar_type'],
            },
            'today': {
                'drink_log': await queries.get_drink_log(user_id, today),
                'mood_log': mood_today[0] if mood_today else None,
                'tasks_completed': len(tasks_today),
            },
            'recent_achievements': await queries.get_user_achievements(user_id, limit=3),
            'motivational_quote': await queries.get_random_quote(),
        }

    # ------------------------------------------------------------------
    # Mood and trigger logs
    # ------------------------------------------------------------------

    async def log_mood(
        self,
        user_id: int,
        mood_type: str,
        mood_score: int,
        log_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> dict:
        """Save the day's mood; a second entry for the same date replaces it"""
        payload = {"mood_type": mood_type, "mood_score": mood_score, "notes": notes}
        if log_date is not None:
            payload["log_date"] = log_date
        entry = build_input(MoodLogInput, user_id, "log_mood", **payload)

        row = await queries.upsert_mood_log(
            user_id, entry.log_date, entry.mood_type.value, entry.mood_score, entry.notes
        )
        logs_recorded_total.labels(log_type="mood").inc()
        return row

    async def log_trigger(
        self,
        user_id: int,
        trigger_type: str,
        intensity: int,
        log_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> dict:
        """Record a craving trigger"""
        payload = {"trigger_type": trigger_type, "intensity": intensity, "notes": notes}
        if log_date is not None:
            payload["log_date"] = log_date
        entry = build_input(TriggerLogInput, user_id, "log_trigger", **payload)

        row = await queries.insert_trigger_log(
            user_id, entry.log_date, entry.trigger_type.value, entry.intensity, entry.notes
        )
        logs_recorded_total.labels(log_type="trigger").inc()
        return row

    async def delete_mood_log(self, user_id: int, log_id: int) -> None:
        if not await queries.delete_mood_log(user_id, log_id):
            raise RecordNotFoundError(
                f"Mood log {log_id} not found for user {user_id}",
                record_type="Mood log", record_id=str(log_id), user_id=str(user_id),
                operation="delete_mood_log"
            )

    async def delete_trigger_log(self, user_id: int, log_id: int) -> None:
        if not await queries.delete_trigger_log(user_id, log_id):
            raise RecordNotFoundError(
                f"Trigger log {log_id} not found for user {user_id}",
                record_type="Trigger log", record_id=str(log_id), user_id=str(user_id),
                operation="delete_trigger_log"
            )

    async def get_mood_statistics(self, user_id: int) -> Dict[str, Any]:
        """
        Lifetime mood figures

        Returns:
            {
                'average_mood_score': float,
                'most_common_mood': str | None,
                'mood_distribution': dict[str, int],
                'total_logs': int
            }
        """
        mood_logs = await queries.get_mood_logs(user_id, limit=None)
        if not mood_logs:
            return {
                'average_mood_score': 0,
                'most_common_mood': None,
                'mood_distribution': {},
                'total_logs': 0,
            }

        # Ties go to the mood logged most recently
        distribution = Counter(m['mood_type'] for m in mood_logs)
        average = sum(m['mood_score'] for m in mood_logs) / len(mood_logs)

        return {
            'average_mood_score': round(average, 2),
            'most_common_mood': distribution.most_common(1)[0][0],
            'mood_distribution': dict(distribution),
            'total_logs': len(mood_logs),
        }

    async def get_trigger_summary(self, user_id: int, period: str = "month", today: Optional[date] = None) -> Dict[str, Any]:
        """Trigger counts and average intensity per trigger type"""
        if period not in ("week", "month", "year"):
            raise ValidationError("Period must be week, month or year", field="period", value=period,
                                  user_id=str(user_id), operation="get_trigger_summary")
        start, end = get_date_range(period, today)
        triggers = await queries.get_trigger_logs(user_id, start_date=start, end_date=end, limit=None)

        by_type: Dict[str, List[int]] = {}
        for trigger in triggers:
            by_type.setdefault(trigger['trigger_type'], []).append(trigger['intensity'])

        return {
            'period': {'start_date': start, 'end_date': end},
            'total': len(triggers),
            'by_type': {
                trigger_type: {
                    'count': len(intensities),
                    'average_intensity': round(sum(intensities) / len(intensities), 2),
                }
                for trigger_type, intensities in by_type.items()
            },
        }

    # ------------------------------------------------------------------
    # Healthy alternatives
    # ------------------------------------------------------------------

    async def get_healthy_alternatives(self, category: Optional[str] = None, limit: int = 10) -> Dict[str, Any]:
        """Activities to try instead of drinking, optionally from one category"""
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_ALTERNATIVES:
            raise ValidationError(
                f"Limit must be between 1 and {MAX_ALTERNATIVES}",
                field="limit", value=limit, operation="get_healthy_alternatives"
            )

        alternatives = await queries.get_healthy_alternatives(category=category, limit=limit)
        return {'alternatives': alternatives, 'count': len(alternatives)}

    async def get_random_alternative(self, category: Optional[str] = None) -> dict:
        """
        One random healthy alternative

        Raises:
            RecordNotFoundError: If no alternative matches the category
        """
        alternative = await queries.get_random_alternative(category=category)
        if alternative is None:
            raise RecordNotFoundError(
                f"No healthy alternatives found for category {category!r}" if category
                else "No healthy alternatives found",
                record_type="Healthy alternative",
                operation="get_random_alternative"
            )
        return alternative
