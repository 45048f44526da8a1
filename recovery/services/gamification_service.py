"""
GamificationService - Points, streaks and achievements for user actions

Each public method is one unit of work: it locks the user's profile,
writes the triggering record, recomputes derived counters, applies the
points delta and awards newly qualifying achievements inside a single
database transaction. Either everything commits or nothing does.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Dict, List, Optional

import psycopg

from recovery import config
from recovery.db import queries
from recovery.exceptions import (
    DuplicateCompletionError,
    RecordNotFoundError,
    RecoveryTrackerError,
    ValidationError,
    wrap_external_exception,
)
from recovery.gamification.achievement_system import evaluate_achievements
from recovery.gamification.streak_system import (
    compute_drinks_avoided,
    compute_sober_days,
    compute_streak,
)
from recovery.models.achievement import UserStats
from recovery.models.drink import DrinkLog, DrinkLogInput
from recovery.observability.metrics import (
    achievements_unlocked_total,
    ledger_failures_total,
    logs_recorded_total,
    record_points,
)
from recovery.utils.validation import build_input

logger = logging.getLogger(__name__)

AVATAR_MAX_LENGTH = 50


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - Drink logging with streak and sober-day recomputation
    - Task completion rewards and deductions
    - Achievement checking and unlocking
    - Manual point awards and avatar selection
    """

    def __init__(self, db_connection):
        """
        Initialize GamificationService.

        Args:
            db_connection: Database instance providing transaction()
        """
        self.db = db_connection
        logger.debug("GamificationService initialized")

    # ------------------------------------------------------------------
    # Drink logs
    # ------------------------------------------------------------------

    async def log_drink(
        self,
        user_id: int,
        drink_count: int,
        log_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Record the drink count for a day and update the user's progress.

        A second log for the same date replaces the first. Points for a
        drink-free day are granted when the day becomes drink-free and taken
        back if it is later corrected to include drinks.

        Returns:
            {
                'drink_log': dict,
                'stats': {
                    'current_streak': int,
                    'longest_streak': int,
                    'total_sober_days': int,
                    'points_earned': int,
                    'total_points': int
                },
                'leveled_up': bool,
                'level': dict | None,
                'new_achievements': list[dict]
            }
        """
        payload = {"drink_count": drink_count, "notes": notes}
        if log_date is not None:
            payload["log_date"] = log_date
        entry = build_input(DrinkLogInput, user_id, "log_drink", **payload)

        async with self._unit_of_work("log_drink", user_id) as cur:
            profile = await queries.lock_profile(cur, user_id)
            previous, drink_log = await queries.get_or_create_drink_log(
                cur, user_id, entry.log_date, entry.drink_count, entry.notes
            )

            counters = await self._refresh_streak_counters(cur, user_id)

            delta = self._drink_free_delta(previous, entry.drink_count)
            progress = _Progress(profile['total_points'])
            if delta:
                progress.apply(await queries.apply_points_delta(cur, user_id, delta))

            awarded = await self._award_new_achievements(
                cur, user_id, counters['current_streak'], counters['days_sober'], counters['drinks_avoided']
            )
            progress.apply(awarded)

        record_points("drink_free_day", delta)
        logs_recorded_total.labels(log_type="drink").inc()
        self._record_achievement_metrics(awarded)

        logger.info(
            f"User {user_id} logged {entry.drink_count} drink(s) for {entry.log_date}: "
            f"streak {counters['current_streak']}, sober days {counters['days_sober']}, points {delta:+d}"
        )

        return {
            'drink_log': drink_log,
            'stats': {
                'current_streak': counters['current_streak'],
                'longest_streak': counters['longest_streak'],
                'total_sober_days': counters['days_sober'],
                'points_earned': delta,
                'total_points': progress.total_points,
            },
            'leveled_up': progress.leveled_up,
            'level': progress.level,
            'new_achievements': [a.model_dump() for a in awarded['awarded']],
        }

    async def delete_drink_log(self, user_id: int, log_id: int) -> Dict[str, Any]:
        """
        Delete a drink log and recompute the user's counters.

        Removing a drink-free day takes its points back (never below zero).

        Raises:
            RecordNotFoundError: If the log does not exist or belongs to someone else
        """
        async with self._unit_of_work("delete_drink_log", user_id) as cur:
            profile = await queries.lock_profile(cur, user_id)
            deleted = await queries.delete_drink_log(cur, user_id, log_id)
            if deleted is None:
                raise RecordNotFoundError(
                    f"Drink log {log_id} not found for user {user_id}",
                    record_type="Drink log",
                    record_id=str(log_id),
                    user_id=str(user_id),
                    operation="delete_drink_log"
                )

            counters = await self._refresh_streak_counters(cur, user_id)

            delta = -config.DRINK_FREE_DAY_POINTS if deleted['drink_count'] == 0 else 0
            progress = _Progress(profile['total_points'])
            if delta:
                progress.apply(await queries.apply_points_delta(cur, user_id, delta))

        record_points("drink_free_day", delta)

        return {
            'deleted_log': deleted,
            'stats': {
                'current_streak': counters['current_streak'],
                'longest_streak': counters['longest_streak'],
                'total_sober_days': counters['days_sober'],
                'points_deducted': -delta,
                'total_points': progress.total_points,
            },
        }

    # ------------------------------------------------------------------
    # Daily tasks
    # ------------------------------------------------------------------

    async def complete_task(
        self,
        user_id: int,
        task_id: int,
        completion_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Mark a task done for a date and grant its reward once.

        Raises:
            RecordNotFoundError: Unknown task
            DuplicateCompletionError: Task already completed on that date
        """
        if completion_date is None:
            completion_date = date.today()

        async with self._unit_of_work("complete_task", user_id) as cur:
            profile = await queries.lock_profile(cur, user_id)
            task = await queries.fetch_task(cur, task_id)
            if task is None:
                raise RecordNotFoundError(
                    f"Task {task_id} not found",
                    record_type="Task",
                    record_id=str(task_id),
                    user_id=str(user_id),
                    operation="complete_task"
                )

            completion = await queries.insert_task_completion(cur, user_id, task_id, completion_date)
            if completion is None:
                raise DuplicateCompletionError(
                    task_id=task_id,
                    completion_date=completion_date.isoformat(),
                    user_id=str(user_id),
                    operation="complete_task"
                )

            reward = task['points_reward'] or 0
            progress = _Progress(profile['total_points'])
            progress.apply(await queries.apply_points_delta(cur, user_id, reward))

            drink_logs = await self._load_drink_logs(cur, user_id)
            awarded = await self._award_new_achievements(
                cur, user_id, profile['current_streak'], profile['days_sober'],
                compute_drinks_avoided(drink_logs)
            )
            progress.apply(awarded)

        record_points("task", reward)
        self._record_achievement_metrics(awarded)

        logger.info(f"User {user_id} completed task {task_id} on {completion_date} (+{reward} points)")

        return {
            'completion': completion,
            'points_earned': reward,
            'total_points': progress.total_points,
            'leveled_up': progress.leveled_up,
            'level': progress.level,
            'new_achievements': [a.model_dump() for a in awarded['awarded']],
        }

    async def uncomplete_task(self, user_id: int, completion_id: int) -> Dict[str, Any]:
        """
        Undo a task completion and deduct its reward (clamped at zero).

        Earned achievements are kept.

        Raises:
            RecordNotFoundError: If the completion does not exist for this user
        """
        async with self._unit_of_work("uncomplete_task", user_id) as cur:
            await queries.lock_profile(cur, user_id)
            deleted = await queries.delete_task_completion(cur, user_id, completion_id)
            if deleted is None:
                raise RecordNotFoundError(
                    f"Completed task {completion_id} not found for user {user_id}",
                    record_type="Completed task",
                    record_id=str(completion_id),
                    user_id=str(user_id),
                    operation="uncomplete_task"
                )

            points = deleted['points_reward'] or 0
            ledger = await queries.apply_points_delta(cur, user_id, -points)

        record_points("task", -points)

        logger.info(f"User {user_id} uncompleted task completion {completion_id} (-{points} points)")

        return {
            'completion_id': completion_id,
            'points_deducted': points,
            'total_points': ledger['total_points'],
            'level': ledger['level'],
        }

    # ------------------------------------------------------------------
    # Points, achievements, avatar
    # ------------------------------------------------------------------

    async def award_points(self, user_id: int, points: int, reason: Optional[str] = None) -> Dict[str, Any]:
        """
        Manually add points to a user.

        Args:
            points: Positive integer up to MAX_POINTS_PER_UPDATE
            reason: Free-form description kept in the result and logs
        """
        if isinstance(points, bool) or not isinstance(points, int):
            raise ValidationError(
                "Points must be a whole number",
                field="points", value=points, user_id=str(user_id), operation="award_points"
            )
        if points <= 0:
            raise ValidationError(
                "Points must be greater than 0",
                field="points", value=points, user_id=str(user_id), operation="award_points"
            )
        if points > config.MAX_POINTS_PER_UPDATE:
            raise ValidationError(
                f"Points cannot exceed {config.MAX_POINTS_PER_UPDATE} per update",
                field="points", value=points, user_id=str(user_id), operation="award_points"
            )
        if reason is not None and not isinstance(reason, str):
            raise ValidationError(
                "Reason must be text",
                field="reason", value=reason, user_id=str(user_id), operation="award_points"
            )

        async with self._unit_of_work("award_points", user_id) as cur:
            await queries.lock_profile(cur, user_id)
            ledger = await queries.apply_points_delta(cur, user_id, points)

        record_points("manual", points)
        logger.info(f"Awarded {points} points to user {user_id}: {reason or 'Manual update'}")

        return {
            'points_added': points,
            'reason': reason or 'Manual update',
            'total_points': ledger['total_points'],
            'leveled_up': ledger['leveled_up'],
            'new_level': ledger['level'] if ledger['leveled_up'] else None,
        }

    async def check_and_award_achievements(self, user_id: int) -> Dict[str, Any]:
        """
        Award every achievement the user's current stats qualify for.

        Returns:
            {
                'message': str,
                'new_achievements': list[dict],
                'points_awarded': int,
                'total_points': int
            }
        """
        async with self._unit_of_work("check_and_award_achievements", user_id) as cur:
            profile = await queries.lock_profile(cur, user_id)
            drink_logs = await self._load_drink_logs(cur, user_id)
            awarded = await self._award_new_achievements(
                cur, user_id, profile['current_streak'], profile['days_sober'],
                compute_drinks_avoided(drink_logs)
            )

        self._record_achievement_metrics(awarded)

        return {
            'message': 'New achievements unlocked!' if awarded['awarded'] else 'No new achievements',
            'new_achievements': [a.model_dump() for a in awarded['awarded']],
            'points_awarded': awarded['points_awarded'],
            'total_points': awarded['total_points'] if awarded['total_points'] is not None else profile['total_points'],
        }

    async def update_avatar(self, user_id: int, avatar_type: str) -> dict:
        """Select the avatar shown on the user's profile"""
        if not isinstance(avatar_type, str) or not avatar_type.strip():
            raise ValidationError(
                "Avatar type is required",
                field="avatar_type", value=avatar_type, user_id=str(user_id), operation="update_avatar"
            )
        if len(avatar_type) > AVATAR_MAX_LENGTH:
            raise ValidationError(
                f"Avatar type must be {AVATAR_MAX_LENGTH} characters or less",
                field="avatar_type", value=avatar_type, user_id=str(user_id), operation="update_avatar"
            )

        async with self._unit_of_work("update_avatar", user_id) as cur:
            await queries.lock_profile(cur, user_id)
            return await queries.apply_profile_update(cur, user_id, {"avatar_type": avatar_type})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _unit_of_work(self, operation: str, user_id: int):
        """Transaction for one user action, translating driver errors"""
        try:
            async with self.db.transaction() as cur:
                yield cur
        except RecoveryTrackerError as e:
            ledger_failures_total.labels(operation=operation, error_type=e.__class__.__name__).inc()
            raise
        except psycopg.Error as e:
            ledger_failures_total.labels(operation=operation, error_type=e.__class__.__name__).inc()
            raise wrap_external_exception(e, operation=operation, user_id=str(user_id)) from e

    @staticmethod
    def _drink_free_delta(previous: Optional[dict], drink_count: int) -> int:
        """Points change when a day's log moves into or out of drink-free"""
        was_drink_free = previous is not None and previous['drink_count'] == 0
        is_drink_free = drink_count == 0

        if is_drink_free and not was_drink_free:
            return config.DRINK_FREE_DAY_POINTS
        if was_drink_free and not is_drink_free:
            return -config.DRINK_FREE_DAY_POINTS
        return 0

    @staticmethod
    async def _load_drink_logs(cur, user_id: int) -> List[DrinkLog]:
        rows = await queries.fetch_all_drink_logs(cur, user_id)
        return [DrinkLog(**row) for row in rows]

    async def _refresh_streak_counters(self, cur, user_id: int) -> Dict[str, int]:
        """Recompute streak and sober-day counters from every drink log"""
        drink_logs = await self._load_drink_logs(cur, user_id)

        current_streak = compute_streak(drink_logs)
        days_sober = compute_sober_days(drink_logs)
        stored = await queries.update_streak_counters(cur, user_id, current_streak, days_sober)

        return {
            'current_streak': current_streak,
            'longest_streak': stored.get('longest_streak', current_streak),
            'days_sober': days_sober,
            'drinks_avoided': compute_drinks_avoided(drink_logs),
        }

    async def _award_new_achievements(
        self,
        cur,
        user_id: int,
        current_streak: int,
        days_sober: int,
        drinks_avoided: int
    ) -> Dict[str, Any]:
        """Evaluate the catalog and award new achievements on the open transaction"""
        stats = UserStats(
            days_sober=days_sober,
            current_streak=current_streak,
            tasks_completed=await queries.count_completed_tasks(cur, user_id),
            drinks_avoided=drinks_avoided,
        )
        catalog = await queries.fetch_achievement_catalog(cur)
        earned_ids = await queries.fetch_earned_achievement_ids(cur, user_id)

        evaluation = evaluate_achievements(stats, catalog, earned_ids)
        if not evaluation.newly_earned:
            return {
                'awarded': [],
                'points_awarded': 0,
                'total_points': None,
                'leveled_up': False,
                'level': None,
            }

        return await queries.award_achievements_in_transaction(cur, user_id, evaluation.newly_earned)

    @staticmethod
    def _record_achievement_metrics(awarded: Dict[str, Any]) -> None:
        for achievement in awarded['awarded']:
            achievements_unlocked_total.labels(
                requirement_type=achievement.requirement_type or "unknown"
            ).inc()
        record_points("achievement", awarded['points_awarded'])


class _Progress:
    """Tracks the latest total and level across several ledger updates"""

    def __init__(self, total_points: int):
        self.total_points = total_points
        self.leveled_up = False
        self.level: Optional[dict] = None

    def apply(self, ledger: Dict[str, Any]) -> None:
        if ledger.get('total_points') is not None:
            self.total_points = ledger['total_points']
        if ledger.get('level') is not None:
            self.level = ledger['level']
        self.leveled_up = self.leveled_up or bool(ledger.get('leveled_up'))
