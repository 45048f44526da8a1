"""Unit tests for GamificationService"""
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import psycopg
import pytest

from recovery.exceptions import (
    ConnectionError,
    DuplicateCompletionError,
    RecordNotFoundError,
    ValidationError,
)
from recovery.models.achievement import Achievement
from recovery.services.gamification_service import GamificationService

QUERIES = "recovery.services.gamification_service.queries"
# get_or_create_drink_log runs for real on top of these
DRINK_QUERIES = "recovery.db.queries.drinks"

NO_AWARD = {"awarded": [], "points_awarded": 0, "total_points": None, "leveled_up": False, "level": None}


def _log_row(log_date, drink_count, log_id=1):
    return {"id": log_id, "user_id": 42, "log_date": log_date, "drink_count": drink_count, "notes": None}


def _ledger(total_points, leveled_up=False, level_id=1):
    return {
        "total_points": total_points,
        "old_level_id": 1,
        "level": {"id": level_id, "level_name": "Newcomer"},
        "leveled_up": leveled_up,
        "level_changed": leveled_up,
    }


@pytest.fixture
def gamification_service(mock_db):
    """Create GamificationService instance with a mock database"""
    return GamificationService(mock_db)


@pytest.fixture
def mock_queries(test_profile):
    """Patch every query the service touches inside a unit of work"""
    with patch(f"{QUERIES}.lock_profile", AsyncMock(return_value=test_profile)) as lock_profile, \
         patch(f"{DRINK_QUERIES}.fetch_drink_log_for_update", AsyncMock(return_value=None)) as fetch_for_update, \
         patch(f"{DRINK_QUERIES}.upsert_drink_log", AsyncMock()) as upsert_drink_log, \
         patch(f"{QUERIES}.delete_drink_log", AsyncMock()) as delete_drink_log, \
         patch(f"{QUERIES}.fetch_all_drink_logs", AsyncMock(return_value=[])) as fetch_all_drink_logs, \
         patch(f"{QUERIES}.update_streak_counters", AsyncMock()) as update_streak_counters, \
         patch(f"{QUERIES}.apply_points_delta", AsyncMock()) as apply_points_delta, \
         patch(f"{QUERIES}.fetch_task", AsyncMock()) as fetch_task, \
         patch(f"{QUERIES}.insert_task_completion", AsyncMock()) as insert_task_completion, \
         patch(f"{QUERIES}.delete_task_completion", AsyncMock()) as delete_task_completion, \
         patch(f"{QUERIES}.count_completed_tasks", AsyncMock(return_value=0)) as count_completed_tasks, \
         patch(f"{QUERIES}.fetch_achievement_catalog", AsyncMock(return_value=[])) as fetch_catalog, \
         patch(f"{QUERIES}.fetch_earned_achievement_ids", AsyncMock(return_value=set())) as fetch_earned, \
         patch(f"{QUERIES}.award_achievements_in_transaction", AsyncMock(return_value=NO_AWARD)) as award, \
         patch(f"{QUERIES}.apply_profile_update", AsyncMock()) as apply_profile_update:
        yield {
            "lock_profile": lock_profile,
            "fetch_drink_log_for_update": fetch_for_update,
            "upsert_drink_log": upsert_drink_log,
            "delete_drink_log": delete_drink_log,
            "fetch_all_drink_logs": fetch_all_drink_logs,
            "update_streak_counters": update_streak_counters,
            "apply_points_delta": apply_points_delta,
            "fetch_task": fetch_task,
            "insert_task_completion": insert_task_completion,
            "delete_task_completion": delete_task_completion,
            "count_completed_tasks": count_completed_tasks,
            "fetch_achievement_catalog": fetch_catalog,
            "fetch_earned_achievement_ids": fetch_earned,
            "award_achievements_in_transaction": award,
            "apply_profile_update": apply_profile_update,
        }


# ============================================================================
# log_drink
# ============================================================================

@pytest.mark.asyncio
async def test_log_drink_free_day_awards_points(gamification_service, mock_queries, mock_db, mock_cursor):
    today = date.today()
    logs = [_log_row(today, 0, 3), _log_row(today - timedelta(days=1), 0, 2), _log_row(today - timedelta(days=2), 4, 1)]
    mock_queries["upsert_drink_log"].return_value = logs[0]
    mock_queries["fetch_all_drink_logs"].return_value = logs
    mock_queries["update_streak_counters"].return_value = {"current_streak": 2, "longest_streak": 5, "days_sober": 2}
    mock_queries["apply_points_delta"].return_value = _ledger(90)

    result = await gamification_service.log_drink(42, 0, log_date=today)

    mock_queries["lock_profile"].assert_awaited_once_with(mock_cursor, 42)
    mock_queries["update_streak_counters"].assert_awaited_once_with(mock_cursor, 42, 2, 2)
    mock_queries["apply_points_delta"].assert_awaited_once_with(mock_cursor, 42, 10)
    assert result["stats"] == {
        "current_streak": 2,
        "longest_streak": 5,
        "total_sober_days": 2,
        "points_earned": 10,
        "total_points": 90,
    }
    assert result["drink_log"] == logs[0]
    assert result["new_achievements"] == []
    assert mock_db.committed is True


@pytest.mark.asyncio
async def test_log_drink_changing_sober_day_to_drinking_deducts(gamification_service, mock_queries):
    today = date.today()
    mock_queries["fetch_drink_log_for_update"].return_value = _log_row(today, 0)
    mock_queries["upsert_drink_log"].return_value = _log_row(today, 3)
    mock_queries["fetch_all_drink_logs"].return_value = [_log_row(today, 3)]
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 5}
    mock_queries["apply_points_delta"].return_value = _ledger(70)

    result = await gamification_service.log_drink(42, 3, log_date=today)

    mock_queries["apply_points_delta"].assert_awaited_once()
    assert mock_queries["apply_points_delta"].await_args.args[2] == -10
    assert result["stats"]["points_earned"] == -10
    assert result["stats"]["current_streak"] == 0


@pytest.mark.asyncio
async def test_log_drink_relogging_sober_day_is_not_rewarded_twice(gamification_service, mock_queries, test_profile):
    today = date.today()
    mock_queries["fetch_drink_log_for_update"].return_value = _log_row(today, 0)
    mock_queries["upsert_drink_log"].return_value = _log_row(today, 0)
    mock_queries["fetch_all_drink_logs"].return_value = [_log_row(today, 0)]
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 5}

    result = await gamification_service.log_drink(42, 0, log_date=today)

    mock_queries["apply_points_delta"].assert_not_awaited()
    assert result["stats"]["points_earned"] == 0
    assert result["stats"]["total_points"] == test_profile["total_points"]


@pytest.mark.asyncio
async def test_log_drink_on_unlogged_day_deducts_nothing(gamification_service, mock_queries, mock_cursor):
    today = date.today()
    mock_queries["upsert_drink_log"].return_value = _log_row(today, 3)
    mock_queries["fetch_all_drink_logs"].return_value = [_log_row(today, 3)]
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 5}

    result = await gamification_service.log_drink(42, 3, log_date=today)

    mock_queries["fetch_drink_log_for_update"].assert_awaited_once_with(mock_cursor, 42, today)
    mock_queries["upsert_drink_log"].assert_awaited_once_with(mock_cursor, 42, today, 3, None)
    mock_queries["update_streak_counters"].assert_awaited_once_with(mock_cursor, 42, 0, 0)
    mock_queries["apply_points_delta"].assert_not_awaited()
    assert result["stats"]["points_earned"] == 0
    assert result["stats"]["total_sober_days"] == 0


@pytest.mark.asyncio
async def test_log_drink_future_date_rejected_before_db(gamification_service, mock_queries):
    with pytest.raises(ValidationError) as exc_info:
        await gamification_service.log_drink(42, 0, log_date=date.today() + timedelta(days=365))

    assert exc_info.value.field == "log_date"
    mock_queries["upsert_drink_log"].assert_not_awaited()
    mock_queries["apply_points_delta"].assert_not_awaited()


@pytest.mark.asyncio
async def test_log_drink_awards_qualifying_achievements(gamification_service, mock_queries, mock_cursor):
    today = date.today()
    first_day = Achievement(id=1, achievement_name="First Day", points_reward=50,
                            requirement_type="days_sober", requirement_value=1)
    mock_queries["upsert_drink_log"].return_value = _log_row(today, 0)
    mock_queries["fetch_all_drink_logs"].return_value = [_log_row(today, 0)]
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 5}
    mock_queries["apply_points_delta"].return_value = _ledger(90)
    mock_queries["fetch_achievement_catalog"].return_value = [first_day]
    mock_queries["award_achievements_in_transaction"].return_value = {
        "awarded": [first_day], "points_awarded": 50, "total_points": 140,
        "leveled_up": True, "level": {"id": 2, "level_name": "Committed"},
    }

    result = await gamification_service.log_drink(42, 0, log_date=today)

    mock_queries["award_achievements_in_transaction"].assert_awaited_once_with(mock_cursor, 42, [first_day])
    assert result["stats"]["total_points"] == 140
    assert result["leveled_up"] is True
    assert result["level"]["id"] == 2
    assert result["new_achievements"][0]["achievement_name"] == "First Day"


@pytest.mark.asyncio
async def test_log_drink_negative_count_rejected_before_db(gamification_service, mock_queries, mock_db):
    with pytest.raises(ValidationError) as exc_info:
        await gamification_service.log_drink(42, -1)

    assert exc_info.value.field == "drink_count"
    mock_queries["lock_profile"].assert_not_awaited()
    assert mock_db.committed is False


@pytest.mark.asyncio
async def test_log_drink_driver_error_rolls_back(gamification_service, mock_queries, mock_db):
    today = date.today()
    mock_queries["upsert_drink_log"].return_value = _log_row(today, 0)
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 0}
    mock_queries["apply_points_delta"].side_effect = psycopg.OperationalError("connection lost")

    with pytest.raises(ConnectionError) as exc_info:
        await gamification_service.log_drink(42, 0, log_date=today)

    assert exc_info.value.operation == "log_drink"
    assert mock_db.rolled_back is True
    assert mock_db.committed is False


# ============================================================================
# delete_drink_log
# ============================================================================

@pytest.mark.asyncio
async def test_delete_sober_log_deducts_points(gamification_service, mock_queries):
    mock_queries["delete_drink_log"].return_value = _log_row(date.today(), 0, log_id=7)
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 5}
    mock_queries["apply_points_delta"].return_value = _ledger(70)

    result = await gamification_service.delete_drink_log(42, 7)

    assert mock_queries["apply_points_delta"].await_args.args[2] == -10
    assert result["stats"]["points_deducted"] == 10
    assert result["stats"]["total_points"] == 70


@pytest.mark.asyncio
async def test_delete_drinking_log_keeps_points(gamification_service, mock_queries):
    mock_queries["delete_drink_log"].return_value = _log_row(date.today(), 2, log_id=7)
    mock_queries["update_streak_counters"].return_value = {"longest_streak": 5}

    result = await gamification_service.delete_drink_log(42, 7)

    mock_queries["apply_points_delta"].assert_not_awaited()
    assert result["stats"]["points_deducted"] == 0


@pytest.mark.asyncio
async def test_delete_missing_log(gamification_service, mock_queries, mock_db):
    mock_queries["delete_drink_log"].return_value = None

    with pytest.raises(RecordNotFoundError):
        await gamification_service.delete_drink_log(42, 999)

    mock_queries["update_streak_counters"].assert_not_awaited()
    assert mock_db.rolled_back is True


# ============================================================================
# Tasks
# ============================================================================

@pytest.mark.asyncio
async def test_complete_task_awards_reward(gamification_service, mock_queries, mock_cursor, mock_db):
    completion_date = date(2024, 3, 15)
    mock_queries["fetch_task"].return_value = {"id": 3, "task_name": "Walk", "points_reward": 15}
    mock_queries["insert_task_completion"].return_value = {"id": 9, "task_id": 3, "completion_date": completion_date}
    mock_queries["apply_points_delta"].return_value = _ledger(95)
    mock_queries["count_completed_tasks"].return_value = 1

    result = await gamification_service.complete_task(42, 3, completion_date)

    mock_queries["insert_task_completion"].assert_awaited_once_with(mock_cursor, 42, 3, completion_date)
    mock_queries["apply_points_delta"].assert_awaited_once_with(mock_cursor, 42, 15)
    assert result["points_earned"] == 15
    assert result["total_points"] == 95
    assert mock_db.committed is True


@pytest.mark.asyncio
async def test_complete_task_twice_rejected_without_reward(gamification_service, mock_queries, mock_db):
    mock_queries["fetch_task"].return_value = {"id": 3, "task_name": "Walk", "points_reward": 15}
    mock_queries["insert_task_completion"].return_value = None

    with pytest.raises(DuplicateCompletionError) as exc_info:
        await gamification_service.complete_task(42, 3, date(2024, 3, 15))

    assert exc_info.value.task_id == 3
    assert exc_info.value.completion_date == "2024-03-15"
    mock_queries["apply_points_delta"].assert_not_awaited()
    assert mock_db.rolled_back is True


@pytest.mark.asyncio
async def test_complete_unknown_task(gamification_service, mock_queries):
    mock_queries["fetch_task"].return_value = None

    with pytest.raises(RecordNotFoundError):
        await gamification_service.complete_task(42, 999)

    mock_queries["insert_task_completion"].assert_not_awaited()


@pytest.mark.asyncio
async def test_uncomplete_task_deducts_reward(gamification_service, mock_queries, mock_cursor):
    mock_queries["delete_task_completion"].return_value = {"id": 9, "task_id": 3, "points_reward": 15}
    mock_queries["apply_points_delta"].return_value = _ledger(0)

    result = await gamification_service.uncomplete_task(42, 9)

    mock_queries["apply_points_delta"].assert_awaited_once_with(mock_cursor, 42, -15)
    assert result["points_deducted"] == 15
    assert result["total_points"] == 0


@pytest.mark.asyncio
async def test_uncomplete_missing_completion(gamification_service, mock_queries):
    mock_queries["delete_task_completion"].return_value = None

    with pytest.raises(RecordNotFoundError):
        await gamification_service.uncomplete_task(42, 9)

    mock_queries["apply_points_delta"].assert_not_awaited()


# ============================================================================
# award_points
# ============================================================================

@pytest.mark.asyncio
async def test_award_points(gamification_service, mock_queries, mock_cursor):
    mock_queries["apply_points_delta"].return_value = _ledger(130, leveled_up=True, level_id=2)

    result = await gamification_service.award_points(42, 50, reason="Bonus")

    mock_queries["apply_points_delta"].assert_awaited_once_with(mock_cursor, 42, 50)
    assert result["points_added"] == 50
    assert result["reason"] == "Bonus"
    assert result["total_points"] == 130
    assert result["new_level"]["id"] == 2


@pytest.mark.asyncio
async def test_award_points_default_reason(gamification_service, mock_queries):
    mock_queries["apply_points_delta"].return_value = _ledger(90)

    result = await gamification_service.award_points(42, 10)

    assert result["reason"] == "Manual update"
    assert result["new_level"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize("points", [0, -5, 10001, 2.5, "10", True])
async def test_award_points_invalid_amount(gamification_service, mock_queries, points):
    with pytest.raises(ValidationError) as exc_info:
        await gamification_service.award_points(42, points)

    assert exc_info.value.field == "points"
    mock_queries["lock_profile"].assert_not_awaited()


@pytest.mark.asyncio
async def test_award_points_invalid_reason(gamification_service, mock_queries):
    with pytest.raises(ValidationError) as exc_info:
        await gamification_service.award_points(42, 10, reason=123)

    assert exc_info.value.field == "reason"


# ============================================================================
# check_and_award_achievements
# ============================================================================

@pytest.mark.asyncio
async def test_check_and_award_uses_stats_from_profile_and_logs(
    gamification_service, mock_queries, mock_cursor, achievement_catalog, test_profile
):
    today = date.today()
    mock_queries["fetch_all_drink_logs"].return_value = [
        _log_row(today - timedelta(days=offset), 0, log_id=offset + 1) for offset in range(10)
    ]
    mock_queries["count_completed_tasks"].return_value = 2
    mock_queries["fetch_achievement_catalog"].return_value = achievement_catalog
    mock_queries["fetch_earned_achievement_ids"].return_value = {1}
    mock_queries["award_achievements_in_transaction"].return_value = {
        "awarded": [achievement_catalog[3]], "points_awarded": 75, "total_points": 155,
        "leveled_up": True, "level": {"id": 2},
    }

    result = await gamification_service.check_and_award_achievements(42)

    # days_sober=3 and streak=2 from the profile, 10 drinks avoided from the logs
    awarded_args = mock_queries["award_achievements_in_transaction"].await_args.args
    assert [a.id for a in awarded_args[2]] == [4]
    assert result["message"] == "New achievements unlocked!"
    assert result["points_awarded"] == 75
    assert result["total_points"] == 155


@pytest.mark.asyncio
async def test_check_and_award_nothing_new(gamification_service, mock_queries, test_profile):
    result = await gamification_service.check_and_award_achievements(42)

    mock_queries["award_achievements_in_transaction"].assert_not_awaited()
    assert result == {
        "message": "No new achievements",
        "new_achievements": [],
        "points_awarded": 0,
        "total_points": test_profile["total_points"],
    }


@pytest.mark.asyncio
async def test_check_and_award_missing_profile(gamification_service, mock_queries):
    mock_queries["lock_profile"].side_effect = RecordNotFoundError("Profile not found", record_type="Profile")

    with pytest.raises(RecordNotFoundError):
        await gamification_service.check_and_award_achievements(42)


# ============================================================================
# update_avatar
# ============================================================================

@pytest.mark.asyncio
async def test_update_avatar(gamification_service, mock_queries, mock_cursor, mock_db, test_profile):
    mock_queries["apply_profile_update"].return_value = {**test_profile, "avatar_type": "gold"}

    profile = await gamification_service.update_avatar(42, "gold")

    mock_queries["lock_profile"].assert_awaited_once_with(mock_cursor, 42)
    mock_queries["apply_profile_update"].assert_awaited_once_with(mock_cursor, 42, {"avatar_type": "gold"})
    assert profile["avatar_type"] == "gold"
    assert mock_db.committed is True


@pytest.mark.asyncio
@pytest.mark.parametrize("avatar_type", ["", "   ", "x" * 51, None])
async def test_update_avatar_invalid(gamification_service, mock_queries, avatar_type):
    with pytest.raises(ValidationError):
        await gamification_service.update_avatar(42, avatar_type)

    mock_queries["apply_profile_update"].assert_not_awaited()


@pytest.mark.asyncio
async def test_update_avatar_missing_profile(gamification_service, mock_queries, mock_db):
    mock_queries["lock_profile"].side_effect = RecordNotFoundError("Profile not found", record_type="Profile")

    with pytest.raises(RecordNotFoundError):
        await gamification_service.update_avatar(42, "gold")

    mock_queries["apply_profile_update"].assert_not_awaited()
    assert mock_db.rolled_back is True
