"""
Database queries - Re-export all functions under one namespace.

Module organization:
- profile.py: Profiles and user registration data
- levels.py: Level catalog
- drinks.py: Drink logs
- tasks.py: Daily task catalog and completions
- achievements.py: Achievement catalog and earned achievements
- mood.py: Mood and trigger logs
- content.py: Motivational quotes and healthy alternatives
- ledger.py: Transaction-scoped points ledger statements
"""

# Profile operations
from recovery.db.queries.profile import (
    get_profile,
    update_profile,
    apply_profile_update,
    get_user_created_at,
    UPDATABLE_PROFILE_FIELDS,
)

# Level operations
from recovery.db.queries.levels import (
    fetch_levels,
    get_levels,
)

# Drink log operations
from recovery.db.queries.drinks import (
    get_all_drink_logs,
    fetch_all_drink_logs,
    get_drink_logs,
    get_drink_log,
    get_or_create_drink_log,
    fetch_drink_log_for_update,
    upsert_drink_log,
    delete_drink_log,
)

# Task operations
from recovery.db.queries.tasks import (
    get_daily_tasks,
    fetch_task,
    insert_task_completion,
    delete_task_completion,
    count_completed_tasks,
    get_completed_tasks,
)

# Achievement operations
from recovery.db.queries.achievements import (
    get_achievement_catalog,
    fetch_achievement_catalog,
    get_earned_achievement_ids,
    fetch_earned_achievement_ids,
    get_user_achievements,
    record_achievements,
    award_achievements_in_transaction,
)

# Mood and trigger operations
from recovery.db.queries.mood import (
    upsert_mood_log,
    get_mood_logs,
    delete_mood_log,
    insert_trigger_log,
    get_trigger_logs,
    delete_trigger_log,
)

# Content operations
from recovery.db.queries.content import (
    get_random_quote,
    get_healthy_alternatives,
    get_random_alternative,
)

# Ledger operations
from recovery.db.queries.ledger import (
    lock_profile,
    apply_points_delta,
    sync_level,
    update_streak_counters,
    insert_user_achievement,
)

__all__ = [
    'get_profile', 'update_profile', 'apply_profile_update', 'get_user_created_at', 'UPDATABLE_PROFILE_FIELDS',
    'fetch_levels', 'get_levels',
    'get_all_drink_logs', 'fetch_all_drink_logs', 'get_drink_logs', 'get_drink_log',
    'get_or_create_drink_log', 'fetch_drink_log_for_update', 'upsert_drink_log', 'delete_drink_log',
    'get_daily_tasks', 'fetch_task', 'insert_task_completion',
    'delete_task_completion', 'count_completed_tasks', 'get_completed_tasks',
    'get_achievement_catalog', 'fetch_achievement_catalog', 'get_earned_achievement_ids',
    'fetch_earned_achievement_ids', 'get_user_achievements',
    'record_achievements', 'award_achievements_in_transaction',
    'upsert_mood_log', 'get_mood_logs', 'delete_mood_log',
    'insert_trigger_log', 'get_trigger_logs', 'delete_trigger_log',
    'get_random_quote', 'get_healthy_alternatives', 'get_random_alternative',
    'lock_profile', 'apply_points_delta', 'sync_level', 'update_streak_counters', 'insert_user_achievement',
]
