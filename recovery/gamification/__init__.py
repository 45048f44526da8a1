"""
Gamification core for the recovery tracker

Pure functions with no I/O:
- Streak Engine (current streak, sober days)
- Level Resolver
- Achievement Evaluator
"""

from recovery.gamification.streak_system import (
    compute_streak,
    compute_sober_days,
    compute_drinks_avoided,
    compute_longest_streak,
)
from recovery.gamification.level_system import resolve_level, get_next_level, progress_to_next_level
from recovery.gamification.achievement_system import (
    AchievementEvaluation,
    evaluate_eligibility,
    evaluate_achievements,
)

__all__ = [
    "compute_streak",
    "compute_sober_days",
    "compute_drinks_avoided",
    "compute_longest_streak",
    "resolve_level",
    "get_next_level",
    "progress_to_next_level",
    "AchievementEvaluation",
    "evaluate_eligibility",
    "evaluate_achievements",
]
