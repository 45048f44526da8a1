"""
Achievement Evaluator

Decides which catalog achievements a user qualifies for. Each
requirement type maps to exactly one stat comparison; an unknown
requirement type never qualifies, so malformed catalog rows cannot
grant rewards.
"""

from dataclasses import dataclass, field
from typing import Callable, Collection, Dict, Iterable, List, Optional
import logging

from recovery.models.achievement import Achievement, RequirementType, UserStats

logger = logging.getLogger(__name__)


def _check_days_sober(stats: UserStats, threshold: int) -> bool:
    return stats.days_sober >= threshold


def _check_streak(stats: UserStats, threshold: int) -> bool:
    return stats.current_streak >= threshold


def _check_tasks_completed(stats: UserStats, threshold: int) -> bool:
    return stats.tasks_completed >= threshold


def _check_drinks_avoided(stats: UserStats, threshold: int) -> bool:
    return stats.drinks_avoided >= threshold


_EVALUATORS: Dict[RequirementType, Callable[[UserStats, int], bool]] = {
    RequirementType.DAYS_SOBER: _check_days_sober,
    RequirementType.STREAK: _check_streak,
    RequirementType.TASKS_COMPLETED: _check_tasks_completed,
    RequirementType.DRINKS_AVOIDED: _check_drinks_avoided,
}


@dataclass
class AchievementEvaluation:
    """Outcome of evaluating the catalog for one user"""
    newly_earned: List[Achievement] = field(default_factory=list)
    points_awarded: int = 0


def parse_requirement_type(value: Optional[str]) -> Optional[RequirementType]:
    """Return the RequirementType for a catalog tag, or None if unrecognized"""
    try:
        return RequirementType(value)
    except ValueError:
        return None


def evaluate_eligibility(stats: UserStats, achievement: Achievement) -> bool:
    """
    Check whether stats meet an achievement's threshold

    Unrecognized requirement types are not eligible.
    """
    requirement = parse_requirement_type(achievement.requirement_type)
    if requirement is None:
        logger.warning(
            f"Achievement {achievement.id} ({achievement.achievement_name}) has unknown "
            f"requirement_type {achievement.requirement_type!r}; treating as not eligible"
        )
        return False

    return _EVALUATORS[requirement](stats, achievement.requirement_value)


def evaluate_achievements(
    stats: UserStats,
    catalog: Iterable[Achievement],
    earned_ids: Collection[int]
) -> AchievementEvaluation:
    """
    Find catalog achievements the user newly qualifies for

    Args:
        stats: User's aggregate counters
        catalog: Full achievement catalog
        earned_ids: IDs the user has already earned

    Returns:
        AchievementEvaluation with the new achievements and their summed reward
    """
    result = AchievementEvaluation()

    for achievement in catalog:
        if achievement.id in earned_ids:
            continue
        if evaluate_eligibility(stats, achievement):
            result.newly_earned.append(achievement)
            result.points_awarded += achievement.points_reward

    return result
