"""
Prometheus metrics definitions for the recovery tracker.

Metrics are grouped by category:
- Points ledger: points awarded/deducted and failed units of work
- Achievements: unlocks by requirement type
- Logging activity: drink, mood and trigger logs recorded
"""

import logging
from prometheus_client import Counter

logger = logging.getLogger(__name__)

# =============================================================================
# Points Ledger Metrics
# =============================================================================

points_awarded_total = Counter(
    "recovery_points_awarded_total",
    "Total points added to user profiles",
    ["source"],  # source: drink_free_day/task/achievement/manual
)

points_deducted_total = Counter(
    "recovery_points_deducted_total",
    "Total points requested for deduction from user profiles",
    ["source"],
)

ledger_failures_total = Counter(
    "recovery_ledger_failures_total",
    "Units of work rolled back because of an error",
    ["operation", "error_type"],
)

# =============================================================================
# Achievement Metrics
# =============================================================================

achievements_unlocked_total = Counter(
    "recovery_achievements_unlocked_total",
    "Total achievements unlocked",
    ["requirement_type"],
)

# =============================================================================
# Logging Activity Metrics
# =============================================================================

logs_recorded_total = Counter(
    "recovery_logs_recorded_total",
    "Total daily logs recorded",
    ["log_type"],  # log_type: drink/mood/trigger
)


def record_points(source: str, delta: int) -> None:
    """Count a ledger delta under the right counter"""
    if delta > 0:
        points_awarded_total.labels(source=source).inc(delta)
    elif delta < 0:
        points_deducted_total.labels(source=source).inc(-delta)
