"""Pydantic models for recovery tracking records"""
from recovery.models.achievement import Achievement, RequirementType, UserAchievement, UserStats
from recovery.models.drink import DrinkLog, DrinkLogInput
from recovery.models.mood import MoodLog, MoodLogInput, MoodType, TriggerLog, TriggerLogInput, TriggerType
from recovery.models.profile import Level, Profile
from recovery.models.task import DailyTask, TaskCompletion

__all__ = [
    "Achievement",
    "RequirementType",
    "UserAchievement",
    "UserStats",
    "DrinkLog",
    "DrinkLogInput",
    "MoodLog",
    "MoodLogInput",
    "MoodType",
    "TriggerLog",
    "TriggerLogInput",
    "TriggerType",
    "Level",
    "Profile",
    "DailyTask",
    "TaskCompletion",
]
