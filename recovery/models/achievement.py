"""Achievement models for gamification"""
from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class RequirementType(str, Enum):
    """Stat an achievement threshold is measured against"""
    DAYS_SOBER = "days_sober"
    STREAK = "streak"
    TASKS_COMPLETED = "tasks_completed"
    DRINKS_AVOIDED = "drinks_avoided"


class Achievement(BaseModel):
    """Achievement definition from the static catalog"""
    id: int
    achievement_name: str
    description: Optional[str] = None
    points_reward: int = 0
    # Kept as the raw catalog string so unrecognized tags can fail closed
    requirement_type: Optional[str] = None
    requirement_value: int = 0
    icon: Optional[str] = None


class UserAchievement(BaseModel):
    """Achievement earned by a user"""
    user_id: int
    achievement_id: int
    earned_at: datetime


class UserStats(BaseModel):
    """Aggregate counters an achievement can be unlocked by"""
    days_sober: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    tasks_completed: int = Field(default=0, ge=0)
    drinks_avoided: int = Field(default=0, ge=0)
