"""Mood and trigger log models"""
from enum import Enum
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field


class MoodType(str, Enum):
    """Mood categories"""
    GREAT = "great"
    GOOD = "good"
    OKAY = "okay"
    BAD = "bad"
    TERRIBLE = "terrible"


class TriggerType(str, Enum):
    """Craving trigger categories"""
    STRESS = "stress"
    SOCIAL = "social"
    BOREDOM = "boredom"
    EMOTIONAL = "emotional"
    ENVIRONMENTAL = "environmental"
    OTHER = "other"


class MoodLogInput(BaseModel):
    """Validated input for a mood log; one per user per day"""
    mood_type: MoodType
    mood_score: int = Field(..., ge=1, le=10)
    log_date: date = Field(default_factory=date.today)
    notes: Optional[str] = Field(default=None, max_length=2000)


class MoodLog(BaseModel):
    """Stored mood log"""
    id: int
    user_id: int
    mood_type: MoodType
    mood_score: int
    log_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class TriggerLogInput(BaseModel):
    """Validated input for a trigger log"""
    trigger_type: TriggerType
    intensity: int = Field(..., ge=1, le=10)
    log_date: date = Field(default_factory=date.today)
    notes: Optional[str] = Field(default=None, max_length=2000)


class TriggerLog(BaseModel):
    """Stored trigger log"""
    id: int
    user_id: int
    trigger_type: TriggerType
    intensity: int
    log_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
