"""Profile and level models"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, model_validator


class Level(BaseModel):
    """Level tier unlocked at a points threshold"""
    id: int
    level_name: str
    points_required: int = Field(..., ge=0)
    avatar_unlock: Optional[str] = None
    description: Optional[str] = None


class Profile(BaseModel):
    """Per-user aggregate gamification state"""
    user_id: int
    total_points: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    days_sober: int = Field(default=0, ge=0)
    level_id: int = 1
    avatar_type: str = "basic"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_longest_streak(self) -> "Profile":
        if self.longest_streak < self.current_streak:
            raise ValueError("longest_streak cannot be lower than current_streak")
        return self
