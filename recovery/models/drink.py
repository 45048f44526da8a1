"""Drink log models"""
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator


class DrinkLog(BaseModel):
    """One drink log row; unique per user and calendar date"""
    id: Optional[int] = None
    user_id: int
    log_date: date
    drink_count: int = Field(..., ge=0)
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DrinkLogInput(BaseModel):
    """Validated input for logging drinks on a day"""
    drink_count: int = Field(..., ge=0, description="Number of drinks on the day")
    log_date: date = Field(default_factory=date.today)
    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator('log_date')
    @classmethod
    def validate_not_future(cls, v: date) -> date:
        """Days that have not happened yet cannot be logged"""
        if v > date.today():
            raise ValueError(f"Log date {v.isoformat()} is in the future")
        return v
