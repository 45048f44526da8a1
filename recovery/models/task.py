"""Daily task models"""
from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel


class DailyTask(BaseModel):
    """Task from the daily task catalog"""
    id: int
    task_name: str
    description: Optional[str] = None
    category: Optional[str] = None
    points_reward: int = 10
    is_active: bool = True


class TaskCompletion(BaseModel):
    """Completion of a task by a user on a date; unique per user, task and date"""
    id: int
    user_id: int
    task_id: int
    completion_date: date
    created_at: Optional[datetime] = None
