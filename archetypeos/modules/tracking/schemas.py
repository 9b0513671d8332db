from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from archetypeos.core.schemas import CamelModel


class SessionStart(CamelModel):
    course_id: Optional[int] = None


class LearningSessionOut(CamelModel):
    id: int
    user_id: int
    course_id: Optional[int] = None
    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None


class DayMinutes(CamelModel):
    day: date
    minutes: int


class WeeklyStats(CamelModel):
    week_start: datetime
    days: List[DayMinutes]
    total_minutes: int
    goal_minutes: int


class WeeklyGoalRequest(CamelModel):
    learner_id: int
    goal_minutes: int = Field(ge=0)


class LearnerGoal(CamelModel):
    learner_id: int
    display_name: str
    week_start: datetime
    goal_minutes: int


class IdleLearner(CamelModel):
    id: int
    email: str
    display_name: str
    last_active: Optional[datetime] = None
    days_idle: Optional[int] = None


__all__ = [
    "DayMinutes",
    "IdleLearner",
    "LearnerGoal",
    "LearningSessionOut",
    "SessionStart",
    "WeeklyGoalRequest",
    "WeeklyStats",
]
