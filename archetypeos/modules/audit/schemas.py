"""Typed `details` payloads for each audit log, plus the API read model."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal, Optional, Type

from pydantic import Field

from archetypeos.core.schemas import CamelModel
from archetypeos.modules.audit.models import AuditAction


class CertificateDetails(CamelModel):
    message: str = "Course completed"
    course_title: Optional[str] = None
    issued_via: Literal["progress", "attempt", "grading", "supervisor"] = "progress"


class NotificationDetails(CamelModel):
    title: str
    message: str
    priority: Literal["low", "normal", "high"] = "normal"
    created_by: str = "system"


class WeeklyGoalDetails(CamelModel):
    goal_minutes: int = Field(ge=0)
    week_start: datetime


class CandidateDecisionDetails(CamelModel):
    decision: Literal["accept", "reject"]
    previous_role: str
    new_role: str


DETAILS_BY_ACTION: Dict[AuditAction, Type[CamelModel]] = {
    AuditAction.CERTIFICATE: CertificateDetails,
    AuditAction.NOTIFICATION: NotificationDetails,
    AuditAction.WEEKLY_GOAL: WeeklyGoalDetails,
    AuditAction.CANDIDATE_DECISION: CandidateDecisionDetails,
}


class AuditEventOut(CamelModel):
    id: int
    user_id: int
    actor_id: Optional[int] = None
    action: str
    target_type: str
    target_id: Optional[int] = None
    timestamp: datetime
    details: Dict[str, Any]


__all__ = [
    "CertificateDetails",
    "NotificationDetails",
    "WeeklyGoalDetails",
    "CandidateDecisionDetails",
    "DETAILS_BY_ACTION",
    "AuditEventOut",
]
