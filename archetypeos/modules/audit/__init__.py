"""Audit log exports."""

from .models import AuditAction, AuditEvent
from .schemas import (
    AuditEventOut,
    CandidateDecisionDetails,
    CertificateDetails,
    NotificationDetails,
    WeeklyGoalDetails,
)
from .service import AuditLog

__all__ = [
    "AuditAction",
    "AuditEvent",
    "AuditEventOut",
    "AuditLog",
    "CandidateDecisionDetails",
    "CertificateDetails",
    "NotificationDetails",
    "WeeklyGoalDetails",
]
