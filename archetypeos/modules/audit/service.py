"""Append/read operations for the audit logs.

Methods here only `flush`; the calling service owns the transaction and commits
once its whole side-effect chain has been applied.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from archetypeos.core.db_defaults import as_utc, utcnow
from archetypeos.core.monitoring import CERTIFICATES_ISSUED
from archetypeos.core.schemas import CamelModel
from archetypeos.modules.audit.models import AuditAction, AuditEvent
from archetypeos.modules.audit.schemas import (
    DETAILS_BY_ACTION,
    CandidateDecisionDetails,
    CertificateDetails,
    NotificationDetails,
    WeeklyGoalDetails,
)

logger = logging.getLogger(__name__)


class AuditLog:
    """Typed facade over the single `audit_log` table."""

    def __init__(self, db: Session):
        self.db = db

    # ----- Generic append/read -----
    def append(
        self,
        *,
        action: AuditAction,
        user_id: int,
        target_type: str,
        target_id: Optional[int],
        details: CamelModel,
        actor_id: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ) -> AuditEvent:
        expected = DETAILS_BY_ACTION[action]
        if not isinstance(details, expected):
            raise TypeError(
                f"{action.value} events take {expected.__name__}, got {type(details).__name__}"
            )
        event = AuditEvent(
            user_id=user_id,
            actor_id=actor_id,
            action=action.value,
            target_type=target_type,
            target_id=target_id,
            timestamp=timestamp or utcnow(),
            details=details.model_dump(mode="json", by_alias=True),
        )
        self.db.add(event)
        self.db.flush()
        return event

    def events_for(self, user_id: int, action: AuditAction) -> List[AuditEvent]:
        return (
            self.db.query(AuditEvent)
            .filter(AuditEvent.user_id == user_id, AuditEvent.action == action.value)
            .order_by(AuditEvent.timestamp.desc(), AuditEvent.id.desc())
            .all()
        )

    @staticmethod
    def parse_details(event: AuditEvent) -> CamelModel:
        return DETAILS_BY_ACTION[AuditAction(event.action)].model_validate(event.details)

    # ----- Certificates -----
    def find_certificate(self, user_id: int, course_id: int) -> Optional[AuditEvent]:
        return (
            self.db.query(AuditEvent)
            .filter(
                AuditEvent.user_id == user_id,
                AuditEvent.action == AuditAction.CERTIFICATE.value,
                AuditEvent.target_id == course_id,
            )
            .first()
        )

    def issue_certificate(
        self,
        *,
        user_id: int,
        course_id: int,
        actor_id: Optional[int] = None,
        details: Optional[CertificateDetails] = None,
    ) -> Tuple[AuditEvent, bool]:
        """Record a course completion certificate at most once per (user, course).

        Returns the certificate row and whether this call created it. A unique
        violation from a concurrent issuer is absorbed inside a savepoint so the
        surrounding transaction survives.
        """
        existing = self.find_certificate(user_id, course_id)
        if existing is not None:
            return existing, False

        try:
            with self.db.begin_nested():
                event = self.append(
                    action=AuditAction.CERTIFICATE,
                    user_id=user_id,
                    actor_id=actor_id,
                    target_type="course",
                    target_id=course_id,
                    details=details or CertificateDetails(),
                )
        except IntegrityError:
            logger.warning(
                f"Certificate for user {user_id} on course {course_id} already issued concurrently",
                extra={"user_id": user_id, "course_id": course_id},
            )
            return self.find_certificate(user_id, course_id), False

        logger.info(
            f"Issued certificate {event.id} to user {user_id} for course {course_id}",
            extra={"user_id": user_id, "course_id": course_id},
        )
        CERTIFICATES_ISSUED.inc()
        return event, True

    def certificates_for(self, user_id: int) -> List[AuditEvent]:
        return self.events_for(user_id, AuditAction.CERTIFICATE)

    # ----- Notifications -----
    def notify(
        self,
        *,
        recipient_id: int,
        title: str,
        message: str,
        priority: str = "normal",
        actor_id: Optional[int] = None,
    ) -> AuditEvent:
        return self.append(
            action=AuditAction.NOTIFICATION,
            user_id=recipient_id,
            actor_id=actor_id,
            target_type="user",
            target_id=recipient_id,
            details=NotificationDetails(
                title=title,
                message=message,
                priority=priority,
                created_by=str(actor_id) if actor_id is not None else "system",
            ),
        )

    def notifications_for(self, user_id: int) -> List[AuditEvent]:
        return self.events_for(user_id, AuditAction.NOTIFICATION)

    # ----- Weekly goals -----
    def record_weekly_goal(
        self,
        *,
        learner_id: int,
        actor_id: int,
        goal_minutes: int,
        week_start: datetime,
    ) -> AuditEvent:
        return self.append(
            action=AuditAction.WEEKLY_GOAL,
            user_id=learner_id,
            actor_id=actor_id,
            target_type="user",
            target_id=learner_id,
            details=WeeklyGoalDetails(goal_minutes=goal_minutes, week_start=week_start),
        )

    def weekly_goals_for(
        self, user_ids: Iterable[int], week_start: datetime
    ) -> Dict[int, int]:
        """Most recent goal per user for the given week; users without one are absent."""
        ids = list(user_ids)
        if not ids:
            return {}
        events = (
            self.db.query(AuditEvent)
            .filter(
                AuditEvent.action == AuditAction.WEEKLY_GOAL.value,
                AuditEvent.user_id.in_(ids),
            )
            .order_by(AuditEvent.timestamp.desc(), AuditEvent.id.desc())
            .all()
        )
        wanted = as_utc(week_start)
        latest: Dict[int, int] = {}
        for event in events:
            if event.user_id in latest:
                continue
            details = WeeklyGoalDetails.model_validate(event.details)
            if as_utc(details.week_start) == wanted:
                latest[event.user_id] = details.goal_minutes
        return latest

    def current_weekly_goal(self, user_id: int, week_start: datetime) -> Optional[int]:
        return self.weekly_goals_for([user_id], week_start).get(user_id)

    # ----- Candidate decisions -----
    def record_candidate_decision(
        self,
        *,
        candidate_id: int,
        actor_id: int,
        decision: str,
        previous_role: str,
        new_role: str,
    ) -> AuditEvent:
        return self.append(
            action=AuditAction.CANDIDATE_DECISION,
            user_id=candidate_id,
            actor_id=actor_id,
            target_type="user",
            target_id=candidate_id,
            details=CandidateDecisionDetails(
                decision=decision, previous_role=previous_role, new_role=new_role
            ),
        )


__all__ = ["AuditLog"]
