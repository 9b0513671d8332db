"""Learning sessions, weekly learning-time goals and idle-learner detection.

Weeks start on Sunday 00:00 UTC.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from archetypeos.core.authorization import AccessTarget, Operation, require
from archetypeos.core.config import settings
from archetypeos.core.db_defaults import as_utc, utcnow
from archetypeos.core.exceptions import (
    PermissionDeniedException,
    ResourceConflictException,
    ResourceNotFoundException,
)
from archetypeos.modules.audit.models import AuditEvent
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.courses.service import CourseService
from archetypeos.modules.tracking.models import LearningSession
from archetypeos.modules.users.models import User
from archetypeos.modules.users.service import UserService

logger = logging.getLogger(__name__)


def week_start(moment: datetime) -> datetime:
    moment = as_utc(moment)
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight - timedelta(days=(midnight.weekday() + 1) % 7)


class TrackingService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    # ----- Sessions -----
    def start_session(self, actor: User, course_id: Optional[int] = None) -> LearningSession:
        if course_id is not None:
            CourseService(self.db).get_course_or_404(course_id)
        record = LearningSession(user_id=actor.id, course_id=course_id, start_time=self.clock())
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def end_session(self, actor: User, session_id: int) -> LearningSession:
        record = self.db.query(LearningSession).filter(LearningSession.id == session_id).first()
        if not record:
            raise ResourceNotFoundException("Learning session", session_id)
        if record.user_id != actor.id:
            raise PermissionDeniedException("Not your learning session")
        if not record.is_open:
            raise ResourceConflictException(
                "Learning session already ended", details={"session_id": session_id}
            )

        end = self.clock()
        elapsed = (end - as_utc(record.start_time)).total_seconds()
        record.end_time = end
        record.duration_minutes = max(0, int(math.floor(elapsed / 60 + 0.5)))
        self.db.commit()
        self.db.refresh(record)
        logger.info(
            f"Learning session {record.id} ended after {record.duration_minutes} min",
            extra={"user_id": actor.id},
        )
        return record

    def list_sessions(self, actor: User) -> List[LearningSession]:
        return (
            self.db.query(LearningSession)
            .filter(LearningSession.user_id == actor.id)
            .order_by(LearningSession.start_time.desc(), LearningSession.id.desc())
            .all()
        )

    def weekly_stats(self, actor: User) -> Dict:
        """Minutes per day of the current week, the total and the goal."""
        start = week_start(self.clock())
        end = start + timedelta(days=7)
        sessions = (
            self.db.query(LearningSession)
            .filter(
                LearningSession.user_id == actor.id,
                LearningSession.start_time >= start,
                LearningSession.start_time < end,
                LearningSession.duration_minutes.isnot(None),
            )
            .all()
        )
        per_day = {(start + timedelta(days=offset)).date(): 0 for offset in range(7)}
        for record in sessions:
            day = as_utc(record.start_time).date()
            if day in per_day:
                per_day[day] += record.duration_minutes

        goal = AuditLog(self.db).current_weekly_goal(actor.id, start)
        return {
            "week_start": start,
            "days": [{"day": day, "minutes": minutes} for day, minutes in per_day.items()],
            "total_minutes": sum(per_day.values()),
            "goal_minutes": goal if goal is not None else settings.weekly_default_goal_minutes,
        }

    # ----- Weekly goals -----
    def set_weekly_goal(self, actor: User, learner_id: int, goal_minutes: int) -> AuditEvent:
        learner = UserService(self.db).get_user_or_404(learner_id)
        require(
            actor,
            Operation.SET_WEEKLY_GOAL,
            AccessTarget(user=learner),
            message="Learner is not assigned to you",
        )
        event = AuditLog(self.db).record_weekly_goal(
            learner_id=learner.id,
            actor_id=actor.id,
            goal_minutes=goal_minutes,
            week_start=week_start(self.clock()),
        )
        self.db.commit()
        self.db.refresh(event)
        logger.info(
            f"Weekly goal for user {learner.id} set to {goal_minutes} min",
            extra={"user_id": actor.id, "learner_id": learner.id},
        )
        return event

    def weekly_goals(self, actor: User) -> List[Dict]:
        learners = UserService(self.db).learners_in_scope(actor)
        start = week_start(self.clock())
        goals = AuditLog(self.db).weekly_goals_for([learner.id for learner in learners], start)
        return [
            {
                "learner_id": learner.id,
                "display_name": learner.display_name,
                "week_start": start,
                "goal_minutes": goals.get(learner.id, 0),
            }
            for learner in learners
        ]

    # ----- Idle learners -----
    def idle_learners(self, actor: User, days: Optional[int] = None) -> List[Dict]:
        """Learners in scope with no session started in the last `days` days."""
        learners = UserService(self.db).learners_in_scope(actor)
        window = max(1, days if days is not None else settings.idle_learner_days)
        now = self.clock()
        cutoff = now - timedelta(days=window)

        ids = [learner.id for learner in learners]
        last_seen = {}
        if ids:
            rows = (
                self.db.query(LearningSession.user_id, func.max(LearningSession.start_time))
                .filter(LearningSession.user_id.in_(ids))
                .group_by(LearningSession.user_id)
                .all()
            )
            last_seen = dict(rows)

        idle = []
        for learner in learners:
            last = as_utc(last_seen.get(learner.id))
            if last is not None and last >= cutoff:
                continue
            idle.append(
                {
                    "id": learner.id,
                    "email": learner.email,
                    "display_name": learner.display_name,
                    "last_active": last,
                    "days_idle": (now - last).days if last is not None else None,
                }
            )
        return idle


__all__ = ["TrackingService", "week_start"]
