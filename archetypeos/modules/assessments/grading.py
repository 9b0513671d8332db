"""Manual grading of attempts waiting for review."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session, joinedload

from archetypeos.core.authorization import AccessTarget, Operation, require
from archetypeos.core.db_defaults import utcnow
from archetypeos.core.monitoring import record_attempt_outcome
from archetypeos.core.exceptions import (
    NotGradableException,
    PermissionDeniedException,
    ResourceNotFoundException,
    ValidationException,
)
from archetypeos.modules.assessments.models import Test, TestResult
from archetypeos.modules.assessments.progression import apply_pass
from archetypeos.modules.assessments.status import AttemptStatus, outcome_for
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class GradingService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def _get_attempt_or_404(self, attempt_id: int) -> TestResult:
        attempt = (
            self.db.query(TestResult)
            .options(joinedload(TestResult.user), joinedload(TestResult.test))
            .filter(TestResult.id == attempt_id)
            .first()
        )
        if not attempt:
            raise ResourceNotFoundException("Test result", attempt_id)
        return attempt

    def grade(
        self,
        actor: User,
        attempt_id: int,
        score: int,
        feedback: Optional[str] = None,
    ) -> TestResult:
        """Score an attempt in review and apply pass side effects.

        Only the first grader wins: the status update is conditional on the
        row still being in review.
        """
        attempt = self._get_attempt_or_404(attempt_id)
        require(
            actor,
            Operation.GRADE_ATTEMPT,
            AccessTarget(user=attempt.user),
            message="Learner is not assigned to you",
        )
        if not 0 <= score <= 100:
            raise ValidationException("Score must be between 0 and 100", field="score")
        if attempt.status is not AttemptStatus.NEEDS_REVIEW:
            raise NotGradableException(attempt.id, attempt.status.value)

        test: Test = attempt.test
        student: User = attempt.user
        status = outcome_for(score, test.passing_score)
        updated = (
            self.db.query(TestResult)
            .filter(
                TestResult.id == attempt.id,
                TestResult.status == AttemptStatus.NEEDS_REVIEW,
            )
            .update(
                {
                    TestResult.status: status,
                    TestResult.score: score,
                    TestResult.feedback: feedback,
                    TestResult.graded_by: actor.id,
                    TestResult.graded_at: self.clock(),
                },
                synchronize_session=False,
            )
        )
        if not updated:
            self.db.rollback()
            current = self._get_attempt_or_404(attempt_id)
            raise NotGradableException(current.id, current.status.value)
        self.db.expire(attempt)

        AuditLog(self.db).notify(
            recipient_id=student.id,
            actor_id=actor.id,
            title=f"Test graded: {test.title}",
            message=(
                f"You passed with a score of {score}%"
                if status is AttemptStatus.PASSED
                else f"You scored {score}%, below the passing score"
            ),
            priority="high" if status is AttemptStatus.PASSED else "normal",
        )
        if status is AttemptStatus.PASSED:
            apply_pass(self.db, user=student, test=test, actor_id=actor.id, issued_via="grading")

        self.db.commit()
        self.db.refresh(attempt)
        record_attempt_outcome(status.value, via="grading")
        logger.info(
            f"Attempt {attempt.id} graded {score} -> {status.value}",
            extra={"user_id": actor.id, "attempt_id": attempt.id},
        )
        return attempt

    def review_queue(self, actor: User) -> List[TestResult]:
        """Attempts awaiting review for learners the actor oversees."""
        role = UserRole.parse(actor.role)
        if not role.has_oversight:
            raise PermissionDeniedException("Supervisor access required")
        query = (
            self.db.query(TestResult)
            .join(User, TestResult.user_id == User.id)
            .options(joinedload(TestResult.user), joinedload(TestResult.test))
            .filter(TestResult.status == AttemptStatus.NEEDS_REVIEW)
        )
        if role is UserRole.SUPERVISOR:
            query = query.filter(User.supervisor_id == actor.id)
        return query.order_by(TestResult.submitted_at, TestResult.id).all()

    def results_for_course(self, actor: User, course_id: int) -> List[TestResult]:
        """The actor's own attempts across the course's tests."""
        return (
            self.db.query(TestResult)
            .join(Test, TestResult.test_id == Test.id)
            .filter(Test.course_id == course_id, TestResult.user_id == actor.id)
            .order_by(TestResult.test_id, TestResult.attempt_number)
            .all()
        )


__all__ = ["GradingService"]
