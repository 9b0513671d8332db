"""Attempt engine: start and submit test attempts.

Concurrency rules:

* one in-progress row per (user, test), enforced by a partial unique index;
  a start that loses the insert race returns the winner's row;
* submit moves the row out of `in_progress` with a compare-and-set UPDATE, so
  only one of several concurrent submits is applied;
* the attempt-limit check runs while the user row is locked (row lock on
  Postgres, the database write lock on SQLite).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from archetypeos.core.authorization import AccessTarget, Operation, require
from archetypeos.core.config import settings
from archetypeos.core.db_defaults import as_utc, utcnow
from archetypeos.core.monitoring import record_attempt_outcome
from archetypeos.core.exceptions import (
    AlreadySubmittedException,
    AttemptLimitReachedException,
    NoActiveAttemptException,
    ResourceConflictException,
    ResourceNotFoundException,
)
from archetypeos.modules.assessments.models import Test, TestResult
from archetypeos.modules.assessments.progression import apply_pass
from archetypeos.modules.assessments.scoring import auto_grade, normalize_answers
from archetypeos.modules.assessments.service import AssessmentService
from archetypeos.modules.assessments.status import AttemptStatus, outcome_for
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.courses.service import EnrollmentService
from archetypeos.modules.users.models import User

logger = logging.getLogger(__name__)


class AttemptEngine:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    # ----- Helpers -----
    def _subject(self, actor: User, user_id: Optional[int]) -> User:
        if user_id is None or user_id == actor.id:
            return actor
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundException("User", user_id)
        return user

    def _authorize(self, actor: User, subject: User, test: Test) -> None:
        enrolled = EnrollmentService(self.db).is_enrolled(subject.id, test.course_id)
        require(
            actor,
            Operation.TAKE_TEST,
            AccessTarget(user=subject, enrolled=enrolled),
            message="You must be enrolled in this course to take its tests",
        )

    def _lock_user(self, user_id: int) -> None:
        self.db.query(User.id).filter(User.id == user_id).with_for_update().first()

    def _in_progress(self, user_id: int, test_id: int) -> Optional[TestResult]:
        return (
            self.db.query(TestResult)
            .filter(
                TestResult.user_id == user_id,
                TestResult.test_id == test_id,
                TestResult.status == AttemptStatus.IN_PROGRESS,
            )
            .first()
        )

    def _finished_count(self, user_id: int, test_id: int) -> int:
        return (
            self.db.query(func.count(TestResult.id))
            .filter(
                TestResult.user_id == user_id,
                TestResult.test_id == test_id,
                TestResult.status != AttemptStatus.IN_PROGRESS,
            )
            .scalar()
            or 0
        )

    def attempts_for(self, user_id: int, test_id: int) -> List[TestResult]:
        return (
            self.db.query(TestResult)
            .filter(TestResult.user_id == user_id, TestResult.test_id == test_id)
            .order_by(TestResult.attempt_number)
            .all()
        )

    # ----- Operations -----
    def summary(self, actor: User, test_id: int, user_id: Optional[int] = None) -> Dict[str, Any]:
        test = AssessmentService(self.db).get_test_or_404(test_id)
        subject = self._subject(actor, user_id)
        require(actor, Operation.READ_DATA, AccessTarget(user=subject))

        attempts = self.attempts_for(subject.id, test.id)
        finished = [a for a in attempts if a.status.is_finished]
        active = next((a for a in attempts if not a.status.is_finished), None)
        scores = [a.score for a in finished if a.score is not None]
        return {
            "test_id": test.id,
            "attempt_limit": test.attempt_limit,
            "attempts_used": len(finished),
            "attempts_remaining": max(test.attempt_limit - len(finished), 0),
            "in_progress_attempt_id": active.id if active else None,
            "best_score": max(scores) if scores else None,
            "passed": any(a.status is AttemptStatus.PASSED for a in finished),
        }

    def start(self, actor: User, test_id: int, user_id: Optional[int] = None) -> TestResult:
        """Return the open attempt, or open attempt number `finished + 1`."""
        test = AssessmentService(self.db).get_test_or_404(test_id)
        subject = self._subject(actor, user_id)
        self._authorize(actor, subject, test)
        self._lock_user(subject.id)

        existing = self._in_progress(subject.id, test.id)
        if existing is not None:
            self.db.commit()
            logger.info(
                f"Resuming attempt {existing.id} on test {test.id}",
                extra={"user_id": subject.id, "test_id": test.id},
            )
            return existing

        number = self._finished_count(subject.id, test.id) + 1
        if number > test.attempt_limit:
            raise AttemptLimitReachedException(test.attempt_limit)

        attempt = TestResult(
            test_id=test.id,
            user_id=subject.id,
            attempt_number=number,
            status=AttemptStatus.IN_PROGRESS,
            answers={},
            score=None,
            started_at=self.clock(),
        )
        try:
            with self.db.begin_nested():
                self.db.add(attempt)
                self.db.flush()
        except IntegrityError:
            winner = self._in_progress(subject.id, test.id)
            if winner is None:
                raise ResourceConflictException(
                    "Attempt was modified concurrently; retry",
                    details={"test_id": test.id},
                )
            self.db.commit()
            logger.info(
                f"Concurrent start on test {test.id} resolved to attempt {winner.id}",
                extra={"user_id": subject.id, "test_id": test.id},
            )
            return winner

        self.db.commit()
        self.db.refresh(attempt)
        logger.info(
            f"Started attempt {attempt.attempt_number} on test {test.id}",
            extra={"user_id": subject.id, "test_id": test.id, "attempt_id": attempt.id},
        )
        return attempt

    def submit(
        self,
        actor: User,
        test_id: int,
        answers: Optional[Mapping[Any, Any]],
        user_id: Optional[int] = None,
        client_started_at: Optional[datetime] = None,
    ) -> TestResult:
        """Score and close the open attempt, then apply pass side effects.

        The deadline is measured from the server-side `started_at`; a
        client-supplied start time is only logged.
        """
        test = AssessmentService(self.db).get_test_or_404(test_id)
        subject = self._subject(actor, user_id)
        self._authorize(actor, subject, test)

        attempt = self._in_progress(subject.id, test.id)
        if attempt is None:
            if self._finished_count(subject.id, test.id) >= test.attempt_limit:
                raise AttemptLimitReachedException(test.attempt_limit)
            raise NoActiveAttemptException(test.id)

        now = self.clock()
        started_at = as_utc(attempt.started_at)
        if client_started_at is not None:
            drift = abs((as_utc(client_started_at) - started_at).total_seconds())
            if drift > settings.submit_grace_seconds:
                logger.warning(
                    f"Client start time differs from server by {drift:.0f}s on attempt {attempt.id}",
                    extra={"user_id": subject.id, "attempt_id": attempt.id},
                )

        late = False
        if test.time_limit_minutes:
            deadline = started_at + timedelta(
                minutes=test.time_limit_minutes, seconds=settings.submit_grace_seconds
            )
            late = now > deadline

        given = normalize_answers(answers)
        known = {str(question.position) for question in test.questions}
        sheet = auto_grade(test.questions, given, discard_answers=late)
        if sheet.needs_review:
            status = AttemptStatus.NEEDS_REVIEW
        else:
            status = outcome_for(sheet.score, test.passing_score)

        updated = (
            self.db.query(TestResult)
            .filter(
                TestResult.id == attempt.id,
                TestResult.status == AttemptStatus.IN_PROGRESS,
            )
            .update(
                {
                    TestResult.status: status,
                    TestResult.answers: {k: v for k, v in given.items() if k in known},
                    TestResult.score: sheet.score,
                    TestResult.is_late: late,
                    TestResult.submitted_at: now,
                },
                synchronize_session=False,
            )
        )
        if not updated:
            self.db.rollback()
            raise AlreadySubmittedException(attempt.id)
        self.db.expire(attempt)

        AuditLog(self.db).notify(
            recipient_id=subject.id,
            actor_id=actor.id if actor.id != subject.id else None,
            title=f"Test submitted: {test.title}",
            message=_outcome_message(status, sheet.score),
            priority="high" if status is AttemptStatus.PASSED else "normal",
        )
        if status is AttemptStatus.PASSED:
            apply_pass(self.db, user=subject, test=test, actor_id=actor.id, issued_via="attempt")

        self.db.commit()
        self.db.refresh(attempt)
        record_attempt_outcome(status.value, via="submit")
        logger.info(
            f"Attempt {attempt.id} submitted with status {status.value}",
            extra={
                "user_id": subject.id,
                "attempt_id": attempt.id,
                "score": sheet.score,
                "late": late,
            },
        )
        return attempt


def _outcome_message(status: AttemptStatus, score: Optional[int]) -> str:
    if status is AttemptStatus.NEEDS_REVIEW:
        return "Your answers were submitted and are awaiting review"
    if status is AttemptStatus.PASSED:
        return f"You passed with a score of {score}%"
    return f"You scored {score}%, below the passing score"


__all__ = ["AttemptEngine"]
