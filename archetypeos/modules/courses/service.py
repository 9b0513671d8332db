"""Course catalogue and enrollment business services."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from archetypeos.core.authorization import AccessTarget, Operation, require
from archetypeos.core.db_defaults import utcnow
from archetypeos.core.exceptions import (
    PermissionDeniedException,
    ResourceConflictException,
    ResourceNotFoundException,
)
from archetypeos.modules.audit.schemas import CertificateDetails
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.courses.models import (
    Course,
    CourseEnrollment,
    EnrollmentStatus,
)
from archetypeos.modules.courses.schemas import CourseCreate, CourseUpdate
from archetypeos.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)

_REQUIRED_COURSE_FIELDS = {"title", "difficulty", "content_type", "duration"}


def clamp_progress(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


class CourseService:
    """Admin-managed course catalogue."""

    def __init__(self, db: Session):
        self.db = db

    def get_course_or_404(self, course_id: int) -> Course:
        course = self.db.query(Course).filter(Course.id == course_id).first()
        if not course:
            raise ResourceNotFoundException("Course", course_id)
        return course

    def enrollment_counts(self) -> Dict[int, int]:
        rows = (
            self.db.query(CourseEnrollment.course_id, func.count(CourseEnrollment.id))
            .group_by(CourseEnrollment.course_id)
            .all()
        )
        return {course_id: count for course_id, count in rows}

    def list_courses(self) -> List[Course]:
        return (
            self.db.query(Course)
            .options(joinedload(Course.tests))
            .order_by(Course.created_at.desc(), Course.id.desc())
            .all()
        )

    def get_course(self, actor: User, course_id: int) -> Course:
        """Candidates only see courses they have been assigned."""
        course = self.get_course_or_404(course_id)
        if UserRole.parse(actor.role) is UserRole.CANDIDATE:
            enrolled = (
                self.db.query(CourseEnrollment.id)
                .filter(
                    CourseEnrollment.user_id == actor.id,
                    CourseEnrollment.course_id == course_id,
                )
                .first()
            )
            if enrolled is None:
                raise PermissionDeniedException("Course not assigned to you")
        return course

    def create_course(self, actor: User, payload: CourseCreate) -> Course:
        require(actor, Operation.MANAGE_CATALOG)
        course = Course(**payload.model_dump())
        self.db.add(course)
        self.db.commit()
        self.db.refresh(course)
        logger.info(
            f"Course {course.id} created", extra={"user_id": actor.id, "course_id": course.id}
        )
        return course

    def update_course(self, actor: User, course_id: int, payload: CourseUpdate) -> Course:
        require(actor, Operation.MANAGE_CATALOG)
        course = self.get_course_or_404(course_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            if value is None and key in _REQUIRED_COURSE_FIELDS:
                continue
            setattr(course, key, value)
        self.db.commit()
        self.db.refresh(course)
        return course

    def delete_course(self, actor: User, course_id: int) -> None:
        require(actor, Operation.MANAGE_CATALOG)
        course = self.get_course_or_404(course_id)
        self.db.delete(course)
        self.db.commit()
        logger.info(
            f"Course {course_id} deleted", extra={"user_id": actor.id, "course_id": course_id}
        )


class EnrollmentService:
    """Enrollment lifecycle: enroll, assign, progress and completion.

    Completion is idempotent: `completed_at` is written once and the course
    certificate is issued at most once per (user, course), whichever path
    (progress, passed attempt, grading, supervisor) completes the course first.
    """

    def __init__(self, db: Session):
        self.db = db

    # ----- Lookups -----
    def find(self, user_id: int, course_id: int) -> Optional[CourseEnrollment]:
        return (
            self.db.query(CourseEnrollment)
            .filter(
                CourseEnrollment.user_id == user_id,
                CourseEnrollment.course_id == course_id,
            )
            .first()
        )

    def is_enrolled(self, user_id: int, course_id: int) -> bool:
        return self.find(user_id, course_id) is not None

    def list_for_user(self, user_id: int) -> List[CourseEnrollment]:
        return (
            self.db.query(CourseEnrollment)
            .options(joinedload(CourseEnrollment.course))
            .filter(CourseEnrollment.user_id == user_id)
            .order_by(CourseEnrollment.enrolled_at.desc(), CourseEnrollment.id.desc())
            .all()
        )

    def _get_user_or_404(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundException("User", user_id)
        return user

    def _get_course_or_404(self, course_id: int) -> Course:
        return CourseService(self.db).get_course_or_404(course_id)

    def _insert(
        self,
        user_id: int,
        course_id: int,
        status: EnrollmentStatus,
        progress: float = 0.0,
        completed_at: Optional[datetime] = None,
    ) -> Tuple[CourseEnrollment, bool]:
        """Insert the (user, course) row; a concurrent insert wins and is returned."""
        enrollment = CourseEnrollment(
            user_id=user_id,
            course_id=course_id,
            status=status,
            progress=progress,
            enrolled_at=utcnow(),
            completed_at=completed_at,
        )
        try:
            with self.db.begin_nested():
                self.db.add(enrollment)
                self.db.flush()
        except IntegrityError:
            logger.info(
                f"Enrollment for user {user_id} on course {course_id} created concurrently",
                extra={"user_id": user_id, "course_id": course_id},
            )
            existing = self.find(user_id, course_id)
            if existing is None:
                raise
            return existing, False
        return enrollment, True

    # ----- Operations -----
    def enroll(self, user_id: int, course_id: int) -> Tuple[CourseEnrollment, bool]:
        """Create the (user, course) enrollment, or return the existing one unchanged."""
        self._get_course_or_404(course_id)
        existing = self.find(user_id, course_id)
        if existing is not None:
            return existing, False

        enrollment, created = self._insert(user_id, course_id, EnrollmentStatus.ENROLLED)
        self.db.commit()
        self.db.refresh(enrollment)
        if created:
            logger.info(
                f"User {user_id} enrolled in course {course_id}",
                extra={"user_id": user_id, "course_id": course_id},
            )
        return enrollment, created

    def enroll_self(self, actor: User, course_id: int) -> Tuple[CourseEnrollment, bool]:
        """Self-service enrollment; candidates may only re-open an assigned course."""
        self._get_course_or_404(course_id)
        require(
            actor,
            Operation.ENROLL_SELF,
            AccessTarget(assigned=self.is_enrolled(actor.id, course_id)),
            message="Candidates can only access assigned courses",
        )
        return self.enroll(actor.id, course_id)

    def assign_course(self, actor: User, learner_id: int, course_id: int) -> CourseEnrollment:
        """Supervisor upsert; a completed enrollment is left as it is."""
        learner = self._get_user_or_404(learner_id)
        self._get_course_or_404(course_id)
        require(
            actor,
            Operation.ASSIGN_COURSE,
            AccessTarget(user=learner),
            message="Learner is not assigned to you",
        )

        enrollment = self.find(learner.id, course_id)
        if enrollment is None:
            enrollment, _ = self._insert(learner.id, course_id, EnrollmentStatus.IN_PROGRESS)
        elif enrollment.status != EnrollmentStatus.COMPLETED:
            enrollment.status = EnrollmentStatus.IN_PROGRESS
        else:
            logger.info(
                f"Course {course_id} already completed by user {learner.id}; assignment kept",
                extra={"user_id": actor.id, "course_id": course_id},
            )

        self.db.commit()
        self.db.refresh(enrollment)
        logger.info(
            f"Course {course_id} assigned to user {learner.id}",
            extra={"user_id": actor.id, "course_id": course_id},
        )
        return enrollment

    def set_progress(
        self, actor: User, course_id: int, progress: float, user_id: Optional[int] = None
    ) -> CourseEnrollment:
        """Record progress for the actor (or an overseen user).

        Progress is clamped to [0, 100] and never moves backwards through this
        path; reaching 100 completes the enrollment.
        """
        subject = actor if user_id is None else self._get_user_or_404(user_id)
        require(
            actor,
            Operation.READ_DATA if subject.id == actor.id else Operation.MANAGE_ENROLLMENT,
            AccessTarget(user=subject),
        )
        enrollment = self.find(subject.id, course_id)
        if enrollment is None:
            raise ResourceNotFoundException("Enrollment", course_id)

        value = max(clamp_progress(progress), enrollment.progress or 0.0)
        if value >= 100:
            self._complete(enrollment, actor_id=actor.id, issued_via="progress")
        else:
            enrollment.progress = value
            if enrollment.status == EnrollmentStatus.ENROLLED:
                enrollment.status = EnrollmentStatus.IN_PROGRESS

        self.db.commit()
        self.db.refresh(enrollment)
        return enrollment

    def update_enrollment(
        self,
        actor: User,
        enrollment_id: int,
        status: Optional[EnrollmentStatus] = None,
        progress: Optional[float] = None,
    ) -> CourseEnrollment:
        """Supervisor correction of an overseen learner's enrollment."""
        enrollment = (
            self.db.query(CourseEnrollment)
            .options(joinedload(CourseEnrollment.user))
            .filter(CourseEnrollment.id == enrollment_id)
            .first()
        )
        if enrollment is None:
            raise ResourceNotFoundException("Enrollment", enrollment_id)
        require(
            actor,
            Operation.MANAGE_ENROLLMENT,
            AccessTarget(user=enrollment.user),
            message="Learner is not assigned to you",
        )

        value = clamp_progress(progress) if progress is not None else enrollment.progress
        target = status
        if target is None:
            if value >= 100:
                target = EnrollmentStatus.COMPLETED
            elif enrollment.status == EnrollmentStatus.COMPLETED:
                raise ResourceConflictException(
                    "Completed enrollments must be reopened with an explicit status",
                    details={"enrollment_id": enrollment.id},
                )
            else:
                target = enrollment.status

        if target == EnrollmentStatus.COMPLETED:
            self._complete(enrollment, actor_id=actor.id, issued_via="supervisor")
        else:
            if value >= 100:
                raise ResourceConflictException(
                    "Progress 100 requires the completed status",
                    details={"enrollment_id": enrollment.id, "status": target.value},
                )
            enrollment.status = target
            enrollment.progress = value
            enrollment.completed_at = None

        self.db.commit()
        self.db.refresh(enrollment)
        logger.info(
            f"Enrollment {enrollment.id} set to {enrollment.status.value}",
            extra={"user_id": actor.id, "enrollment_id": enrollment.id},
        )
        return enrollment

    def complete(
        self, user_id: int, course_id: int, *, actor_id: Optional[int], issued_via: str
    ) -> CourseEnrollment:
        """Mark (user, course) completed, creating the enrollment if needed.

        Flushes only; the caller commits.
        """
        enrollment = self.find(user_id, course_id)
        if enrollment is None:
            enrollment, _ = self._insert(
                user_id,
                course_id,
                EnrollmentStatus.COMPLETED,
                progress=100.0,
                completed_at=utcnow(),
            )
        self._complete(enrollment, actor_id=actor_id, issued_via=issued_via)
        return enrollment

    def _complete(
        self, enrollment: CourseEnrollment, *, actor_id: Optional[int], issued_via: str
    ) -> None:
        enrollment.progress = 100.0
        enrollment.status = EnrollmentStatus.COMPLETED
        if enrollment.completed_at is None:
            enrollment.completed_at = utcnow()
        self.db.flush()

        course = enrollment.course or self._get_course_or_404(enrollment.course_id)
        AuditLog(self.db).issue_certificate(
            user_id=enrollment.user_id,
            course_id=enrollment.course_id,
            actor_id=actor_id,
            details=CertificateDetails(course_title=course.title, issued_via=issued_via),
        )


__all__ = ["CourseService", "EnrollmentService", "clamp_progress"]
