"""Test definition store: create, list and read assessments."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.orm import Session, selectinload

from archetypeos.core.authorization import AccessTarget, Operation, require
from archetypeos.core.config import settings
from archetypeos.core.exceptions import ResourceNotFoundException
from archetypeos.modules.assessments.models import Question, Test
from archetypeos.modules.assessments.schemas import TestCreate
from archetypeos.modules.courses.service import CourseService, EnrollmentService
from archetypeos.modules.users.models import User

logger = logging.getLogger(__name__)


class AssessmentService:
    def __init__(self, db: Session):
        self.db = db

    def get_test_or_404(self, test_id: int) -> Test:
        test = (
            self.db.query(Test)
            .options(selectinload(Test.questions))
            .filter(Test.id == test_id)
            .first()
        )
        if not test:
            raise ResourceNotFoundException("Test", test_id)
        return test

    def create_test(self, actor: User, payload: TestCreate) -> Test:
        """Store a validated test definition with its ordered questions."""
        require(actor, Operation.MANAGE_CATALOG)
        CourseService(self.db).get_course_or_404(payload.course_id)

        test = Test(
            course_id=payload.course_id,
            title=payload.title,
            description=payload.description,
            type=payload.type,
            time_limit_minutes=payload.time_limit_minutes,
            attempt_limit=payload.attempt_limit or settings.default_attempt_limit,
            passing_score=(
                payload.passing_score
                if payload.passing_score is not None
                else settings.default_passing_score
            ),
        )
        test.questions = [
            Question(
                position=position,
                type=question.type,
                prompt=question.prompt,
                options=question.options,
                correct_answer=question.correct_answer,
                points=question.points,
            )
            for position, question in enumerate(payload.questions)
        ]
        self.db.add(test)
        self.db.commit()
        self.db.refresh(test)
        logger.info(
            f"Test {test.id} created for course {test.course_id}",
            extra={"user_id": actor.id, "test_id": test.id},
        )
        return test

    def list_tests_for_course(self, course_id: int) -> List[Test]:
        CourseService(self.db).get_course_or_404(course_id)
        return (
            self.db.query(Test)
            .options(selectinload(Test.questions))
            .filter(Test.course_id == course_id)
            .order_by(Test.id)
            .all()
        )

    def list_all(self, actor: User) -> List[Test]:
        require(actor, Operation.MANAGE_CATALOG)
        return (
            self.db.query(Test)
            .options(selectinload(Test.questions))
            .order_by(Test.id)
            .all()
        )

    def get_test(self, actor: User, test_id: int) -> Test:
        """Readable by anyone allowed to take it."""
        test = self.get_test_or_404(test_id)
        enrolled = EnrollmentService(self.db).is_enrolled(actor.id, test.course_id)
        require(
            actor,
            Operation.TAKE_TEST,
            AccessTarget(enrolled=enrolled),
            message="You must be enrolled in this course",
        )
        return test


__all__ = ["AssessmentService"]
