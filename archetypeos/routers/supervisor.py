"""Supervisor router: oversight of assigned learners.

Every endpoint is scoped by oversight (`learner.supervisor_id == caller.id`);
admins act on every learner.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.assessments.grading import GradingService
from archetypeos.modules.assessments.schemas import GradeRequest, ReviewItem, TestResultOut
from archetypeos.modules.audit.schemas import AuditEventOut
from archetypeos.modules.courses.schemas import (
    AssignCourseRequest,
    EnrollmentOut,
    EnrollmentUpdate,
    EnrollmentWithCourse,
)
from archetypeos.modules.courses.service import EnrollmentService
from archetypeos.modules.tracking.schemas import IdleLearner, LearnerGoal, WeeklyGoalRequest
from archetypeos.modules.tracking.service import TrackingService
from archetypeos.modules.users.models import User
from archetypeos.modules.users.schemas import UserOut
from archetypeos.modules.users.service import UserService

router = APIRouter(prefix="/supervisor", tags=["Supervisor"])


class LearnerOverview(UserOut):
    enrollments: List[EnrollmentWithCourse] = []


@router.get("/learners", response_model=List[LearnerOverview])
def list_learners(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """Learners and candidates in scope together with their enrollments."""
    learners = UserService(db).learners_in_scope(current_user)
    enrollments = EnrollmentService(db)
    return [
        LearnerOverview(
            **UserOut.model_validate(learner).model_dump(),
            enrollments=enrollments.list_for_user(learner.id),
        )
        for learner in learners
    ]


@router.post("/assign-course", response_model=EnrollmentOut)
def assign_course(
    payload: AssignCourseRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return EnrollmentService(db).assign_course(
        current_user, payload.learner_id, payload.course_id
    )


@router.patch("/enrollments", response_model=EnrollmentOut)
def update_enrollment(
    payload: EnrollmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return EnrollmentService(db).update_enrollment(
        current_user, payload.enrollment_id, status=payload.status, progress=payload.progress
    )


@router.get("/test-results", response_model=List[ReviewItem])
def review_queue(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """Attempts waiting for a grade, oldest submission first."""
    return [
        ReviewItem(
            **TestResultOut.model_validate(attempt).model_dump(),
            test_title=attempt.test.title,
            course_id=attempt.test.course_id,
            user_display_name=attempt.user.display_name,
        )
        for attempt in GradingService(db).review_queue(current_user)
    ]


@router.patch("/test-results/{attempt_id}", response_model=TestResultOut)
def grade_attempt(
    attempt_id: int,
    payload: GradeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return GradingService(db).grade(
        current_user, attempt_id, payload.score, feedback=payload.feedback
    )


@router.get("/goals", response_model=List[LearnerGoal])
def weekly_goals(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return TrackingService(db).weekly_goals(current_user)


@router.post("/goals", response_model=AuditEventOut, status_code=status.HTTP_201_CREATED)
def set_weekly_goal(
    payload: WeeklyGoalRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return TrackingService(db).set_weekly_goal(
        current_user, payload.learner_id, payload.goal_minutes
    )


@router.get("/idle", response_model=List[IdleLearner])
def idle_learners(
    days: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return TrackingService(db).idle_learners(current_user, days)
