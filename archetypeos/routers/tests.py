"""Test taking router: read tests, start and submit attempts.

Question payloads never include the correct answer here; admins read full
definitions through `/admin/tests`.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.assessments.attempts import AttemptEngine
from archetypeos.modules.assessments.schemas import (
    AttemptStarted,
    AttemptSummary,
    SubmitRequest,
    TestOut,
    TestResultOut,
)
from archetypeos.modules.assessments.service import AssessmentService
from archetypeos.modules.users.models import User

router = APIRouter(prefix="/tests", tags=["Tests"])


@router.get("", response_model=List[TestOut])
def list_tests(
    course_id: int = Query(..., alias="courseId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AssessmentService(db).list_tests_for_course(course_id)


@router.get("/{test_id}", response_model=TestOut)
def get_test(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AssessmentService(db).get_test(current_user, test_id)


@router.get("/{test_id}/attempts", response_model=AttemptSummary)
def attempt_summary(
    test_id: int,
    user_id: Optional[int] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """Attempts used and remaining; finished attempts count as used."""
    return AttemptEngine(db).summary(current_user, test_id, user_id)


@router.post("/{test_id}/start", response_model=AttemptStarted)
def start_attempt(
    test_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """
    Start (or resume) an attempt.

    Returns the attempt id, its number and the server start time the time
    limit is measured from.
    """
    attempt = AttemptEngine(db).start(current_user, test_id)
    return AttemptStarted(
        id=attempt.id,
        test_id=attempt.test_id,
        attempt_number=attempt.attempt_number,
        status=attempt.status,
        started_at=attempt.started_at,
        time_limit_minutes=attempt.test.time_limit_minutes,
    )


@router.post("/{test_id}/submit", response_model=TestResultOut)
def submit_attempt(
    test_id: int,
    payload: SubmitRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return AttemptEngine(db).submit(
        current_user,
        test_id,
        payload.answers,
        client_started_at=payload.started_at,
    )
