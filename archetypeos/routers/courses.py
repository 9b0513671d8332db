"""Course catalogue and enrollment router.

Reads are open to every authenticated user (candidates only see assigned
courses); catalogue changes are admin-only. Enrollment and progress go through
`EnrollmentService`, which owns the completion side effects.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from archetypeos import oauth2
from archetypeos.core.database import get_db
from archetypeos.modules.assessments.grading import GradingService
from archetypeos.modules.assessments.schemas import TestResultOut
from archetypeos.modules.courses.models import Course
from archetypeos.modules.courses.schemas import (
    CourseCreate,
    CourseOut,
    CourseUpdate,
    EnrollmentOut,
    ProgressUpdate,
)
from archetypeos.modules.courses.service import CourseService, EnrollmentService
from archetypeos.modules.users.models import User

router = APIRouter(prefix="/courses", tags=["Courses"])


def _course_out(course: Course, count: int = 0) -> CourseOut:
    out = CourseOut.model_validate(course)
    out.enrollment_count = count
    return out


@router.get("", response_model=List[CourseOut])
def list_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """List every course with its tests and enrollment count."""
    service = CourseService(db)
    counts = service.enrollment_counts()
    return [_course_out(course, counts.get(course.id, 0)) for course in service.list_courses()]


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return _course_out(CourseService(db).create_course(current_user, payload))


@router.get("/{course_id}", response_model=CourseOut)
def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    service = CourseService(db)
    course = service.get_course(current_user, course_id)
    return _course_out(course, service.enrollment_counts().get(course.id, 0))


@router.put("/{course_id}", response_model=CourseOut)
def update_course(
    course_id: int,
    payload: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    service = CourseService(db)
    course = service.update_course(current_user, course_id, payload)
    return _course_out(course, service.enrollment_counts().get(course.id, 0))


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    CourseService(db).delete_course(current_user, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{course_id}/enroll", response_model=EnrollmentOut)
def enroll(
    course_id: int,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    """
    Enroll the caller in a course.

    Repeated calls return the existing enrollment with 200; the first
    enrollment returns 201.
    """
    enrollment, created = EnrollmentService(db).enroll_self(current_user, course_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return enrollment


@router.patch("/{course_id}/progress", response_model=EnrollmentOut)
def update_progress(
    course_id: int,
    payload: ProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    return EnrollmentService(db).set_progress(current_user, course_id, payload.progress)


@router.get("/{course_id}/test-results", response_model=List[TestResultOut])
def course_test_results(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(oauth2.get_current_user),
):
    CourseService(db).get_course_or_404(course_id)
    return GradingService(db).results_for_course(current_user, course_id)
