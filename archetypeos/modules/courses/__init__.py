"""Course catalogue and enrollment exports."""

from .models import (
    ContentType,
    Course,
    CourseEnrollment,
    Difficulty,
    EnrollmentStatus,
)
from .service import CourseService, EnrollmentService

__all__ = [
    "ContentType",
    "Course",
    "CourseEnrollment",
    "CourseService",
    "Difficulty",
    "EnrollmentService",
    "EnrollmentStatus",
]
