"""Imports every ORM model so `Base.metadata` is complete.

Used by Alembic, the test suite and anything that needs all mappers configured.
"""

from archetypeos.models.base import Base
from archetypeos.modules.assessments.models import (
    Question,
    QuestionType,
    Test,
    TestResult,
    TestType,
)
from archetypeos.modules.audit.models import AuditAction, AuditEvent
from archetypeos.modules.courses.models import (
    ContentType,
    Course,
    CourseEnrollment,
    Difficulty,
    EnrollmentStatus,
)
from archetypeos.modules.tracking.models import LearningSession
from archetypeos.modules.users.models import User, UserRole

__all__ = [
    "AuditAction",
    "AuditEvent",
    "Base",
    "ContentType",
    "Course",
    "CourseEnrollment",
    "Difficulty",
    "EnrollmentStatus",
    "LearningSession",
    "Question",
    "QuestionType",
    "Test",
    "TestResult",
    "TestType",
    "User",
    "UserRole",
]
