"""Pydantic schemas for courses and enrollments."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from archetypeos.core.schemas import CamelModel
from archetypeos.modules.assessments.models import TestType
from archetypeos.modules.courses.models import ContentType, Difficulty, EnrollmentStatus


class CourseCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    difficulty: Difficulty = Difficulty.BEGINNER
    content_url: Optional[str] = None
    content_type: ContentType = ContentType.LINK
    duration: int = Field(0, ge=0)


class CourseUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    content_url: Optional[str] = None
    content_type: Optional[ContentType] = None
    duration: Optional[int] = Field(None, ge=0)


class TestSummary(CamelModel):
    __test__ = False

    id: int
    title: str
    type: TestType


class CourseOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    difficulty: Difficulty
    content_url: Optional[str] = None
    content_type: ContentType
    duration: int
    created_at: datetime
    tests: List[TestSummary] = []
    enrollment_count: int = 0


class EnrollmentOut(CamelModel):
    id: int
    user_id: int
    course_id: int
    status: EnrollmentStatus
    progress: float
    enrolled_at: datetime
    completed_at: Optional[datetime] = None


class CourseBrief(CamelModel):
    id: int
    title: str
    difficulty: Difficulty


class EnrollmentWithCourse(EnrollmentOut):
    course: CourseBrief


class ProgressUpdate(CamelModel):
    progress: float


class AssignCourseRequest(CamelModel):
    learner_id: int
    course_id: int


class EnrollmentUpdate(CamelModel):
    enrollment_id: int
    status: Optional[EnrollmentStatus] = None
    progress: Optional[float] = None


__all__ = [
    "AssignCourseRequest",
    "CourseBrief",
    "CourseCreate",
    "CourseOut",
    "CourseUpdate",
    "EnrollmentOut",
    "EnrollmentUpdate",
    "EnrollmentWithCourse",
    "ProgressUpdate",
    "TestSummary",
]
