"""Course catalogue and enrollment models."""

from __future__ import annotations

import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from archetypeos.core.database import Base
from archetypeos.core.db_defaults import timestamp_default, utcnow


def _values(enum_cls):
    return [member.value for member in enum_cls]


class Difficulty(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ContentType(str, enum.Enum):
    VIDEO = "video"
    PDF = "pdf"
    LINK = "link"
    MIXED = "mixed"


class EnrollmentStatus(str, enum.Enum):
    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Course(Base):
    """A unit of learning content; owns its tests."""

    __tablename__ = "courses"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    difficulty = Column(
        SAEnum(Difficulty, name="course_difficulty_enum", values_callable=_values),
        nullable=False,
        default=Difficulty.BEGINNER,
    )
    content_url = Column(String, nullable=True)
    content_type = Column(
        SAEnum(ContentType, name="course_content_type_enum", values_callable=_values),
        nullable=False,
        default=ContentType.LINK,
    )
    duration = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=timestamp_default()
    )

    enrollments = relationship(
        "CourseEnrollment", back_populates="course", cascade="all, delete-orphan"
    )
    tests = relationship(
        "Test",
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="Test.id",
    )


class CourseEnrollment(Base):
    """The (user, course) association carrying progress and status."""

    __tablename__ = "course_enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_course_enrollments_user_course"),
        CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_course_enrollments_progress"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        SAEnum(EnrollmentStatus, name="enrollment_status_enum", values_callable=_values),
        nullable=False,
        default=EnrollmentStatus.ENROLLED,
    )
    progress = Column(Float, nullable=False, default=0.0)
    enrolled_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")

    @property
    def is_completed(self) -> bool:
        return self.status == EnrollmentStatus.COMPLETED


__all__ = [
    "ContentType",
    "Course",
    "CourseEnrollment",
    "Difficulty",
    "EnrollmentStatus",
]
