"""Tests, their questions, and per-user attempt rows."""

from __future__ import annotations

import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy import (
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from archetypeos.core.database import Base
from archetypeos.core.db_defaults import timestamp_default, utcnow
from archetypeos.modules.assessments.status import AttemptStatus, AttemptStatusType


def _values(enum_cls):
    return [member.value for member in enum_cls]


class TestType(str, enum.Enum):
    MCQ = "mcq"
    WRITTEN = "written"
    CODING = "coding"
    MIXED = "mixed"


class QuestionType(str, enum.Enum):
    MCQ = "mcq"
    WRITTEN = "written"
    CODING = "coding"

    @property
    def is_auto_gradable(self) -> bool:
        return self is QuestionType.MCQ


class Test(Base):
    """An assessment attached to a course."""

    __tablename__ = "tests"
    __test__ = False
    __table_args__ = (
        CheckConstraint(
            "passing_score >= 0 AND passing_score <= 100", name="ck_tests_passing_score"
        ),
        CheckConstraint("attempt_limit >= 1", name="ck_tests_attempt_limit"),
    )

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(
        Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(
        SAEnum(TestType, name="test_type_enum", values_callable=_values), nullable=False
    )
    time_limit_minutes = Column(Integer, nullable=True)
    attempt_limit = Column(Integer, nullable=False, default=1)
    passing_score = Column(Integer, nullable=False, default=70)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=timestamp_default()
    )

    course = relationship("Course", back_populates="tests")
    questions = relationship(
        "Question",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    results = relationship(
        "TestResult", back_populates="test", cascade="all, delete-orphan"
    )


class Question(Base):
    __tablename__ = "test_questions"
    __table_args__ = (
        UniqueConstraint("test_id", "position", name="uq_test_questions_position"),
    )

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    type = Column(
        SAEnum(QuestionType, name="question_type_enum", values_callable=_values),
        nullable=False,
    )
    prompt = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)
    correct_answer = Column(Integer, nullable=True)
    points = Column(Float, nullable=False, default=1.0)

    test = relationship("Test", back_populates="questions")


class TestResult(Base):
    """One attempt by one user at one test.

    At most one row per (user, test) may be in progress; the partial unique
    index enforces it so concurrent starts collapse onto a single attempt.
    """

    __tablename__ = "test_results"
    __test__ = False
    __table_args__ = (
        Index(
            "uq_test_results_in_progress",
            "user_id",
            "test_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
        UniqueConstraint(
            "user_id", "test_id", "attempt_number", name="uq_test_results_attempt_number"
        ),
        CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 100)", name="ck_test_results_score"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attempt_number = Column(Integer, nullable=False, default=1)
    status = Column(AttemptStatusType(), nullable=False, default=AttemptStatus.IN_PROGRESS)
    answers = Column(JSON, nullable=False, default=dict)
    score = Column(Integer, nullable=True)
    is_late = Column(Boolean, nullable=False, default=False)
    started_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    graded_by = Column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    graded_at = Column(DateTime(timezone=True), nullable=True)
    feedback = Column(Text, nullable=True)

    test = relationship("Test", back_populates="results")
    user = relationship("User", back_populates="test_results", foreign_keys=[user_id])
    grader = relationship("User", foreign_keys=[graded_by])


__all__ = ["Question", "QuestionType", "Test", "TestResult", "TestType"]
