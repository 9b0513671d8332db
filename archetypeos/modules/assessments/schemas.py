"""Pydantic schemas for tests, questions and attempts."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from archetypeos.core.schemas import CamelModel
from archetypeos.modules.assessments.models import QuestionType, TestType
from archetypeos.modules.assessments.status import AttemptStatus


class QuestionIn(CamelModel):
    type: QuestionType = QuestionType.MCQ
    prompt: str = Field(min_length=1)
    options: Optional[List[str]] = None
    correct_answer: Optional[int] = None
    points: float = Field(1.0, ge=0)

    @model_validator(mode="after")
    def check_choice_fields(self) -> "QuestionIn":
        if self.type is QuestionType.MCQ:
            if not self.options:
                raise ValueError("Multiple-choice questions need at least one option")
            if self.correct_answer is None:
                raise ValueError("Multiple-choice questions need a correctAnswer")
            if not 0 <= self.correct_answer < len(self.options):
                raise ValueError("correctAnswer must index into options")
        else:
            self.options = None
            self.correct_answer = None
        return self


class TestCreate(CamelModel):
    __test__ = False

    course_id: int
    title: str = Field(min_length=1)
    description: Optional[str] = None
    type: Optional[TestType] = None
    time_limit_minutes: Optional[int] = Field(None, ge=1)
    attempt_limit: Optional[int] = Field(None, ge=1)
    passing_score: Optional[int] = Field(None, ge=0, le=100)
    questions: List[QuestionIn] = Field(min_length=1)

    @model_validator(mode="after")
    def check_type(self) -> "TestCreate":
        kinds = {question.type for question in self.questions}
        if self.type is None:
            self.type = TestType(kinds.pop().value) if len(kinds) == 1 else TestType.MIXED
        elif self.type is TestType.MCQ and kinds != {QuestionType.MCQ}:
            raise ValueError("An mcq test can only contain multiple-choice questions")
        return self


class QuestionOut(CamelModel):
    id: int
    position: int
    type: QuestionType
    prompt: str
    options: Optional[List[str]] = None
    points: float


class QuestionWithAnswer(QuestionOut):
    correct_answer: Optional[int] = None


class TestOut(CamelModel):
    __test__ = False

    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    type: TestType
    time_limit_minutes: Optional[int] = None
    attempt_limit: int
    passing_score: int
    created_at: Optional[datetime] = None
    questions: List[QuestionOut] = []


class TestAdminOut(TestOut):
    questions: List[QuestionWithAnswer] = []


class AttemptStarted(CamelModel):
    id: int
    test_id: int
    attempt_number: int
    status: AttemptStatus
    started_at: datetime
    time_limit_minutes: Optional[int] = None


class SubmitRequest(CamelModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    started_at: Optional[datetime] = None


class TestResultOut(CamelModel):
    id: int
    test_id: int
    user_id: int
    attempt_number: int
    status: AttemptStatus
    answers: Dict[str, Any] = {}
    score: Optional[int] = None
    is_late: bool = False
    started_at: datetime
    submitted_at: Optional[datetime] = None
    graded_by: Optional[int] = None
    graded_at: Optional[datetime] = None
    feedback: Optional[str] = None


class AttemptSummary(CamelModel):
    test_id: int
    attempt_limit: int
    attempts_used: int
    attempts_remaining: int
    in_progress_attempt_id: Optional[int] = None
    best_score: Optional[int] = None
    passed: bool = False


class GradeRequest(CamelModel):
    score: int = Field(ge=0, le=100)
    feedback: Optional[str] = None


class ReviewItem(TestResultOut):
    test_title: str
    course_id: int
    user_display_name: str


__all__ = [
    "AttemptStarted",
    "AttemptSummary",
    "GradeRequest",
    "QuestionIn",
    "QuestionOut",
    "QuestionWithAnswer",
    "ReviewItem",
    "SubmitRequest",
    "TestAdminOut",
    "TestCreate",
    "TestOut",
    "TestResultOut",
]
