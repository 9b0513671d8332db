"""Assessment definitions, attempts and grading."""

from .models import Question, QuestionType, Test, TestResult, TestType
from .status import AttemptStatus

__all__ = [
    "AttemptStatus",
    "Question",
    "QuestionType",
    "Test",
    "TestResult",
    "TestType",
]
