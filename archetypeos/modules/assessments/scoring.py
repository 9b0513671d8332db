"""Auto-grading of submitted answers.

Answers are keyed by question position (as a string, the way they arrive in
JSON). Multiple-choice questions are scored by option index; any written or
coding question sends the whole attempt to manual review.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from archetypeos.modules.assessments.models import Question, QuestionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoreSheet:
    awarded: float
    max_points: float
    correct_count: int
    needs_review: bool
    unscorable: List[int] = field(default_factory=list)

    @property
    def score(self) -> Optional[int]:
        """Percentage score, or None while the attempt waits for a reviewer."""
        if self.needs_review:
            return None
        return percent(self.awarded, self.max_points)


def percent(awarded: float, max_points: float) -> int:
    """Round half up to an integer percentage; an empty scale scores 0."""
    if max_points <= 0:
        return 0
    return int(math.floor(100 * awarded / max_points + 0.5))


def normalize_answers(answers: Optional[Mapping[Any, Any]]) -> Dict[str, Any]:
    return {str(key): value for key, value in (answers or {}).items()}


def chosen_option(value: Any) -> Optional[int]:
    """Option index from an answer value; anything else is unanswered."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def auto_grade(
    questions: Iterable[Question],
    answers: Optional[Mapping[Any, Any]],
    *,
    discard_answers: bool = False,
) -> ScoreSheet:
    """Score `answers` against `questions`.

    With `discard_answers` every question is treated as unanswered (late
    submissions). A multiple-choice question without a correct answer is
    worth nothing and is left out of the maximum.
    """
    given = {} if discard_answers else normalize_answers(answers)
    awarded = 0.0
    max_points = 0.0
    correct = 0
    needs_review = False
    unscorable: List[int] = []

    for question in questions:
        kind = QuestionType(question.type)
        if not kind.is_auto_gradable:
            needs_review = True
            max_points += question.points or 0
            continue
        if question.correct_answer is None:
            unscorable.append(question.position)
            continue

        max_points += question.points or 0
        if chosen_option(given.get(str(question.position))) == question.correct_answer:
            awarded += question.points or 0
            correct += 1

    if unscorable:
        logger.warning(f"Questions without a correct answer skipped: {unscorable}")

    return ScoreSheet(
        awarded=awarded,
        max_points=max_points,
        correct_count=correct,
        needs_review=needs_review,
        unscorable=unscorable,
    )


__all__ = ["ScoreSheet", "auto_grade", "chosen_option", "normalize_answers", "percent"]
