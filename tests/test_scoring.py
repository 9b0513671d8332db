"""Auto-grading rules: rounding, unanswered questions and review routing."""

import logging

from archetypeos.modules.assessments.models import Question, QuestionType
from archetypeos.modules.assessments.scoring import (
    auto_grade,
    chosen_option,
    normalize_answers,
    percent,
)


def _mcq(position, correct, points=1.0):
    return Question(
        position=position,
        type=QuestionType.MCQ,
        prompt=f"q{position}",
        options=["a", "b", "c"],
        correct_answer=correct,
        points=points,
    )


def _written(position, points=1.0, kind=QuestionType.WRITTEN):
    return Question(position=position, type=kind, prompt=f"q{position}", points=points)


def test_percent_rounds_half_up():
    assert percent(1, 3) == 33
    assert percent(2, 3) == 67
    assert percent(1, 8) == 13  # 12.5
    assert percent(5, 5) == 100
    assert percent(0, 0) == 0


def test_all_correct_scores_full_marks():
    questions = [_mcq(0, 0), _mcq(1, 1), _mcq(2, 0)]
    sheet = auto_grade(questions, {"0": 0, "1": 1, "2": 0})
    assert sheet.score == 100
    assert sheet.correct_count == 3
    assert not sheet.needs_review


def test_points_weight_the_score():
    questions = [_mcq(0, 0, points=3), _mcq(1, 1, points=1)]
    sheet = auto_grade(questions, {"0": 0, "1": 2})
    assert sheet.awarded == 3
    assert sheet.max_points == 4
    assert sheet.score == 75


def test_integer_keys_and_digit_strings_are_accepted():
    questions = [_mcq(0, 2), _mcq(1, 1)]
    sheet = auto_grade(questions, {0: "2", 1: 1})
    assert sheet.score == 100


def test_unanswered_and_malformed_answers_score_zero():
    questions = [_mcq(0, 0), _mcq(1, 1), _mcq(2, 1)]
    sheet = auto_grade(questions, {"1": True, "2": "b", "7": 0})
    assert sheet.correct_count == 0
    assert sheet.score == 0


def test_written_question_routes_to_review_without_score():
    questions = [_mcq(0, 2), _written(1, points=9)]
    sheet = auto_grade(questions, {"0": 2, "1": "my answer"})
    assert sheet.needs_review
    assert sheet.score is None
    assert sheet.max_points == 10


def test_coding_question_also_needs_review():
    sheet = auto_grade([_written(0, kind=QuestionType.CODING)], {"0": "print(1)"})
    assert sheet.needs_review


def test_question_without_correct_answer_is_left_out(caplog):
    questions = [_mcq(0, 1), _mcq(1, None)]
    with caplog.at_level(logging.WARNING):
        sheet = auto_grade(questions, {"0": 1, "1": 0})
    assert sheet.unscorable == [1]
    assert sheet.max_points == 1
    assert sheet.score == 100
    assert "without a correct answer" in caplog.text


def test_only_unscorable_questions_score_zero():
    sheet = auto_grade([_mcq(0, None)], {"0": 0})
    assert sheet.max_points == 0
    assert sheet.score == 0


def test_discarded_answers_count_as_unanswered():
    questions = [_mcq(0, 0), _mcq(1, 1)]
    sheet = auto_grade(questions, {"0": 0, "1": 1}, discard_answers=True)
    assert sheet.score == 0


def test_helpers():
    assert normalize_answers(None) == {}
    assert normalize_answers({0: 1}) == {"0": 1}
    assert chosen_option(False) is None
    assert chosen_option(" 3 ") == 3
    assert chosen_option(1.0) is None
