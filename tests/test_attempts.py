"""Attempt lifecycle: start, resume, submit, limits and time limits."""

from datetime import datetime, timedelta, timezone

import pytest
from prometheus_client import REGISTRY

from archetypeos.core.config import settings
from archetypeos.core.exceptions import (
    AlreadySubmittedException,
    AttemptLimitReachedException,
    NoActiveAttemptException,
    PermissionDeniedException,
)
from archetypeos.modules.assessments.attempts import AttemptEngine
from archetypeos.modules.assessments.models import TestResult as Attempt
from archetypeos.modules.assessments.status import AttemptStatus
from archetypeos.modules.audit.models import AuditAction, AuditEvent
from archetypeos.modules.courses.models import EnrollmentStatus
from archetypeos.modules.courses.service import EnrollmentService
from archetypeos.modules.users.models import UserRole


@pytest.fixture
def learner_setup(make_user, make_course, make_test, enroll):
    learner = make_user()
    course = make_course()
    test = make_test(
        course,
        [{"correct_answer": 0}, {"correct_answer": 1}, {"correct_answer": 0}],
        attempt_limit=2,
    )
    enroll(learner, course)
    return learner, course, test


def test_start_opens_first_attempt(session, learner_setup):
    learner, _, test = learner_setup
    attempt = AttemptEngine(session).start(learner, test.id)
    assert attempt.attempt_number == 1
    assert attempt.status is AttemptStatus.IN_PROGRESS
    assert attempt.score is None
    assert attempt.answers == {}


def test_start_resumes_open_attempt(session, learner_setup):
    learner, _, test = learner_setup
    engine = AttemptEngine(session)
    first = engine.start(learner, test.id)
    second = engine.start(learner, test.id)
    assert second.id == first.id
    assert session.query(Attempt).count() == 1


def test_start_requires_enrollment(session, make_user, make_course, make_test):
    learner = make_user()
    test = make_test(make_course())
    with pytest.raises(PermissionDeniedException):
        AttemptEngine(session).start(learner, test.id)


def test_submit_scores_and_passes(session, learner_setup):
    learner, course, test = learner_setup
    engine = AttemptEngine(session)
    engine.start(learner, test.id)

    attempt = engine.submit(learner, test.id, {"0": 0, "1": 1, "2": 0})

    assert attempt.status is AttemptStatus.PASSED
    assert attempt.score == 100
    assert attempt.submitted_at is not None
    assert not attempt.is_late
    enrollment = EnrollmentService(session).find(learner.id, course.id)
    assert enrollment.status == EnrollmentStatus.COMPLETED


def test_submit_failing_score_leaves_enrollment_open(session, learner_setup):
    learner, course, test = learner_setup
    engine = AttemptEngine(session)
    engine.start(learner, test.id)

    attempt = engine.submit(learner, test.id, {"0": 1, "1": 1, "2": 1})

    assert attempt.status is AttemptStatus.FAILED
    assert attempt.score == 33
    enrollment = EnrollmentService(session).find(learner.id, course.id)
    assert enrollment.status == EnrollmentStatus.ENROLLED


def test_submit_drops_answers_for_unknown_questions(session, learner_setup):
    learner, _, test = learner_setup
    engine = AttemptEngine(session)
    engine.start(learner, test.id)
    attempt = engine.submit(learner, test.id, {"0": 0, "9": 3})
    assert attempt.answers == {"0": 0}


def test_submit_without_attempt(session, learner_setup):
    learner, _, test = learner_setup
    with pytest.raises(NoActiveAttemptException):
        AttemptEngine(session).submit(learner, test.id, {"0": 0})


def test_second_attempt_then_limit(session, learner_setup):
    learner, _, test = learner_setup
    engine = AttemptEngine(session)

    engine.start(learner, test.id)
    engine.submit(learner, test.id, {})
    second = engine.start(learner, test.id)
    assert second.attempt_number == 2
    engine.submit(learner, test.id, {})

    with pytest.raises(AttemptLimitReachedException) as exc_info:
        engine.start(learner, test.id)
    assert exc_info.value.details == {"attempt_limit": 2}

    with pytest.raises(AttemptLimitReachedException):
        engine.submit(learner, test.id, {})


def test_submit_records_notification(session, learner_setup):
    learner, _, test = learner_setup
    engine = AttemptEngine(session)
    engine.start(learner, test.id)
    engine.submit(learner, test.id, {"0": 0, "1": 1, "2": 0})

    notifications = (
        session.query(AuditEvent)
        .filter(
            AuditEvent.user_id == learner.id,
            AuditEvent.action == AuditAction.NOTIFICATION.value,
        )
        .all()
    )
    assert len(notifications) == 1
    assert notifications[0].details["title"] == f"Test submitted: {test.title}"


def test_stale_attempt_submit_is_rejected(session, learner_setup, monkeypatch):
    learner, _, test = learner_setup
    engine = AttemptEngine(session)
    attempt = engine.start(learner, test.id)

    # another request submits between the lookup and the update
    session.query(Attempt).filter(Attempt.id == attempt.id).update(
        {Attempt.status: AttemptStatus.FAILED, Attempt.score: 0},
        synchronize_session=False,
    )
    session.commit()
    monkeypatch.setattr(AttemptEngine, "_in_progress", lambda self, user_id, test_id: attempt)

    with pytest.raises(AlreadySubmittedException):
        engine.submit(learner, test.id, {"0": 0})

    session.expire_all()
    stored = session.get(Attempt, attempt.id)
    assert stored.status is AttemptStatus.FAILED
    assert stored.score == 0


def test_late_submission_scores_as_unanswered(session, make_user, make_course, make_test, enroll):
    learner = make_user()
    course = make_course()
    test = make_test(course, [{"correct_answer": 0}], time_limit_minutes=10)
    enroll(learner, course)

    started = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    AttemptEngine(session, clock=lambda: started).start(learner, test.id)

    late = started + timedelta(minutes=10, seconds=settings.submit_grace_seconds + 1)
    attempt = AttemptEngine(session, clock=lambda: late).submit(learner, test.id, {"0": 0})

    assert attempt.is_late
    assert attempt.score == 0
    assert attempt.status is AttemptStatus.FAILED


def test_submission_within_grace_is_scored(session, make_user, make_course, make_test, enroll):
    learner = make_user()
    course = make_course()
    test = make_test(course, [{"correct_answer": 0}], time_limit_minutes=10)
    enroll(learner, course)

    started = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
    AttemptEngine(session, clock=lambda: started).start(learner, test.id)

    on_time = started + timedelta(minutes=10, seconds=settings.submit_grace_seconds)
    attempt = AttemptEngine(session, clock=lambda: on_time).submit(
        learner,
        test.id,
        {"0": 0},
        client_started_at=started - timedelta(hours=1),
    )

    assert not attempt.is_late
    assert attempt.score == 100


def test_supervisor_starts_attempt_for_overseen_learner(
    session, make_user, make_course, make_test, enroll
):
    supervisor = make_user(role=UserRole.SUPERVISOR)
    learner = make_user(supervisor=supervisor)
    course = make_course()
    test = make_test(course)
    enroll(learner, course)

    attempt = AttemptEngine(session).start(supervisor, test.id, user_id=learner.id)
    assert attempt.user_id == learner.id


def test_summary_counts_finished_attempts(session, learner_setup):
    learner, _, test = learner_setup
    engine = AttemptEngine(session)
    engine.start(learner, test.id)
    engine.submit(learner, test.id, {"0": 0})
    open_attempt = engine.start(learner, test.id)

    summary = engine.summary(learner, test.id)
    assert summary["attempts_used"] == 1
    assert summary["attempts_remaining"] == 1
    assert summary["in_progress_attempt_id"] == open_attempt.id
    assert summary["best_score"] == 33
    assert summary["passed"] is False


def test_submit_counts_outcome_metric(session, learner_setup):
    learner, _, test = learner_setup
    labels = {"status": "failed", "via": "submit"}
    before = REGISTRY.get_sample_value("archetypeos_attempt_outcomes_total", labels) or 0.0

    engine = AttemptEngine(session)
    engine.start(learner, test.id)
    engine.submit(learner, test.id, {"0": 3, "1": 3, "2": 3})

    assert REGISTRY.get_sample_value("archetypeos_attempt_outcomes_total", labels) == before + 1


def test_zero_point_test_passes_only_at_zero_passing_score(
    session, make_user, make_course, make_test, enroll
):
    learner = make_user()
    course = make_course()
    weightless = [{"correct_answer": 0, "points": 0}, {"correct_answer": 1, "points": 0}]
    lenient = make_test(course, weightless, title="Warm-up", passing_score=0)
    strict = make_test(course, weightless, title="Warm-up strict", passing_score=1)
    enroll(learner, course)
    engine = AttemptEngine(session)

    engine.start(learner, lenient.id)
    result = engine.submit(learner, lenient.id, {"0": 3, "1": 3})
    assert result.score == 0
    assert result.status is AttemptStatus.PASSED

    engine.start(learner, strict.id)
    result = engine.submit(learner, strict.id, {"0": 0, "1": 1})
    assert result.score == 0
    assert result.status is AttemptStatus.FAILED


def test_full_marks_required_at_passing_score_100(session, learner_setup):
    learner, _, test = learner_setup
    test.passing_score = 100
    session.commit()
    engine = AttemptEngine(session)

    engine.start(learner, test.id)
    first = engine.submit(learner, test.id, {"0": 0, "1": 1, "2": 1})
    assert first.score == 67
    assert first.status is AttemptStatus.FAILED

    engine.start(learner, test.id)
    second = engine.submit(learner, test.id, {"0": 0, "1": 1, "2": 0})
    assert second.score == 100
    assert second.status is AttemptStatus.PASSED


def test_single_attempt_in_review_uses_up_the_limit(
    session, make_user, make_course, make_test, enroll
):
    learner = make_user()
    course = make_course()
    test = make_test(
        course, [{"correct_answer": 0}, {"type": "written", "points": 5}], attempt_limit=1
    )
    enroll(learner, course)
    engine = AttemptEngine(session)

    engine.start(learner, test.id)
    result = engine.submit(learner, test.id, {"0": 0, "1": "An essay"})
    assert result.status is AttemptStatus.NEEDS_REVIEW
    assert result.score is None

    with pytest.raises(AttemptLimitReachedException):
        engine.start(learner, test.id)
