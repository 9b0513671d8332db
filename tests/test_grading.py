import pytest

from archetypeos.core.exceptions import (
    NotGradableException,
    PermissionDeniedException,
    ResourceNotFoundException,
    ValidationException,
)
from archetypeos.modules.assessments.attempts import AttemptEngine
from archetypeos.modules.assessments.grading import GradingService
from archetypeos.modules.assessments.status import AttemptStatus
from archetypeos.modules.audit.service import AuditLog
from archetypeos.modules.courses.models import EnrollmentStatus
from archetypeos.modules.courses.service import EnrollmentService
from archetypeos.modules.users.models import UserRole

WRITTEN_TEST = [{"correct_answer": 2}, {"type": "written", "points": 9}]


@pytest.fixture
def review_setup(session, make_user, make_course, make_test, enroll):
    supervisor = make_user(role=UserRole.SUPERVISOR)
    learner = make_user(supervisor=supervisor)
    course = make_course()
    test = make_test(course, WRITTEN_TEST)
    enroll(learner, course)

    engine = AttemptEngine(session)
    engine.start(learner, test.id)
    attempt = engine.submit(learner, test.id, {"0": 2, "1": "an essay"})
    return supervisor, learner, course, test, attempt


def test_written_answers_wait_for_review(review_setup):
    _, _, _, _, attempt = review_setup
    assert attempt.status is AttemptStatus.NEEDS_REVIEW
    assert attempt.score is None
    assert attempt.answers == {"0": 2, "1": "an essay"}


def test_grade_passes_and_completes_course(session, review_setup):
    supervisor, learner, course, _, attempt = review_setup

    graded = GradingService(session).grade(supervisor, attempt.id, 80, feedback="Solid work")

    assert graded.status is AttemptStatus.PASSED
    assert graded.score == 80
    assert graded.graded_by == supervisor.id
    assert graded.graded_at is not None
    assert graded.feedback == "Solid work"
    enrollment = EnrollmentService(session).find(learner.id, course.id)
    assert enrollment.status == EnrollmentStatus.COMPLETED
    certificate = AuditLog(session).find_certificate(learner.id, course.id)
    assert certificate is not None
    assert certificate.details["issuedVia"] == "grading"


def test_grade_below_passing_fails(session, review_setup):
    supervisor, learner, course, _, attempt = review_setup

    graded = GradingService(session).grade(supervisor, attempt.id, 40)

    assert graded.status is AttemptStatus.FAILED
    assert AuditLog(session).find_certificate(learner.id, course.id) is None


def test_grade_twice_is_rejected(session, review_setup):
    supervisor, _, _, _, attempt = review_setup
    service = GradingService(session)
    service.grade(supervisor, attempt.id, 90)

    with pytest.raises(NotGradableException) as exc_info:
        service.grade(supervisor, attempt.id, 10)
    assert exc_info.value.details["status"] == "passed"


def test_grade_score_out_of_range(session, review_setup):
    supervisor, _, _, _, attempt = review_setup
    with pytest.raises(ValidationException):
        GradingService(session).grade(supervisor, attempt.id, 101)


def test_grade_in_progress_attempt(session, make_user, make_course, make_test, enroll):
    supervisor = make_user(role=UserRole.SUPERVISOR)
    learner = make_user(supervisor=supervisor)
    course = make_course()
    test = make_test(course, WRITTEN_TEST)
    enroll(learner, course)
    attempt = AttemptEngine(session).start(learner, test.id)

    with pytest.raises(NotGradableException):
        GradingService(session).grade(supervisor, attempt.id, 80)


def test_grade_missing_attempt(session, make_user):
    admin = make_user(role=UserRole.ADMIN)
    with pytest.raises(ResourceNotFoundException):
        GradingService(session).grade(admin, 12345, 50)


def test_unrelated_supervisor_cannot_grade(session, make_user, review_setup):
    _, _, _, _, attempt = review_setup
    outsider = make_user(role=UserRole.SUPERVISOR)
    with pytest.raises(PermissionDeniedException):
        GradingService(session).grade(outsider, attempt.id, 80)


def test_learner_cannot_grade_own_attempt(session, review_setup):
    _, learner, _, _, attempt = review_setup
    with pytest.raises(PermissionDeniedException):
        GradingService(session).grade(learner, attempt.id, 100)


def test_admin_grades_anyone(session, make_user, review_setup):
    _, _, _, _, attempt = review_setup
    admin = make_user(role=UserRole.ADMIN)
    graded = GradingService(session).grade(admin, attempt.id, 70)
    assert graded.status is AttemptStatus.PASSED


def test_review_queue_is_scoped(session, make_user, make_course, make_test, enroll, review_setup):
    supervisor, _, _, _, attempt = review_setup
    other_supervisor = make_user(role=UserRole.SUPERVISOR)
    other_learner = make_user(supervisor=other_supervisor)
    course = make_course(title="Another")
    test = make_test(course, WRITTEN_TEST)
    enroll(other_learner, course)
    engine = AttemptEngine(session)
    engine.start(other_learner, test.id)
    other_attempt = engine.submit(other_learner, test.id, {"1": "text"})

    service = GradingService(session)
    assert [a.id for a in service.review_queue(supervisor)] == [attempt.id]
    assert [a.id for a in service.review_queue(other_supervisor)] == [other_attempt.id]

    admin = make_user(role=UserRole.ADMIN)
    assert {a.id for a in service.review_queue(admin)} == {attempt.id, other_attempt.id}


def test_review_queue_requires_oversight_role(session, review_setup):
    _, learner, _, _, _ = review_setup
    with pytest.raises(PermissionDeniedException):
        GradingService(session).review_queue(learner)
