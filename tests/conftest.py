# ruff: noqa: E402
import itertools
import os
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Set testing environment flags before importing the app or settings
os.environ["APP_ENV"] = "test"
os.environ.setdefault(
    "TEST_DATABASE_URL",
    f"sqlite:///{Path(__file__).resolve().parent / 'test.db'}",
)

from archetypeos.core.config import settings
from archetypeos.core.database import Base, build_engine, get_db
from archetypeos.main import app
from archetypeos.models import registry
from archetypeos.oauth2 import create_access_token

# Align settings with test environment even if loaded before env vars
object.__setattr__(settings, "environment", "test")

engine = build_engine(settings.get_database_url(use_test=True))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class AttrDict(dict):
    """Dict with attribute-style access for fixtures."""

    def __getattr__(self, item: str) -> Any:
        try:
            return self[item]
        except KeyError as exc:
            raise AttributeError(item) from exc


def _truncate_tables() -> None:
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="session", autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        _truncate_tables()


@pytest.fixture
def session_factory(session):
    """Independent sessions for tests that run work on several threads."""
    return TestingSessionLocal


@pytest.fixture
def client(session):
    def override_get_db():
        try:
            yield session
        finally:
            # release the write lock taken by reads after the last commit
            session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_user(session):
    counter = itertools.count(1)

    def _make(role=registry.UserRole.LEARNER, supervisor=None, display_name=None, **extra):
        n = next(counter)
        user = registry.User(
            email=f"user{n}@example.com",
            display_name=display_name or f"User {n}",
            role=role,
            supervisor_id=supervisor.id if supervisor is not None else None,
            **extra,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_course(session):
    def _make(title="Python Foundations", **extra):
        course = registry.Course(title=title, duration=extra.pop("duration", 60), **extra)
        session.add(course)
        session.commit()
        session.refresh(course)
        return course

    return _make


@pytest.fixture
def make_test(session):
    """Build a test from question dicts such as {"type": "written", "points": 9}."""

    def _make(
        course,
        questions=None,
        *,
        title="Checkpoint",
        passing_score=70,
        attempt_limit=1,
        time_limit_minutes=None,
    ):
        rows = questions if questions is not None else [{"correct_answer": 0}]
        kinds = {row.get("type", "mcq") for row in rows}
        test = registry.Test(
            course_id=course.id,
            title=title,
            type=registry.TestType(kinds.pop() if len(kinds) == 1 else "mixed"),
            passing_score=passing_score,
            attempt_limit=attempt_limit,
            time_limit_minutes=time_limit_minutes,
        )
        for position, row in enumerate(rows):
            kind = registry.QuestionType(row.get("type", "mcq"))
            test.questions.append(
                registry.Question(
                    position=position,
                    type=kind,
                    prompt=row.get("prompt", f"Question {position + 1}"),
                    options=(
                        row.get("options", ["a", "b", "c", "d"])
                        if kind is registry.QuestionType.MCQ
                        else None
                    ),
                    correct_answer=row.get("correct_answer"),
                    points=row.get("points", 1.0),
                )
            )
        session.add(test)
        session.commit()
        session.refresh(test)
        return test

    return _make


@pytest.fixture
def enroll(session):
    def _enroll(user, course, status="enrolled", progress=0.0):
        enrollment = registry.CourseEnrollment(
            user_id=user.id,
            course_id=course.id,
            status=registry.EnrollmentStatus(status),
            progress=progress,
        )
        session.add(enrollment)
        session.commit()
        session.refresh(enrollment)
        return enrollment

    return _enroll


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"user_id": user.id})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def onboarding(make_user, make_course, make_test):
    """A candidate, a supervisor overseeing them, and a three-question MCQ test."""
    supervisor = make_user(role=registry.UserRole.SUPERVISOR, display_name="Sam Supervisor")
    candidate = make_user(
        role=registry.UserRole.CANDIDATE, supervisor=supervisor, display_name="Casey Candidate"
    )
    course = make_course()
    test = make_test(
        course,
        [{"correct_answer": 0}, {"correct_answer": 1}, {"correct_answer": 0}],
        attempt_limit=2,
    )
    return AttrDict(supervisor=supervisor, candidate=candidate, course=course, test=test)
