from archetypeos.modules.users.models import UserRole


def test_requests_need_a_token(client):
    res = client.get("/courses")
    assert res.status_code == 401
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "authentication_failed"
    assert res.headers["WWW-Authenticate"] == "Bearer"


def test_invalid_token_is_rejected(client):
    res = client.get("/courses", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "invalid_token"


def test_list_courses_with_tests_and_counts(client, make_user, make_course, make_test, enroll, auth_headers):
    learner = make_user()
    course = make_course(title="Intro to SQL")
    make_test(course, title="SQL basics")
    enroll(learner, course)

    res = client.get("/courses", headers=auth_headers(learner))

    assert res.status_code == 200
    [item] = res.json()
    assert item["title"] == "Intro to SQL"
    assert item["enrollmentCount"] == 1
    assert item["contentType"] == "link"
    assert [t["title"] for t in item["tests"]] == ["SQL basics"]


def test_admin_manages_catalog(client, make_user, auth_headers):
    admin = make_user(role=UserRole.ADMIN)
    headers = auth_headers(admin)

    res = client.post(
        "/courses",
        json={"title": "Go Concurrency", "difficulty": "advanced", "duration": 90},
        headers=headers,
    )
    assert res.status_code == 201
    course = res.json()
    assert course["difficulty"] == "advanced"
    assert course["enrollmentCount"] == 0

    res = client.put(
        f"/courses/{course['id']}",
        json={"description": "Channels and goroutines", "title": None},
        headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["description"] == "Channels and goroutines"
    assert res.json()["title"] == "Go Concurrency"

    res = client.delete(f"/courses/{course['id']}", headers=headers)
    assert res.status_code == 204
    assert client.get(f"/courses/{course['id']}", headers=headers).status_code == 404


def test_non_admin_cannot_create_course(client, make_user, auth_headers):
    supervisor = make_user(role=UserRole.SUPERVISOR)
    res = client.post("/courses", json={"title": "Nope"}, headers=auth_headers(supervisor))
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "permission_denied"


def test_course_validation_error_envelope(client, make_user, auth_headers):
    admin = make_user(role=UserRole.ADMIN)
    res = client.post("/courses", json={"title": "", "duration": -1}, headers=auth_headers(admin))
    assert res.status_code == 400
    body = res.json()
    assert body["error"]["code"] == "validation_error"
    fields = {error["field"] for error in body["error"]["details"]["errors"]}
    assert {"title", "duration"} <= fields
    assert body["path"] == "/courses"


def test_enroll_is_idempotent(client, make_user, make_course, auth_headers):
    learner = make_user()
    course = make_course()
    headers = auth_headers(learner)

    first = client.post(f"/courses/{course.id}/enroll", headers=headers)
    assert first.status_code == 201
    assert first.json()["status"] == "enrolled"

    second = client.post(f"/courses/{course.id}/enroll", headers=headers)
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]


def test_candidate_sees_only_assigned_courses(client, make_user, make_course, enroll, auth_headers):
    candidate = make_user(role=UserRole.CANDIDATE)
    assigned = make_course(title="Assigned")
    other = make_course(title="Other")
    enroll(candidate, assigned, status="in_progress")
    headers = auth_headers(candidate)

    assert client.get(f"/courses/{assigned.id}", headers=headers).status_code == 200
    assert client.get(f"/courses/{other.id}", headers=headers).status_code == 403
    assert client.post(f"/courses/{other.id}/enroll", headers=headers).status_code == 403


def test_progress_to_completion_issues_certificate(client, make_user, make_course, enroll, auth_headers):
    learner = make_user()
    course = make_course(title="Testing 101")
    enroll(learner, course)
    headers = auth_headers(learner)

    res = client.patch(f"/courses/{course.id}/progress", json={"progress": 45}, headers=headers)
    assert res.status_code == 200
    assert res.json()["status"] == "in_progress"

    res = client.patch(f"/courses/{course.id}/progress", json={"progress": 120}, headers=headers)
    body = res.json()
    assert body["status"] == "completed"
    assert body["progress"] == 100
    assert body["completedAt"] is not None

    certificates = client.get("/certificates", headers=headers).json()
    assert len(certificates) == 1
    assert certificates[0]["targetId"] == course.id
    assert certificates[0]["details"]["courseTitle"] == "Testing 101"


def test_progress_without_enrollment_is_404(client, make_user, make_course, auth_headers):
    learner = make_user()
    course = make_course()
    res = client.patch(
        f"/courses/{course.id}/progress", json={"progress": 10}, headers=auth_headers(learner)
    )
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "resource_not_found"


def test_course_test_results_are_own_attempts(
    client, make_user, make_course, make_test, enroll, auth_headers
):
    learner = make_user()
    course = make_course()
    test = make_test(course, attempt_limit=2)
    enroll(learner, course)
    headers = auth_headers(learner)
    client.post(f"/tests/{test.id}/start", headers=headers)
    client.post(f"/tests/{test.id}/submit", json={"answers": {"0": 1}}, headers=headers)

    results = client.get(f"/courses/{course.id}/test-results", headers=headers).json()
    assert [(r["attemptNumber"], r["status"], r["score"]) for r in results] == [(1, "failed", 0)]
