from archetypeos.modules.users.models import UserRole


def test_list_tests_hides_correct_answers(client, make_user, make_course, make_test, auth_headers):
    learner = make_user()
    course = make_course()
    make_test(course, [{"correct_answer": 2, "prompt": "Pick c"}])

    res = client.get("/tests", params={"courseId": course.id}, headers=auth_headers(learner))

    assert res.status_code == 200
    [test] = res.json()
    assert test["questions"][0]["prompt"] == "Pick c"
    assert "correctAnswer" not in test["questions"][0]


def test_list_tests_requires_course_id(client, make_user, auth_headers):
    res = client.get("/tests", headers=auth_headers(make_user()))
    assert res.status_code == 400


def test_get_test_requires_enrollment(client, make_user, make_course, make_test, enroll, auth_headers):
    learner = make_user()
    course = make_course()
    test = make_test(course)
    headers = auth_headers(learner)

    assert client.get(f"/tests/{test.id}", headers=headers).status_code == 403
    enroll(learner, course)
    res = client.get(f"/tests/{test.id}", headers=headers)
    assert res.status_code == 200
    assert res.json()["attemptLimit"] == 1


def test_start_submit_flow(client, make_user, make_course, make_test, enroll, auth_headers):
    learner = make_user()
    course = make_course()
    test = make_test(
        course,
        [{"correct_answer": 0}, {"correct_answer": 1}, {"correct_answer": 0}],
        attempt_limit=2,
        time_limit_minutes=30,
    )
    enroll(learner, course)
    headers = auth_headers(learner)

    started = client.post(f"/tests/{test.id}/start", headers=headers)
    assert started.status_code == 200
    attempt = started.json()
    assert attempt["attemptNumber"] == 1
    assert attempt["status"] == "in_progress"
    assert attempt["timeLimitMinutes"] == 30
    assert attempt["startedAt"]

    resumed = client.post(f"/tests/{test.id}/start", headers=headers).json()
    assert resumed["id"] == attempt["id"]

    submitted = client.post(
        f"/tests/{test.id}/submit",
        json={"answers": {"0": 0, "1": 1, "2": 1}, "startedAt": attempt["startedAt"]},
        headers=headers,
    )
    assert submitted.status_code == 200
    body = submitted.json()
    assert body["score"] == 67
    assert body["status"] == "failed"
    assert body["isLate"] is False

    summary = client.get(f"/tests/{test.id}/attempts", headers=headers).json()
    assert summary["attemptsUsed"] == 1
    assert summary["attemptsRemaining"] == 1
    assert summary["bestScore"] == 67
    assert summary["inProgressAttemptId"] is None


def test_submit_without_start(client, make_user, make_course, make_test, enroll, auth_headers):
    learner = make_user()
    course = make_course()
    test = make_test(course)
    enroll(learner, course)

    res = client.post(f"/tests/{test.id}/submit", json={"answers": {}}, headers=auth_headers(learner))

    assert res.status_code == 400
    assert res.json()["error"]["code"] == "no_active_attempt"


def test_attempt_limit_reached(client, make_user, make_course, make_test, enroll, auth_headers):
    learner = make_user()
    course = make_course()
    test = make_test(course)
    enroll(learner, course)
    headers = auth_headers(learner)
    client.post(f"/tests/{test.id}/start", headers=headers)
    client.post(f"/tests/{test.id}/submit", json={"answers": {"0": 3}}, headers=headers)

    res = client.post(f"/tests/{test.id}/start", headers=headers)

    assert res.status_code == 400
    assert res.json()["error"] == {
        "code": "attempt_limit_reached",
        "message": "Attempt limit reached",
        "details": {"attempt_limit": 1},
    }


def test_unknown_test_is_404(client, make_user, auth_headers):
    res = client.post("/tests/999/start", headers=auth_headers(make_user()))
    assert res.status_code == 404


def test_candidate_passing_via_api_becomes_learner(client, onboarding, enroll, auth_headers):
    enroll(onboarding.candidate, onboarding.course, status="in_progress")
    headers = auth_headers(onboarding.candidate)

    client.post(f"/tests/{onboarding.test.id}/start", headers=headers)
    res = client.post(
        f"/tests/{onboarding.test.id}/submit",
        json={"answers": {"0": 0, "1": 1, "2": 0}},
        headers=headers,
    )

    assert res.json()["status"] == "passed"
    me = client.get("/users/me", headers=headers).json()
    assert me["role"] == "learner"
    assert len(client.get("/certificates", headers=headers).json()) == 1
    titles = [n["details"]["title"] for n in client.get("/notifications", headers=headers).json()]
    assert titles == [f"Test submitted: {onboarding.test.title}"]


def test_supervisor_reads_learner_attempt_summary(
    client, make_user, make_course, make_test, enroll, auth_headers
):
    supervisor = make_user(role=UserRole.SUPERVISOR)
    learner = make_user(supervisor=supervisor)
    stranger = make_user()
    course = make_course()
    test = make_test(course)
    enroll(learner, course)

    res = client.get(
        f"/tests/{test.id}/attempts",
        params={"userId": learner.id},
        headers=auth_headers(supervisor),
    )
    assert res.status_code == 200
    assert res.json()["attemptsRemaining"] == 1

    res = client.get(
        f"/tests/{test.id}/attempts",
        params={"userId": stranger.id},
        headers=auth_headers(supervisor),
    )
    assert res.status_code == 403
