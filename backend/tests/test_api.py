import pytest

from leavetest.utils.timezone import get_local_today

STUDENT = {"X-User-Id": "1", "X-User-Role": "student"}
OTHER_STUDENT = {"X-User-Id": "2"}
ADMIN = {"X-User-Id": "100", "X-User-Role": "admin"}


@pytest.fixture
async def configured(client):
    response = await client.put("/api/v1/settings", json={"mcq_count": 5, "coding_count": 2}, headers=ADMIN)
    assert response.status_code == 200
    return response.json()


async def apply(client, subjects=("math",)):
    today = get_local_today().isoformat()
    response = await client.post(
        "/api/v1/leaves",
        json={"reason": "Sports meet", "start_date": today, "end_date": today, "subjects": list(subjects)},
        headers=STUDENT,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["services"]["database"] == "healthy"
    assert body["services"]["cache"] == "disabled"


async def test_identity_is_required(client):
    response = await client.get("/api/v1/tests/leave/1")
    assert response.status_code == 401


async def test_settings_are_staff_only(client, configured):
    assert configured["mcq_count"] == 5
    assert configured["passing_percentage"] == 70.0

    assert (await client.get("/api/v1/settings", headers=STUDENT)).status_code == 403
    response = await client.get("/api/v1/settings", headers=ADMIN)
    assert response.json()["coding_count"] == 2


async def test_invalid_settings_are_rejected(client):
    response = await client.put("/api/v1/settings", json={"violation_penalty_percent": 40}, headers=ADMIN)
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


async def test_invalid_leave_application(client):
    response = await client.post(
        "/api/v1/leaves",
        json={"reason": "", "start_date": "2020-01-01", "end_date": "2020-01-02", "subjects": ["math"]},
        headers=STUDENT,
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Please provide all required fields"


async def test_full_flow(client, fake_judge, standard_bank, configured):
    leave = await apply(client)
    assert leave["status"] == "test-assigned"
    attempt_id = leave["test_attempt_id"]

    paper = (await client.get(f"/api/v1/tests/leave/{leave['id']}", headers=STUDENT)).json()
    assert paper["test_id"] == attempt_id
    assert paper["require_fullscreen"] is True
    assert len(paper["questions"]) == 5
    assert "is_correct" not in str(paper)

    forbidden = await client.get(f"/api/v1/tests/leave/{leave['id']}", headers=OTHER_STUDENT)
    assert forbidden.status_code == 403

    version = paper["version"]
    for question in paper["questions"]:
        response = await client.post(
            f"/api/v1/tests/{attempt_id}/answer",
            json={"question_id": question["id"], "selected_option": 0, "expected_version": version},
            headers=STUDENT,
        )
        assert response.status_code == 200, response.text
        version = response.json()["version"]

    duplicate = await client.post(
        f"/api/v1/tests/{attempt_id}/answer",
        json={"question_id": paper["questions"][0]["id"], "selected_option": 0},
        headers=STUDENT,
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "duplicate_answer"

    stale = await client.post(f"/api/v1/tests/{attempt_id}/submit", json={"expected_version": 1}, headers=STUDENT)
    assert stale.status_code == 409
    assert stale.json()["error"] == "conflict"

    round1 = await client.post(f"/api/v1/tests/{attempt_id}/submit", headers=STUDENT)
    assert round1.status_code == 200
    assert round1.json()["current_round"] == 2

    violation = await client.post(
        f"/api/v1/tests/{attempt_id}/violation",
        json={"type": "tab-switch", "detail": "switched tabs"},
        headers={**STUDENT, "X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
    )
    assert violation.status_code == 200
    assert violation.json()["warning_level"] == "normal"

    round2 = (await client.get(f"/api/v1/tests/leave/{leave['id']}", headers=STUDENT)).json()
    fake_judge.scores = [10, 10]
    for question in round2["questions"]:
        response = await client.post(
            f"/api/v1/tests/{attempt_id}/answer",
            json={"question_id": question["id"], "code": "print(3)", "language": "python"},
            headers=STUDENT,
        )
        assert response.json()["score"] == 10.0
        assert response.json()["case_results"] == [True, True]

    final = (await client.post(f"/api/v1/tests/{attempt_id}/submit", headers=STUDENT)).json()
    assert final["status"] == "completed"
    assert final["percentage"] == pytest.approx(95.0)
    assert final["passed"] is True

    closed = await client.post(f"/api/v1/tests/{attempt_id}/submit", headers=STUDENT)
    assert closed.status_code == 409
    assert closed.json()["error"] == "attempt_closed"

    result = (await client.get(f"/api/v1/tests/{attempt_id}/result", headers=ADMIN)).json()
    assert result["total_score"] == 70.0
    assert len(result["responses"]) == 7
    assert result["end_time_local"]

    summary = (await client.get(f"/api/v1/tests/{attempt_id}/violations/summary", headers=STUDENT)).json()
    assert summary["by_type"] == {"tab-switch": 1}


async def test_unknown_violation_type_is_rejected(client, standard_bank, configured):
    leave = await apply(client)
    response = await client.post(
        f"/api/v1/tests/{leave['test_attempt_id']}/violation",
        json={"type": "telepathy"},
        headers=STUDENT,
    )
    assert response.status_code == 400


async def test_unknown_attempt(client):
    response = await client.post("/api/v1/tests/999/submit", headers=STUDENT)
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"
