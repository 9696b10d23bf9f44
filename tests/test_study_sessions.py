from researchhub import runtime
from researchhub.config import AppConfig


def _start(client, headers, user_id="u1", study_id="s1", **extra):
    payload = {"userId": user_id, "studyId": study_id}
    payload.update(extra)
    return client.post("/api/study-sessions/start", json=payload, headers=headers)


def test_full_session_scenario(client, login):
    headers = login("u1")

    started = _start(client, headers)
    assert started.status_code == 201
    body = started.get_json()
    assert body["success"] is True
    session_id = body["sessionId"]
    assert isinstance(session_id, str) and session_id

    progress = client.post(
        "/api/study-sessions/progress",
        json={"sessionId": session_id, "currentStep": 2, "responses": {"step1": "completed"}},
        headers=headers,
    )
    assert progress.status_code == 200
    assert progress.get_json()["success"] is True

    completed = client.post(
        "/api/study-sessions/complete",
        json={"sessionId": session_id, "finalResponses": {"overall": "done"}},
        headers=headers,
    )
    assert completed.status_code == 200
    assert completed.get_json()["success"] is True

    results = client.get(f"/api/study-sessions/results/{session_id}", headers=headers)
    assert results.status_code == 200
    session = results.get_json()["data"]["session"]
    assert session["status"] == "completed"
    assert session["responses"]["step1"] == "completed"
    assert session["responses"]["overall"] == "done"
    assert session["end_time"]


def test_start_then_results_is_in_progress_at_step_zero(client, login):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]

    results = client.get(f"/api/study-sessions/results/{session_id}", headers=headers)

    data = results.get_json()["data"]
    assert data["session"]["status"] == "in_progress"
    assert data["session"]["current_step"] == 0
    assert data["summary"]["completed"] is False
    assert data["summary"]["total_responses"] == 0


def test_start_without_user_id_returns_400(client, login):
    response = client.post("/api/study-sessions/start", json={"studyId": "s1"}, headers=login("u1"))

    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_start_without_study_id_returns_400(client, login):
    response = client.post("/api/study-sessions/start", json={"userId": "u1"}, headers=login("u1"))

    assert response.status_code == 400
    assert response.get_json()["success"] is False


def test_start_without_token_returns_401(client):
    response = client.post("/api/study-sessions/start", json={"userId": "u1", "studyId": "s1"})

    assert response.status_code == 401
    assert response.get_json() == {"success": False, "error": "Authentication required"}


def test_start_for_another_user_is_forbidden(client, login, fake_db):
    response = _start(client, login("u1"), user_id="someone-else")

    assert response.status_code == 403
    assert fake_db.all("study_sessions") == {}


def test_start_stores_device_info_and_client_start_time(client, login, fake_db):
    response = _start(
        client,
        login("u1"),
        deviceInfo={"browser": "firefox", "screen": "1920x1080"},
        startTime="2026-01-05T10:00:00Z",
    )

    session_id = response.get_json()["sessionId"]
    stored = fake_db.read("study_sessions", session_id)
    assert stored["device_info"]["browser"] == "firefox"
    assert stored["start_time"] == "2026-01-05T10:00:00Z"
    assert stored["user_id"] == "u1"
    assert stored["study_id"] == "s1"


def test_progress_from_non_owner_is_rejected_and_not_applied(client, login, fake_db):
    owner_headers = login("u1")
    intruder_headers = login("u2")
    session_id = _start(client, owner_headers).get_json()["sessionId"]

    response = client.post(
        "/api/study-sessions/progress",
        json={"sessionId": session_id, "currentStep": 5, "responses": {"step1": "hijacked"}},
        headers=intruder_headers,
    )

    assert response.status_code == 404
    assert response.get_json()["success"] is False
    stored = fake_db.read("study_sessions", session_id)
    assert stored["current_step"] == 0
    assert stored["responses"] == {}


def test_progress_responses_round_trip_verbatim(client, login):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]
    answer = {"choice": ["a", "c"], "confidence": 4, "note": "Ünïcode ✓"}

    client.post(
        "/api/study-sessions/progress",
        json={"sessionId": session_id, "currentStep": 3, "responses": {"block_3": answer}},
        headers=headers,
    )

    session = client.get(f"/api/study-sessions/results/{session_id}", headers=headers).get_json()["data"]["session"]
    assert session["responses"]["block_3"] == answer
    assert session["current_step"] == 3


def test_progress_merges_and_keeps_completion_order(client, login):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]

    for step, block_id in enumerate(["welcome", "q1", "q2"], start=1):
        client.post(
            "/api/study-sessions/progress",
            json={"sessionId": session_id, "currentStep": step, "stepId": block_id, "response": f"answer-{step}"},
            headers=headers,
        )

    session = client.get(f"/api/study-sessions/{session_id}", headers=headers).get_json()["data"]
    assert list(session["responses"]) == ["welcome", "q1", "q2"]
    assert session["current_step"] == 3
    assert session["timestamp"]


def test_progress_via_put_route(client, login):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]

    response = client.put(
        f"/api/study-sessions/{session_id}",
        json={"currentStep": 1, "responses": {"intro": "seen"}, "timeSpent": 12.5},
        headers=headers,
    )

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["responses"] == {"intro": "seen"}
    assert data["time_spent"] == 12.5


def test_progress_rejects_invalid_step(client, login):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]

    response = client.post(
        "/api/study-sessions/progress",
        json={"sessionId": session_id, "currentStep": -1},
        headers=headers,
    )

    assert response.status_code == 400
    assert "currentStep" in response.get_json()["error"]


def test_progress_requires_session_id(client, login):
    response = client.post("/api/study-sessions/progress", json={"currentStep": 1}, headers=login("u1"))

    assert response.status_code == 400
    assert response.get_json()["error"] == "Session ID is required"


def test_progress_on_unknown_session_returns_404(client, login):
    response = client.post(
        "/api/study-sessions/progress",
        json={"sessionId": "session_missing", "currentStep": 1},
        headers=login("u1"),
    )

    assert response.status_code == 404


def test_second_completion_is_rejected(client, login, fake_db):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]
    first = client.post(
        "/api/study-sessions/complete",
        json={"sessionId": session_id, "feedback": "Great study"},
        headers=headers,
    )
    assert first.status_code == 200
    end_time = fake_db.read("study_sessions", session_id)["end_time"]

    second = client.post(
        "/api/study-sessions/complete",
        json={"sessionId": session_id, "finalResponses": {"late": "answer"}},
        headers=headers,
    )

    assert second.status_code == 400
    assert second.get_json() == {"success": False, "error": "Session already completed"}
    stored = fake_db.read("study_sessions", session_id)
    assert stored["end_time"] == end_time
    assert "late" not in stored["responses"]
    assert stored["feedback"] == "Great study"


def test_progress_after_completion_is_rejected(client, login):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]
    client.post("/api/study-sessions/complete", json={"sessionId": session_id}, headers=headers)

    response = client.post(
        "/api/study-sessions/progress",
        json={"sessionId": session_id, "currentStep": 4},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "Session already completed"


def test_complete_reports_summary(client, login):
    headers = login("u1")
    session_id = _start(client, headers, startTime="2026-01-05T10:00:00+00:00").get_json()["sessionId"]
    client.post(
        "/api/study-sessions/progress",
        json={"sessionId": session_id, "currentStep": 1, "responses": {"q1": "yes"}},
        headers=headers,
    )

    response = client.post(
        "/api/study-sessions/complete",
        json={"sessionId": session_id, "finalResponses": {"q2": "no"}, "completionTime": "2026-01-05T10:05:30+00:00"},
        headers=headers,
    )

    results = response.get_json()["results"]
    assert results["completed"] is True
    assert results["total_responses"] == 2
    assert results["duration_seconds"] == 330.0


def test_results_hidden_from_other_participants_but_visible_to_admin(client, login, fake_db):
    owner_headers = login("u1")
    session_id = _start(client, owner_headers).get_json()["sessionId"]

    other = client.get(f"/api/study-sessions/results/{session_id}", headers=login("u2"))
    assert other.status_code == 404

    admin = client.get(f"/api/study-sessions/results/{session_id}", headers=login("admin-1", role="admin"))
    assert admin.status_code == 200
    assert admin.get_json()["data"]["session"]["user_id"] == "u1"


def test_list_sessions_returns_only_own_sessions_newest_first(client, login, fake_db):
    fake_db.seed("study_sessions", "session_old", {"user_id": "u1", "study_id": "s1", "start_time": "2026-01-01T00:00:00+00:00"})
    fake_db.seed("study_sessions", "session_new", {"user_id": "u1", "study_id": "s2", "start_time": "2026-02-01T00:00:00+00:00"})
    fake_db.seed("study_sessions", "session_other", {"user_id": "u2", "study_id": "s1", "start_time": "2026-03-01T00:00:00+00:00"})

    response = client.get("/api/study-sessions", headers=login("u1"))

    sessions = response.get_json()["data"]
    assert [s["study_id"] for s in sessions] == ["s2", "s1"]

    filtered = client.get("/api/study-sessions?studyId=s1", headers=login("u1")).get_json()["data"]
    assert len(filtered) == 1


def test_study_filter_applies_before_list_limit(client, login, fake_db, monkeypatch):
    monkeypatch.setattr(runtime, "config", AppConfig(session_list_limit=2, runtime_env="test"))
    fake_db.seed("study_sessions", "a", {"user_id": "u1", "study_id": "s1", "start_time": "2026-03-01T00:00:00+00:00"})
    fake_db.seed("study_sessions", "b", {"user_id": "u1", "study_id": "s1", "start_time": "2026-02-01T00:00:00+00:00"})
    fake_db.seed("study_sessions", "c", {"user_id": "u1", "study_id": "s2", "start_time": "2026-01-01T00:00:00+00:00"})

    filtered = client.get("/api/study-sessions?studyId=s2", headers=login("u1")).get_json()["data"]
    assert [s["study_id"] for s in filtered] == ["s2"]

    newest = client.get("/api/study-sessions", headers=login("u1")).get_json()["data"]
    assert [s["start_time"][:7] for s in newest] == ["2026-03", "2026-02"]


def test_complete_rejects_non_string_feedback(client, login, fake_db):
    headers = login("u1")
    session_id = _start(client, headers).get_json()["sessionId"]

    response = client.post(
        "/api/study-sessions/complete",
        json={"sessionId": session_id, "feedback": {"rating": 5}},
        headers=headers,
    )

    assert response.status_code == 400
    assert response.get_json()["error"] == "feedback must be a string"
    stored = fake_db.read("study_sessions", session_id)
    assert stored["status"] == "in_progress"
    assert stored["feedback"] is None
