from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from cekatan.consts import VERSION
from cekatan.server import app, sessions

client = TestClient(app)

QUESTIONS = [
    {"id": "q1", "options": ["a", "b", "c"], "correct_index": 0},
    {"id": "q2", "options": ["a", "b"], "correct_index": 1},
]


@pytest.fixture(autouse=True)
def clear_sessions():
    sessions.clear()
    yield
    sessions.clear()


def _create(**overrides):
    body = {
        "assessment_id": "exam-1",
        "candidate_id": "alice",
        "questions": QUESTIONS,
        "time_limit_minutes": 10,
        "pass_score": 50,
        **overrides,
    }
    return client.post("/sessions", json=body)


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


# --- Sessions ---


def test_create_session():
    response = _create()

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "in_progress"
    assert data["question_order"] == ["q1", "q2"]
    assert data["time_remaining_seconds"] == 600
    assert data["answers"] == {}


def test_create_resumes_open_session():
    first = _create().json()
    second = _create().json()
    assert second["id"] == first["id"]


def test_create_rejects_bad_question():
    response = _create(questions=[{"id": "q1", "options": ["a"], "correct_index": 3}])
    assert response.status_code == 422


def test_full_attempt():
    sid = _create().json()["id"]

    client.post(f"/sessions/{sid}/answers", json={"question_id": "q1", "selected_index": 0})
    answered = client.post(
        f"/sessions/{sid}/answers", json={"question_id": "q2", "selected_index": 0}
    ).json()
    assert answered["answers"] == {"q1": 0, "q2": 0}

    assert client.post(f"/sessions/{sid}/tab-switch").json()["tab_switch_count"] == 1
    ticked = client.post(f"/sessions/{sid}/tick", json={"elapsed_seconds": 30}).json()
    assert ticked["time_remaining_seconds"] == 570

    done = client.post(f"/sessions/{sid}/complete").json()
    assert done["score"] == 50
    assert done["passed"] is True
    assert done["correct"] == 1
    assert done["total"] == 2
    assert done["session"]["status"] == "completed"

    # Terminal sessions ignore further answers
    after = client.post(
        f"/sessions/{sid}/answers", json={"question_id": "q2", "selected_index": 1}
    ).json()
    assert after["answers"] == {"q1": 0, "q2": 0}


def test_complete_twice_reports_zero():
    sid = _create().json()["id"]
    client.post(f"/sessions/{sid}/answers", json={"question_id": "q1", "selected_index": 0})
    client.post(f"/sessions/{sid}/complete")

    again = client.post(f"/sessions/{sid}/complete").json()

    assert again["score"] == 0
    assert again["passed"] is False
    assert again["session"]["score"] == 50


def test_timeout_endpoint():
    sid = _create().json()["id"]
    data = client.post(f"/sessions/{sid}/timeout").json()
    assert data["status"] == "timed_out"
    assert data["time_remaining_seconds"] == 0


def test_unknown_session_is_404():
    assert client.get("/sessions/missing").status_code == 404
    response = client.post(
        "/sessions/missing/answers", json={"question_id": "q", "selected_index": 0}
    )
    assert response.status_code == 404


def test_max_attempts_refused():
    sid = _create(max_attempts=1).json()["id"]
    client.post(f"/sessions/{sid}/complete")

    response = _create(max_attempts=1)

    assert response.status_code == 403
    assert response.json()["detail"] == "Maximum attempts reached"


def test_access_code_refused():
    response = _create(required_access_code="open-sesame", access_code="nope")
    assert response.status_code == 403
    assert response.json()["detail"] == "Invalid access code"

    assert _create(required_access_code="open-sesame", access_code="open-sesame").status_code == 200


def test_stale_session_times_out_on_read():
    sid = _create().json()["id"]
    client.post(f"/sessions/{sid}/answers", json={"question_id": "q1", "selected_index": 0})
    entry = sessions.get(sid)
    sessions.update(
        replace(entry.session, started_at=datetime.now(timezone.utc) - timedelta(hours=1))
    )

    data = client.get(f"/sessions/{sid}").json()

    assert data["status"] == "timed_out"
    assert data["score"] == 50


def test_sweep_endpoint():
    stale = _create(candidate_id="bob").json()["id"]
    _create(candidate_id="carol")
    entry = sessions.get(stale)
    sessions.update(
        replace(entry.session, started_at=datetime.now(timezone.utc) - timedelta(hours=1))
    )

    response = client.post("/sessions/sweep")

    assert response.json() == {"timed_out": 1, "expired": 0}
    assert sessions.get(stale).session.status.value == "timed_out"


# --- Due batch ---


def test_due_batch(mock_home):
    now = datetime(2024, 3, 1, tzinfo=timezone.utc)
    response = client.post(
        "/due-batch",
        json={
            "card_ids": ["c1", "c2", "n1"],
            "progress": [
                {"card_id": "c1", "collection_id": "d", "next_review": "2024-02-28T00:00:00Z"},
                {"card_id": "c2", "collection_id": "d", "next_review": "2024-02-27T00:00:00Z"},
            ],
            "now": now.isoformat(),
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["card_ids"] == ["c2", "c1", "n1"]
    assert data["total_due"] == 3
    assert data["has_more_batches"] is False


@patch("cekatan.application.scheduling.due_queue.select_due_batch")
def test_due_batch_failure(mock_select, mock_home):
    mock_select.side_effect = Exception("Boom")

    response = client.post("/due-batch", json={"card_ids": ["c1"]})

    assert response.status_code == 500
    assert "Boom" in response.json()["detail"]
