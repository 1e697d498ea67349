"""
API Tests for the assessment endpoints.

The application is built over in-memory repositories seeded before the
client starts, and requests are authenticated with bearer user ids.
"""

import asyncio
import logging

import pytest
from fastapi.testclient import TestClient

from lms_backend.assessments.models import Course
from lms_backend.assessments.services import create_memory_services
from lms_backend.config import Settings
from lms_backend.main import create_app
from lms_backend.tests.builders import COURSE_ID, LEARNER_ID, seed

PREFIX = "/api/v1"
LEARNER = {"Authorization": f"Bearer {LEARNER_ID}"}
ADMIN = {"Authorization": "Bearer admin-1"}

PASSING = {"answers": [
    {"question_id": "q1", "selected_option_id": "q1-A"},
    {"question_id": "q2", "boolean_answer": True},
]}
FAILING = {"answers": [
    {"question_id": "q1", "selected_option_id": "q1-B"},
    {"question_id": "q2", "boolean_answer": False},
]}


@pytest.fixture
def client():
    services = create_memory_services()
    asyncio.run(seed(services))
    app = create_app(Settings(ADMIN_USER_IDS="admin-1", API_PREFIX=PREFIX), services=services)
    with TestClient(app) as client:
        yield client


def start(client, headers=LEARNER):
    return client.post(f"{PREFIX}/courses/{COURSE_ID}/assessment/attempts/start", headers=headers)


def submit(client, attempt_id, body, headers=LEARNER):
    return client.post(
        f"{PREFIX}/courses/{COURSE_ID}/assessment/attempts/{attempt_id}/submit",
        json=body,
        headers=headers,
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_missing_authorization(client):
    response = client.get(f"{PREFIX}/courses/{COURSE_ID}/assessment")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_malformed_authorization(client):
    response = client.get(f"{PREFIX}/courses/{COURSE_ID}/assessment", headers={"Authorization": "Token abc"})
    assert response.status_code == 401


def test_summary(client):
    response = client.get(f"{PREFIX}/courses/{COURSE_ID}/assessment", headers=LEARNER)
    assert response.status_code == 200
    summary = response.json()["summary"]
    assert summary["question_count"] == 2
    assert summary["can_start_attempt"] is True
    assert summary["attempts_remaining"] == 2
    assert summary["assessment_config"]["passing_score"] == 80


def test_summary_unknown_course(client):
    response = client.get(f"{PREFIX}/courses/nope/assessment", headers=LEARNER)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_start_and_submit(client):
    response = start(client)
    assert response.status_code == 200
    attempt = response.json()["attempt"]
    assert attempt["attempt_number"] == 1
    assert attempt["status"] == "in_progress"

    detail = client.get(
        f"{PREFIX}/courses/{COURSE_ID}/assessment/attempts/{attempt['attempt_id']}", headers=LEARNER
    ).json()
    assert len(detail["questions"]) == 2
    assert "is_correct" not in detail["questions"][0]["options"][0]

    response = submit(client, attempt["attempt_id"], PASSING)
    assert response.status_code == 200
    body = response.json()
    assert body["attempt"]["status"] == "graded"
    assert body["attempt"]["percent_score"] == 100
    assert body["attempt"]["passed"] is True
    assert body["attempt"]["evidence"]["question_count"] == 2
    assert len(body["answers"]) == 2


def test_second_start_is_refused(client):
    start(client)
    response = start(client)
    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "INELIGIBLE"
    assert error["details"]["reason"] == "attempt_in_progress"


def test_max_attempts_reached(client):
    for _ in range(2):
        attempt_id = start(client).json()["attempt"]["attempt_id"]
        assert submit(client, attempt_id, FAILING).status_code == 200

    response = start(client)
    assert response.status_code == 409
    assert response.json()["error"]["details"]["reason"] == "max_attempts_reached"


def test_missing_required_answer(client):
    attempt_id = start(client).json()["attempt"]["attempt_id"]
    response = submit(client, attempt_id, {"answers": [{"question_id": "q1", "selected_option_id": "q1-A"}]})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"]["question_id"] == "q2"


def test_malformed_body(client):
    attempt_id = start(client).json()["attempt"]["attempt_id"]
    response = submit(client, attempt_id, {"answers": [{"selected_option_id": "q1-A"}]})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_resubmit_conflict(client):
    attempt_id = start(client).json()["attempt"]["attempt_id"]
    submit(client, attempt_id, FAILING)

    response = submit(client, attempt_id, PASSING)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ALREADY_SUBMITTED"


def test_submit_other_learners_attempt(client):
    attempt_id = start(client).json()["attempt"]["attempt_id"]
    response = submit(client, attempt_id, PASSING, headers={"Authorization": "Bearer someone-else"})
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_submit_unknown_attempt(client):
    response = submit(client, "att_missing", PASSING)
    assert response.status_code == 404


def test_lesson_progress_completes_course(client):
    attempt_id = start(client).json()["attempt"]["attempt_id"]
    submit(client, attempt_id, PASSING)

    response = client.put(
        f"{PREFIX}/courses/{COURSE_ID}/progress",
        json={"percent_complete": 100, "current_lesson_id": "lesson-9"},
        headers=LEARNER,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["course_completed"] is True
    assert body["progress"]["completed"] is True


def test_lesson_progress_out_of_range(client):
    response = client.put(f"{PREFIX}/courses/{COURSE_ID}/progress", json={"percent_complete": 120}, headers=LEARNER)
    assert response.status_code == 400


def test_admin_listing(client):
    start(client)
    start(client, headers={"Authorization": "Bearer learner-2"})

    response = client.get(f"{PREFIX}/admin/courses/{COURSE_ID}/assessment/attempts?limit=1", headers=ADMIN)
    assert response.status_code == 200
    body = response.json()
    assert [a["learner_id"] for a in body["attempts"]] == ["learner-2"]
    assert body["limit"] == 1


def test_admin_listing_requires_admin(client):
    response = client.get(f"{PREFIX}/admin/courses/{COURSE_ID}/assessment/attempts", headers=LEARNER)
    assert response.status_code == 403


def test_admin_learner_attempts(client):
    attempt_id = start(client).json()["attempt"]["attempt_id"]
    submit(client, attempt_id, FAILING)
    start(client)

    url = f"{PREFIX}/admin/courses/{COURSE_ID}/assessment/learners/{LEARNER_ID}/attempts"
    response = client.get(url, headers=ADMIN)
    assert response.status_code == 200
    attempts = response.json()["attempts"]
    assert [a["attempt_number"] for a in attempts] == [1, 2]
    assert [a["status"] for a in attempts] == ["graded", "in_progress"]

    assert client.get(url, headers=LEARNER).status_code == 403


def test_refused_start_is_logged_under_app_logger(client, caplog):
    start(client)
    with caplog.at_level(logging.INFO, logger="lms"):
        start(client)
    assert any(
        record.name == "lms.assessments.controller" and "Start refused" in record.getMessage()
        for record in caplog.records
    )


def test_unpublished_course_is_not_found():
    services = create_memory_services()
    asyncio.run(seed(services))
    asyncio.run(services.courses.save(Course(course_id=COURSE_ID, is_published=False)))
    app = create_app(Settings(API_PREFIX=PREFIX), services=services)

    with TestClient(app) as client:
        assert start(client).status_code == 404
        assert client.get(f"{PREFIX}/courses/{COURSE_ID}/assessment", headers=LEARNER).status_code == 404
