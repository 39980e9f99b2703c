"""Integration tests for instructor grading endpoints.

Covers:
  GET  /api/grading/attempts/{id}
  POST /api/grading/attempts/{id}
  GET  /api/grading/quizzes/{quiz_id}/attempts
  GET  /api/grading/pending
  GET  /api/grading/stats
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from conftest import auth_headers

CHOICE = {
    "variant": "single_choice",
    "question_text": "Which gas do plants absorb?",
    "points": 5,
    "variant_data": {"options": ["CO2", "O2"], "correct_answer": "CO2"},
}
ESSAY = {
    "variant": "text_answer",
    "question_text": "Explain photosynthesis.",
    "points": 5,
    "variant_data": {"reference_answer": "Light energy turns CO2 and water into glucose."},
}


@pytest.fixture
def submitted(client: TestClient, instructor: dict, student: dict) -> dict:
    """A submitted attempt: choice answered correctly (5/5), essay awaiting a grade."""
    quiz = client.post(
        "/api/quizzes/",
        json={"course_id": "bio-101", "title": "Plants", "passing_score_percent": 70},
        headers=instructor,
    ).json()
    choice = client.post(f"/api/quizzes/{quiz['id']}/questions", json=CHOICE, headers=instructor).json()
    essay = client.post(f"/api/quizzes/{quiz['id']}/questions", json=ESSAY, headers=instructor).json()
    client.post(f"/api/quizzes/{quiz['id']}/publish", headers=instructor)

    attempt = client.post("/api/attempts/", json={"quiz_id": quiz["id"]}, headers=student).json()
    for question, answer in ((choice, "CO2"), (essay, "Plants turn light into sugar.")):
        client.put(
            f"/api/attempts/{attempt['id']}/answers/{question['id']}",
            json={"answer": answer},
            headers=student,
        )
    result = client.post(f"/api/attempts/{attempt['id']}/submit", headers=student).json()
    return {"quiz": quiz, "choice": choice, "essay": essay, "attempt": result}


def _grade(client: TestClient, headers: dict, attempt_id: str, **body):
    return client.post(f"/api/grading/attempts/{attempt_id}", json=body, headers=headers)


class TestGradingView:
    def test_students_are_forbidden(self, client: TestClient, student: dict, submitted: dict):
        resp = client.get(f"/api/grading/attempts/{submitted['attempt']['id']}", headers=student)
        assert resp.status_code == 403

    def test_view_includes_key_and_learner(self, client: TestClient, instructor: dict, submitted: dict):
        resp = client.get(f"/api/grading/attempts/{submitted['attempt']['id']}", headers=instructor)
        assert resp.status_code == 200
        view = resp.json()
        assert view["user_name"] == "Ada Learner"
        assert view["user_email"] == "ada@example.com"
        assert view["quiz_title"] == "Plants"
        assert view["grade"]["pending_manual_count"] == 1

        essay = {a["question_id"]: a for a in view["answers"]}[submitted["essay"]["id"]]
        assert essay["requires_manual_grading"] is True
        assert essay["awarded_points"] is None
        assert essay["variant_data"]["reference_answer"].startswith("Light energy")

    def test_unknown_attempt(self, client: TestClient, instructor: dict):
        resp = client.get(f"/api/grading/attempts/{uuid.uuid4()}", headers=instructor)
        assert resp.status_code == 404


class TestGradeAttempt:
    def test_manual_grade_then_finalize(
        self, client: TestClient, instructor: dict, submitted: dict, notification_task
    ):
        attempt_id = submitted["attempt"]["id"]
        assert submitted["attempt"]["grade"]["percentage"] == 50

        draft = _grade(
            client,
            instructor,
            attempt_id,
            grades=[{"question_id": submitted["essay"]["id"], "points": 4, "feedback": "Good start"}],
        )
        assert draft.status_code == 200, draft.text
        assert draft.json()["status"] == "submitted"
        assert draft.json()["grade"]["total_points"] == 9
        assert draft.json()["grade"]["grading_complete"] is True
        notification_task.delay.assert_not_called()

        final = _grade(
            client, instructor, attempt_id, comments="Nice work", finalize=True
        )
        assert final.status_code == 200, final.text
        body = final.json()
        assert body["status"] == "graded"
        assert body["graded_by"] == "instructor-1"
        assert body["instructor_comments"] == "Nice work"
        assert body["grade"] == {
            "total_points": 9,
            "max_points": 10,
            "percentage": 90,
            "passed": True,
            "pending_manual_count": 0,
            "grading_complete": True,
        }
        notification_task.delay.assert_called_once_with(
            attempt_id, submitted["quiz"]["id"], "student-1", "Plants", 90, True
        )

    def test_learner_sees_final_grade_and_feedback(
        self, client: TestClient, instructor: dict, student: dict, submitted: dict
    ):
        attempt_id = submitted["attempt"]["id"]
        _grade(
            client,
            instructor,
            attempt_id,
            grades=[{"question_id": submitted["essay"]["id"], "points": 2, "feedback": "Too brief"}],
            finalize=True,
        )
        view = client.get(f"/api/attempts/{attempt_id}", headers=student).json()
        assert view["status"] == "graded"
        assert view["grade"]["percentage"] == 70
        assert view["grade"]["passed"] is True
        essay = {a["question_id"]: a for a in view["answers"]}[submitted["essay"]["id"]]
        assert essay["instructor_feedback"] == "Too brief"

    def test_points_above_question_maximum(self, client: TestClient, instructor: dict, submitted: dict):
        resp = _grade(
            client,
            instructor,
            submitted["attempt"]["id"],
            grades=[{"question_id": submitted["essay"]["id"], "points": 6}],
        )
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "GRADE_OUT_OF_RANGE"
        assert resp.json()["details"]["max_points"] == 5

    def test_auto_graded_question_cannot_be_overridden(
        self, client: TestClient, instructor: dict, submitted: dict
    ):
        resp = _grade(
            client,
            instructor,
            submitted["attempt"]["id"],
            grades=[{"question_id": submitted["choice"]["id"], "points": 0}],
        )
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "VALIDATION_ERROR"

    def test_invalid_batch_writes_nothing(self, client: TestClient, instructor: dict, submitted: dict):
        attempt_id = submitted["attempt"]["id"]
        resp = _grade(
            client,
            instructor,
            attempt_id,
            grades=[
                {"question_id": submitted["essay"]["id"], "points": 3},
                {"question_id": submitted["choice"]["id"], "points": 1},
            ],
        )
        assert resp.status_code == 422
        view = client.get(f"/api/grading/attempts/{attempt_id}", headers=instructor).json()
        assert view["grade"]["pending_manual_count"] == 1

    def test_points_and_rubric_together_rejected(self, client: TestClient, instructor: dict, submitted: dict):
        resp = _grade(
            client,
            instructor,
            submitted["attempt"]["id"],
            grades=[
                {
                    "question_id": submitted["essay"]["id"],
                    "points": 3,
                    "rubric": {
                        "rubric_id": str(uuid.uuid4()),
                        "selections": [{"criterion_index": 0, "level_index": 0}],
                    },
                }
            ],
        )
        assert resp.status_code == 422

    def test_stale_revision(self, client: TestClient, instructor: dict, submitted: dict):
        attempt_id = submitted["attempt"]["id"]
        revision = submitted["attempt"]["revision"]
        grade = {"question_id": submitted["essay"]["id"], "points": 3}

        first = _grade(client, instructor, attempt_id, grades=[grade], expected_revision=revision)
        assert first.status_code == 200
        assert first.json()["revision"] == revision + 1

        second = _grade(client, instructor, attempt_id, grades=[grade], expected_revision=revision)
        assert second.status_code == 409
        assert second.json()["error_code"] == "STALE_REVISION"

    def test_in_progress_attempt_cannot_be_graded(
        self, client: TestClient, instructor: dict, submitted: dict
    ):
        other = auth_headers("student-2")
        attempt = client.post(
            "/api/attempts/", json={"quiz_id": submitted["quiz"]["id"]}, headers=other
        ).json()
        resp = _grade(client, instructor, attempt["id"], finalize=True)
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "INVALID_ATTEMPT_STATE"

    def test_rubric_grade(self, client: TestClient, instructor: dict, submitted: dict):
        rubric = client.post(
            "/api/rubrics/",
            json={
                "name": "Short essay",
                "organization_id": "org-1",
                "criteria": [
                    {
                        "name": "Accuracy",
                        "max_points": 3,
                        "levels": [
                            {"label": "Full", "percentage": 100},
                            {"label": "Partial", "percentage": 50},
                        ],
                    },
                    {
                        "name": "Clarity",
                        "max_points": 2,
                        "levels": [
                            {"label": "Clear", "percentage": 100},
                            {"label": "Unclear", "percentage": 0},
                        ],
                    },
                ],
            },
            headers=instructor,
        ).json()

        resp = _grade(
            client,
            instructor,
            submitted["attempt"]["id"],
            grades=[
                {
                    "question_id": submitted["essay"]["id"],
                    "rubric": {
                        "rubric_id": rubric["id"],
                        "selections": [
                            {"criterion_index": 0, "level_index": 1},
                            {"criterion_index": 1, "level_index": 0},
                        ],
                    },
                }
            ],
        )
        assert resp.status_code == 200, resp.text
        # round_half_up(1.5) + 2
        essay = {a["question_id"]: a for a in resp.json()["answers"]}[submitted["essay"]["id"]]
        assert essay["awarded_points"] == 4
        assert essay["rubric_selection"]["rubric_id"] == rubric["id"]


class TestQueues:
    def test_pending_queue_and_stats(
        self, client: TestClient, instructor: dict, submitted: dict
    ):
        pending = client.get("/api/grading/pending?course_id=bio-101", headers=instructor).json()
        assert [p["id"] for p in pending] == [submitted["attempt"]["id"]]
        assert pending[0]["user_name"] == "Ada Learner"

        assert client.get("/api/grading/pending?course_id=other", headers=instructor).json() == []

        _grade(
            client,
            instructor,
            submitted["attempt"]["id"],
            grades=[{"question_id": submitted["essay"]["id"], "points": 5}],
            finalize=True,
        )
        assert client.get("/api/grading/pending", headers=instructor).json() == []

        stats = client.get("/api/grading/stats?course_id=bio-101", headers=instructor).json()
        assert stats == {
            "total_attempts": 1,
            "pending": 0,
            "graded": 1,
            "in_progress": 0,
            "average_percentage": 100.0,
            "pass_rate": 100.0,
        }

    def test_attempts_for_quiz_filtered_by_status(
        self, client: TestClient, instructor: dict, submitted: dict
    ):
        quiz_id = submitted["quiz"]["id"]
        client.post("/api/attempts/", json={"quiz_id": quiz_id}, headers=auth_headers("student-2"))

        everything = client.get(f"/api/grading/quizzes/{quiz_id}/attempts", headers=instructor).json()
        assert len(everything) == 2

        resp = client.get(
            f"/api/grading/quizzes/{quiz_id}/attempts?status=submitted", headers=instructor
        )
        assert [a["id"] for a in resp.json()] == [submitted["attempt"]["id"]]
