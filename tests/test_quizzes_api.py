"""Integration tests for quiz authoring endpoints.

Covers:
  POST   /api/quizzes/
  GET    /api/quizzes/, /api/quizzes/{id}
  PATCH  /api/quizzes/{id}
  POST   /api/quizzes/{id}/publish | unpublish | duplicate
  DELETE /api/quizzes/{id}
  GET    /api/quizzes/{id}/statistics
  POST/PATCH/DELETE /api/quizzes/{id}/questions[/{qid}]
"""

from fastapi.testclient import TestClient

from conftest import auth_headers

SINGLE_CHOICE = {
    "variant": "single_choice",
    "question_text": "Capital of France?",
    "points": 5,
    "variant_data": {"options": ["Paris", "Lyon"], "correct_answer": "Paris"},
}
TEXT_ANSWER = {
    "variant": "text_answer",
    "question_text": "Describe the water cycle.",
    "points": 5,
}
TRUE_FALSE = {
    "variant": "true_false",
    "question_text": "Water boils at 100°C at sea level.",
    "points": 1,
    "variant_data": {"correct_answer": True},
}


# ── Helpers ────────────────────────────────────────────────────────────────────


def _create_quiz(client: TestClient, headers: dict, **overrides) -> dict:
    body = {"course_id": "course-1", "title": "Geography", **overrides}
    resp = client.post("/api/quizzes/", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _add_question(client: TestClient, headers: dict, quiz_id: str, body: dict) -> dict:
    resp = client.post(f"/api/quizzes/{quiz_id}/questions", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _publish(client: TestClient, headers: dict, quiz_id: str) -> None:
    resp = client.post(f"/api/quizzes/{quiz_id}/publish", headers=headers)
    assert resp.status_code == 200, resp.text


# ── Access ─────────────────────────────────────────────────────────────────────


class TestAccess:
    def test_requires_token(self, client: TestClient):
        resp = client.post("/api/quizzes/", json={"course_id": "c", "title": "t"})
        assert resp.status_code == 401

    def test_students_cannot_author(self, client: TestClient, student: dict):
        resp = client.post("/api/quizzes/", json={"course_id": "c", "title": "t"}, headers=student)
        assert resp.status_code == 403

    def test_students_cannot_read_answer_key(self, client: TestClient, instructor: dict, student: dict):
        quiz = _create_quiz(client, instructor)
        resp = client.get(f"/api/quizzes/{quiz['id']}", headers=student)
        assert resp.status_code == 403


# ── Quizzes ────────────────────────────────────────────────────────────────────


class TestQuizzes:
    def test_create_uses_defaults(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        assert quiz["passing_score_percent"] == 70
        assert quiz["max_attempts"] == 1
        assert quiz["is_published"] is False
        assert quiz["created_by"] == "instructor-1"
        assert quiz["questions"] == []

    def test_invalid_settings_rejected(self, client: TestClient, instructor: dict):
        resp = client.post(
            "/api/quizzes/",
            json={"course_id": "c", "title": "t", "passing_score_percent": 120},
            headers=instructor,
        )
        assert resp.status_code == 422

    def test_get_resolves_lesson_title(self, client: TestClient, instructor: dict, directory_client):
        quiz = _create_quiz(client, instructor, lesson_id="lesson-9")
        resp = client.get(f"/api/quizzes/{quiz['id']}", headers=instructor)
        assert resp.status_code == 200
        assert resp.json()["lesson_title"] == "Lesson 1"
        directory_client.resolve_lesson.assert_called_with("lesson-9")

    def test_unknown_quiz_uses_error_envelope(self, client: TestClient, instructor: dict):
        resp = client.get("/api/quizzes/00000000-0000-0000-0000-000000000000", headers=instructor)
        assert resp.status_code == 404
        body = resp.json()
        assert body["success"] is False
        assert body["error_code"] == "NOT_FOUND"
        assert body["message"] == "Quiz not found"

    def test_students_only_list_published(self, client: TestClient, instructor: dict, student: dict):
        draft = _create_quiz(client, instructor, title="Draft")
        live = _create_quiz(client, instructor, title="Live")
        _add_question(client, instructor, live["id"], SINGLE_CHOICE)
        _publish(client, instructor, live["id"])

        as_student = client.get("/api/quizzes/?course_id=course-1", headers=student).json()
        as_instructor = client.get("/api/quizzes/?course_id=course-1", headers=instructor).json()

        assert [q["title"] for q in as_student] == ["Live"]
        assert as_student[0]["total_points"] == 5
        assert {q["id"] for q in as_instructor} == {draft["id"], live["id"]}

    def test_update_and_unpublish(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        _publish(client, instructor, quiz["id"])
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}",
            json={"title": "Renamed", "max_attempts": 3},
            headers=instructor,
        )
        assert resp.status_code == 200
        assert resp.json()["title"] == "Renamed"
        assert resp.json()["max_attempts"] == 3

        resp = client.post(f"/api/quizzes/{quiz['id']}/unpublish", headers=instructor)
        assert resp.json()["is_published"] is False

    def test_duplicate_copies_questions_unpublished(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
        _add_question(client, instructor, quiz["id"], TEXT_ANSWER)
        _publish(client, instructor, quiz["id"])

        resp = client.post(f"/api/quizzes/{quiz['id']}/duplicate", headers=instructor)
        assert resp.status_code == 201
        copy = resp.json()
        assert copy["id"] != quiz["id"]
        assert copy["title"] == "Geography (copy)"
        assert copy["is_published"] is False
        assert [q["variant"] for q in copy["questions"]] == ["single_choice", "text_answer"]

    def test_delete_without_attempts_is_permanent(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        resp = client.delete(f"/api/quizzes/{quiz['id']}", headers=instructor)
        assert resp.status_code == 204
        assert client.get(f"/api/quizzes/{quiz['id']}", headers=instructor).status_code == 404

    def test_delete_with_attempts_hides_quiz(self, client: TestClient, instructor: dict, student: dict):
        quiz = _create_quiz(client, instructor)
        _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
        _publish(client, instructor, quiz["id"])
        client.post("/api/attempts/", json={"quiz_id": quiz["id"]}, headers=student)

        resp = client.delete(f"/api/quizzes/{quiz['id']}", headers=instructor)
        assert resp.status_code == 204
        assert client.get(f"/api/quizzes/{quiz['id']}", headers=instructor).status_code == 404
        listed = client.get("/api/quizzes/?course_id=course-1", headers=instructor).json()
        assert listed == []


# ── Questions ──────────────────────────────────────────────────────────────────


class TestQuestions:
    def test_add_question(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        question = _add_question(client, instructor, quiz["id"], TEXT_ANSWER)
        assert question["position"] == 0
        assert question["requires_manual_grading"] is True
        assert question["variant_data"] == {"variant": "text_answer", "reference_answer": None}

    def test_invalid_question_data(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        body = {**SINGLE_CHOICE, "variant_data": {"options": ["Paris"], "correct_answer": "Paris"}}
        resp = client.post(f"/api/quizzes/{quiz['id']}/questions", json=body, headers=instructor)
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "INVALID_QUESTION_DATA"
        assert "at least 2 options" in resp.json()["message"]

    def test_fill_blank_count_checked_on_add(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        body = {
            "variant": "fill_blanks",
            "question_text": "The _____ is a river in _____.",
            "points": 2,
            "variant_data": {"blank_answers": ["Nile"]},
        }
        resp = client.post(f"/api/quizzes/{quiz['id']}/questions", json=body, headers=instructor)
        assert resp.status_code == 422
        assert resp.json()["error_code"] == "INVALID_QUESTION_DATA"

    def test_unknown_variant(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        body = {**TEXT_ANSWER, "variant": "essay"}
        resp = client.post(f"/api/quizzes/{quiz['id']}/questions", json=body, headers=instructor)
        assert resp.status_code == 422

    def test_update_question_content_and_position(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        first = _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
        _add_question(client, instructor, quiz["id"], TEXT_ANSWER)
        third = _add_question(client, instructor, quiz["id"], TRUE_FALSE)

        resp = client.patch(
            f"/api/quizzes/{quiz['id']}/questions/{third['id']}",
            json={"points": 2, "position": 0},
            headers=instructor,
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["points"] == 2

        questions = client.get(f"/api/quizzes/{quiz['id']}", headers=instructor).json()["questions"]
        assert [q["id"] for q in questions][:2] == [third["id"], first["id"]]
        assert [q["position"] for q in questions] == [0, 1, 2]

    def test_update_revalidates_content(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        question = _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
        resp = client.patch(
            f"/api/quizzes/{quiz['id']}/questions/{question['id']}",
            json={"variant_data": {"options": ["Paris", "Lyon"], "correct_answer": "Rome"}},
            headers=instructor,
        )
        assert resp.status_code == 422

    def test_delete_question_renumbers(self, client: TestClient, instructor: dict):
        quiz = _create_quiz(client, instructor)
        first = _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
        _add_question(client, instructor, quiz["id"], TEXT_ANSWER)
        resp = client.delete(f"/api/quizzes/{quiz['id']}/questions/{first['id']}", headers=instructor)
        assert resp.status_code == 204
        questions = client.get(f"/api/quizzes/{quiz['id']}", headers=instructor).json()["questions"]
        assert [(q["variant"], q["position"]) for q in questions] == [("text_answer", 0)]

    def test_questions_locked_after_first_attempt(self, client: TestClient, instructor: dict, student: dict):
        quiz = _create_quiz(client, instructor)
        question = _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
        _publish(client, instructor, quiz["id"])
        client.post("/api/attempts/", json={"quiz_id": quiz["id"]}, headers=student)

        resp = client.post(f"/api/quizzes/{quiz['id']}/questions", json=TEXT_ANSWER, headers=instructor)
        assert resp.status_code == 409
        assert resp.json()["error_code"] == "QUIZ_LOCKED"

        resp = client.patch(
            f"/api/quizzes/{quiz['id']}/questions/{question['id']}",
            json={"points": 10},
            headers=instructor,
        )
        assert resp.status_code == 409


# ── Statistics ─────────────────────────────────────────────────────────────────


def test_statistics(client: TestClient, instructor: dict):
    quiz = _create_quiz(client, instructor, max_attempts=1)
    choice = _add_question(client, instructor, quiz["id"], SINGLE_CHOICE)
    truth = _add_question(client, instructor, quiz["id"], TRUE_FALSE)
    _publish(client, instructor, quiz["id"])

    # learner A gets both right, learner B gets only the true/false one
    for user, answer in (("learner-a", "Paris"), ("learner-b", "Lyon")):
        headers = auth_headers(user)
        attempt = client.post("/api/attempts/", json={"quiz_id": quiz["id"]}, headers=headers).json()
        client.put(
            f"/api/attempts/{attempt['id']}/answers/{choice['id']}",
            json={"answer": answer},
            headers=headers,
        )
        client.put(
            f"/api/attempts/{attempt['id']}/answers/{truth['id']}",
            json={"answer": True},
            headers=headers,
        )
        client.post(f"/api/attempts/{attempt['id']}/submit", headers=headers)

    resp = client.get(f"/api/quizzes/{quiz['id']}/statistics", headers=instructor)
    assert resp.status_code == 200
    stats = resp.json()
    assert stats["total_attempts"] == 2
    assert stats["completed_attempts"] == 2
    # 6/6 = 100% and 1/6 = 17%
    assert stats["average_percentage"] == 58.5
    assert stats["pass_rate"] == 50.0
    assert {b["range"]: b["count"] for b in stats["distribution"]} == {
        "0-20": 1, "21-40": 0, "41-60": 0, "61-80": 0, "81-100": 1,
    }
    # hardest question first
    assert [q["question_id"] for q in stats["questions"]] == [choice["id"], truth["id"]]
    assert stats["questions"][0]["correct_rate"] == 50.0
