"""Tests for the Celery tasks (called directly, no broker)."""

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest
from sqlalchemy.orm import Session

from quiz_engine.db.models import AttemptStatusEnum
from quiz_engine.schemas.quiz import QuizCreate
from quiz_engine.services import attempts as attempt_service
from quiz_engine.services import quizzes as quiz_service
from quiz_engine.tasks import expire_overdue_attempts_task, send_grade_notification


class TestGradeNotification:
    def test_notifies_learner_with_attempt_link(self):
        directory = MagicMock()
        with patch("quiz_engine.tasks.get_directory_client", return_value=directory):
            result = send_grade_notification("att-1", "quiz-1", "student-1", "Plants", 90, True)

        assert result == {"success": True, "attempt_id": "att-1"}
        user_id, message, link, metadata = directory.notify.call_args.args
        assert user_id == "student-1"
        assert message == "Your quiz 'Plants' has been graded. Score: 90%"
        assert link == "/student/quizzes/quiz-1/attempt/att-1"
        assert metadata["passed"] is True

    def test_network_failure_is_raised_for_retry(self):
        directory = MagicMock()
        directory.notify.side_effect = httpx.ConnectError("directory down")
        with patch("quiz_engine.tasks.get_directory_client", return_value=directory):
            with pytest.raises(httpx.ConnectError):
                send_grade_notification("att-1", "quiz-1", "student-1", "Plants", 40, False)


def test_expiry_sweep(db: Session):
    quiz = quiz_service.create_quiz(
        db, QuizCreate(course_id="c1", title="Timed", time_limit_minutes=5), "instructor-1"
    )
    quiz_service.set_published(db, quiz.id, True)
    started = datetime.now(timezone.utc) - timedelta(hours=1)
    overdue = attempt_service.start_attempt(db, quiz.id, "student-1", now=started)
    fresh = attempt_service.start_attempt(db, quiz.id, "student-2")

    @contextmanager
    def scope():
        yield db

    with patch("quiz_engine.tasks.session_scope", scope):
        assert expire_overdue_attempts_task() == {"success": True, "expired": 1}

    assert overdue.status == AttemptStatusEnum.SUBMITTED
    assert overdue.time_spent_seconds == 300
    assert fresh.status == AttemptStatusEnum.IN_PROGRESS
