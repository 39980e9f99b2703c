"""Shared pytest fixtures for quiz engine tests."""

import pytest
from unittest.mock import patch, MagicMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from quiz_engine.config import settings
from quiz_engine.core.security import create_access_token
from quiz_engine.db.session import Base, get_db
from quiz_engine.main import app


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(autouse=True)
def notification_task(monkeypatch):
    """Mock the grade notification task so no broker is needed.

    Eager mode is switched off so ``.delay`` is called inline on the mock
    rather than from a background thread.
    """
    monkeypatch.setattr(settings, "CELERY_TASK_ALWAYS_EAGER", False)
    mock_task = MagicMock()
    mock_task.delay = MagicMock(return_value=MagicMock(id="fake-task-id"))
    with patch("quiz_engine.api.grading.send_grade_notification", mock_task):
        yield mock_task


@pytest.fixture(autouse=True)
def directory_client():
    """Stand-in for the directory service used by grader and quiz views."""
    fake = MagicMock()
    fake.resolve_user.return_value = {"name": "Ada Learner", "email": "ada@example.com"}
    fake.resolve_lesson.return_value = "Lesson 1"
    with patch("quiz_engine.api.grading.get_directory_client", return_value=fake), patch(
        "quiz_engine.api.quizzes.get_directory_client", return_value=fake
    ):
        yield fake


@pytest.fixture(scope="function")
def db():
    """Fresh schema and DB session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session):
    """FastAPI test client with overridden DB dependency."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_headers(user_id: str, role: str = "student") -> dict:
    token = create_access_token({"sub": user_id, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def instructor() -> dict:
    return auth_headers("instructor-1", "instructor")


@pytest.fixture
def student() -> dict:
    return auth_headers("student-1", "student")
