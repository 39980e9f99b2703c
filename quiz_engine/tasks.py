"""Background tasks executed by Celery workers."""

import logging

import httpx
from sqlalchemy.exc import SQLAlchemyError

from quiz_engine.celery_app import celery_app
from quiz_engine.config import settings
from quiz_engine.db.session import session_scope
from quiz_engine.services.attempts import expire_overdue_attempts
from quiz_engine.services.directory_client import get_directory_client

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="send_grade_notification", max_retries=3)
def send_grade_notification(
    self,
    attempt_id: str,
    quiz_id: str,
    user_id: str,
    quiz_title: str,
    percentage: int,
    passed: bool,
) -> dict:
    """Tell the learner their attempt has been graded."""
    message = f"Your quiz '{quiz_title}' has been graded. Score: {percentage}%"
    link = settings.ATTEMPT_LINK_TEMPLATE.format(quiz_id=quiz_id, attempt_id=attempt_id)
    try:
        get_directory_client().notify(
            user_id,
            message,
            link,
            {"attempt_id": attempt_id, "quiz_id": quiz_id, "percentage": percentage, "passed": passed},
        )
    except httpx.HTTPError as exc:
        logger.warning("Grade notification for attempt %s failed: %s", attempt_id, exc)
        # Retry with exponential back-off (10s, 30s, 90s)
        raise self.retry(exc=exc, countdown=10 * (3**self.request.retries))

    logger.info("Grade notification sent for attempt %s → user %s", attempt_id, user_id)
    return {"success": True, "attempt_id": attempt_id}


@celery_app.task(name="expire_overdue_attempts")
def expire_overdue_attempts_task() -> dict:
    """Periodic sweep: auto-submit attempts whose time limit has passed."""
    try:
        with session_scope() as db:
            expired = expire_overdue_attempts(db)
    except SQLAlchemyError:
        logger.exception("Attempt expiry sweep failed")
        raise
    return {"success": True, "expired": expired}
