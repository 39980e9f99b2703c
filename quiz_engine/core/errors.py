"""Domain exceptions for the quiz engine.

Every error carries a human-readable ``message`` that the caller shows as-is,
a stable ``error_code`` and the HTTP status the API layer maps it to.
"""

from typing import Any, Dict, Optional

from fastapi import status


class QuizEngineError(Exception):
    """Base exception with structured error information."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "QUIZ_ENGINE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "success": False,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details or None,
        }


# ── Validation ────────────────────────────────────────────────────────────────


class AnswerValidationError(QuizEngineError):
    """Submitted answer (or grade target) does not match the expected shape."""

    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    error_code = "VALIDATION_ERROR"

    def __init__(self, reason: str, question_id: Any = None):
        details = {"question_id": str(question_id)} if question_id is not None else None
        super().__init__(reason, details)
        self.reason = reason


class InvalidQuestionData(QuizEngineError):
    """Question content violates its variant's invariants."""

    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    error_code = "INVALID_QUESTION_DATA"

    def __init__(self, reason: str, variant: Optional[str] = None):
        super().__init__(reason, {"variant": variant} if variant else None)
        self.reason = reason


class GradeOutOfRange(QuizEngineError):
    """Manual points outside [0, question points]."""

    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    error_code = "GRADE_OUT_OF_RANGE"

    def __init__(self, question_id: Any, points: int, max_points: int):
        super().__init__(
            f"Points {points} out of range for question {question_id}: "
            f"must be between 0 and {max_points}",
            {"question_id": str(question_id), "points": points, "max_points": max_points},
        )


# ── Lookup ────────────────────────────────────────────────────────────────────


class NotFound(QuizEngineError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            f"{resource.capitalize()} not found",
            {"resource": resource, "id": str(resource_id)},
        )


# ── Attempt state machine ─────────────────────────────────────────────────────


class AttemptLimitExceeded(QuizEngineError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "ATTEMPT_LIMIT_EXCEEDED"

    def __init__(self, max_attempts: int):
        super().__init__(
            f"Maximum number of attempts ({max_attempts}) reached for this quiz",
            {"max_attempts": max_attempts},
        )


class AttemptAlreadyActive(QuizEngineError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "ATTEMPT_ALREADY_ACTIVE"

    def __init__(self, attempt_id: Any):
        super().__init__(
            "An attempt for this quiz is already in progress",
            {"attempt_id": str(attempt_id)},
        )


class InvalidAttemptState(QuizEngineError):
    """Transition not allowed from the attempt's current status."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_ATTEMPT_STATE"

    def __init__(self, action: str, current: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot {action} an attempt that is {current}",
            {"action": action, "status": current},
        )


class StaleRevision(QuizEngineError):
    """Attempt changed since the caller loaded it."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "STALE_REVISION"

    def __init__(self, expected: Optional[int] = None, actual: Optional[int] = None):
        super().__init__(
            "Attempt was modified by someone else; reload and try again",
            {"expected_revision": expected, "current_revision": actual},
        )


# ── Authoring ─────────────────────────────────────────────────────────────────


class QuizLocked(QuizEngineError):
    """Question content cannot change once attempts reference the quiz."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "QUIZ_LOCKED"

    def __init__(self, quiz_id: Any, action: str):
        super().__init__(
            f"Cannot {action}: the quiz already has attempts",
            {"quiz_id": str(quiz_id)},
        )


class RubricInUse(QuizEngineError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "RUBRIC_IS_DEFAULT"

    def __init__(self, rubric_id: Any):
        super().__init__(
            "Cannot delete the default rubric; set another rubric as default first",
            {"rubric_id": str(rubric_id)},
        )
