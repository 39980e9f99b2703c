"""API route package; imports all routers for main.py."""

from quiz_engine.api.health import router as health_router  # noqa: F401
from quiz_engine.api.quizzes import router as quizzes_router  # noqa: F401
from quiz_engine.api.attempts import router as attempts_router  # noqa: F401
from quiz_engine.api.grading import router as grading_router  # noqa: F401
from quiz_engine.api.rubrics import router as rubrics_router  # noqa: F401
from quiz_engine.api.question_bank import router as question_bank_router  # noqa: F401
