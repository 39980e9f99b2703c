"""Pydantic schemas, re-exported for convenience."""

from quiz_engine.schemas.common import ErrorResponse  # noqa: F401
from quiz_engine.schemas.question import (  # noqa: F401
    QuestionContent,
    QuestionCreate,
    QuestionRead,
    QuestionSnapshot,
    QuestionUpdate,
    QuestionVariantData,
)
from quiz_engine.schemas.quiz import (  # noqa: F401
    QuizCreate,
    QuizRead,
    QuizStatistics,
    QuizSummary,
    QuizUpdate,
)
from quiz_engine.schemas.attempt import (  # noqa: F401
    AnswerRead,
    AnswerSubmit,
    AttemptRead,
    AttemptStart,
    AttemptSummary,
    GradeRead,
)
from quiz_engine.schemas.grading import (  # noqa: F401
    GradeAttemptRequest,
    GradingAttemptRead,
    QuestionGrade,
)
from quiz_engine.schemas.rubric import (  # noqa: F401
    Criterion,
    CriterionLevel,
    RubricCreate,
    RubricRead,
    RubricSelection,
)
from quiz_engine.schemas.question_bank import (  # noqa: F401
    BankImportRequest,
    BankItemCreate,
    BankItemRead,
    BankItemUpdate,
    BankStats,
)
