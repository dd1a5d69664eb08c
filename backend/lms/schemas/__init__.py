"""Pydantic schemas — re‑exported for convenience."""

from lms.schemas.common import ErrorResponse  # noqa: F401
from lms.schemas.quiz import (  # noqa: F401
    QuestionRead,
    QuestionType,
    QuizListItemRead,
    QuizListRead,
    QuizRead,
)
from lms.schemas.attempt import (  # noqa: F401
    AnswerResultRead,
    AnswerSubmit,
    AttemptResultRead,
    AttemptStartRead,
    AttemptStatus,
    AttemptSubmit,
    AttemptSummaryRead,
    QuizAttemptsRead,
)
