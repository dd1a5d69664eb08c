"""Quiz attempt error kinds and their HTTP rendering.

Every failure the attempt lifecycle can produce is a ``QuizError`` carrying an
HTTP status, a machine-readable ``error_code`` and a human message.  The
handler registered in ``lms.main`` turns them into the ``ErrorResponse``
envelope, so none of them ever surface as a 500.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from lms.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class QuizError(Exception):
    """Base exception for the quiz attempt lifecycle."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "QUIZ_ERROR"
    default_message: str = "Quiz operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class QuizNotFound(QuizError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "QUIZ_NOT_FOUND"
    default_message = "Quiz not found"


class QuizNotOpen(QuizError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "QUIZ_NOT_OPEN"
    default_message = "Quiz is not open for attempts"


class AttemptLimitExceeded(QuizError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "ATTEMPT_LIMIT_EXCEEDED"
    default_message = "Maximum attempts reached"


class AttemptNotFound(QuizError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "ATTEMPT_NOT_FOUND"
    default_message = "Attempt not found"


class AttemptAlreadySubmitted(QuizError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "ATTEMPT_ALREADY_SUBMITTED"
    default_message = "Attempt already submitted"


class ResultNotAvailable(QuizError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "RESULT_NOT_AVAILABLE"
    default_message = "Results are available once the attempt is submitted"


class Unauthorized(QuizError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "UNAUTHORIZED"
    default_message = "Unauthorized access to quiz attempt"


class RepositoryConflict(QuizError):
    """A concurrent request won the race at the storage layer."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "REPOSITORY_CONFLICT"
    default_message = "Conflicting concurrent request, please retry"


class RepositoryUnavailable(QuizError):
    """Storage is unreachable; the caller may retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "REPOSITORY_UNAVAILABLE"
    default_message = "Attempt storage is temporarily unavailable"


async def quiz_error_handler(request: Request, exc: QuizError) -> JSONResponse:
    """Render a ``QuizError`` as the standard error envelope."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "%s %s → %s (%s)",
        request.method,
        request.url.path,
        exc.error_code,
        exc.message,
    )
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())
