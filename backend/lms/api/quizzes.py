"""Quiz taking routes: start, submit and results.

  GET  /api/quizzes                                → browse active quizzes
  POST /api/quizzes/{quiz_id}/start                → open a timed attempt
  POST /api/quizzes/submit                         → grade and close it
  GET  /api/quizzes/attempts/{attempt_id}          → result (after submit)
  GET  /api/quizzes/attempts/{attempt_id}/questions → re-read an open attempt
  GET  /api/quizzes/my-attempts                    → the student's attempts
  GET  /api/quizzes/{quiz_id}                      → quiz metadata
  GET  /api/quizzes/{quiz_id}/attempts             → instructor dashboard
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lms.api.deps import Clock, get_clock, get_current_user, require_staff, require_student
from lms.db.models import User
from lms.db.session import get_db
from lms.schemas.attempt import (
    AttemptResultRead,
    AttemptStartRead,
    AttemptSubmit,
    AttemptSummaryRead,
    QuizAttemptsRead,
)
from lms.schemas.common import ErrorResponse
from lms.schemas.quiz import QuizListRead, QuizRead
from lms.services.attempts import AttemptService
from lms.services.rate_limiter import require_attempt_rate_limit
from lms.tasks import notify_attempt_submitted

logger = logging.getLogger(__name__)
router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    }
)


def get_attempt_service(db: Session = Depends(get_db)) -> AttemptService:
    return AttemptService(db)


def _dispatch_submission_notice(attempt_id: uuid.UUID) -> None:
    """Hand the submission to the notification worker.

    The attempt is already committed; a failed hand-off is logged, never
    reported to the student.
    """
    try:
        notify_attempt_submitted.delay(str(attempt_id))
    except Exception:
        logger.exception("Could not dispatch notifications for attempt %s", attempt_id)


@router.get("", response_model=QuizListRead)
def list_quizzes(
    course_id: uuid.UUID | None = None,
    search: str | None = Query(None, max_length=255),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    """Browse active quizzes. Each row shows the caller's latest submitted score."""
    return service.list_quizzes(
        current_user.id, current_user.role, course_id, search, page, page_size
    )


@router.get("/my-attempts", response_model=list[AttemptSummaryRead])
def list_my_attempts(
    quiz_id: uuid.UUID | None = None,
    current_user: User = Depends(require_student),
    service: AttemptService = Depends(get_attempt_service),
):
    """List the current student's attempts, newest first."""
    return service.list_student_attempts(current_user.id, quiz_id)


@router.post("/submit", response_model=AttemptResultRead)
def submit_attempt(
    body: AttemptSubmit,
    current_user: User = Depends(require_student),
    _rl: None = Depends(require_attempt_rate_limit),
    service: AttemptService = Depends(get_attempt_service),
    clock: Clock = Depends(get_clock),
):
    """Submit all answers for an attempt and receive the graded result.

    When the same question appears more than once, the last answer counts.
    """
    answers = {a.question_id: a.answer for a in body.answers}
    result = service.submit_attempt(body.attempt_id, current_user.id, answers, clock())
    _dispatch_submission_notice(result.attempt_id)
    return result


@router.get("/attempts/{attempt_id}", response_model=AttemptResultRead)
def get_attempt_result(
    attempt_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
    clock: Clock = Depends(get_clock),
):
    """Per-question result for the owning student (once submitted), the
    course instructor or an admin."""
    return service.get_result(attempt_id, current_user.id, current_user.role, clock())


@router.get("/attempts/{attempt_id}/questions", response_model=AttemptStartRead)
def get_attempt_questions(
    attempt_id: uuid.UUID,
    current_user: User = Depends(require_student),
    service: AttemptService = Depends(get_attempt_service),
    clock: Clock = Depends(get_clock),
):
    """Questions and deadline of an open attempt, in its fixed order."""
    return service.get_attempt_questions(attempt_id, current_user.id, clock())


@router.get("/{quiz_id}", response_model=QuizRead)
def get_quiz(
    quiz_id: uuid.UUID,
    _user: User = Depends(get_current_user),
    service: AttemptService = Depends(get_attempt_service),
):
    return service.get_quiz(quiz_id)


@router.post(
    "/{quiz_id}/start",
    response_model=AttemptStartRead,
    status_code=status.HTTP_201_CREATED,
)
def start_attempt(
    quiz_id: uuid.UUID,
    current_user: User = Depends(require_student),
    _rl: None = Depends(require_attempt_rate_limit),
    service: AttemptService = Depends(get_attempt_service),
    clock: Clock = Depends(get_clock),
):
    """Start a timed attempt.

    Returns the questions (without answer keys) in this attempt's order and
    the deadline, which is the earlier of start + duration and the quiz's
    closing time.
    """
    return service.start_attempt(quiz_id, current_user.id, clock())


@router.get("/{quiz_id}/attempts", response_model=QuizAttemptsRead)
def get_quiz_attempts(
    quiz_id: uuid.UUID,
    current_user: User = Depends(require_staff),
    service: AttemptService = Depends(get_attempt_service),
    clock: Clock = Depends(get_clock),
):
    """All attempts at a quiz in full detail, for grading dashboards."""
    return service.get_instructor_view(quiz_id, current_user.id, current_user.role, clock())
