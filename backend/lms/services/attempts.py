"""Quiz attempt lifecycle: start → in progress → submitted.

There is no background timer.  The deadline (``must_submit_by``) is fixed
when the attempt starts and compared against the caller's clock whenever an
attempt is submitted or read.  Late submissions are accepted and flagged
rather than rejected, because the client's network can always delay a submit
past the deadline.

Visibility rules:
  - the owning student never sees answer keys or marks before submitting
  - the instructor of the quiz's course and admins may inspect any attempt
  - everyone else is refused
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Mapping

from sqlalchemy.orm import Session

from lms.core.exceptions import (
    AttemptAlreadySubmitted,
    AttemptLimitExceeded,
    AttemptNotFound,
    QuizNotOpen,
    RepositoryConflict,
    ResultNotAvailable,
    Unauthorized,
)
from lms.db.models import (
    Quiz,
    QuizAnswer,
    QuizAttempt,
    RoleEnum,
    ensure_utc,
)
from lms.schemas.attempt import (
    AttemptResultRead,
    AttemptStartRead,
    AttemptSummaryRead,
    QuizAttemptsRead,
)
from lms.schemas.quiz import QuizListRead, QuizRead
from lms.services import result_projector
from lms.services.attempt_repository import AttemptRepository
from lms.services.question_bank import QuestionBank
from lms.services.scoring import is_answered, percentage, score

logger = logging.getLogger(__name__)


def compute_deadline(quiz: Quiz, started_at: datetime) -> datetime:
    """Start + duration, but never past the end of the quiz window."""
    by_duration = started_at + timedelta(minutes=quiz.duration_minutes)
    return min(by_duration, ensure_utc(quiz.end_time))


class AttemptService:
    def __init__(self, db: Session):
        self.db = db
        self.bank = QuestionBank(db)
        self.repo = AttemptRepository(db)

    # ── quiz ─────────────────────────────────────────────────────────────

    def get_quiz(self, quiz_id: uuid.UUID) -> QuizRead:
        return result_projector.quiz_view(self.bank.get_quiz(quiz_id))

    def list_quizzes(
        self,
        requester_id: uuid.UUID,
        requester_role: RoleEnum,
        course_id: uuid.UUID | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> QuizListRead:
        """Active quizzes the caller can see, with their own latest submitted result.

        Instructors are limited to their own courses.  Enrollment is owned by
        another service, so students see every active quiz.
        """
        instructor_id = requester_id if requester_role == RoleEnum.INSTRUCTOR else None
        quizzes, total = self.bank.search_quizzes(
            instructor_id=instructor_id,
            course_id=course_id,
            search=search,
            page=page,
            page_size=page_size,
        )
        mine = self.repo.latest_submitted_for(requester_id, [q.id for q in quizzes])
        return result_projector.quiz_list_view(quizzes, mine, total, page, page_size)

    # ── start ────────────────────────────────────────────────────────────

    def start_attempt(
        self, quiz_id: uuid.UUID, student_id: uuid.UUID, now: datetime
    ) -> AttemptStartRead:
        """Open a new timed attempt and return its questions without answer keys."""
        quiz = self.bank.get_quiz(quiz_id)
        self._ensure_open(quiz, now)

        try:
            attempt = self._create_attempt(quiz, student_id, now)
        except RepositoryConflict:
            # Lost a concurrent start; re-check the limit against fresh data once.
            logger.info(
                "Retrying start for quiz=%s student=%s after conflict",
                quiz_id, student_id,
            )
            attempt = self._create_attempt(quiz, student_id, now)

        logger.info(
            "Attempt %s started: quiz=%s student=%s #%d due=%s",
            attempt.id, quiz_id, student_id,
            attempt.attempt_number, attempt.must_submit_by,
        )
        questions = self.bank.ordered_for_attempt(quiz, attempt.id)
        return result_projector.student_view(attempt, questions, now)

    def _ensure_open(self, quiz: Quiz, now: datetime) -> None:
        if not quiz.is_active:
            raise QuizNotOpen("Quiz is not active")
        if now < ensure_utc(quiz.start_time):
            raise QuizNotOpen("Quiz has not started yet")
        if now >= ensure_utc(quiz.end_time):
            raise QuizNotOpen("Quiz has ended")

    def _create_attempt(
        self, quiz: Quiz, student_id: uuid.UUID, now: datetime
    ) -> QuizAttempt:
        prior = self.repo.count_attempts(quiz.id, student_id)
        if quiz.max_attempts is not None and prior >= quiz.max_attempts:
            logger.warning(
                "Attempt limit reached: quiz=%s student=%s (%d/%d)",
                quiz.id, student_id, prior, quiz.max_attempts,
            )
            raise AttemptLimitExceeded()

        attempt = QuizAttempt(
            quiz_id=quiz.id,
            student_id=student_id,
            started_at=now,
            must_submit_by=compute_deadline(quiz, now),
        )
        self.repo.create(attempt, quiz.max_attempts)
        return attempt

    # ── read while open ──────────────────────────────────────────────────

    def get_attempt_questions(
        self, attempt_id: uuid.UUID, student_id: uuid.UUID, now: datetime
    ) -> AttemptStartRead:
        """Re-read an open attempt's questions in the same order as at start."""
        attempt = self._owned_attempt(attempt_id, student_id)
        if attempt.is_submitted:
            raise AttemptAlreadySubmitted()
        questions = self.bank.ordered_for_attempt(attempt.quiz, attempt.id)
        return result_projector.student_view(attempt, questions, now)

    # ── submit ───────────────────────────────────────────────────────────

    def submit_attempt(
        self,
        attempt_id: uuid.UUID,
        student_id: uuid.UUID,
        answers: Mapping[uuid.UUID, str | None],
        now: datetime,
    ) -> AttemptResultRead:
        """Grade and close an attempt.

        Every question of the quiz gets exactly one stored answer; questions
        missing from ``answers`` (or answered with blank text) score zero.
        Answers to questions outside the quiz are ignored.
        """
        attempt = self._owned_attempt(attempt_id, student_id)
        if attempt.is_submitted:
            raise AttemptAlreadySubmitted()

        if now > ensure_utc(attempt.must_submit_by):
            logger.warning(
                "Late submission for attempt %s (due %s, received %s)",
                attempt_id, attempt.must_submit_by, now,
            )

        questions = self.bank.questions_for(attempt.quiz_id)
        rows: list[QuizAnswer] = []
        total_score = 0
        for question in questions:
            text = answers.get(question.id)
            result = score(question, text)
            total_score += result.marks
            rows.append(
                QuizAnswer(
                    question_id=question.id,
                    answer_text=text if is_answered(text) else None,
                    is_correct=result.is_correct,
                    marks_awarded=result.marks,
                )
            )

        total_marks = sum(q.points for q in questions)
        pct = percentage(total_score, total_marks)
        try:
            self.repo.finalize(attempt_id, rows, total_score, pct, now)
        except RepositoryConflict:
            logger.warning("Concurrent submission lost for attempt %s", attempt_id)
            raise AttemptAlreadySubmitted()

        logger.info(
            "Attempt %s submitted: score=%d/%d (%.2f%%)",
            attempt_id, total_score, total_marks, pct,
        )
        return self._full_result(self.repo.get(attempt_id), now)

    # ── results ──────────────────────────────────────────────────────────

    def get_result(
        self,
        attempt_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: RoleEnum,
        now: datetime,
    ) -> AttemptResultRead:
        attempt = self.repo.get(attempt_id)
        if attempt.student_id == requester_id:
            if not attempt.is_submitted:
                raise ResultNotAvailable()
        elif not self._can_inspect(attempt.quiz, requester_id, requester_role):
            raise Unauthorized("Unauthorized access to quiz result")
        return self._full_result(attempt, now)

    def list_student_attempts(
        self, student_id: uuid.UUID, quiz_id: uuid.UUID | None = None
    ) -> list[AttemptSummaryRead]:
        return [
            result_projector.summary_view(a, a.quiz)
            for a in self.repo.list_for_student(student_id, quiz_id)
        ]

    def get_instructor_view(
        self,
        quiz_id: uuid.UUID,
        requester_id: uuid.UUID,
        requester_role: RoleEnum,
        now: datetime,
    ) -> QuizAttemptsRead:
        """Every attempt at a quiz in full detail, for grading dashboards."""
        quiz = self.bank.get_quiz(quiz_id)
        if not self._can_inspect(quiz, requester_id, requester_role):
            raise Unauthorized("Only the course instructor or an admin may view attempts")
        results = [self._full_result(a, now) for a in self.repo.list_for_quiz(quiz_id)]
        return result_projector.instructor_view(quiz, results)

    # ── helpers ──────────────────────────────────────────────────────────

    def _owned_attempt(self, attempt_id: uuid.UUID, student_id: uuid.UUID) -> QuizAttempt:
        attempt = self.repo.get(attempt_id)
        if attempt.student_id != student_id:
            # Someone else's attempt is indistinguishable from a missing one.
            raise AttemptNotFound()
        return attempt

    @staticmethod
    def _can_inspect(quiz: Quiz, requester_id: uuid.UUID, role: RoleEnum) -> bool:
        if role == RoleEnum.ADMIN:
            return True
        return role == RoleEnum.INSTRUCTOR and quiz.course.instructor_id == requester_id

    def _full_result(self, attempt: QuizAttempt, now: datetime) -> AttemptResultRead:
        quiz = attempt.quiz
        questions = self.bank.ordered_for_attempt(quiz, attempt.id)
        answers = self.repo.answers_for(attempt.id)
        return result_projector.result_view(attempt, quiz, questions, answers, now)
