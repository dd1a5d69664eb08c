"""Durable store for quiz attempts and their answers.

The repository is the authoritative guard for the two races in the attempt
lifecycle:

- **start race**: ``create`` numbers each attempt ``max(attempt_number) + 1``
  and refuses numbers above the quiz's limit.  ``(quiz_id, student_id,
  attempt_number)`` is unique, so two concurrent creates that read the same
  count collide on insert and the loser gets ``RepositoryConflict``.
- **submit race**: ``finalize`` flips the status with a conditional
  ``UPDATE … WHERE status = 'in_progress'`` in the same transaction that
  inserts the answers.  Zero rows updated means someone else already
  submitted, and nothing is written.

Storage outages surface as ``RepositoryUnavailable`` and are never retried
here.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from lms.core.exceptions import (
    AttemptLimitExceeded,
    AttemptNotFound,
    RepositoryConflict,
    RepositoryUnavailable,
)
from lms.db.models import AttemptStatusEnum, QuizAnswer, QuizAttempt

logger = logging.getLogger(__name__)


class AttemptRepository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _storage(self) -> Iterator[None]:
        """Translate driver-level outages into ``RepositoryUnavailable``."""
        try:
            yield
        except OperationalError as exc:
            self.db.rollback()
            logger.error("Attempt storage unavailable: %s", exc)
            raise RepositoryUnavailable() from exc

    # ── reads ────────────────────────────────────────────────────────────

    def get(self, attempt_id: uuid.UUID) -> QuizAttempt:
        with self._storage():
            attempt = self.db.get(QuizAttempt, attempt_id)
        if attempt is None:
            raise AttemptNotFound()
        return attempt

    def count_attempts(self, quiz_id: uuid.UUID, student_id: uuid.UUID) -> int:
        """Attempts of any status for one (quiz, student) pair."""
        with self._storage():
            return (
                self.db.query(func.count(QuizAttempt.id))
                .filter(
                    QuizAttempt.quiz_id == quiz_id,
                    QuizAttempt.student_id == student_id,
                )
                .scalar()
            ) or 0

    def _next_attempt_number(self, quiz_id: uuid.UUID, student_id: uuid.UUID) -> int:
        highest = (
            self.db.query(func.max(QuizAttempt.attempt_number))
            .filter(
                QuizAttempt.quiz_id == quiz_id,
                QuizAttempt.student_id == student_id,
            )
            .scalar()
        )
        return (highest or 0) + 1

    def answers_for(self, attempt_id: uuid.UUID) -> list[QuizAnswer]:
        with self._storage():
            return (
                self.db.query(QuizAnswer)
                .filter(QuizAnswer.attempt_id == attempt_id)
                .all()
            )

    def list_for_quiz(self, quiz_id: uuid.UUID) -> list[QuizAttempt]:
        with self._storage():
            return (
                self.db.query(QuizAttempt)
                .filter(QuizAttempt.quiz_id == quiz_id)
                .order_by(QuizAttempt.started_at, QuizAttempt.attempt_number)
                .all()
            )

    def list_for_student(
        self, student_id: uuid.UUID, quiz_id: uuid.UUID | None = None
    ) -> list[QuizAttempt]:
        with self._storage():
            query = self.db.query(QuizAttempt).filter(
                QuizAttempt.student_id == student_id
            )
            if quiz_id is not None:
                query = query.filter(QuizAttempt.quiz_id == quiz_id)
            return query.order_by(QuizAttempt.started_at.desc()).all()

    def latest_submitted_for(
        self, student_id: uuid.UUID, quiz_ids: list[uuid.UUID]
    ) -> dict[uuid.UUID, QuizAttempt]:
        """Most recent submitted attempt per quiz, for the quizzes given."""
        if not quiz_ids:
            return {}
        with self._storage():
            rows = (
                self.db.query(QuizAttempt)
                .filter(
                    QuizAttempt.student_id == student_id,
                    QuizAttempt.quiz_id.in_(quiz_ids),
                    QuizAttempt.status == AttemptStatusEnum.SUBMITTED,
                )
                .order_by(QuizAttempt.submitted_at)
                .all()
            )
        # later rows overwrite earlier ones
        return {attempt.quiz_id: attempt for attempt in rows}

    # ── writes ───────────────────────────────────────────────────────────

    def create(self, attempt: QuizAttempt, max_attempts: int | None) -> uuid.UUID:
        """Persist a new in-progress attempt and return its id.

        Raises ``AttemptLimitExceeded`` when the next attempt number would be
        above ``max_attempts`` and ``RepositoryConflict`` when a concurrent
        create took the same number first.
        """
        with self._storage():
            number = self._next_attempt_number(attempt.quiz_id, attempt.student_id)
            if max_attempts is not None and number > max_attempts:
                raise AttemptLimitExceeded()

            attempt.attempt_number = number
            attempt.status = AttemptStatusEnum.IN_PROGRESS
            self.db.add(attempt)
            try:
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                logger.warning(
                    "Attempt #%d for quiz=%s student=%s lost a concurrent create",
                    number, attempt.quiz_id, attempt.student_id,
                )
                raise RepositoryConflict() from exc

        self.db.refresh(attempt)
        return attempt.id

    def finalize(
        self,
        attempt_id: uuid.UUID,
        answers: list[QuizAnswer],
        score: int,
        percentage: float,
        submitted_at: datetime,
    ) -> None:
        """Atomically mark an in-progress attempt submitted and store its answers."""
        stmt = (
            update(QuizAttempt)
            .where(
                QuizAttempt.id == attempt_id,
                QuizAttempt.status == AttemptStatusEnum.IN_PROGRESS,
            )
            .values(
                status=AttemptStatusEnum.SUBMITTED,
                submitted_at=submitted_at,
                score=score,
                percentage=percentage,
            )
            .execution_options(synchronize_session=False)
        )
        with self._storage():
            try:
                result = self.db.execute(stmt)
                if result.rowcount != 1:
                    self.db.rollback()
                    raise RepositoryConflict()
                for answer in answers:
                    answer.attempt_id = attempt_id
                self.db.add_all(answers)
                self.db.commit()
            except IntegrityError as exc:
                self.db.rollback()
                raise RepositoryConflict() from exc
