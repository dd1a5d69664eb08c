"""Read-only access to a quiz's questions.

When a quiz has ``shuffle_questions`` set, each attempt sees its own
permutation.  The permutation is seeded from ``(quiz_id, attempt_id)`` so the
order shown when the attempt starts is the order shown on every later read,
and an auditor can reproduce it.
"""

import hashlib
import json
import random
import uuid

from sqlalchemy.orm import Session

from lms.core.exceptions import QuizNotFound
from lms.db.models import Course, Quiz, QuizQuestion


def attempt_seed(quiz_id: uuid.UUID, attempt_id: uuid.UUID) -> int:
    """Stable integer seed for one attempt's question order."""
    digest = hashlib.sha256(f"{quiz_id}:{attempt_id}".encode()).digest()
    return int.from_bytes(digest[:8], "big")


def parse_options(raw: str | None) -> list[str] | None:
    """Options are stored as a JSON array."""
    if not raw:
        return None
    return list(json.loads(raw))


class QuestionBank:
    def __init__(self, db: Session):
        self.db = db

    def get_quiz(self, quiz_id: uuid.UUID) -> Quiz:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise QuizNotFound()
        return quiz

    def questions_for(self, quiz_id: uuid.UUID) -> list[QuizQuestion]:
        """Questions in authored order."""
        return (
            self.db.query(QuizQuestion)
            .filter(QuizQuestion.quiz_id == quiz_id)
            .order_by(QuizQuestion.position, QuizQuestion.id)
            .all()
        )

    def shuffled_for(self, quiz_id: uuid.UUID, seed: int) -> list[QuizQuestion]:
        """Deterministic permutation of the quiz's questions for ``seed``."""
        questions = self.questions_for(quiz_id)
        random.Random(seed).shuffle(questions)
        return questions

    def ordered_for_attempt(self, quiz: Quiz, attempt_id: uuid.UUID) -> list[QuizQuestion]:
        """The order a given attempt presents its questions in."""
        if quiz.shuffle_questions:
            return self.shuffled_for(quiz.id, attempt_seed(quiz.id, attempt_id))
        return self.questions_for(quiz.id)

    def search_quizzes(
        self,
        *,
        instructor_id: uuid.UUID | None = None,
        course_id: uuid.UUID | None = None,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Quiz], int]:
        """One page of active quizzes, latest window first, plus the total count.

        ``instructor_id`` limits the result to courses that instructor owns.
        """
        query = self.db.query(Quiz).filter(Quiz.is_active.is_(True))
        if instructor_id is not None:
            query = query.join(Course, Quiz.course_id == Course.id).filter(
                Course.instructor_id == instructor_id
            )
        if course_id is not None:
            query = query.filter(Quiz.course_id == course_id)
        if search:
            query = query.filter(Quiz.title.ilike(f"%{search.strip()}%"))

        total = query.count()
        quizzes = (
            query.order_by(Quiz.start_time.desc(), Quiz.title)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return quizzes, total
