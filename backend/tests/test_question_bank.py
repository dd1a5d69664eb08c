"""Tests for question ordering and per-attempt shuffling."""

import uuid

from sqlalchemy.orm import Session

from lms.db.models import QuestionTypeEnum, User
from lms.services.question_bank import QuestionBank, attempt_seed, parse_options

from conftest import make_quiz


def _many_questions(n: int) -> list[dict]:
    return [
        {
            "text": f"Q{i}",
            "question_type": QuestionTypeEnum.TRUE_FALSE,
            "options": ["true", "false"],
            "correct_answer": "true",
            "points": 1,
        }
        for i in range(n)
    ]


def test_questions_in_authored_order(db: Session, instructor: User):
    quiz = make_quiz(db, instructor, questions=_many_questions(5))
    texts = [q.text for q in QuestionBank(db).questions_for(quiz.id)]
    assert texts == ["Q0", "Q1", "Q2", "Q3", "Q4"]


def test_unshuffled_quiz_keeps_order_for_any_attempt(db: Session, instructor: User):
    quiz = make_quiz(db, instructor, questions=_many_questions(5))
    bank = QuestionBank(db)
    order = [q.id for q in bank.ordered_for_attempt(quiz, uuid.uuid4())]
    assert order == [q.id for q in bank.questions_for(quiz.id)]


def test_shuffle_is_stable_per_attempt(db: Session, instructor: User):
    quiz = make_quiz(db, instructor, shuffle=True, questions=_many_questions(12))
    bank = QuestionBank(db)
    attempt_id = uuid.uuid4()

    first = [q.id for q in bank.ordered_for_attempt(quiz, attempt_id)]
    again = [q.id for q in bank.ordered_for_attempt(quiz, attempt_id)]
    assert first == again
    assert sorted(first) == sorted(q.id for q in bank.questions_for(quiz.id))


def test_shuffle_varies_across_attempts(db: Session, instructor: User):
    quiz = make_quiz(db, instructor, shuffle=True, questions=_many_questions(12))
    bank = QuestionBank(db)
    orders = {
        tuple(q.id for q in bank.ordered_for_attempt(quiz, uuid.uuid4()))
        for _ in range(5)
    }
    # 12! permutations; five identical draws would be astronomically unlikely.
    assert len(orders) > 1


def test_attempt_seed_depends_on_both_ids():
    quiz_id, attempt_id = uuid.uuid4(), uuid.uuid4()
    assert attempt_seed(quiz_id, attempt_id) == attempt_seed(quiz_id, attempt_id)
    assert attempt_seed(quiz_id, attempt_id) != attempt_seed(quiz_id, uuid.uuid4())
    assert attempt_seed(quiz_id, attempt_id) != attempt_seed(uuid.uuid4(), attempt_id)


def test_parse_options():
    assert parse_options('["A", "B"]') == ["A", "B"]
    assert parse_options(None) is None
    assert parse_options("") is None
