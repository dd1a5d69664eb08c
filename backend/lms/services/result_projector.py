"""Render attempts into the student and instructor view shapes.

Pure formatting.  Whether a caller is *allowed* a view is decided by the
attempt service before any of these functions run.
"""

import math
import uuid
from datetime import datetime

from lms.db.models import (
    Quiz,
    QuizAnswer,
    QuizAttempt,
    QuizQuestion,
    ensure_utc,
)
from lms.schemas.attempt import (
    AnswerResultRead,
    AttemptResultRead,
    AttemptStartRead,
    AttemptStatus,
    AttemptSummaryRead,
    QuizAttemptsRead,
)
from lms.schemas.quiz import (
    QuestionRead,
    QuestionType,
    QuizListItemRead,
    QuizListRead,
    QuizRead,
)
from lms.services.question_bank import parse_options


def is_expired(attempt: QuizAttempt, now: datetime) -> bool:
    """An open attempt past its deadline.  Submitted attempts never expire."""
    return not attempt.is_submitted and now > ensure_utc(attempt.must_submit_by)


def is_late(attempt: QuizAttempt) -> bool:
    if attempt.submitted_at is None:
        return False
    return ensure_utc(attempt.submitted_at) > ensure_utc(attempt.must_submit_by)


def quiz_view(quiz: Quiz) -> QuizRead:
    return QuizRead(
        id=quiz.id,
        title=quiz.title,
        description=quiz.description,
        course_id=quiz.course_id,
        duration_minutes=quiz.duration_minutes,
        start_time=ensure_utc(quiz.start_time),
        end_time=ensure_utc(quiz.end_time),
        shuffle_questions=quiz.shuffle_questions,
        max_attempts=quiz.max_attempts,
        is_active=quiz.is_active,
        total_marks=quiz.total_marks,
        question_count=len(quiz.questions),
    )


def quiz_list_view(
    quizzes: list[Quiz],
    mine: dict[uuid.UUID, QuizAttempt],
    total: int,
    page: int,
    page_size: int,
) -> QuizListRead:
    """Catalogue page; ``mine`` maps quiz id to the caller's latest submitted attempt."""
    items = []
    for quiz in quizzes:
        attempt = mine.get(quiz.id)
        items.append(
            QuizListItemRead(
                id=quiz.id,
                title=quiz.title,
                course_id=quiz.course_id,
                course_name=quiz.course.name if quiz.course else "",
                start_time=ensure_utc(quiz.start_time),
                end_time=ensure_utc(quiz.end_time),
                duration_minutes=quiz.duration_minutes,
                total_marks=quiz.total_marks,
                has_attempted=attempt is not None,
                my_attempt_id=attempt.id if attempt else None,
                my_score=attempt.score if attempt else None,
            )
        )
    return QuizListRead(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=math.ceil(total / page_size) if page_size else 0,
    )


def question_view(question: QuizQuestion) -> QuestionRead:
    """A question with its answer key stripped."""
    return QuestionRead(
        id=question.id,
        text=question.text,
        question_type=QuestionType(question.question_type.value),
        points=question.points,
        position=question.position,
        options=parse_options(question.options),
    )


def student_view(
    attempt: QuizAttempt,
    questions: list[QuizQuestion],
    now: datetime,
) -> AttemptStartRead:
    """Pre‑submission view: questions and deadline, no answers or score."""
    return AttemptStartRead(
        attempt_id=attempt.id,
        quiz_id=attempt.quiz_id,
        attempt_number=attempt.attempt_number,
        started_at=ensure_utc(attempt.started_at),
        must_submit_by=ensure_utc(attempt.must_submit_by),
        is_expired=is_expired(attempt, now),
        questions=[question_view(q) for q in questions],
    )


def summary_view(attempt: QuizAttempt, quiz: Quiz) -> AttemptSummaryRead:
    return AttemptSummaryRead(**_summary_fields(attempt, quiz))


def result_view(
    attempt: QuizAttempt,
    quiz: Quiz,
    questions: list[QuizQuestion],
    answers: list[QuizAnswer],
    now: datetime,
) -> AttemptResultRead:
    """Full view: every question with the key, the answer and the marks.

    For an attempt that is still open there are no answers yet, so the
    per‑question answer, correctness and marks stay ``None``.
    """
    by_question = {a.question_id: a for a in answers}
    lines = []
    for question in questions:
        answer = by_question.get(question.id)
        lines.append(
            AnswerResultRead(
                question_id=question.id,
                question_text=question.text,
                question_type=QuestionType(question.question_type.value),
                options=parse_options(question.options),
                points=question.points,
                your_answer=answer.answer_text if answer else None,
                correct_answer=question.correct_answer,
                is_correct=answer.is_correct if answer else None,
                marks_awarded=answer.marks_awarded if answer else None,
            )
        )

    return AttemptResultRead(
        **_summary_fields(attempt, quiz),
        is_expired=is_expired(attempt, now),
        answers=lines,
    )


def instructor_view(
    quiz: Quiz, results: list[AttemptResultRead]
) -> QuizAttemptsRead:
    return QuizAttemptsRead(
        quiz=quiz_view(quiz),
        attempt_count=len(results),
        submitted_count=sum(
            1 for r in results if r.status == AttemptStatus.SUBMITTED
        ),
        attempts=results,
    )


def _summary_fields(attempt: QuizAttempt, quiz: Quiz) -> dict:
    return {
        "attempt_id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "quiz_title": quiz.title,
        "student_id": attempt.student_id,
        "student_name": attempt.student.full_name if attempt.student else "",
        "attempt_number": attempt.attempt_number,
        "status": AttemptStatus(attempt.status.value),
        "started_at": ensure_utc(attempt.started_at),
        "must_submit_by": ensure_utc(attempt.must_submit_by),
        "submitted_at": ensure_utc(attempt.submitted_at),
        "is_late": is_late(attempt),
        "score": attempt.score if attempt.is_submitted else None,
        "percentage": attempt.percentage if attempt.is_submitted else None,
        "total_marks": quiz.total_marks,
    }
