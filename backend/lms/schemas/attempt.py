"""Attempt schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from lms.schemas.quiz import QuestionRead, QuestionType, QuizRead


class AttemptStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class AnswerSubmit(BaseModel):
    question_id: uuid.UUID
    answer: str | None = None


class AttemptSubmit(BaseModel):
    """POST /api/quizzes/submit: all answers for an attempt."""

    attempt_id: uuid.UUID
    answers: list[AnswerSubmit] = Field(default_factory=list)


class AttemptStartRead(BaseModel):
    """Returned when an attempt starts, and on re-reads while it is open."""

    attempt_id: uuid.UUID
    quiz_id: uuid.UUID
    attempt_number: int
    started_at: datetime
    must_submit_by: datetime
    is_expired: bool = False
    questions: list[QuestionRead]


class AnswerResultRead(BaseModel):
    """Per‑question line of a result."""

    question_id: uuid.UUID
    question_text: str
    question_type: QuestionType
    options: list[str] | None = None
    points: int
    your_answer: str | None = None
    correct_answer: str
    is_correct: bool | None = None
    marks_awarded: int | None = None


class AttemptSummaryRead(BaseModel):
    """Attempt header without the per‑question breakdown."""

    attempt_id: uuid.UUID
    quiz_id: uuid.UUID
    quiz_title: str
    student_id: uuid.UUID
    student_name: str
    attempt_number: int
    status: AttemptStatus
    started_at: datetime
    must_submit_by: datetime
    submitted_at: datetime | None = None
    is_late: bool = False
    score: int | None = None
    percentage: float | None = None
    total_marks: int


class AttemptResultRead(AttemptSummaryRead):
    """Full result: header plus per‑question detail."""

    is_expired: bool = False
    answers: list[AnswerResultRead] = []


class QuizAttemptsRead(BaseModel):
    """Instructor dashboard: every attempt at one quiz."""

    quiz: QuizRead
    attempt_count: int
    submitted_count: int
    attempts: list[AttemptResultRead]
