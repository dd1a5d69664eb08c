"""Quiz schemas."""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class QuestionRead(BaseModel):
    """Question as shown to a student taking the quiz — no answer key."""

    id: uuid.UUID
    text: str
    question_type: QuestionType
    points: int
    position: int
    options: list[str] | None = None


class QuizRead(BaseModel):
    """Quiz metadata, without questions."""

    id: uuid.UUID
    title: str
    description: str | None = None
    course_id: uuid.UUID
    duration_minutes: int
    start_time: datetime
    end_time: datetime
    shuffle_questions: bool
    max_attempts: int | None = None
    is_active: bool
    total_marks: int
    question_count: int


class QuizListItemRead(BaseModel):
    """One row of the quiz catalogue, with the caller's latest submitted attempt."""

    id: uuid.UUID
    title: str
    course_id: uuid.UUID
    course_name: str
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    total_marks: int
    has_attempted: bool = False
    my_attempt_id: uuid.UUID | None = None
    my_score: int | None = None


class QuizListRead(BaseModel):
    items: list[QuizListItemRead]
    total: int
    page: int
    page_size: int
    total_pages: int
