"""Shared pytest fixtures for backend tests."""

import json
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lms.api.deps import get_clock
from lms.core.security import create_access_token
from lms.db.models import (
    Course,
    QuestionTypeEnum,
    Quiz,
    QuizQuestion,
    RoleEnum,
    User,
)
from lms.db.session import Base, get_db
from lms.main import app
from lms.services.rate_limiter import require_attempt_rate_limit


# Use an in-memory SQLite database for testing with static pool
SQLALCHEMY_TEST_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,  # Use StaticPool to keep connection alive
    echo=False,
)
TestSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Settable clock injected in place of the server clock."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def mock_celery_tasks():
    """Mock Celery dispatch for all tests to prevent broker connections."""
    mock_task = MagicMock(return_value=MagicMock(id="fake-task-id"))
    mock_task.delay = MagicMock(return_value=MagicMock(id="fake-task-id"))

    # Patch at the import point in the quizzes router
    with patch("lms.api.quizzes.notify_attempt_submitted", mock_task):
        yield mock_task


@pytest.fixture(scope="function")
def db():
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestSession()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture(scope="function")
def client(db: Session, clock: FrozenClock):
    """FastAPI test client with overridden DB, clock and rate limiter."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[require_attempt_rate_limit] = lambda: None

    # Remove TrustedHostMiddleware for tests to allow 'testserver' host
    app.user_middleware = [m for m in app.user_middleware if "TrustedHost" not in str(m)]

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ── Data helpers ──────────────────────────────────────────────────────────────


def make_user(db: Session, role: RoleEnum = RoleEnum.STUDENT, name: str | None = None) -> User:
    uid = str(uuid.uuid4())[:8]
    user = User(
        email=f"{role.value}_{uid}@ex.com",
        full_name=name or f"Test {role.value.title()}",
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_quiz(
    db: Session,
    instructor: User,
    *,
    max_attempts: int | None = 1,
    duration_minutes: int = 30,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    shuffle: bool = False,
    questions: list[dict] | None = None,
) -> Quiz:
    """Quiz whose default questions are MC(20 pts, "B") then ShortAnswer(10 pts, "cache")."""
    course = Course(code="CS101", name="Intro to Computing", instructor_id=instructor.id)
    db.add(course)
    db.flush()

    quiz = Quiz(
        title="Caching basics",
        duration_minutes=duration_minutes,
        start_time=start_time or T0 - timedelta(hours=1),
        end_time=end_time or T0 + timedelta(days=1),
        shuffle_questions=shuffle,
        max_attempts=max_attempts,
        course_id=course.id,
    )
    db.add(quiz)
    db.flush()

    if questions is None:
        questions = [
            {
                "text": "Which level is closest to the CPU?",
                "question_type": QuestionTypeEnum.MULTIPLE_CHOICE,
                "options": ["A. Disk", "B. L1 cache", "C. RAM", "D. Network"],
                "correct_answer": "B",
                "points": 20,
            },
            {
                "text": "A small fast memory in front of a slow one is a ____.",
                "question_type": QuestionTypeEnum.SHORT_ANSWER,
                "correct_answer": "cache",
                "points": 10,
            },
        ]
    for position, item in enumerate(questions, start=1):
        options = item.get("options")
        db.add(
            QuizQuestion(
                quiz_id=quiz.id,
                text=item["text"],
                question_type=item["question_type"],
                options=json.dumps(options) if options else None,
                correct_answer=item["correct_answer"],
                points=item["points"],
                position=position,
            )
        )
    db.commit()
    db.refresh(quiz)
    return quiz


def auth(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def instructor(db: Session) -> User:
    return make_user(db, RoleEnum.INSTRUCTOR, "Ada Instructor")


@pytest.fixture
def student(db: Session) -> User:
    return make_user(db, RoleEnum.STUDENT, "Sam Student")


@pytest.fixture
def quiz(db: Session, instructor: User) -> Quiz:
    return make_quiz(db, instructor)
