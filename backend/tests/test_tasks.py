"""Tests for the submission notification task."""

from unittest.mock import patch

from sqlalchemy.orm import Session

from lms.db.models import Notification, Quiz, User
from lms.services.attempts import AttemptService
from lms.tasks import notify_attempt_submitted

from conftest import T0, TestSession


def _run(attempt_id) -> dict:
    with patch("lms.tasks.get_session_factory", return_value=TestSession):
        return notify_attempt_submitted.run(str(attempt_id))


def test_writes_instructor_and_student_notifications(
    db: Session, quiz: Quiz, student: User, instructor: User
):
    service = AttemptService(db)
    started = service.start_attempt(quiz.id, student.id, T0)
    answers = {quiz.questions[0].id: "B"}
    service.submit_attempt(started.attempt_id, student.id, answers, T0)

    result = _run(started.attempt_id)

    assert result == {
        "success": True,
        "attempt_id": str(started.attempt_id),
        "notifications": 2,
    }
    db.expire_all()
    rows = {n.user_id: n for n in db.query(Notification).all()}
    assert rows[instructor.id].title == "Quiz Attempt Submitted"
    assert "Sam Student" in rows[instructor.id].message
    assert rows[student.id].title == "Grade Posted"
    assert "20/30" in rows[student.id].message
    assert all(not n.is_read for n in rows.values())


def test_skips_open_attempt(db: Session, quiz: Quiz, student: User):
    started = AttemptService(db).start_attempt(quiz.id, student.id, T0)

    result = _run(started.attempt_id)

    assert result["success"] is False
    assert db.query(Notification).count() == 0
