"""HTTP-level tests for the quiz attempt routes."""

import uuid

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from lms.db.models import Quiz, RoleEnum, User

from conftest import FrozenClock, auth, make_user


def _start(client: TestClient, quiz: Quiz, student: User):
    return client.post(f"/api/quizzes/{quiz.id}/start", headers=auth(student))


def _submit(client: TestClient, student: User, attempt_id, answers: list[dict]):
    return client.post(
        "/api/quizzes/submit",
        json={"attempt_id": str(attempt_id), "answers": answers},
        headers=auth(student),
    )


def test_health(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_requires_token(client: TestClient, quiz: Quiz):
    response = client.post(f"/api/quizzes/{quiz.id}/start")
    assert response.status_code == 401


def test_get_quiz(client: TestClient, quiz: Quiz, student: User):
    response = client.get(f"/api/quizzes/{quiz.id}", headers=auth(student))
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Caching basics"
    assert data["total_marks"] == 30
    assert data["question_count"] == 2


def test_get_missing_quiz_uses_error_envelope(client: TestClient, student: User):
    response = client.get(f"/api/quizzes/{uuid.uuid4()}", headers=auth(student))
    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error_code"] == "QUIZ_NOT_FOUND"
    assert body["message"]


class TestStartRoute:
    def test_start_created(self, client: TestClient, quiz: Quiz, student: User):
        response = _start(client, quiz, student)
        assert response.status_code == 201
        data = response.json()
        assert data["attempt_number"] == 1
        assert data["is_expired"] is False
        assert len(data["questions"]) == 2
        assert all("correct_answer" not in q for q in data["questions"])

    def test_instructor_cannot_start(self, client: TestClient, quiz: Quiz, instructor: User):
        response = client.post(f"/api/quizzes/{quiz.id}/start", headers=auth(instructor))
        assert response.status_code == 403

    def test_limit(self, client: TestClient, quiz: Quiz, student: User):
        _start(client, quiz, student)
        response = _start(client, quiz, student)
        assert response.status_code == 403
        assert response.json()["error_code"] == "ATTEMPT_LIMIT_EXCEEDED"

    def test_closed_quiz(self, client: TestClient, quiz: Quiz, student: User, clock: FrozenClock):
        clock.advance(days=2)
        response = _start(client, quiz, student)
        assert response.status_code == 403
        assert response.json()["error_code"] == "QUIZ_NOT_OPEN"


class TestSubmitRoute:
    def test_submit_grades_and_dispatches_notice(
        self,
        client: TestClient,
        quiz: Quiz,
        student: User,
        clock: FrozenClock,
        mock_celery_tasks,
    ):
        started = _start(client, quiz, student).json()
        q1, q2 = (q["id"] for q in started["questions"])
        clock.advance(minutes=5)

        response = _submit(
            client,
            student,
            started["attempt_id"],
            [{"question_id": q1, "answer": "b"}, {"question_id": q2, "answer": " Cache "}],
        )

        assert response.status_code == 200
        data = response.json()
        assert data["score"] == 30
        assert data["percentage"] == 100.0
        assert data["status"] == "submitted"
        assert data["is_late"] is False
        mock_celery_tasks.delay.assert_called_once_with(started["attempt_id"])

    def test_last_duplicate_answer_wins(self, client: TestClient, quiz: Quiz, student: User):
        started = _start(client, quiz, student).json()
        q1 = started["questions"][0]["id"]
        response = _submit(
            client,
            student,
            started["attempt_id"],
            [{"question_id": q1, "answer": "B"}, {"question_id": q1, "answer": "A"}],
        )
        assert response.json()["score"] == 0

    def test_double_submit_conflicts(self, client: TestClient, quiz: Quiz, student: User):
        started = _start(client, quiz, student).json()
        q1 = started["questions"][0]["id"]
        first = _submit(client, student, started["attempt_id"], [{"question_id": q1, "answer": "B"}])
        second = _submit(client, student, started["attempt_id"], [])

        assert first.status_code == 200
        assert second.status_code == 409
        assert second.json()["error_code"] == "ATTEMPT_ALREADY_SUBMITTED"

        result = client.get(f"/api/quizzes/attempts/{started['attempt_id']}", headers=auth(student))
        assert result.json()["score"] == 20

    def test_late_submission_flagged(
        self, client: TestClient, quiz: Quiz, student: User, clock: FrozenClock
    ):
        started = _start(client, quiz, student).json()
        clock.advance(hours=1)
        response = _submit(client, student, started["attempt_id"], [])
        assert response.status_code == 200
        assert response.json()["is_late"] is True

    def test_notice_failure_does_not_fail_submit(
        self, client: TestClient, quiz: Quiz, student: User, mock_celery_tasks
    ):
        mock_celery_tasks.delay.side_effect = ConnectionError("broker down")
        started = _start(client, quiz, student).json()
        response = _submit(client, student, started["attempt_id"], [])
        assert response.status_code == 200

    def test_unknown_attempt(self, client: TestClient, student: User):
        response = _submit(client, student, uuid.uuid4(), [])
        assert response.status_code == 404
        assert response.json()["error_code"] == "ATTEMPT_NOT_FOUND"


class TestResultRoutes:
    def test_result_hidden_until_submitted(self, client: TestClient, quiz: Quiz, student: User):
        started = _start(client, quiz, student).json()
        response = client.get(
            f"/api/quizzes/attempts/{started['attempt_id']}", headers=auth(student)
        )
        assert response.status_code == 403
        assert response.json()["error_code"] == "RESULT_NOT_AVAILABLE"

    def test_requestions_route(self, client: TestClient, quiz: Quiz, student: User):
        started = _start(client, quiz, student).json()
        response = client.get(
            f"/api/quizzes/attempts/{started['attempt_id']}/questions", headers=auth(student)
        )
        assert response.status_code == 200
        assert [q["id"] for q in response.json()["questions"]] == [
            q["id"] for q in started["questions"]
        ]

    def test_other_student_is_refused(self, client: TestClient, db: Session, quiz: Quiz, student: User):
        started = _start(client, quiz, student).json()
        _submit(client, student, started["attempt_id"], [])
        response = client.get(
            f"/api/quizzes/attempts/{started['attempt_id']}", headers=auth(make_user(db))
        )
        assert response.status_code == 403
        assert response.json()["error_code"] == "UNAUTHORIZED"

    def test_my_attempts(self, client: TestClient, quiz: Quiz, student: User):
        started = _start(client, quiz, student).json()
        response = client.get("/api/quizzes/my-attempts", headers=auth(student))
        assert response.status_code == 200
        data = response.json()
        assert [a["attempt_id"] for a in data] == [started["attempt_id"]]
        assert data[0]["status"] == "in_progress"
        assert data[0]["score"] is None

    def test_instructor_dashboard(
        self, client: TestClient, quiz: Quiz, student: User, instructor: User
    ):
        started = _start(client, quiz, student).json()
        response = client.get(f"/api/quizzes/{quiz.id}/attempts", headers=auth(instructor))
        assert response.status_code == 200
        data = response.json()
        assert data["attempt_count"] == 1
        assert data["submitted_count"] == 0
        assert data["attempts"][0]["attempt_id"] == started["attempt_id"]
        assert data["attempts"][0]["answers"][0]["correct_answer"] == "B"

    def test_dashboard_refuses_students(self, client: TestClient, quiz: Quiz, student: User):
        response = client.get(f"/api/quizzes/{quiz.id}/attempts", headers=auth(student))
        assert response.status_code == 403

    def test_dashboard_refuses_other_instructor(
        self, client: TestClient, db: Session, quiz: Quiz
    ):
        other = make_user(db, RoleEnum.INSTRUCTOR)
        response = client.get(f"/api/quizzes/{quiz.id}/attempts", headers=auth(other))
        assert response.status_code == 403
        assert response.json()["error_code"] == "UNAUTHORIZED"


def test_clock_pins_deadline(client: TestClient, quiz: Quiz, student: User, clock: FrozenClock):
    started = _start(client, quiz, student).json()
    clock.advance(minutes=31)
    response = client.get(
        f"/api/quizzes/attempts/{started['attempt_id']}/questions", headers=auth(student)
    )
    assert response.json()["is_expired"] is True
    assert response.json()["must_submit_by"] == started["must_submit_by"]


def test_quiz_catalogue_reports_submitted_score(client: TestClient, quiz: Quiz, student: User):
    def catalogue():
        response = client.get("/api/quizzes", headers=auth(student))
        assert response.status_code == 200
        return response.json()

    before = catalogue()
    assert before["total"] == 1
    assert before["items"][0]["has_attempted"] is False
    assert before["items"][0]["my_score"] is None

    started = _start(client, quiz, student).json()
    assert catalogue()["items"][0]["has_attempted"] is False

    q1 = started["questions"][0]["id"]
    _submit(client, student, started["attempt_id"], [{"question_id": q1, "answer": "B"}])
    item = catalogue()["items"][0]
    assert item["has_attempted"] is True
    assert item["my_attempt_id"] == started["attempt_id"]
    assert item["my_score"] == 20


def test_quiz_catalogue_rejects_bad_paging(client: TestClient, student: User):
    response = client.get("/api/quizzes?page=0", headers=auth(student))
    assert response.status_code == 422
