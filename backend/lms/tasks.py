"""Background tasks executed by Celery workers."""

import logging
import uuid

from lms.celery_app import celery_app
from lms.db.models import Notification, QuizAttempt
from lms.db.session import get_session_factory

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="notify_attempt_submitted", max_retries=3)
def notify_attempt_submitted(self, attempt_id: str) -> dict:
    """Queue notifications for a submitted attempt.

    Writes two rows for the notification service to deliver:
        1. the course instructor — "Quiz Attempt Submitted"
        2. the student — "Grade Posted" with the score
    """
    factory = get_session_factory()
    db = factory()
    try:
        attempt = db.get(QuizAttempt, uuid.UUID(attempt_id))
        if attempt is None or not attempt.is_submitted:
            logger.error("Attempt %s not found or not submitted, skipping", attempt_id)
            return {"success": False, "error": "attempt_not_submitted"}

        quiz = attempt.quiz
        student_name = attempt.student.full_name
        db.add_all(
            [
                Notification(
                    user_id=quiz.course.instructor_id,
                    title="Quiz Attempt Submitted",
                    message=f"{student_name} submitted attempt for {quiz.title}",
                    related_entity_id=attempt_id,
                    related_entity_type="QuizAttempt",
                ),
                Notification(
                    user_id=attempt.student_id,
                    title="Grade Posted",
                    message=(
                        f"Your grade for {quiz.title} in {quiz.course.name} is "
                        f"{attempt.score}/{quiz.total_marks}"
                    ),
                    related_entity_id=attempt_id,
                    related_entity_type="QuizAttempt",
                ),
            ]
        )
        db.commit()
        logger.info("Queued submission notifications for attempt %s", attempt_id)
        return {"success": True, "attempt_id": attempt_id, "notifications": 2}

    except Exception as exc:
        db.rollback()
        logger.exception("Notification hand-off failed for attempt %s", attempt_id)
        # Retry with exponential back-off (10s, 30s, 90s)
        raise self.retry(exc=exc, countdown=10 * (3**self.request.retries))

    finally:
        db.close()
