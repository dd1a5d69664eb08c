"""One-time DB setup: create tables and seed a demo course with an open quiz."""
import json
from datetime import datetime, timedelta, timezone

from lms.core.security import create_access_token
from lms.db.session import Base, get_engine, get_session_factory
from lms.db.models import (
    Course,
    QuestionTypeEnum,
    Quiz,
    QuizQuestion,
    RoleEnum,
    User,
)

# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")


def _get_or_create_user(db, email: str, full_name: str, role: RoleEnum) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        print(f"  {email} already exists")
        return user
    user = User(email=email, full_name=full_name, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"✅ Created {role.value}: {email}")
    return user


session_factory = get_session_factory()
with session_factory() as db:
    # 2. Users (identity lives elsewhere; these rows mirror it)
    admin = _get_or_create_user(db, "admin@example.com", "Admin User", RoleEnum.ADMIN)
    instructor = _get_or_create_user(
        db, "instructor@example.com", "Instructor User", RoleEnum.INSTRUCTOR
    )
    student = _get_or_create_user(db, "student@example.com", "Student User", RoleEnum.STUDENT)

    # 3. Demo course
    course = db.query(Course).filter(Course.code == "CS101").first()
    if not course:
        course = Course(code="CS101", name="Intro to Computing", instructor_id=instructor.id)
        db.add(course)
        db.commit()
        db.refresh(course)
        print("✅ Created course CS101")
    else:
        print("  Course CS101 already exists")

    # 4. Demo quiz, open for a week
    quiz = db.query(Quiz).filter(Quiz.course_id == course.id).first()
    if not quiz:
        now = datetime.now(timezone.utc)
        quiz = Quiz(
            title="Caching basics",
            description="Two questions on memory hierarchies.",
            duration_minutes=10,
            start_time=now - timedelta(hours=1),
            end_time=now + timedelta(days=7),
            max_attempts=2,
            course_id=course.id,
        )
        db.add(quiz)
        db.flush()
        db.add_all(
            [
                QuizQuestion(
                    quiz_id=quiz.id,
                    text="Which level is closest to the CPU?",
                    question_type=QuestionTypeEnum.MULTIPLE_CHOICE,
                    options=json.dumps(["A. Disk", "B. L1 cache", "C. RAM", "D. Network"]),
                    correct_answer="B",
                    points=20,
                    position=1,
                ),
                QuizQuestion(
                    quiz_id=quiz.id,
                    text="A small fast memory in front of a larger slow one is a ____.",
                    question_type=QuestionTypeEnum.SHORT_ANSWER,
                    correct_answer="cache",
                    points=10,
                    position=2,
                ),
            ]
        )
        db.commit()
        print(f"✅ Created quiz (id={quiz.id})")
    else:
        print("  Demo quiz already exists")

    tokens = {
        u.email: create_access_token(data={"sub": str(u.id), "role": u.role.value})
        for u in (admin, instructor, student)
    }

print("\n🎉 Database is ready to use! Dev tokens:")
for email, token in tokens.items():
    print(f"   {email}: {token}")
