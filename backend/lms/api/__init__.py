"""API route package — imports all routers for main.py."""

from lms.api.health import router as health_router  # noqa: F401
from lms.api.quizzes import router as quizzes_router  # noqa: F401
