"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from lms.config import settings
from lms.api import health_router, quizzes_router
from lms.core.exceptions import QuizError, quiz_error_handler

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("LMS quiz backend starting…")
    yield
    logger.info("LMS quiz backend shut down")


app = FastAPI(
    title="LMS Quiz API",
    description="Timed quiz attempts, grading and results",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware ─────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# ── Errors ────────────────────────────────────────────────────────────────────

app.add_exception_handler(QuizError, quiz_error_handler)

# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])


@app.get("/")
async def root():
    return {
        "name": "LMS Quiz API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
