"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError

from quiz_engine.config import settings
from quiz_engine.core.errors import QuizEngineError, StaleRevision
from quiz_engine.schemas.common import ErrorResponse
from quiz_engine.api import (
    health_router,
    quizzes_router,
    attempts_router,
    grading_router,
    rubrics_router,
    question_bank_router,
)

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s  %(name)-25s  %(levelname)-8s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Quiz engine starting (env=%s)", settings.ENV)
    yield
    logger.info("Quiz engine shut down")


app = FastAPI(
    title="Quiz Engine API",
    description="Quizzes, attempts and grading for course lessons",
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

# ── Error envelope ────────────────────────────────────────────────────────────


@app.exception_handler(QuizEngineError)
async def quiz_engine_error_handler(request: Request, exc: QuizEngineError):
    if exc.status_code >= status.HTTP_409_CONFLICT:
        logger.info("%s %s → %s: %s", request.method, request.url.path, exc.error_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=ErrorResponse(**exc.to_dict()).model_dump())


@app.exception_handler(StaleDataError)
async def stale_data_handler(request: Request, exc: StaleDataError):
    # Concurrent write detected at commit time
    error = StaleRevision()
    return JSONResponse(status_code=error.status_code, content=ErrorResponse(**error.to_dict()).model_dump())


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(health_router, tags=["Health"])
app.include_router(quizzes_router, prefix="/api/quizzes", tags=["Quizzes"])
app.include_router(attempts_router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(grading_router, prefix="/api/grading", tags=["Grading"])
app.include_router(rubrics_router, prefix="/api/rubrics", tags=["Rubrics"])
app.include_router(question_bank_router, prefix="/api/question-bank", tags=["Question bank"])


@app.get("/")
async def root():
    return {
        "name": "Quiz Engine API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
