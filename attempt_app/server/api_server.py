"""FastAPI server that exposes the attempt endpoints."""

from __future__ import annotations

from datetime import datetime
import logging

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from attempt_app.constants.about import APP_ABOUT_TEXT, APP_NAME, APP_VERSION
from attempt_app.constants.attempt_constants import DEFAULT_PENDING_REVIEW_LIMIT
from attempt_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from attempt_app.core.attempt_manager import AttemptManager
from attempt_app.core.errors import (
    AlreadyCompletedError,
    AlreadyInProgressError,
    AttemptError,
    AttemptExpiredError,
    ForbiddenError,
    InvalidScoreError,
    NotFoundError,
    NotGradableError,
    PastDueError,
)
from attempt_app.core.markdown_math_renderer import renderer
from attempt_app.core.models import Attempt, AttemptResult, ScoreAward, SubmittedAnswer

logger = logging.getLogger(__name__)

_ERROR_STATUS: dict[type[AttemptError], int] = {
    NotFoundError: 404,
    ForbiddenError: 403,
    AlreadyInProgressError: 409,
    AlreadyCompletedError: 409,
    AttemptExpiredError: 409,
    PastDueError: 409,
    NotGradableError: 409,
    InvalidScoreError: 422,
}


class StartPayload(BaseModel):
    """Payload schema for starting or resuming an attempt."""

    assessment_id: str
    learner_id: str


class AnswerPayload(BaseModel):
    question_id: str
    text: str = ""


class SubmitPayload(BaseModel):
    """Payload schema for submitted answers."""

    learner_id: str
    answers: list[AnswerPayload] = Field(default_factory=list)


class AwardPayload(BaseModel):
    question_id: str
    points: float | None = None


class GradePayload(BaseModel):
    """Payload schema for reviewer scores."""

    reviewer_id: str
    awards: list[AwardPayload] = Field(default_factory=list)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _error_status(exc: AttemptError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


def _attempt_summary(attempt: Attempt) -> dict[str, object]:
    return {
        "attempt_id": attempt.id,
        "assessment_id": attempt.assessment_id,
        "learner_id": attempt.learner_id,
        "status": attempt.status.value,
        "start_time": _iso(attempt.start_time),
        "end_time": _iso(attempt.end_time),
        "score": attempt.score,
        "max_score": attempt.max_score,
    }


def _result_payload(result: AttemptResult) -> dict[str, object]:
    duration = result.duration
    return {
        "attempt_id": result.attempt_id,
        "assessment_id": result.assessment_id,
        "learner_id": result.learner_id,
        "status": result.status.value,
        "start_time": _iso(result.start_time),
        "end_time": _iso(result.end_time),
        "duration_seconds": duration.total_seconds() if duration is not None else None,
        "score": result.score,
        "max_score": result.max_score,
        "pending_review": result.pending_review,
        "answers": [
            {
                "question_id": answer.question_id,
                "prompt": answer.prompt,
                "prompt_html": renderer.render_fragment(answer.prompt),
                "question_points": answer.question_points,
                "answer_text": answer.answer_text,
                "awarded_points": answer.awarded_points,
                "is_correct": answer.is_correct,
            }
            for answer in result.answers
        ],
    }


def _get_attempt_manager_dependency(attempt_manager: AttemptManager):
    def dependency() -> AttemptManager:
        return attempt_manager

    return dependency


def create_api_app(attempt_manager: AttemptManager) -> FastAPI:
    """Create a FastAPI application wired to the provided attempt manager."""
    app = FastAPI(title=f"{APP_NAME} API", description=APP_ABOUT_TEXT, version=APP_VERSION)
    manager_dep = _get_attempt_manager_dependency(attempt_manager)

    @app.exception_handler(AttemptError)
    async def handle_attempt_error(request: Request, exc: AttemptError) -> JSONResponse:
        status_code = _error_status(exc)
        logger.info("%s %s -> %d %s", request.method, request.url.path, status_code, exc.code)
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": exc.code})

    @app.post("/attempts", status_code=201)
    def start_attempt(
        payload: StartPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        attempt = manager.start_attempt(payload.assessment_id, payload.learner_id)
        return {
            "attempt_id": attempt.id,
            "start_time": _iso(attempt.start_time),
            "deadline": _iso(manager.deadline_for(attempt)),
        }

    @app.post("/attempts/{attempt_id}/submit")
    def submit_attempt(
        attempt_id: str,
        payload: SubmitPayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        answers = [SubmittedAnswer(question_id=a.question_id, text=a.text) for a in payload.answers]
        attempt = manager.submit_attempt(attempt_id, payload.learner_id, answers)
        return {
            "attempt_id": attempt.id,
            "end_time": _iso(attempt.end_time),
            "max_score": attempt.max_score,
        }

    @app.post("/attempts/{attempt_id}/grade")
    def grade_attempt(
        attempt_id: str,
        payload: GradePayload,
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        awards = [ScoreAward(question_id=a.question_id, points=a.points) for a in payload.awards]
        attempt = manager.grade_attempt(attempt_id, payload.reviewer_id, awards)
        return {
            "attempt_id": attempt.id,
            "score": attempt.score,
            "max_score": attempt.max_score,
        }

    @app.get("/attempts/{attempt_id}/result")
    def get_result(
        attempt_id: str,
        requester_id: str = Query(...),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _result_payload(manager.get_result(attempt_id, requester_id))

    @app.get("/assessments/{assessment_id}/attempts")
    def list_assessment_attempts(
        assessment_id: str,
        reviewer_id: str = Query(...),
        manager: AttemptManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        attempts = manager.list_attempts_for_assessment(assessment_id, reviewer_id)
        return [_attempt_summary(attempt) for attempt in attempts]

    @app.get("/learners/{learner_id}/attempts")
    def list_learner_attempts(
        learner_id: str,
        manager: AttemptManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        return [_attempt_summary(attempt) for attempt in manager.list_attempts_for_learner(learner_id)]

    @app.get("/reviewers/{reviewer_id}/pending")
    def list_pending_reviews(
        reviewer_id: str,
        limit: int = Query(DEFAULT_PENDING_REVIEW_LIMIT, ge=1, le=100),
        manager: AttemptManager = Depends(manager_dep),
    ) -> list[dict[str, object]]:
        attempts = manager.list_pending_reviews(reviewer_id, limit=limit)
        return [_attempt_summary(attempt) for attempt in attempts]

    return app


def run_api_server(
    attempt_manager: AttemptManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API in the foreground until interrupted."""
    app = create_api_app(attempt_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    uvicorn.Server(config).run()
