"""Domain models for the timed-assessment attempt engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class AttemptStatus(str, Enum):
    """Lifecycle state of an attempt. The only source of truth for progress."""

    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    GRADED = "GRADED"


@dataclass(slots=True, frozen=True)
class Question:
    """Free-text prompt worth a fixed number of points."""

    id: str
    prompt: str
    points: int
    order_index: int = 0


@dataclass(slots=True, frozen=True)
class Assessment:
    """Read-only view of an assessment as supplied by the authoring side."""

    id: str
    title: str
    questions: tuple[Question, ...] = ()
    due_at: datetime | None = None
    time_limit_minutes: int | None = None  # None means unlimited

    @property
    def time_limit(self) -> timedelta | None:
        if self.time_limit_minutes is None:
            return None
        return timedelta(minutes=self.time_limit_minutes)

    def question_map(self) -> dict[str, Question]:
        return {question.id: question for question in self.questions}


@dataclass(slots=True)
class Attempt:
    """One learner's single run through an assessment."""

    id: str
    assessment_id: str
    learner_id: str
    start_time: datetime
    status: AttemptStatus = AttemptStatus.IN_PROGRESS
    end_time: datetime | None = None
    score: float | None = None
    max_score: int | None = None


@dataclass(slots=True)
class Answer:
    """Free-text response to one question within one attempt."""

    id: str
    attempt_id: str
    question_id: str
    text: str
    awarded_points: float | None = None  # Set only by the scoring engine


@dataclass(slots=True, frozen=True)
class SubmittedAnswer:
    """Single entry of a learner's submission payload."""

    question_id: str
    text: str


@dataclass(slots=True, frozen=True)
class ScoreAward:
    """Single entry of a reviewer's grading payload."""

    question_id: str
    points: float | None


@dataclass(slots=True, frozen=True)
class AnswerResult:
    """Display-ready pairing of an answer with its question."""

    question_id: str
    prompt: str
    question_points: int
    answer_text: str
    awarded_points: float | None
    is_correct: bool


@dataclass(slots=True, frozen=True)
class AttemptResult:
    """Immutable snapshot of an attempt returned to learners and reviewers."""

    attempt_id: str
    assessment_id: str
    learner_id: str
    status: AttemptStatus
    start_time: datetime
    end_time: datetime | None
    score: float | None
    max_score: int | None
    pending_review: bool
    answers: tuple[AnswerResult, ...]

    @property
    def duration(self) -> timedelta | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time
