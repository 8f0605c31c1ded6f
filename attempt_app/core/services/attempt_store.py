"""Persistence contract for attempts and their answers.

The store is the last line of defence for the single-attempt rule: it keeps a
unique index on (learner, assessment) and refuses a second insert, so two
racing ``start`` calls cannot both persist an attempt even when the callers
run in separate processes. Status flips are compare-and-set on the stored
status.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace
import logging
from threading import Lock

from attempt_app.core.errors import (
    AlreadyCompletedError,
    AlreadyInProgressError,
    NotFoundError,
    NotGradableError,
)
from attempt_app.core.models import Answer, Attempt, AttemptStatus

logger = logging.getLogger(__name__)


class AttemptStore(ABC):
    """Storage operations needed by the lifecycle manager and scoring engine."""

    @abstractmethod
    def create_attempt(self, attempt: Attempt) -> Attempt:
        """Insert a new attempt.

        Raises ``AlreadyInProgressError`` if the learner already holds an
        in-progress attempt at the assessment, ``AlreadyCompletedError`` if the
        existing attempt has left IN_PROGRESS.
        """

    @abstractmethod
    def get_attempt(self, attempt_id: str) -> Attempt:
        """Return the attempt or raise ``NotFoundError``."""

    @abstractmethod
    def find_attempt(self, learner_id: str, assessment_id: str) -> Attempt | None:
        ...

    @abstractmethod
    def list_attempts(
        self,
        *,
        assessment_id: str | None = None,
        learner_id: str | None = None,
        status: AttemptStatus | None = None,
    ) -> list[Attempt]:
        ...

    @abstractmethod
    def get_answers(self, attempt_id: str) -> list[Answer]:
        ...

    @abstractmethod
    def save_submission(self, attempt: Attempt, answers: list[Answer]) -> Attempt:
        """Persist the submitted attempt together with its answers.

        The write happens only if the stored attempt is still IN_PROGRESS;
        otherwise nothing changes and the stored attempt is returned.
        """

    @abstractmethod
    def save_grades(self, attempt: Attempt, awards: dict[str, float]) -> Attempt:
        """Apply ``awards`` (answer id to points) and persist the graded attempt.

        Raises ``NotGradableError`` if the stored attempt is not SUBMITTED.
        """

    @abstractmethod
    def delete_attempt(self, attempt_id: str) -> None:
        """Remove an attempt together with every answer it owns."""


class InMemoryAttemptStore(AttemptStore):
    """Thread-safe reference store. Returned records are copies."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._attempts: dict[str, Attempt] = {}
        self._answers: dict[str, list[Answer]] = {}
        self._by_learner_assessment: dict[tuple[str, str], str] = {}

    def create_attempt(self, attempt: Attempt) -> Attempt:
        key = (attempt.learner_id, attempt.assessment_id)
        with self._lock:
            existing_id = self._by_learner_assessment.get(key)
            if existing_id is not None:
                existing = self._attempts[existing_id]
                logger.warning(
                    "Rejected duplicate attempt for learner %s on assessment %s (existing %s, %s)",
                    attempt.learner_id,
                    attempt.assessment_id,
                    existing.id,
                    existing.status.value,
                )
                if existing.status is AttemptStatus.IN_PROGRESS:
                    raise AlreadyInProgressError(
                        "An attempt for this assessment is already in progress."
                    )
                raise AlreadyCompletedError("You have already completed this assessment.")
            if attempt.id in self._attempts:
                raise ValueError(f"Attempt id {attempt.id!r} already exists.")
            stored = replace(attempt)
            self._attempts[stored.id] = stored
            self._answers[stored.id] = []
            self._by_learner_assessment[key] = stored.id
            return replace(stored)

    def get_attempt(self, attempt_id: str) -> Attempt:
        with self._lock:
            attempt = self._attempts.get(attempt_id)
            if attempt is None:
                raise NotFoundError(f"Attempt {attempt_id!r} not found.")
            return replace(attempt)

    def find_attempt(self, learner_id: str, assessment_id: str) -> Attempt | None:
        with self._lock:
            attempt_id = self._by_learner_assessment.get((learner_id, assessment_id))
            if attempt_id is None:
                return None
            return replace(self._attempts[attempt_id])

    def list_attempts(
        self,
        *,
        assessment_id: str | None = None,
        learner_id: str | None = None,
        status: AttemptStatus | None = None,
    ) -> list[Attempt]:
        with self._lock:
            return [
                replace(attempt)
                for attempt in self._attempts.values()
                if (assessment_id is None or attempt.assessment_id == assessment_id)
                and (learner_id is None or attempt.learner_id == learner_id)
                and (status is None or attempt.status is status)
            ]

    def get_answers(self, attempt_id: str) -> list[Answer]:
        with self._lock:
            if attempt_id not in self._attempts:
                raise NotFoundError(f"Attempt {attempt_id!r} not found.")
            return [replace(answer) for answer in self._answers[attempt_id]]

    def save_submission(self, attempt: Attempt, answers: list[Answer]) -> Attempt:
        with self._lock:
            stored = self._attempts.get(attempt.id)
            if stored is None:
                raise NotFoundError(f"Attempt {attempt.id!r} not found.")
            if stored.status is not AttemptStatus.IN_PROGRESS:
                return replace(stored)
            if any(answer.attempt_id != attempt.id for answer in answers):
                raise ValueError("Answers must belong to the submitted attempt.")
            updated = replace(attempt)
            self._attempts[attempt.id] = updated
            self._answers[attempt.id] = [replace(answer) for answer in answers]
            return replace(updated)

    def save_grades(self, attempt: Attempt, awards: dict[str, float]) -> Attempt:
        with self._lock:
            stored = self._attempts.get(attempt.id)
            if stored is None:
                raise NotFoundError(f"Attempt {attempt.id!r} not found.")
            if stored.status is not AttemptStatus.SUBMITTED:
                raise NotGradableError(
                    "This attempt is not awaiting grading or has already been graded."
                )
            answers = self._answers[attempt.id]
            known_ids = {answer.id for answer in answers}
            unknown = set(awards) - known_ids
            if unknown:
                raise NotFoundError(f"Unknown answer ids: {sorted(unknown)}")
            self._answers[attempt.id] = [
                replace(answer, awarded_points=awards[answer.id]) if answer.id in awards else answer
                for answer in answers
            ]
            updated = replace(attempt)
            self._attempts[attempt.id] = updated
            return replace(updated)

    def delete_attempt(self, attempt_id: str) -> None:
        with self._lock:
            attempt = self._attempts.pop(attempt_id, None)
            if attempt is None:
                raise NotFoundError(f"Attempt {attempt_id!r} not found.")
            self._answers.pop(attempt_id, None)
            self._by_learner_assessment.pop((attempt.learner_id, attempt.assessment_id), None)
