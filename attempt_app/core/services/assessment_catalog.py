"""Service for looking up assessments and their question sets.

Authoring lives outside this package; the engine only needs a lookup by id.
``InMemoryAssessmentCatalog`` is the reference implementation used by the
server entry point and the tests.
"""

from __future__ import annotations

from dataclasses import replace
from threading import Lock
from typing import Protocol

from attempt_app.core.errors import NotFoundError
from attempt_app.core.models import Assessment, Question
from attempt_app.utils.time_utils import ensure_utc


class AssessmentCatalog(Protocol):
    def get_assessment(self, assessment_id: str) -> Assessment:
        """Return the assessment or raise ``NotFoundError``."""
        ...

    def list_assessments(self) -> list[Assessment]:
        ...


class InMemoryAssessmentCatalog:
    """Holds validated assessments keyed by id."""

    def __init__(self, assessments: list[Assessment] | None = None) -> None:
        self._lock = Lock()
        self._assessments: dict[str, Assessment] = {}
        for assessment in assessments or []:
            self.add_assessment(assessment)

    def add_assessment(self, assessment: Assessment) -> Assessment:
        """Register a new assessment. Ids must be unique."""
        prepared = self._prepare_assessment(assessment)
        with self._lock:
            if prepared.id in self._assessments:
                raise ValueError(f"Assessment {prepared.id!r} is already registered.")
            self._assessments[prepared.id] = prepared
        return prepared

    def replace_assessment(self, assessment: Assessment) -> Assessment:
        """Swap in a new version of an assessment, question set included.

        Mirrors the authoring side's wholesale replacement on edit, which may
        drop questions that existing answers still reference.
        """
        prepared = self._prepare_assessment(assessment)
        with self._lock:
            if prepared.id not in self._assessments:
                raise NotFoundError(f"Assessment {prepared.id!r} not found.")
            self._assessments[prepared.id] = prepared
        return prepared

    def get_assessment(self, assessment_id: str) -> Assessment:
        with self._lock:
            assessment = self._assessments.get(assessment_id)
        if assessment is None:
            raise NotFoundError(f"Assessment {assessment_id!r} not found.")
        return assessment

    def list_assessments(self) -> list[Assessment]:
        with self._lock:
            return list(self._assessments.values())

    def _prepare_assessment(self, assessment: Assessment) -> Assessment:
        """Validate and normalize an assessment before storage."""
        assessment_id = assessment.id.strip()
        if not assessment_id:
            raise ValueError("Assessment id must not be empty.")
        title = assessment.title.strip()
        if not title:
            raise ValueError("Assessment title must not be empty.")

        questions = [self._prepare_question(q) for q in assessment.questions]
        seen: set[str] = set()
        for question in questions:
            if question.id in seen:
                raise ValueError(f"Duplicate question id {question.id!r}.")
            seen.add(question.id)

        return replace(
            assessment,
            id=assessment_id,
            title=title,
            questions=tuple(sorted(questions, key=lambda q: q.order_index)),
            due_at=ensure_utc(assessment.due_at) if assessment.due_at is not None else None,
            time_limit_minutes=self._normalize_time_limit(assessment.time_limit_minutes),
        )

    @staticmethod
    def _prepare_question(question: Question) -> Question:
        question_id = question.id.strip()
        if not question_id:
            raise ValueError("Question id must not be empty.")
        prompt = question.prompt.strip()
        if not prompt:
            raise ValueError("Question prompt must not be empty.")
        if not isinstance(question.points, int) or isinstance(question.points, bool):
            raise ValueError("Question points must be an integer.")
        if question.points < 0:
            raise ValueError("Question points must not be negative.")
        return replace(question, id=question_id, prompt=prompt)

    @staticmethod
    def _normalize_time_limit(time_limit_minutes: int | None) -> int | None:
        if time_limit_minutes is None:
            return None
        if not isinstance(time_limit_minutes, int) or isinstance(time_limit_minutes, bool):
            raise ValueError("Time limit must be provided as an integer number of minutes.")
        if time_limit_minutes <= 0:
            raise ValueError("Time limit must be a positive integer.")
        return time_limit_minutes
