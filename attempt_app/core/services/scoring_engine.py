"""Service for applying reviewer scores to submitted attempts."""

from __future__ import annotations

import logging

from attempt_app.core.errors import InvalidScoreError, NotGradableError
from attempt_app.core.models import Attempt, AttemptStatus, ScoreAward
from attempt_app.core.services.assessment_catalog import AssessmentCatalog
from attempt_app.core.services.attempt_store import AttemptStore
from attempt_app.utils.keyed_locks import KeyedLocks

logger = logging.getLogger(__name__)


class ScoringEngine:
    """Validates per-answer awards, totals them and finalizes the attempt.

    Grading is all-or-nothing: every award is checked before any answer is
    touched. Awards for questions the attempt has no answer for, or whose
    question has since been removed from the assessment, are skipped.
    """

    def __init__(
        self,
        catalog: AssessmentCatalog,
        store: AttemptStore,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._locks = locks or KeyedLocks()

    def grade(self, attempt_id: str, awards: list[ScoreAward], reviewer_id: str) -> Attempt:
        with self._locks.hold(("attempt", attempt_id)):
            attempt = self._store.get_attempt(attempt_id)
            if attempt.status is not AttemptStatus.SUBMITTED:
                logger.warning(
                    "Reviewer %s cannot grade attempt %s (status %s)",
                    reviewer_id,
                    attempt_id,
                    attempt.status.value,
                )
                raise NotGradableError(
                    "This attempt is not awaiting grading or has already been graded."
                )

            validated = self._validate_awards(attempt, awards)
            attempt.score = float(sum(validated.values()))
            attempt.status = AttemptStatus.GRADED

            graded = self._store.save_grades(attempt, validated)
            logger.info(
                "Attempt %s graded by reviewer %s: %s/%s",
                attempt_id,
                reviewer_id,
                graded.score,
                graded.max_score,
            )
            return graded

    def _validate_awards(self, attempt: Attempt, awards: list[ScoreAward]) -> dict[str, float]:
        """Map answer ids to validated points without mutating anything."""
        questions = self._catalog.get_assessment(attempt.assessment_id).question_map()
        answers_by_question = {
            answer.question_id: answer for answer in self._store.get_answers(attempt.id)
        }

        validated: dict[str, float] = {}
        for award in awards:
            answer = answers_by_question.get(award.question_id)
            if answer is None:
                logger.warning(
                    "Attempt %s has no answer for question %s; skipping award",
                    attempt.id,
                    award.question_id,
                )
                continue

            question = questions.get(award.question_id)
            if question is None:
                logger.warning(
                    "Question %s of attempt %s no longer exists; skipping award",
                    award.question_id,
                    attempt.id,
                )
                continue

            points = award.points
            if points is None:
                logger.warning(
                    "No points given for question %s in attempt %s; awarding 0",
                    award.question_id,
                    attempt.id,
                )
                points = 0.0
            if not 0 <= points <= question.points:
                raise InvalidScoreError(
                    f"Points awarded ({points}) for question {question.id!r} "
                    f"must be between 0 and {question.points}."
                )
            validated[answer.id] = float(points)
        return validated
