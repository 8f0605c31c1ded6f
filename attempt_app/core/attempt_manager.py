"""Business logic for timed attempts shared by the API and any other caller."""

from __future__ import annotations

from datetime import datetime, timezone
import logging

from attempt_app.constants.attempt_constants import DEFAULT_PENDING_REVIEW_LIMIT
from attempt_app.core.errors import ForbiddenError, NotFoundError
from attempt_app.core.models import (
    Assessment,
    Attempt,
    AttemptResult,
    AttemptStatus,
    ScoreAward,
    SubmittedAnswer,
)
from attempt_app.core.services.assessment_catalog import AssessmentCatalog
from attempt_app.core.services.attempt_lifecycle import AttemptLifecycle, deadline_for
from attempt_app.core.services.attempt_store import AttemptStore
from attempt_app.core.services.authorization import Authorizer
from attempt_app.core.services.result_projector import project
from attempt_app.core.services.scoring_engine import ScoringEngine
from attempt_app.utils.keyed_locks import KeyedLocks
from attempt_app.utils.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)

_NEVER = datetime.max.replace(tzinfo=timezone.utc)


class AttemptManager:
    """Facade for attempt services: Lifecycle, Scoring and Result projection.

    Authorization is asked of the injected ``Authorizer`` on every call.
    """

    def __init__(
        self,
        catalog: AssessmentCatalog,
        store: AttemptStore,
        authorizer: Authorizer,
        clock: Clock = utc_now,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._authorizer = authorizer

        # Lifecycle and scoring share one lock registry so that submit and
        # grade on the same attempt are serialized against each other.
        locks = KeyedLocks()
        self._lifecycle = AttemptLifecycle(catalog, store, clock=clock, locks=locks)
        self._scoring = ScoringEngine(catalog, store, locks=locks)

    # --- Learner operations ---

    def start_attempt(self, assessment_id: str, learner_id: str) -> Attempt:
        assessment = self._catalog.get_assessment(assessment_id)
        if not self._authorizer.can_take(learner_id, assessment):
            logger.warning("Learner %s is not entitled to assessment %s", learner_id, assessment_id)
            raise ForbiddenError("You are not allowed to take this assessment.")
        return self._lifecycle.start(assessment_id, learner_id)

    def submit_attempt(
        self,
        attempt_id: str,
        learner_id: str,
        answers: list[SubmittedAnswer],
    ) -> Attempt:
        return self._lifecycle.submit(attempt_id, answers, learner_id)

    def list_attempts_for_learner(self, learner_id: str) -> list[Attempt]:
        logger.debug("Listing attempts for learner %s", learner_id)
        attempts = self._store.list_attempts(learner_id=learner_id)
        return sorted(attempts, key=lambda a: a.start_time)

    # --- Reviewer operations ---

    def grade_attempt(
        self,
        attempt_id: str,
        reviewer_id: str,
        awards: list[ScoreAward],
    ) -> Attempt:
        attempt = self._store.get_attempt(attempt_id)
        assessment = self._catalog.get_assessment(attempt.assessment_id)
        self._require_reviewer(reviewer_id, assessment)
        return self._scoring.grade(attempt_id, awards, reviewer_id)

    def list_attempts_for_assessment(self, assessment_id: str, reviewer_id: str) -> list[Attempt]:
        assessment = self._catalog.get_assessment(assessment_id)
        self._require_reviewer(reviewer_id, assessment)
        attempts = self._store.list_attempts(assessment_id=assessment_id)
        return sorted(attempts, key=lambda a: a.start_time)

    def list_pending_reviews(
        self,
        reviewer_id: str,
        limit: int = DEFAULT_PENDING_REVIEW_LIMIT,
    ) -> list[Attempt]:
        """Return submitted attempts awaiting this reviewer, oldest submission first."""
        if limit <= 0:
            return []
        reviewable = [
            assessment.id
            for assessment in self._catalog.list_assessments()
            if self._authorizer.can_review(reviewer_id, assessment)
        ]
        pending: list[Attempt] = []
        for assessment_id in reviewable:
            pending.extend(
                self._store.list_attempts(
                    assessment_id=assessment_id,
                    status=AttemptStatus.SUBMITTED,
                )
            )
        pending.sort(key=lambda a: (a.end_time or _NEVER, a.id))
        logger.debug(
            "Reviewer %s has %d pending attempt(s) across %d assessment(s)",
            reviewer_id,
            len(pending),
            len(reviewable),
        )
        return pending[:limit]

    # --- Shared read access ---

    def get_attempt_for_user(self, attempt_id: str, requester_id: str) -> Attempt:
        """Return the attempt if the requester is its learner or a reviewer of it."""
        attempt = self._store.get_attempt(attempt_id)
        if attempt.learner_id == requester_id:
            return attempt
        assessment = self._catalog.get_assessment(attempt.assessment_id)
        if self._authorizer.can_review(requester_id, assessment):
            return attempt
        logger.warning("User %s is not allowed to view attempt %s", requester_id, attempt_id)
        raise ForbiddenError("You are not allowed to view this attempt.")

    def get_result(self, attempt_id: str, requester_id: str) -> AttemptResult:
        attempt = self.get_attempt_for_user(attempt_id, requester_id)
        try:
            questions = self._catalog.get_assessment(attempt.assessment_id).questions
        except NotFoundError:
            logger.warning(
                "Assessment %s of attempt %s is gone; projecting without questions",
                attempt.assessment_id,
                attempt_id,
            )
            questions = ()
        return project(attempt, self._store.get_answers(attempt_id), questions)

    def deadline_for(self, attempt: Attempt) -> datetime | None:
        return deadline_for(attempt, self._catalog.get_assessment(attempt.assessment_id))

    def _require_reviewer(self, reviewer_id: str, assessment: Assessment) -> None:
        if not self._authorizer.can_review(reviewer_id, assessment):
            logger.warning(
                "Reviewer %s is not authorized for assessment %s",
                reviewer_id,
                assessment.id,
            )
            raise ForbiddenError("You are not authorized to review this assessment.")
