"""Service that owns the attempt state machine: start, then submit.

Transitions are IN_PROGRESS -> SUBMITTED (here) -> GRADED (scoring engine).
Nothing ever returns to IN_PROGRESS and nothing leaves GRADED.

Timing rules:

* Expiry is checked lazily. A timed-out IN_PROGRESS attempt is only noticed
  when ``start`` is called against it again, and resuming it is refused.
* A late ``submit`` is accepted, but the recorded end time is clamped to
  ``start_time + time_limit`` so reported durations never exceed the limit.
"""

from __future__ import annotations

from datetime import datetime
import logging
from uuid import uuid4

from attempt_app.core.errors import (
    AlreadyCompletedError,
    AlreadyInProgressError,
    AttemptExpiredError,
    ForbiddenError,
    NotFoundError,
    PastDueError,
)
from attempt_app.core.models import (
    Answer,
    Assessment,
    Attempt,
    AttemptStatus,
    SubmittedAnswer,
)
from attempt_app.core.services.assessment_catalog import AssessmentCatalog
from attempt_app.core.services.attempt_store import AttemptStore
from attempt_app.utils.keyed_locks import KeyedLocks
from attempt_app.utils.time_utils import Clock, utc_now

logger = logging.getLogger(__name__)


def deadline_for(attempt: Attempt, assessment: Assessment) -> datetime | None:
    """Return the moment the attempt's time limit runs out, if it has one."""
    limit = assessment.time_limit
    if limit is None:
        return None
    return attempt.start_time + limit


class AttemptLifecycle:
    """Starts and submits attempts against the store."""

    def __init__(
        self,
        catalog: AssessmentCatalog,
        store: AttemptStore,
        clock: Clock = utc_now,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._catalog = catalog
        self._store = store
        self._clock = clock
        self._locks = locks or KeyedLocks()

    def start(self, assessment_id: str, learner_id: str) -> Attempt:
        """Create the learner's attempt, or resume the one already in progress."""
        assessment = self._catalog.get_assessment(assessment_id)
        with self._locks.hold(("start", learner_id, assessment_id)):
            now = self._clock()
            existing = self._store.find_attempt(learner_id, assessment_id)
            if existing is not None:
                return self._resume(existing, assessment, now)

            if assessment.due_at is not None and now > assessment.due_at:
                logger.warning(
                    "Learner %s cannot start assessment %s: due date %s has passed",
                    learner_id,
                    assessment_id,
                    assessment.due_at.isoformat(),
                )
                raise PastDueError("The due date for this assessment has passed.")

            attempt = Attempt(
                id=uuid4().hex,
                assessment_id=assessment_id,
                learner_id=learner_id,
                start_time=now,
            )
            try:
                created = self._store.create_attempt(attempt)
            except AlreadyInProgressError:
                # Another writer won the insert outside this process.
                logger.warning(
                    "Concurrent start lost for learner %s on assessment %s",
                    learner_id,
                    assessment_id,
                )
                raise
            logger.info(
                "Created attempt %s for learner %s on assessment %s",
                created.id,
                learner_id,
                assessment_id,
            )
            return created

    def submit(
        self,
        attempt_id: str,
        answers: list[SubmittedAnswer],
        learner_id: str,
    ) -> Attempt:
        """Record the learner's answers and close the attempt.

        Submitting an attempt that is no longer in progress returns it
        unchanged, so retried requests are never processed twice.
        """
        attempt = self._store.get_attempt(attempt_id)
        if attempt.learner_id != learner_id:
            logger.warning(
                "Learner %s attempted to submit attempt %s owned by %s",
                learner_id,
                attempt_id,
                attempt.learner_id,
            )
            raise ForbiddenError("You can only submit your own attempts.")

        with self._locks.hold(("attempt", attempt_id)):
            attempt = self._store.get_attempt(attempt_id)
            if attempt.status is not AttemptStatus.IN_PROGRESS:
                logger.info(
                    "Ignoring repeated submit of attempt %s (status %s)",
                    attempt_id,
                    attempt.status.value,
                )
                return attempt

            assessment = self._catalog.get_assessment(attempt.assessment_id)
            records = self._build_answers(attempt, assessment, answers)
            questions = assessment.question_map()

            now = self._clock()
            end_time = now
            deadline = deadline_for(attempt, assessment)
            if deadline is not None and now > deadline:
                end_time = deadline
                logger.warning(
                    "Attempt %s submitted after its deadline %s; recording end time at the deadline",
                    attempt_id,
                    deadline.isoformat(),
                )

            attempt.end_time = end_time
            attempt.score = None
            attempt.max_score = sum(questions[record.question_id].points for record in records)
            attempt.status = AttemptStatus.SUBMITTED

            saved = self._store.save_submission(attempt, records)
            logger.info(
                "Attempt %s submitted by learner %s with %d answer(s); max score %s",
                attempt_id,
                learner_id,
                len(records),
                saved.max_score,
            )
            return saved

    def _resume(self, existing: Attempt, assessment: Assessment, now: datetime) -> Attempt:
        if existing.status is not AttemptStatus.IN_PROGRESS:
            logger.warning(
                "Learner %s cannot start assessment %s: attempt %s is %s",
                existing.learner_id,
                assessment.id,
                existing.id,
                existing.status.value,
            )
            raise AlreadyCompletedError("You have already completed this assessment.")

        deadline = deadline_for(existing, assessment)
        if deadline is not None and now > deadline:
            logger.warning(
                "Learner %s cannot resume attempt %s: time limit expired at %s",
                existing.learner_id,
                existing.id,
                deadline.isoformat(),
            )
            raise AttemptExpiredError("The time limit for this attempt has expired.")

        logger.info("Learner %s resuming attempt %s", existing.learner_id, existing.id)
        return existing

    @staticmethod
    def _build_answers(
        attempt: Attempt,
        assessment: Assessment,
        submitted: list[SubmittedAnswer],
    ) -> list[Answer]:
        """Resolve every submitted answer before anything is written."""
        questions = assessment.question_map()
        texts: dict[str, str] = {}
        for entry in submitted:
            if entry.question_id not in questions:
                logger.error(
                    "Question %s does not belong to assessment %s",
                    entry.question_id,
                    assessment.id,
                )
                raise NotFoundError(f"Question {entry.question_id!r} is not part of this assessment.")
            texts[entry.question_id] = entry.text

        return [
            Answer(
                id=uuid4().hex,
                attempt_id=attempt.id,
                question_id=question_id,
                text=text,
            )
            for question_id, text in texts.items()
        ]
