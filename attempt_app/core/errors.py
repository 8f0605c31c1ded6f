"""Error kinds raised by the attempt engine.

Every error is terminal to the operation that raised it and is reported to
the caller as-is. ``code`` is a stable identifier for API clients.
"""

from __future__ import annotations


class AttemptError(Exception):
    """Base class for attempt engine failures."""

    code: str = "attempt_error"


class NotFoundError(AttemptError):
    """Unknown assessment, attempt or question."""

    code = "not_found"


class ForbiddenError(AttemptError):
    """Caller does not own, or is not authorized for, the resource."""

    code = "forbidden"


class AlreadyInProgressError(AttemptError):
    """A concurrent start already created the attempt for this learner."""

    code = "already_in_progress"


class AlreadyCompletedError(AttemptError):
    """The learner already submitted this assessment."""

    code = "already_completed"


class AttemptExpiredError(AttemptError):
    """The time limit elapsed on an in-progress attempt being resumed."""

    code = "attempt_expired"


class PastDueError(AttemptError):
    """The assessment due date elapsed before a fresh start."""

    code = "past_due"


class InvalidScoreError(AttemptError):
    """An award lies outside ``[0, question.points]``."""

    code = "invalid_score"


class NotGradableError(AttemptError):
    """The attempt is not awaiting grading."""

    code = "not_gradable"
