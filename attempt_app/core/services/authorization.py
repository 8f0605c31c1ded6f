"""Authorization checks consumed by the attempt engine.

Role and roster management are external. The engine receives an
``Authorizer`` explicitly and asks it one boolean question per operation.
"""

from __future__ import annotations

from typing import Protocol

from attempt_app.core.models import Assessment


class Authorizer(Protocol):
    def can_take(self, learner_id: str, assessment: Assessment) -> bool:
        ...

    def can_review(self, reviewer_id: str, assessment: Assessment) -> bool:
        ...


class StaticAuthorizer:
    """Authorizer backed by fixed reviewer and learner assignments.

    ``learners`` maps an assessment id to the learners entitled to take it;
    assessments missing from the mapping are open to every learner, and
    passing ``None`` opens all of them.
    """

    def __init__(
        self,
        reviewers: dict[str, set[str]] | None = None,
        learners: dict[str, set[str]] | None = None,
    ) -> None:
        self._reviewers = {key: set(value) for key, value in (reviewers or {}).items()}
        self._learners = (
            None if learners is None else {key: set(value) for key, value in learners.items()}
        )

    def can_take(self, learner_id: str, assessment: Assessment) -> bool:
        if self._learners is None or assessment.id not in self._learners:
            return True
        return learner_id in self._learners[assessment.id]

    def can_review(self, reviewer_id: str, assessment: Assessment) -> bool:
        return reviewer_id in self._reviewers.get(assessment.id, set())

    def grant_review(self, reviewer_id: str, assessment_id: str) -> None:
        self._reviewers.setdefault(assessment_id, set()).add(reviewer_id)
