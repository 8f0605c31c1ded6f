"""Read-only projection of an attempt into a display-ready result."""

from __future__ import annotations

import logging
from typing import Iterable

from attempt_app.core.models import (
    Answer,
    AnswerResult,
    Attempt,
    AttemptResult,
    AttemptStatus,
    Question,
)

logger = logging.getLogger(__name__)


def project(
    attempt: Attempt,
    answers: Iterable[Answer],
    questions: Iterable[Question],
) -> AttemptResult:
    """Pair each answer with its question and summarize the attempt.

    ``is_correct`` is a display hint (full marks awarded), not a grade.
    Answers whose question has disappeared from the assessment are left out.
    """
    question_map = {question.id: question for question in questions}
    rows: list[tuple[int, AnswerResult]] = []
    for answer in answers:
        question = question_map.get(answer.question_id)
        if question is None:
            logger.warning(
                "Skipping answer %s of attempt %s: question %s not found",
                answer.id,
                attempt.id,
                answer.question_id,
            )
            continue
        rows.append(
            (
                question.order_index,
                AnswerResult(
                    question_id=question.id,
                    prompt=question.prompt,
                    question_points=question.points,
                    answer_text=answer.text,
                    awarded_points=answer.awarded_points,
                    is_correct=(
                        answer.awarded_points is not None
                        and answer.awarded_points == question.points
                    ),
                ),
            )
        )
    rows.sort(key=lambda row: (row[0], row[1].question_id))

    return AttemptResult(
        attempt_id=attempt.id,
        assessment_id=attempt.assessment_id,
        learner_id=attempt.learner_id,
        status=attempt.status,
        start_time=attempt.start_time,
        end_time=attempt.end_time,
        score=attempt.score,
        max_score=attempt.max_score,
        pending_review=attempt.status is AttemptStatus.SUBMITTED,
        answers=tuple(result for _, result in rows),
    )
