from datetime import datetime, timedelta, timezone

from attempt_app.core.models import (
    Answer,
    Attempt,
    AttemptStatus,
    Question,
)
from attempt_app.core.services.result_projector import project

START = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)

QUESTIONS = (
    Question(id="q2", prompt="Second", points=3, order_index=1),
    Question(id="q1", prompt="First", points=5, order_index=0),
)


def _attempt(status, score=None):
    return Attempt(
        id="a1",
        assessment_id="essay",
        learner_id="lea",
        start_time=START,
        status=status,
        end_time=START + timedelta(minutes=7),
        score=score,
        max_score=8,
    )


def test_submitted_attempt_is_pending_review():
    answers = [
        Answer(id="x2", attempt_id="a1", question_id="q2", text="two"),
        Answer(id="x1", attempt_id="a1", question_id="q1", text="one"),
    ]

    result = project(_attempt(AttemptStatus.SUBMITTED), answers, QUESTIONS)

    assert result.pending_review is True
    assert [row.question_id for row in result.answers] == ["q1", "q2"]
    assert [row.prompt for row in result.answers] == ["First", "Second"]
    assert all(row.is_correct is False for row in result.answers)
    assert result.duration == timedelta(minutes=7)


def test_full_marks_are_flagged_correct():
    answers = [
        Answer(id="x1", attempt_id="a1", question_id="q1", text="one", awarded_points=5),
        Answer(id="x2", attempt_id="a1", question_id="q2", text="two", awarded_points=2),
    ]

    result = project(_attempt(AttemptStatus.GRADED, score=7), answers, QUESTIONS)

    assert result.pending_review is False
    assert {row.question_id: row.is_correct for row in result.answers} == {"q1": True, "q2": False}
    assert result.score == 7
    assert result.max_score == 8


def test_answers_with_missing_questions_are_skipped():
    answers = [
        Answer(id="x1", attempt_id="a1", question_id="q1", text="one"),
        Answer(id="x9", attempt_id="a1", question_id="gone", text="orphan"),
    ]

    result = project(_attempt(AttemptStatus.SUBMITTED), answers, QUESTIONS)

    assert [row.question_id for row in result.answers] == ["q1"]


def test_projection_is_repeatable():
    answers = [Answer(id="x1", attempt_id="a1", question_id="q1", text="one", awarded_points=5)]
    attempt = _attempt(AttemptStatus.GRADED, score=5)

    assert project(attempt, answers, QUESTIONS) == project(attempt, answers, QUESTIONS)


def test_in_progress_attempt_has_no_duration():
    attempt = Attempt(id="a1", assessment_id="essay", learner_id="lea", start_time=START)

    result = project(attempt, [], QUESTIONS)

    assert result.duration is None
    assert result.pending_review is False
    assert result.answers == ()
