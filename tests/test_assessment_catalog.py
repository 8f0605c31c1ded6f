from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from attempt_app.core.errors import NotFoundError, PastDueError
from attempt_app.core.models import Assessment, Question
from attempt_app.core.services.assessment_catalog import InMemoryAssessmentCatalog
from attempt_app.core.services.attempt_lifecycle import AttemptLifecycle


def _assessment(**overrides):
    base = Assessment(
        id="quiz",
        title="  Quiz  ",
        questions=(
            Question(id="b", prompt=" Later ", points=2, order_index=1),
            Question(id="a", prompt="Earlier", points=0, order_index=0),
        ),
    )
    return replace(base, **overrides)


def test_add_normalizes_and_orders_questions():
    catalog = InMemoryAssessmentCatalog()

    stored = catalog.add_assessment(_assessment())

    assert stored.title == "Quiz"
    assert [q.id for q in stored.questions] == ["a", "b"]
    assert stored.questions[1].prompt == "Later"
    assert catalog.get_assessment("quiz") == stored


@pytest.mark.parametrize(
    "overrides",
    [
        {"title": "   "},
        {"time_limit_minutes": 0},
        {"questions": (Question(id="a", prompt="P", points=-1),)},
        {"questions": (Question(id="a", prompt=" ", points=1),)},
        {"questions": (Question(id="a", prompt="P", points=1), Question(id="a", prompt="Q", points=1))},
    ],
)
def test_invalid_assessments_are_rejected(overrides):
    with pytest.raises(ValueError):
        InMemoryAssessmentCatalog().add_assessment(_assessment(**overrides))


def test_duplicate_ids_are_rejected():
    catalog = InMemoryAssessmentCatalog([_assessment()])

    with pytest.raises(ValueError):
        catalog.add_assessment(_assessment())


def test_unknown_assessment_raises_not_found():
    catalog = InMemoryAssessmentCatalog()

    with pytest.raises(NotFoundError):
        catalog.get_assessment("nope")
    with pytest.raises(NotFoundError):
        catalog.replace_assessment(_assessment())


def test_replace_swaps_question_set():
    catalog = InMemoryAssessmentCatalog([_assessment()])

    catalog.replace_assessment(_assessment(questions=(Question(id="c", prompt="New", points=1),)))

    assert [q.id for q in catalog.get_assessment("quiz").questions] == ["c"]
    assert catalog.list_assessments()[0].id == "quiz"
    assert len(catalog.list_assessments()) == 1


def test_due_date_is_normalized_to_utc():
    catalog = InMemoryAssessmentCatalog()

    naive = catalog.add_assessment(_assessment(due_at=datetime(2026, 1, 1, 12, 0)))
    offset = catalog.replace_assessment(
        _assessment(due_at=datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2))))
    )

    assert naive.due_at == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert naive.due_at.tzinfo is timezone.utc
    assert offset.due_at.tzinfo is timezone.utc
    assert offset.due_at == naive.due_at


def test_naive_due_date_is_enforced_on_start(clock, store):
    catalog = InMemoryAssessmentCatalog([_assessment(due_at=datetime(2026, 1, 1))])
    lifecycle = AttemptLifecycle(catalog, store, clock=clock)

    with pytest.raises(PastDueError):
        lifecycle.start("quiz", "lea")

    assert store.list_attempts() == []
