from datetime import datetime, timedelta, timezone

import pytest

from attempt_app.core.attempt_manager import AttemptManager
from attempt_app.core.models import Assessment, Question
from attempt_app.core.services.assessment_catalog import InMemoryAssessmentCatalog
from attempt_app.core.services.attempt_lifecycle import AttemptLifecycle
from attempt_app.core.services.attempt_store import InMemoryAttemptStore
from attempt_app.core.services.authorization import StaticAuthorizer
from attempt_app.core.services.scoring_engine import ScoringEngine

T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_timed_assessment():
    return Assessment(
        id="essay",
        title="Timed essay",
        time_limit_minutes=10,
        questions=(
            Question(id="q1", prompt="Define entropy.", points=5, order_index=0),
            Question(id="q2", prompt="Define enthalpy.", points=3, order_index=1),
            Question(id="q3", prompt="Define *free energy*.", points=2, order_index=2),
        ),
    )


def make_open_assessment():
    return Assessment(
        id="open",
        title="Untimed reflection",
        questions=(Question(id="q1", prompt="What did you learn?", points=4, order_index=0),),
    )


def make_past_due_assessment():
    return Assessment(
        id="late",
        title="Closed quiz",
        due_at=T0 - timedelta(hours=1),
        questions=(Question(id="q1", prompt="Too late?", points=1, order_index=0),),
    )


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def catalog():
    return InMemoryAssessmentCatalog(
        [make_timed_assessment(), make_open_assessment(), make_past_due_assessment()]
    )


@pytest.fixture
def store():
    return InMemoryAttemptStore()


@pytest.fixture
def authorizer():
    return StaticAuthorizer(reviewers={"essay": {"rev"}, "open": {"rev"}, "late": {"rev"}})


@pytest.fixture
def lifecycle(catalog, store, clock):
    return AttemptLifecycle(catalog, store, clock=clock)


@pytest.fixture
def scoring(catalog, store):
    return ScoringEngine(catalog, store)


@pytest.fixture
def manager(catalog, store, authorizer, clock):
    return AttemptManager(catalog=catalog, store=store, authorizer=authorizer, clock=clock)
