from datetime import datetime, timedelta

import pytest
from sqlalchemy.pool import StaticPool

from recurrence_engine.db.config import build_engine
from recurrence_engine.db.init import init_db
from recurrence_engine.services.recurring_task_service import RecurringTaskService
from recurrence_engine.utils.metrics import metrics_collector

ORG = "org-1"
OTHER_ORG = "org-2"


class FakeClock:
    """Settable reference clock."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 1, 31, 9, 0))


@pytest.fixture
def service(engine, clock):
    return RecurringTaskService(engine, clock=clock)


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics_collector.reset()
    yield
    metrics_collector.reset()


@pytest.fixture
def make_template(service):
    def _make(organization_id=ORG, title="Review access logs", pattern="monthly", **kwargs):
        return service.create_template(organization_id, title, pattern, **kwargs)
    return _make
