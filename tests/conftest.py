import itertools

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from ticketing.api.app import create_app
from ticketing.core.config import Settings
from ticketing.db.engine import init_db, make_engine
from ticketing.domain.schemas import CallerIdentity
from ticketing.services.ticket_service import create_ticket
from ticketing.services.user_service import register_user

PASSWORD = "Secret@123"
SECRET = "test-secret-for-the-suite-0123456789"
FUTURE = "2099-01-01T10:00:00"


@pytest.fixture
def settings():
    return Settings(_env_file=None, DATABASE_URL="sqlite://", SECRET_KEY=SECRET, REQUEST_LOG_ENABLED=True)


@pytest.fixture
def engine(settings):
    engine = make_engine(settings.DATABASE_URL)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def make_user(session):
    seq = itertools.count(1)

    def _make(role="customer"):
        n = next(seq)
        return register_user(session, f"User {n}", f"user{n}@example.com", PASSWORD, role)

    return _make


@pytest.fixture
def make_ticket(session):
    def _make(creator, **overrides):
        fields = dict(
            title="Concert night",
            description="Front row seats",
            type="concert",
            venue="Main hall",
            status="open",
            price=150.0,
            priority="medium",
            due_date=FUTURE,
            created_by=creator.id,
        )
        fields.update(overrides)
        return create_ticket(session, CallerIdentity(user_id=creator.id), **fields)

    return _make


@pytest.fixture
def api_settings(tmp_path):
    # file database: the request log writes from a worker thread on its own connection
    return Settings(_env_file=None, DATABASE_URL=f"sqlite:///{tmp_path / 'api.db'}", SECRET_KEY=SECRET)


@pytest.fixture
def client(api_settings):
    with TestClient(create_app(api_settings)) as c:
        yield c
