from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import build_engine, get_db, init_db
from main import app
from quotes import DEFAULT_QUOTES, QuoteCatalog
from share_routes import get_share_service
from share_service import ShareLinkService


START = datetime(2026, 2, 2, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when a test says so."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)

    def set(self, now: datetime):
        self.now = now


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'quote_share_test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog():
    return QuoteCatalog(DEFAULT_QUOTES)


@pytest.fixture
def clock():
    return FrozenClock(START)


@pytest.fixture
def service(catalog, clock):
    return ShareLinkService(catalog, clock=clock)


@pytest.fixture
def client(session_factory, service):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_share_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Register a user through the API and return (auth header, user payload)."""

    def _signup(email="reader@example.com", password="secret123", nickname=None):
        response = client.post(
            "/signup",
            json={"email": email, "password": password, "nickname": nickname},
        )
        assert response.status_code == 200, response.text
        payload = response.json()
        return {"Authorization": f"Bearer {payload['access_token']}"}, payload["user"]

    return _signup
