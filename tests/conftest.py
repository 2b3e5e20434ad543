"""
Pytest configuration and shared fixtures.

Test environment variables are set before any app imports so settings,
the engine and the app are built against the test configuration.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_soil_alert.db")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "ACtest")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-token")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15005550006")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from sqlalchemy.exc import OperationalError

# Clear settings cache before any app imports to ensure test env vars are used
from soil_alert.config import get_settings
get_settings.cache_clear()

from soil_alert.errors import DeliveryError, FetchError
from soil_alert.storage import SessionLocal, Base, engine
from soil_alert.workflow import AlertWorkflow


class FakeSensor:
    """Returns a fixed reading, or raises the given FetchError."""

    def __init__(self, reading=42, error: FetchError = None):
        self.reading = reading
        self.error = error
        self.calls = 0

    def fetch_latest_moisture(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.reading


class FakeNotifier:
    """Records every message instead of sending it."""

    def __init__(self, error: DeliveryError = None):
        self.error = error
        self.sent = []

    def send_message(self, to: str, body: str) -> str:
        self.sent.append((to, body))
        if self.error is not None:
            raise self.error
        return f"SM{len(self.sent):032d}"


class BrokenSession:
    """Session whose every database call fails like a locked SQLite file."""

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def _fail(self, *args, **kwargs):
        raise OperationalError("SELECT farmers", {}, Exception("database is locked"))

    get = _fail
    commit = _fail

    def add(self, obj):
        pass

    def rollback(self):
        pass

    def close(self):
        pass


@pytest.fixture(scope="function")
def db_tables():
    """Fresh tables for each test."""
    from soil_alert import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(db_tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sensor():
    return FakeSensor()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def workflow(db_tables, sensor, notifier):
    return AlertWorkflow(
        sensor=sensor,
        notifier=notifier,
        session_factory=SessionLocal,
        threshold=30,
    )


@pytest.fixture
def client(db_tables, workflow):
    """Test client whose routes use the fake-backed workflow."""
    from fastapi.testclient import TestClient
    from soil_alert.main import app, get_workflow

    app.dependency_overrides[get_workflow] = lambda: workflow
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def broken_session():
    """Factory for sessions whose database calls all fail."""
    return BrokenSession
