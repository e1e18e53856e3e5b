"""
Pytest configuration and fixtures.

Runs against an in-memory SQLite database (settings pinned in tests/__init__.py).
For row factories and the fake push client, see tests/__init__.py
"""
from tests import FakePushClient

import pytest
from fastapi.testclient import TestClient

from app import model  # noqa: F401  registers all tables
from app.core.database import Base, SessionLocal, engine
from app.core.dependencies import validate_session
from app.push.fcm import get_push_client


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def push():
    return FakePushClient()


@pytest.fixture
def client(db, push, monkeypatch):
    """
    TestClient authenticated as whatever uid `client.login(uid)` sets.

    The lifespan is not run, so Redis and Firebase are never contacted.
    """
    from main import app

    state = {"user_id": None}

    def fake_session():
        from app.core.exceptions import NotAuthenticated
        if not state["user_id"]:
            raise NotAuthenticated()
        return {"user_id": state["user_id"]}

    app.dependency_overrides[validate_session] = fake_session
    app.dependency_overrides[get_push_client] = lambda: push
    monkeypatch.setattr("app.service.message_event_service.get_push_client", lambda: push)

    test_client = TestClient(app)
    test_client.login = lambda uid: state.__setitem__("user_id", uid)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()
