"""
Pytest configuration and fixtures for the auth core.
SQL-backed API tests run against in-memory SQLite; service tests use the in-memory stores.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs512")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("NOTIFIER_BACKEND", "log")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from login_portal.core.config import get_settings
from login_portal.core.database import Base, get_db
from login_portal.core.deps import get_notifier, get_store_db, memory_stores
from login_portal.core.security import get_password_hash
from login_portal.main import app
from login_portal.services.auth import AuthService
from login_portal.services.tokens import TokenService
from login_portal.stores.memory import MemoryCredentialStore, MemoryTokenStore
from login_portal.stores.sql import SqlCredentialStore

TEST_EMAIL = "test.user@example.com"
TEST_PASSWORD = "Test@1234"


class FakeClock:
    def __init__(self, start: datetime | None = None):
        self.now = start or datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotifier:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Exception | None = None

    def send_password_reset(self, recipient: str, reset_token: str, reset_url: str) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"recipient": recipient, "reset_token": reset_token, "reset_url": reset_url})


class RecordingAudit:
    def __init__(self):
        self.events: list[tuple[str, int | None, str | None]] = []

    def __call__(self, action: str, user_id: int | None = None, details: str | None = None) -> None:
        self.events.append((action, user_id, details))

    @property
    def actions(self) -> list[str]:
        return [action for action, _, _ in self.events]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def credentials():
    return MemoryCredentialStore()


@pytest.fixture
def token_store():
    return MemoryTokenStore()


@pytest.fixture
def tokens(token_store, clock):
    return TokenService(token_store, clock=clock)


@pytest.fixture
def auth_service(credentials, tokens, notifier, audit, clock):
    return AuthService(credentials, tokens, notifier, audit=audit, clock=clock)


@pytest.fixture
def memory_user(credentials, clock):
    return credentials.insert(TEST_EMAIL, "Test User", get_password_hash(TEST_PASSWORD), clock())


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def client(engine, notifier):
    """FastAPI test client backed by the in-memory SQLite engine."""
    testing_session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def _override_get_db():
        db = testing_session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_store_db] = _override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def test_user(db_session):
    return SqlCredentialStore(db_session).insert(
        TEST_EMAIL, "Test User", get_password_hash(TEST_PASSWORD), datetime.now(timezone.utc)
    )


@pytest.fixture
def auth_headers(client, test_user):
    response = client.post("/api/v1/auth/login", json={"email": TEST_EMAIL, "password": TEST_PASSWORD})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def memory_client(monkeypatch, notifier):
    """Test client running on the in-memory stores; any SQL session request fails the test."""

    def _no_sql():
        raise AssertionError("memory backend opened a SQL session")

    monkeypatch.setattr(get_settings(), "STORE_BACKEND", "memory")
    monkeypatch.setattr("login_portal.core.deps.get_db", _no_sql)
    memory_stores.cache_clear()
    app.dependency_overrides[get_db] = _no_sql
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    memory_stores.cache_clear()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine whose connections can write from separate threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'tokens.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # SQLite allows one writer; BEGIN IMMEDIATE makes contending writers wait on the busy timeout.
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
