from __future__ import annotations

import os

# keep the app's own engine off disk while tests import it
os.environ.setdefault("FARM_DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from farm_advisory.config import settings
from farm_advisory.db import Base, get_db
from farm_advisory.deps import get_clock
from farm_advisory.kv_store import KeyValueStore
from farm_advisory.main import app


UTC = timezone.utc
API = settings.api_prefix


class ClockStub:
    """Mutable clock so tests can control timestamps and 'today'."""

    def __init__(self, initial: datetime | None = None):
        self._now = initial or datetime(2024, 2, 15, 9, 0, tzinfo=UTC)

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **delta_kwargs) -> None:
        self._now += timedelta(**delta_kwargs)

    def __call__(self) -> datetime:
        return self._now


def _memory_sessionmaker():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def clock():
    return ClockStub()


@pytest.fixture
def store():
    """KeyValueStore over a fresh in-memory SQLite session."""
    TestingSessionLocal = _memory_sessionmaker()
    db = TestingSessionLocal()
    try:
        yield KeyValueStore(db)
    finally:
        db.close()


@pytest.fixture
def api_client(clock):
    """FastAPI TestClient wired to an isolated in-memory SQLite DB and a stub clock."""
    TestingSessionLocal = _memory_sessionmaker()

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as client:
        yield client, TestingSessionLocal, clock

    app.dependency_overrides.clear()


def read_key(sessionmaker_factory, key: str):
    with sessionmaker_factory() as session:
        return KeyValueStore(session).get(key)


def register(client: TestClient, email: str = "asha@example.com", password: str = "s3cret-pass", **extra) -> dict:
    body = {"email": email, "password": password, "name": "Asha", "farmSize": "5", "location": "Nashik"}
    body.update(extra)
    resp = client.post(f"{API}/signup", json=body)
    assert resp.status_code == 200, resp.json()
    return resp.json()["user"]


def auth_headers(client: TestClient, email: str = "asha@example.com", password: str = "s3cret-pass") -> dict:
    resp = client.post(f"{API}/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.json()
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}
