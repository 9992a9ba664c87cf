"""
Shared pytest fixtures for the API test suite.

Provides:
- an in-memory SQLite database shared by service calls and the TestClient
- an in-process stand-in for the Redis client (sessions, rate limits, queues)
- user/video factories with deterministic creation times
- authenticated clients that carry a session cookie and a CSRF token
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SESSION_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import cache
import jobs
import session as session_module
import worker
from db import get_db
from main import app
from models import Base, User, Video


# =============================================================================
# Redis stand-in
# =============================================================================

class FakeRedis:
    """Dict-backed subset of the redis-py client used by the app."""

    def __init__(self):
        self.store = {}
        self.lists = {}
        self.ttls = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None, px=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex * 1000
        elif px is not None:
            self.ttls[key] = px
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += int(self.store.pop(key, None) is not None)
            removed += int(self.lists.pop(key, None) is not None)
            self.ttls.pop(key, None)
        return removed

    def expire(self, key, seconds):
        if key not in self.store:
            return False
        self.ttls[key] = seconds * 1000
        return True

    def pexpire(self, key, ms):
        if key not in self.store:
            return False
        self.ttls[key] = ms
        return True

    def incr(self, key):
        value = int(self.store.get(key, 0)) + 1
        self.store[key] = str(value)
        return value

    def lpush(self, key, *values):
        items = self.lists.setdefault(key, [])
        for v in values:
            items.insert(0, v)
        return len(items)

    def ltrim(self, key, start, end):
        items = self.lists.get(key, [])
        self.lists[key] = items[start:end + 1]
        return True

    def brpop(self, key, timeout=0):
        items = self.lists.get(key)
        if not items:
            return None
        return key, items.pop()


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    for module in (cache, session_module, jobs, worker):
        monkeypatch.setattr(module, "redis_client", fake)
    return fake


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    monkeypatch.setattr(worker, "SessionLocal", factory)
    return factory


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def clock():
    """Strictly increasing timestamps, one minute apart."""
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    ticks = count()
    return lambda: start + timedelta(minutes=next(ticks))


@pytest.fixture
def make_user(db, clock):
    def _make(username, email=None):
        u = User(
            email=email or f"{username}@mail.com",
            username=username,
            created_at=clock(),
        )
        db.add(u)
        db.commit()
        db.refresh(u)
        return u
    return _make


@pytest.fixture
def make_video(db, clock):
    def _make(owner, title="Video", description="", url=None):
        v = Video(
            user_id=owner.id,
            title=title,
            description=description,
            url=url or f"https://cdn.example.org/{title.replace(' ', '_')}.mp4",
            created_at=clock(),
        )
        db.add(v)
        db.commit()
        db.refresh(v)
        return v
    return _make


# =============================================================================
# HTTP clients
# =============================================================================

@pytest.fixture
def app_client(session_factory, fake_redis):
    """Factory for TestClients; pass a user to get a signed-in client."""

    def override_get_db():
        s = session_factory()
        try:
            yield s
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db

    def _client(user=None, csrf=True):
        c = TestClient(app)
        if user is not None:
            sid = session_module.create_session(str(user.id))
            c.cookies.set("sid", sid)
        if csrf:
            token = c.get("/auth/csrf").json()["csrf"]
            c.headers["x-csrf-token"] = token
        return c

    yield _client
    app.dependency_overrides.clear()


@pytest.fixture
def client(app_client):
    """Anonymous client with a valid CSRF token."""
    return app_client()
