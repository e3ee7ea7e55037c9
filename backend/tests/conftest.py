"""
Pytest configuration for MemberHub backend tests.

Every test gets a fresh in-memory SQLite database, an in-process fake
Redis and a recorder in place of Celery's ``delay`` so nothing leaves the
process.
"""

from __future__ import annotations

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("ENVIRONMENT", "development")

import time
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
import pytest_asyncio
from celery.app.task import Task
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from memberhub.core.database import get_db
from memberhub.core.dependencies import get_redis
from memberhub.core.security import create_access_token, hash_password
from memberhub.main import app
from memberhub.models import Base, Organization, Profile, ProfileRole, ProfileStatus, User

TEST_PASSWORD = "password123"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeRedis:
    """The handful of Redis commands the API uses, kept in a dict."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expiry: dict[str, float] = {}

    def _alive(self, key: str) -> bool:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline < time.time():
            self.store.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.store

    async def get(self, key: str) -> str | None:
        return self.store.get(key) if self._alive(key) else None

    async def setex(self, key: str, seconds: int, value: Any) -> bool:
        self.store[key] = str(value)
        self.expiry[key] = time.time() + seconds
        return True

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._alive(key))

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.expiry.pop(key, None)
        return removed

    async def incr(self, key: str) -> int:
        value = int(self.store.get(key, "0")) + 1 if self._alive(key) else 1
        self.store[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        if not self._alive(key):
            return False
        self.expiry[key] = time.time() + seconds
        return True


@dataclass
class QueuedTasks:
    """Celery tasks queued with ``.delay`` during a test."""

    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def named(self, suffix: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name.endswith(suffix)]


@dataclass
class Actor:
    user: User
    headers: dict[str, str]
    profile: Profile | None = None


# ---------------------------------------------------------------------------
# Database, Redis and client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def queued(monkeypatch) -> QueuedTasks:
    recorder = QueuedTasks()

    def fake_delay(self, *args, **kwargs):
        recorder.calls.append((self.name, kwargs))

    monkeypatch.setattr(Task, "delay", fake_delay)
    return recorder


@pytest.fixture
def sent_emails(monkeypatch) -> list[dict[str, Any]]:
    """Capture direct sends made by services outside Celery."""
    outbox: list[dict[str, Any]] = []

    def fake_send(**kwargs):
        outbox.append(kwargs)
        return f"msg-{len(outbox)}"

    monkeypatch.setattr("memberhub.core.email.send_email", fake_send)
    return outbox


@pytest_asyncio.fixture
async def client(session_factory, fake_redis, queued) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_redis() -> FakeRedis:
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------

def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(user.id))}"}


async def make_user(
    db: AsyncSession,
    email: str,
    display_name: str = "Test User",
    is_super_admin: bool = False,
) -> User:
    user = User(
        email=email.lower(),
        password_hash=hash_password(TEST_PASSWORD),
        display_name=display_name,
        is_active=True,
        is_super_admin=is_super_admin,
        email_verified=True,
    )
    db.add(user)
    await db.commit()
    return user


async def make_org(db: AsyncSession, slug: str = "bell-ringers", name: str = "Bell Ringers") -> Organization:
    org = Organization(name=name, slug=slug, settings={}, is_active=True)
    db.add(org)
    await db.commit()
    return org


async def make_profile(
    db: AsyncSession,
    org: Organization,
    user: User,
    role: ProfileRole = ProfileRole.member,
    status: ProfileStatus = ProfileStatus.active,
    first_name: str = "Test",
    last_name: str = "User",
) -> Profile:
    profile = Profile(
        org_id=org.id,
        user_id=user.id,
        email=user.email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        status=status,
        is_active=status == ProfileStatus.active,
    )
    db.add(profile)
    await db.commit()
    return profile


async def make_actor(
    db: AsyncSession,
    org: Organization,
    email: str,
    role: ProfileRole = ProfileRole.member,
    status: ProfileStatus = ProfileStatus.active,
    first_name: str = "Test",
    last_name: str = "User",
) -> Actor:
    user = await make_user(db, email, display_name=f"{first_name} {last_name}")
    profile = await make_profile(db, org, user, role, status, first_name, last_name)
    return Actor(user=user, headers=auth_headers(user), profile=profile)


# ---------------------------------------------------------------------------
# Common actors
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def org(db) -> Organization:
    return await make_org(db)


@pytest_asyncio.fixture
async def admin(db, org) -> Actor:
    return await make_actor(db, org, "admin@example.com", ProfileRole.admin, first_name="Ada", last_name="Admin")


@pytest_asyncio.fixture
async def member(db, org) -> Actor:
    return await make_actor(db, org, "member@example.com", first_name="Mia", last_name="Member")


@pytest_asyncio.fixture
async def super_admin(db) -> Actor:
    user = await make_user(db, "root@example.com", display_name="Platform Admin", is_super_admin=True)
    return Actor(user=user, headers=auth_headers(user))
