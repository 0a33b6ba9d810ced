"""Shared fixtures: in-memory SQLite databases, seeded users and an HTTP client.

Route tests talk to the FastAPI app in-process through ``httpx.ASGITransport``
with the session dependency pointed at an aiosqlite database.  Service tests
use a plain sync ``Session`` against sqlite.
"""

from __future__ import annotations

import datetime
import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from newsdesk.api.auth import get_async_session
from newsdesk.db.models import Base, News, Profile, UserRole, utcnow
from newsdesk.server.auth import create_token
from newsdesk.server.main import app

ROLES = ("admin", "editor", "author", "student")


# ---------------------------------------------------------------------------
# Sync database (service-level tests)
# ---------------------------------------------------------------------------


@pytest.fixture
def sync_engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(sync_engine):
    with Session(sync_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def make_profile(db):
    def _make(role: str = "student", **fields) -> Profile:
        profile = Profile(
            id=fields.pop("id", uuid.uuid4()),
            email=fields.pop("email", f"{role}-{uuid.uuid4().hex[:6]}@example.com"),
            full_name=fields.pop("full_name", role.title()),
            role=UserRole(role),
            total_points=fields.pop("total_points", 0),
            **fields,
        )
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_news(db):
    def _make(title: str = "Mercado de criptomonedas sube", **fields) -> News:
        news = News(
            title=title,
            content=fields.pop("content", f"{title}. Contenido de prueba."),
            published_at=fields.pop("published_at", utcnow()),
            **fields,
        )
        db.add(news)
        db.commit()
        return news

    return _make


# ---------------------------------------------------------------------------
# Async database + HTTP client (route tests)
# ---------------------------------------------------------------------------


@pytest.fixture
async def async_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(async_engine, expire_on_commit=False)


@pytest.fixture
async def users(session_factory) -> dict[str, uuid.UUID]:
    """One profile per role, keyed by role name."""
    ids = {role: uuid.uuid4() for role in ROLES}
    async with session_factory() as session:
        for role, user_id in ids.items():
            session.add(
                Profile(
                    id=user_id,
                    email=f"{role}@example.com",
                    full_name=role.title(),
                    role=UserRole(role),
                    total_points=0,
                )
            )
        await session.commit()
    return ids


@pytest.fixture
def headers(users):
    """``headers("admin")`` returns an Authorization header for that role's user."""

    def _headers(role: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_token(users[role])}"}

    return _headers


@pytest.fixture
async def client(session_factory):
    async def _session_override():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session_override
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def add_rows(session_factory):
    """Insert ORM rows through the async database and return them."""

    async def _add(*rows):
        async with session_factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    return _add


def hours_ago(hours: float) -> datetime.datetime:
    return utcnow() - datetime.timedelta(hours=hours)
