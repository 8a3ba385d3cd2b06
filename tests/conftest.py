"""Shared fixtures: a file-backed SQLite database per test and an ASGI client bound to it."""

import os
import tempfile
from contextlib import asynccontextmanager

# Settings are read at import time; point them at a throwaway database first.
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/import.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import httpx
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tuitter.app import app
from tuitter.constants import COOKIE_NAME
from tuitter.db.session import get_session_factory, transaction
from tuitter.models import Base
from tuitter.services import session_service, user_service

DEFAULT_PASSWORD = "correct-horse"


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@asynccontextmanager
async def api_client(factory):
    """ASGI client whose requests run against ``factory``."""
    app.dependency_overrides[get_session_factory] = lambda: factory
    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(session_factory):
    async with api_client(session_factory) as c:
        yield c


@pytest_asyncio.fixture
async def single_connection_factory(session_factory, tmp_path):
    """Factory over the same database with a one-connection pool that times out after a second."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", pool_size=1, max_overflow=0, pool_timeout=1,
    )
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


async def create_user(factory, tag: str, features: list[str] | None = None, password: str = DEFAULT_PASSWORD):
    """Insert a user through the service layer; ``features`` are granted on top of the defaults."""
    async with transaction(factory) as db:
        user = await user_service.create(db, {
            "tag": tag,
            "username": f"{tag} name",
            "email": f"{tag.lower()}@example.com",
            "password": password,
        })
        if features:
            user = await user_service.add_features(db, user, features)
    return user


async def login(factory, user) -> dict[str, str]:
    """Open a session for ``user`` and return the cookie header carrying it."""
    async with transaction(factory) as db:
        session = await session_service.create(db, user.id)
    return auth_header(session.token)


def auth_header(token: str) -> dict[str, str]:
    # Session cookies are Secure, so they are sent explicitly over the plain-http test transport
    return {"Cookie": f"{COOKIE_NAME}={token}"}


@pytest_asyncio.fixture
async def make_user(session_factory):
    async def _make(tag: str, features: list[str] | None = None, password: str = DEFAULT_PASSWORD):
        return await create_user(session_factory, tag, features, password)
    return _make


@pytest_asyncio.fixture
async def login_as(session_factory):
    async def _login(user) -> dict[str, str]:
        return await login(session_factory, user)
    return _login
