"""Shared fixtures: in-memory database, per-test uploads dir and channel."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from api.main import app
from core.config import AuthConfig, Settings, UploadConfig, get_settings
from core.database import get_session, get_session_factory, init_db, session_scope
from core.realtime import InMemoryChannel
from scripts.create_admin import ensure_admin


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite://",
        auth=AuthConfig(token_secret="test-secret", token_ttl_seconds=3600),
        uploads=UploadConfig(upload_dir=tmp_path / "uploads", max_file_size=1024 * 1024),
    )


@pytest_asyncio.fixture()
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
def channel() -> InMemoryChannel:
    return InMemoryChannel()


@pytest_asyncio.fixture()
async def client(session_factory, settings, channel):
    async def override_session():
        async with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings
    app.state.channel = channel

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
    app.state.channel = InMemoryChannel()


# ---------------------------------------------------------------------------
# Account helpers
# ---------------------------------------------------------------------------

@pytest.fixture()
def register_user(client):
    """Register through the API; returns the auth body plus ready headers."""

    async def _register(name: str, email: str, password: str = "password123") -> dict:
        resp = await client.post(
            "/api/auth/register", json={"name": name, "email": email, "password": password}
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        body["headers"] = {"Authorization": f"Bearer {body['token']}"}
        return body

    return _register


@pytest_asyncio.fixture()
async def admin(client, session_factory) -> dict:
    async with session_factory() as session:
        await ensure_admin(session, "Admin User", "admin@example.com", "admin123")
        await session.commit()
    resp = await client.post(
        "/api/auth/login", json={"email": "admin@example.com", "password": "admin123"}
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    body["headers"] = {"Authorization": f"Bearer {body['token']}"}
    return body


@pytest_asyncio.fixture()
async def alice(register_user) -> dict:
    return await register_user("Alice", "alice@example.com")


@pytest_asyncio.fixture()
async def bob(register_user) -> dict:
    return await register_user("Bob", "bob@example.com")
