"""Pytest configuration and fixtures for guestbook tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ADMIN_PASSWORD"] = "testpass123"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["TURNSTILE_ENABLED"] = "false"
os.environ["ENTRY_MODERATION"] = "true"

import pytest
from httpx import ASGITransport, AsyncClient

import config
from guestbook.models import Base, ensure_schema
from guestbook.models.base import engine
from web.api.main import app

BASE_URL = "https://test"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
async def _reset_db():
    """Fresh tables for every test (ASGI lifespan doesn't run with httpx)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await ensure_schema()


@pytest.fixture
async def client():
    """Async HTTP client for testing the app. HTTPS so Secure cookies round-trip."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url=BASE_URL,
    ) as ac:
        yield ac


@pytest.fixture
async def admin_client(client):
    """Client logged in as the admin."""
    r = await client.post("/login", data={"password": "testpass123"})
    assert r.status_code == 200, f"Login failed: {r.text}"
    token = r.headers["set-cookie"].split(";", 1)[0].split("=", 1)[1]
    client.cookies.set(config.SESSION_COOKIE_NAME, token)
    return client
