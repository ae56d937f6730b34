"""Pytest configuration and fixtures."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["INITIAL_ADMIN_PASSWORD"] = "testpass123"
os.environ["INITIAL_ADMIN_USERNAME"] = "admin"
os.environ["BRACKET_STRICT_INVARIANTS"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient

from smkc.models import Tournament
from smkc.models.base import async_session_factory, init_db
from web.api.main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"

@pytest.fixture(autouse=True)
async def _init_db():
    """Ensure database tables exist before each test (ASGI lifespan doesn't run with httpx)."""
    await init_db()

@pytest.fixture
async def client():
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

@pytest.fixture
async def auth_headers(client):
    """Login as admin and return Authorization headers for protected endpoints."""
    r = await client.post(
        "/api/auth/login",
        json={"username": "admin", "password": "testpass123"},
    )
    assert r.status_code == 200, f"Login failed: {r.text}"
    token = r.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
async def db_session():
    async with async_session_factory() as session:
        yield session

@pytest.fixture
async def tournament(db_session):
    t = Tournament(name="Finals Test", status="open")
    db_session.add(t)
    await db_session.commit()
    return t

@pytest.fixture
def strict_invariants(monkeypatch):
    import config

    monkeypatch.setattr(config, "BRACKET_STRICT_INVARIANTS", True)
