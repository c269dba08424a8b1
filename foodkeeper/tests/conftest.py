"""
Shared fixtures: a fresh seeded SQLite database per test, service sessions,
HTTP clients for the REST and MCP apps, and authenticated users.
"""

import os
from datetime import date
from typing import Dict

# Settings are read once and cached; configure them before any app import
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DATABASE_SEED_ON_STARTUP"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from foodkeeper.api.dependencies import get_today
from foodkeeper.api.main import app as api_app
from foodkeeper.mcp.main import app as mcp_app
from foodkeeper.shared.database import Database
from foodkeeper.shared.models import Category, User
from foodkeeper.shared.seed_data import seed_reference_data

TODAY = date(2024, 1, 20)
PASSWORD = "Password123"


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
async def database(tmp_path):
    """Seeded database in a throwaway SQLite file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'foodkeeper.db'}")
    await db.create_all()
    async with db.session() as session:
        await seed_reference_data(session)
    yield db
    await db.dispose()


@pytest.fixture
async def session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
async def categories(session) -> Dict[str, int]:
    """Category ids by name."""
    result = await session.execute(select(Category.name, Category.id))
    return {name: category_id for name, category_id in result.all()}


@pytest.fixture
async def user(session) -> User:
    user = User(username="alice", email="alice@example.com", password_hash="not-a-real-hash")
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def other_user(session) -> User:
    user = User(username="bob", email="bob@example.com", password_hash="not-a-real-hash")
    session.add(user)
    await session.commit()
    return user


# ============================================================================
# HTTP Clients
# ============================================================================

@pytest.fixture
async def client(database):
    """REST API client; the app's lifespan is bypassed so the test database is used."""
    api_app.state.database = database
    api_app.dependency_overrides[get_today] = lambda: TODAY
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as client:
        yield client
    api_app.dependency_overrides.clear()


@pytest.fixture
async def mcp_client(database):
    mcp_app.state.database = database
    mcp_app.dependency_overrides[get_today] = lambda: TODAY
    async with AsyncClient(transport=ASGITransport(app=mcp_app), base_url="http://test") as client:
        yield client
    mcp_app.dependency_overrides.clear()


async def register_and_login(client: AsyncClient, username: str) -> Dict[str, str]:
    """Register a user through the API and return bearer headers."""
    response = await client.post(
        "/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": PASSWORD},
    )
    assert response.status_code == 201, response.text

    response = await client.post(
        "/auth/login",
        json={"email": f"{username}@example.com", "password": PASSWORD},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
async def auth_headers(client) -> Dict[str, str]:
    return await register_and_login(client, "carol")


@pytest.fixture
async def other_auth_headers(client) -> Dict[str, str]:
    return await register_and_login(client, "dave")
