"""
Pytest configuration and shared fixtures for platform_connect
"""

import os
from datetime import datetime, timezone

from cryptography.fernet import Fernet

# Must be set before any app import: the engine and the token cipher are built at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("OAUTH_TOKEN_KEY", Fernet.generate_key().decode())

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from platform_connect.main import app
from platform_connect.dependencies.db import get_session_dep
from platform_connect.dependencies.http import get_http_client
from platform_connect.models.platform_connection import PlatformConnection

APP_BASE_URL = "https://app.example.com"

ASANA_TOKEN_URL = "https://app.asana.com/-/oauth_token"
ASANA_ME_URL = "https://app.asana.com/api/1.0/users/me"
CLICKUP_TOKEN_URL = "https://api.clickup.com/api/v2/oauth/token"
CLICKUP_USER_URL = "https://api.clickup.com/api/v2/user"
MONDAY_TOKEN_URL = "https://auth.monday.com/oauth2/token"
MONDAY_API_URL = "https://api.monday.com/v2"
NOTION_TOKEN_URL = "https://api.notion.com/v1/oauth/token"


class FakeProviderAPI:
    """In-process stand-in for the provider endpoints, plugged into httpx.MockTransport."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, url, status_code=200, json=None):
        self.routes[(method, url)] = (status_code, json)

    def calls_to(self, url):
        return [r for r in self.calls if f"{r.url.scheme}://{r.url.host}{r.url.path}" == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        if key not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        status_code, body = self.routes[key]
        return httpx.Response(status_code, json=body)


def token_body(access_token="access-1", refresh_token="refresh-1", expires_in=3600, **extra):
    body = {"access_token": access_token, "token_type": "bearer"}
    if refresh_token is not None:
        body["refresh_token"] = refresh_token
    if expires_in is not None:
        body["expires_in"] = expires_in
    body.update(extra)
    return body


@pytest.fixture(autouse=True)
def provider_env(monkeypatch):
    """Configured credentials for every provider, all enabled."""
    monkeypatch.setenv("APP_BASE_URL", APP_BASE_URL)
    monkeypatch.delenv("FAIL_ON_PERSISTENCE_ERROR", raising=False)
    for prefix in ("ASANA", "CLICKUP", "MONDAY", "NOTION"):
        monkeypatch.setenv(f"{prefix}_CLIENT_ID", f"{prefix.lower()}-client")
        monkeypatch.setenv(f"{prefix}_CLIENT_SECRET", f"{prefix.lower()}-secret")
        monkeypatch.delenv(f"{prefix}_REDIRECT_URI", raising=False)
        monkeypatch.delenv(f"{prefix}_ENABLED", raising=False)


@pytest.fixture
def fake_providers():
    fake = FakeProviderAPI()
    fake.add("POST", ASANA_TOKEN_URL, json=token_body())
    fake.add("GET", ASANA_ME_URL, json={"data": {"gid": "1200001", "name": "Ada Asana"}})
    fake.add("POST", CLICKUP_TOKEN_URL, json=token_body(refresh_token=None, expires_in=None))
    fake.add("GET", CLICKUP_USER_URL, json={"user": {"id": 81234, "username": "cu-user"}})
    fake.add("POST", MONDAY_TOKEN_URL, json=token_body(refresh_token=None, expires_in=None, scope="me:read boards:read"))
    fake.add("POST", MONDAY_API_URL, json={"data": {"me": {"id": 4455, "name": "Mo Monday", "email": "mo@example.com"}}})
    fake.add("POST", NOTION_TOKEN_URL, json={
        "access_token": "secret_notion",
        "token_type": "bearer",
        "bot_id": "bot-1",
        "workspace_name": "Acme HQ",
        "workspace_id": "ws-1",
        "owner": {"type": "user", "user": {"id": "notion-user-1", "name": "Nora Notion"}},
    })
    return fake


@pytest.fixture
async def test_engine():
    """In-memory SQLite shared over one connection."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def stored_connections(test_engine):
    """Reads platform_connections through a session of its own."""

    async def _read(platform=None):
        async with AsyncSession(test_engine) as session:
            q = select(PlatformConnection)
            if platform:
                q = q.where(PlatformConnection.platform == platform)
            res = await session.execute(q)
            return list(res.scalars().all())

    return _read


@pytest.fixture
async def http_client(fake_providers):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_providers)) as client:
        yield client


@pytest.fixture
async def test_client(test_session, fake_providers):
    """App client with the database and the provider http client overridden."""

    async def override_session():
        yield test_session

    async def override_http():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake_providers)) as client:
            yield client

    app.dependency_overrides[get_session_dep] = override_session
    app.dependency_overrides[get_http_client] = override_http

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back without tzinfo; they were written as UTC."""
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def redirect_params(response: httpx.Response) -> dict:
    assert response.status_code == 307, response.text
    return dict(httpx.URL(response.headers["location"]).params)
