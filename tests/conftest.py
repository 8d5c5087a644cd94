"""Shared pytest fixtures.

Settings are read at import time, so the environment is pinned here before
any ``app`` module is imported.

Fixture overview
----------------
engine          - fresh in-memory SQLite (aiosqlite) engine with all tables
session_maker   - async session factory bound to ``engine``
client          - httpx AsyncClient against the FastAPI app, ``get_session``
                  overridden to use ``session_maker``
google_tokens   - fake Google ID-token verifier keyed by ID token string
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["ENV"] = "test"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from app.core.db import get_session  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import User  # noqa: E402,F401
from app.services import google_auth_service  # noqa: E402

GOOGLE_CLIENT_ID = os.environ["GOOGLE_CLIENT_ID"]
STRONG_PASSWORD = "Secret123!"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def google_tokens(monkeypatch):
    """Map of ID token -> verified claims; unknown tokens are rejected like google-auth does."""
    tokens: dict[str, dict] = {}

    def fake_verify(id_token: str) -> dict:
        if id_token not in tokens:
            raise ValueError("Could not verify token signature.")
        return tokens[id_token]

    monkeypatch.setattr(google_auth_service, "_verify_with_google", fake_verify)
    return tokens


def google_payload(sub: str, email: str, given_name: str = "Grace", family_name: str = "Hopper") -> dict:
    return {
        "iss": "https://accounts.google.com",
        "aud": GOOGLE_CLIENT_ID,
        "sub": sub,
        "email": email,
        "email_verified": True,
        "given_name": given_name,
        "family_name": family_name,
    }


def user_payload(email: str = "ada@example.com", **overrides) -> dict:
    data = {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email": email,
        "password": STRONG_PASSWORD,
    }
    data.update(overrides)
    return data


async def register(client: AsyncClient, email: str = "ada@example.com", **overrides) -> tuple[dict, str]:
    """Register a user and return (user json, access token); leaves the cookie jar empty."""
    resp = await client.post("/auth/register", json=user_payload(email, **overrides))
    assert resp.status_code == 201, resp.text
    client.cookies.clear()
    body = resp.json()
    return body["user"], body["access_token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
