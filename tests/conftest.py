"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Test Setup:
-----------
- SQLite in memory (aiosqlite) instead of PostgreSQL
- InMemoryVectorIndex instead of Pinecone / pgvector
- StubEmbeddingClient: deterministic vectors, no network
- The app gets a pre-built ServiceContainer, so the lifespan never
  connects to real backends

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import hashlib
import os

# Environment must be in place before recall.core.config is imported
os.environ.update({
    "APP_ENV": "test",
    "DEBUG": "false",
    "SECRET_KEY": "test-secret-key-for-recall-at-least-32-chars",
    "DATABASE_URL": "sqlite+aiosqlite://",
    "EMBEDDING_PROVIDER": "openai",
    "OPENAI_API_KEY": "sk-test",
    "EMBEDDING_DIMENSION": "8",
    "VECTOR_DB_TYPE": "memory",
    "RATE_LIMIT_ENABLED": "false",
    "RATE_LIMIT_BACKEND": "memory",
    "LOG_FORMAT": "text",
    "LOG_LEVEL": "WARNING",
    "CELERY_BROKER_URL": "memory://",
    "CELERY_RESULT_BACKEND": "cache+memory://",
})

from typing import Any, AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

import recall.models  # noqa: F401
from recall.core.config import Settings
from recall.core.errors import IndexQueryError, IndexWriteError
from recall.db.base import Base
from recall.main import create_app
from recall.services.container import ServiceContainer
from recall.services.embeddings import EmbeddingClient
from recall.services.vector_index import IndexEntry, IndexMatch, InMemoryVectorIndex


# ================================
# Test Doubles
# ================================

class StubEmbeddingClient(EmbeddingClient):
    """
    Deterministic embeddings without a network.

    - texts in `vectors` get exactly that vector
    - any other text gets a vector derived from its sha256
    - set `error` to make every call fail with it
    """

    def __init__(self, dimension: int = 8):
        super().__init__(dimension=dimension)
        self.vectors: dict[str, list[float]] = {}
        self.calls: list[str] = []
        self.error: Optional[Exception] = None

    async def _embed(self, text: str) -> Any:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        if text in self.vectors:
            return self.vectors[text]
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [byte / 255.0 + 0.01 for byte in digest[: self.dimension]]


class FlakyVectorIndex(InMemoryVectorIndex):
    """In-memory index whose writes and queries can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_upsert = False
        self.fail_delete = False
        self.fail_query = False
        self.upserts: list[str] = []

    async def upsert(self, entry: IndexEntry) -> None:
        if self.fail_upsert:
            raise IndexWriteError("index unavailable", item_id=entry.id)
        self.upserts.append(entry.id)
        await super().upsert(entry)

    async def delete(self, ids: list[str]) -> None:
        if self.fail_delete:
            raise IndexWriteError("index unavailable", item_id=ids[0])
        await super().delete(ids)

    async def query(self, vector: list[float], owner_id: str, top_k: int) -> list[IndexMatch]:
        if self.fail_query:
            raise IndexQueryError("index unavailable")
        return await super().query(vector, owner_id, top_k)


# ================================
# Settings & Database Fixtures
# ================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings()


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    Fresh in-memory SQLite database per test.

    StaticPool keeps a single connection, so every session sees the
    same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


# ================================
# Service Fixtures
# ================================

@pytest.fixture
def embedder() -> StubEmbeddingClient:
    return StubEmbeddingClient(dimension=8)


@pytest.fixture
def vector_index() -> FlakyVectorIndex:
    return FlakyVectorIndex()


@pytest.fixture
def services(test_settings, test_engine, embedder, vector_index) -> ServiceContainer:
    """ServiceContainer wired around the stub embedder and in-memory index."""
    return ServiceContainer.assemble(
        settings=test_settings,
        engine=test_engine,
        embedder=embedder,
        index=vector_index,
    )


# ================================
# FastAPI Client Fixtures
# ================================

@pytest.fixture
def test_app(services):
    return create_app(services=services)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client for testing FastAPI endpoints.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac


# ================================
# User Fixtures
# ================================

async def signup_and_login(
    client: AsyncClient,
    email: str,
    password: str = "testpass123",
    display_name: str = "Test User",
) -> dict[str, Any]:
    """Create an account through the API and return its uid, token and auth headers."""
    response = await client.post(
        "/auth/signup",
        json={"email": email, "password": password, "displayName": display_name},
    )
    assert response.status_code == 201, response.text
    uid = response.json()["uid"]

    response = await client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["idToken"]

    return {
        "uid": uid,
        "token": token,
        "headers": {"Authorization": f"Bearer {token}"},
    }


@pytest_asyncio.fixture
async def user_one(client: AsyncClient) -> dict[str, Any]:
    return await signup_and_login(client, "one@example.com", display_name="User One")


@pytest_asyncio.fixture
async def user_two(client: AsyncClient) -> dict[str, Any]:
    return await signup_and_login(client, "two@example.com", display_name="User Two")


@pytest.fixture
def auth_headers(user_one) -> dict[str, str]:
    return user_one["headers"]


# ================================
# Utility Fixtures
# ================================

@pytest.fixture
def sample_content() -> dict:
    """A valid content submission (wire format)."""
    return {
        "type": "document",
        "title": "Deep Work",
        "content": "Focus techniques for knowledge workers",
        "tags": ["focus"],
    }


# ================================
# Pytest Hooks
# ================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires network and API keys)"
    )
