"""
Inkwell Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the whole suite.
How:   Environment is set before any inkwell import so the settings
       singleton, the token codec and the password hasher pick up test values
       (fast bcrypt cost, zero retry back-off, a fixed signing secret).

Fixture Hierarchy (all function-scoped):
    ├── db_engine:        SQLite file database (aiosqlite) with tables created
    ├── session_factory:  async_sessionmaker bound to db_engine
    ├── fake_generator:   ContentGenerator returning a canned draft
    ├── app:              fresh create_app() with DB + generator overridden
    ├── client:           httpx AsyncClient over ASGITransport
    └── register:         helper → (token, user_id) for a new account
"""

import os

os.environ["JWT_SECRET"] = "test-secret-key-not-for-production"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["BCRYPT_SALT_ROUNDS"] = "4"
os.environ["RETRY_MAX_ATTEMPTS"] = "2"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["RETRY_MAX_WAIT"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests

from typing import AsyncGenerator, List, Tuple

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from inkwell.database import Base, get_db_session
from inkwell.main import create_app
from inkwell.services.gemini_service import get_content_generator
from inkwell.services.llm_base import ContentGenerator, GeneratedContent, GenerationOptions

import inkwell.models  # noqa: F401


class FakeGenerator(ContentGenerator):
    """Records calls and returns a fixed draft, or raises `error` when set."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, GenerationOptions]] = []
        self.error = None

    async def generate(self, topic: str, options: GenerationOptions) -> GeneratedContent:
        self.calls.append((topic, options))
        if self.error is not None:
            raise self.error
        return GeneratedContent(title=f"On {topic}", content="A generated body.")

    async def health_check(self) -> bool:
        return True


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A throwaway SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'inkwell_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def app(session_factory, fake_generator):
    """
    A fresh application per test: empty rate-limit windows, test database,
    fake content generator.
    """
    application = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = override_db_session
    application.dependency_overrides[get_content_generator] = lambda: fake_generator
    return application


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def register(client):
    """
    Register an account and return (token, user_id).

    Each call counts against the per-IP registration limit (5 per window).
    """

    async def _register(username: str, password: str = "secret1") -> Tuple[str, str]:
        response = await client.post(
            "/api/users/register",
            json={"username": username, "password": password},
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return body["token"], body["user"]["id"]

    return _register
