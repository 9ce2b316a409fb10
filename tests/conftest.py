"""Pytest fixtures for testing."""
from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from librarian.api.dependencies import get_async_session, get_repository
from librarian.api.main import create_app
from librarian.core.config import Settings, get_settings
from librarian.db.session import create_session_factory
from librarian.services.bookmark_repository import BookmarkRepository


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Make every test read settings fresh from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite database file private to the test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'librarian-test.db'}"


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with the schema in place."""
    engine = create_async_engine(database_url, echo=False)
    await BookmarkRepository(create_session_factory(engine)).initialize()

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(async_engine)


@pytest.fixture
def repository(session_factory: async_sessionmaker[AsyncSession]) -> BookmarkRepository:
    """Repository over an empty test database."""
    return BookmarkRepository(session_factory)


@pytest.fixture
def app(
    repository: BookmarkRepository,
    session_factory: async_sessionmaker[AsyncSession],
) -> Generator[FastAPI]:
    """Application wired to the test repository instead of the lifespan-built one."""
    test_app = create_app(Settings(_env_file=None))

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    test_app.dependency_overrides[get_repository] = lambda: repository
    test_app.dependency_overrides[get_async_session] = override_get_async_session

    yield test_app

    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """HTTP client talking to the app in-process."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client
