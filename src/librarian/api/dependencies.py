"""FastAPI dependencies for injection."""
from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from librarian.services.bookmark_repository import BookmarkRepository

__all__ = [
    "get_async_session",
    "get_repository",
]


def get_repository(request: Request) -> BookmarkRepository:
    """Return the repository built by the application lifespan."""
    return request.app.state.repository


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Yield a plain read-only session (used by the health check)."""
    async with request.app.state.session_factory() as session:
        yield session
