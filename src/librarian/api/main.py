"""FastAPI application entry point."""
import logging
import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from librarian import __version__
from librarian.api.errors import register_exception_handlers
from librarian.api.routers import bookmarks, health
from librarian.core.config import Settings, get_settings
from librarian.db.session import create_engine_from_settings, create_session_factory
from librarian.services.bookmark_repository import BookmarkRepository

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Build the database engine and repository on startup, dispose them on shutdown."""
    app_settings: Settings = app.state.settings
    engine = create_engine_from_settings(app_settings)
    session_factory = create_session_factory(engine)
    repository = BookmarkRepository(session_factory)
    await repository.initialize()

    app.state.session_factory = session_factory
    app.state.repository = repository
    logger.info("Bookmark store ready at %s", engine.url.render_as_string(hide_password=True))

    yield

    await engine.dispose()
    app.state.repository = None
    app.state.session_factory = None


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, echo it back and log the request with it."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Assign the request id, time the request and log the outcome."""
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "[%s] %s %s -> %s (%.1f ms)",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use; defaults to get_settings().
    """
    app_settings = app_settings or get_settings()
    app = FastAPI(
        title="Librarian API",
        description="A personal bookmark manager.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    register_exception_handlers(app)

    app.add_middleware(RequestIDMiddleware)
    if app_settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=app_settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(health.router)
    app.include_router(bookmarks.router)
    return app


app = create_app()
