"""Translation of repository errors into HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from librarian.services.exceptions import BookmarkError, BookmarkNotFoundError

logger = logging.getLogger(__name__)


def status_code_for(exc: BookmarkError) -> int:
    """
    HTTP status for a repository error.

    Not found is 404; validation, constraint and CSV format errors are client
    errors (400). Anything that isn't a BookmarkError never gets here and ends
    up as a 500.
    """
    if isinstance(exc, BookmarkNotFoundError):
        return 404
    return 400


async def bookmark_error_handler(request: Request, exc: BookmarkError) -> JSONResponse:
    """Render a BookmarkError as {"detail": {...}} with the matching status."""
    status_code = status_code_for(exc)
    logger.info(
        "%s %s failed with %s: %s",
        request.method,
        request.url.path,
        exc.kind,
        exc.message,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.to_dict()})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the repository error handlers on the app."""
    app.add_exception_handler(BookmarkError, bookmark_error_handler)
