"""HTTP client for the Librarian API."""
import logging
from typing import Any

import httpx

from librarian.core.config import get_settings
from librarian.schemas.bookmark import (
    BookmarkCreate,
    BookmarkPatch,
    BookmarkRecord,
    BookmarkSummary,
    BookmarkUpdate,
)
from librarian.services.exceptions import (
    BookmarkConstraintError,
    BookmarkError,
    BookmarkNotFoundError,
    BookmarkValidationError,
    CSVFormatError,
)

logger = logging.getLogger(__name__)


def error_from_response(response: httpx.Response) -> BookmarkError | None:
    """
    Rebuild the repository error carried by an API error response.

    Returns None when the body isn't a structured bookmark error (e.g. a 404 for
    an unknown route, or a 500).
    """
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        return None
    if not isinstance(detail, dict):
        return None

    kind = detail.get("error")
    if kind == BookmarkValidationError.kind:
        return BookmarkValidationError(detail.get("fields", []))
    if kind == BookmarkConstraintError.kind:
        return BookmarkConstraintError(detail.get("field", ""), detail.get("value"))
    if kind == BookmarkNotFoundError.kind:
        return BookmarkNotFoundError(detail.get("key"))
    if kind == CSVFormatError.kind:
        return CSVFormatError(detail.get("reason", detail.get("message", "")), detail.get("line"))
    return None


class LibrarianClient:
    """
    Async client for the bookmark API.

    Use as an async context manager. Error responses are raised as the same
    BookmarkError subclasses the repository raises; anything else surfaces as
    httpx.HTTPStatusError.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_url,
            timeout=timeout if timeout is not None else settings.api_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "LibrarianClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.request(method, path, **kwargs)
        logger.debug("%s %s -> %s", method, path, response.status_code)
        if response.is_error:
            error = error_from_response(response)
            if error is not None:
                raise error
            response.raise_for_status()
        return response

    async def add(self, data: BookmarkCreate) -> BookmarkRecord:
        """Create a bookmark."""
        response = await self._request("POST", "/bookmarks/", json=data.model_dump())
        return BookmarkRecord.model_validate(response.json())

    async def get(self, bookmark_id: int) -> BookmarkRecord:
        """Get a bookmark by id."""
        response = await self._request("GET", f"/bookmarks/{bookmark_id}")
        return BookmarkRecord.model_validate(response.json())

    async def get_by_url(self, url: str) -> BookmarkRecord:
        """Get a bookmark by url."""
        response = await self._request("GET", "/bookmarks/by-url", params={"url": url})
        return BookmarkRecord.model_validate(response.json())

    async def update(self, data: BookmarkUpdate) -> BookmarkRecord:
        """Replace every mutable field of bookmark ``data.id``."""
        response = await self._request(
            "PUT", f"/bookmarks/{data.id}", json=data.model_dump(exclude={"id"}),
        )
        return BookmarkRecord.model_validate(response.json())

    async def patch(self, bookmark_id: int, data: BookmarkPatch) -> BookmarkRecord:
        """Update only the fields set on ``data``."""
        response = await self._request(
            "PATCH", f"/bookmarks/{bookmark_id}", json=data.model_dump(exclude_unset=True),
        )
        return BookmarkRecord.model_validate(response.json())

    async def delete(self, bookmark_id: int) -> None:
        """Delete a bookmark."""
        await self._request("DELETE", f"/bookmarks/{bookmark_id}")

    async def list(self) -> list[BookmarkSummary]:
        """List all bookmarks."""
        response = await self._request("GET", "/bookmarks/")
        return [BookmarkSummary.model_validate(item) for item in response.json()]

    async def import_csv(self, content: str) -> int:
        """Upload CSV text for import; returns the number of imported bookmarks."""
        response = await self._request(
            "POST",
            "/bookmarks/import",
            content=content.encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )
        return response.json()["imported"]
