"""Bookmark CRUD, import and export endpoints."""
import io

from fastapi import APIRouter, Depends, Query, Request, Response

from librarian.api.dependencies import get_repository
from librarian.schemas.bookmark import (
    BookmarkCreate,
    BookmarkPatch,
    BookmarkRecord,
    BookmarkSummary,
    BookmarkUpdate,
    ImportResponse,
)
from librarian.services import csv_io
from librarian.services.bookmark_repository import BookmarkRepository
from librarian.services.exceptions import CSVFormatError

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkRecord, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    repository: BookmarkRepository = Depends(get_repository),
) -> BookmarkRecord:
    """Create a new bookmark."""
    return await repository.add(data)


@router.get("/", response_model=list[BookmarkSummary])
async def list_bookmarks(
    repository: BookmarkRepository = Depends(get_repository),
) -> list[BookmarkSummary]:
    """List all bookmarks (summaries, without notes and document) in id order."""
    return await repository.list()


@router.get("/by-url", response_model=BookmarkRecord)
async def get_bookmark_by_url(
    url: str = Query(description="Exact URL of the bookmark"),
    repository: BookmarkRepository = Depends(get_repository),
) -> BookmarkRecord:
    """Get a single bookmark by URL."""
    return await repository.get_by_url(url)


@router.post("/import", response_model=ImportResponse)
async def import_bookmarks(
    request: Request,
    repository: BookmarkRepository = Depends(get_repository),
) -> ImportResponse:
    """
    Import bookmarks from a pipe-delimited CSV request body.

    Stops at the first bad row. Rows before it stay imported.
    """
    body = await request.body()
    try:
        text = body.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CSVFormatError("request body is not valid UTF-8") from e
    imported = await csv_io.import_csv(repository, io.StringIO(text, newline=""))
    return ImportResponse(imported=imported)


@router.get("/export")
async def export_bookmarks(
    repository: BookmarkRepository = Depends(get_repository),
) -> Response:
    """Export all bookmarks in the CSV import format."""
    buffer = io.StringIO()
    await csv_io.export_csv(repository, buffer)
    return Response(
        content=buffer.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="bookmarks.csv"'},
    )


@router.get("/{bookmark_id}", response_model=BookmarkRecord)
async def get_bookmark(
    bookmark_id: int,
    repository: BookmarkRepository = Depends(get_repository),
) -> BookmarkRecord:
    """Get a single bookmark by ID."""
    return await repository.get(bookmark_id)


@router.put("/{bookmark_id}", response_model=BookmarkRecord)
async def replace_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    repository: BookmarkRepository = Depends(get_repository),
) -> BookmarkRecord:
    """
    Replace a bookmark. Every mutable field is overwritten with the request body.

    The id in the path wins over any id in the body.
    """
    return await repository.update(data.model_copy(update={"id": bookmark_id}))


@router.patch("/{bookmark_id}", response_model=BookmarkRecord)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkPatch,
    repository: BookmarkRepository = Depends(get_repository),
) -> BookmarkRecord:
    """Update only the fields present in the request body."""
    update, fields = data.to_update(bookmark_id)
    return await repository.update(update, only_fields=fields)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: int,
    repository: BookmarkRepository = Depends(get_repository),
) -> None:
    """Delete a bookmark."""
    await repository.delete(bookmark_id)
