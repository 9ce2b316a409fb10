"""Bookmark repository: validated, uniqueness-checked CRUD over the bookmarks table."""
import asyncio
import logging
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from librarian.models.base import Base
from librarian.models.bookmark import TITLE_UNIQUE_INDEX, URL_UNIQUE_INDEX, Bookmark
from librarian.schemas.bookmark import (
    MUTABLE_FIELDS,
    BookmarkCreate,
    BookmarkRecord,
    BookmarkSummary,
    BookmarkUpdate,
)
from librarian.services.exceptions import (
    BookmarkConstraintError,
    BookmarkNotFoundError,
    BookmarkValidationError,
)
from librarian.services.validation import validate_bookmark

logger = logging.getLogger(__name__)

# Markers that identify which unique index an IntegrityError came from.
# PostgreSQL reports the index name, SQLite reports "table.column".
_UNIQUE_MARKERS = (
    ("title", (TITLE_UNIQUE_INDEX, "bookmarks.title")),
    ("url", (URL_UNIQUE_INDEX, "bookmarks.url")),
)


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def _raise_if_invalid(candidate: object) -> None:
    invalid = validate_bookmark(candidate)
    if invalid:
        raise BookmarkValidationError(invalid)


def _constraint_error_from(
    error: IntegrityError,
    values: dict[str, str],
) -> BookmarkConstraintError | None:
    """Map a unique-index violation to a constraint error, or None if it is something else."""
    message = str(error.orig) if error.orig is not None else str(error)
    for field, markers in _UNIQUE_MARKERS:
        if any(marker in message for marker in markers):
            return BookmarkConstraintError(field, values.get(field))
    return None


class BookmarkRepository:
    """
    Durable bookmark store.

    Owns no global state: the session factory is passed in by whoever builds the
    application (API lifespan, CLI command, test fixture).

    Writes are serialized by a per-repository lock so that the uniqueness probe and
    the insert/update happen atomically with respect to other writers. The unique
    indexes on title and url back this up if several processes share the database.
    Reads open their own session and never wait on the lock.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create the bookmarks table and its indexes if they don't exist yet."""
        async with self._session_factory.begin() as session:
            await session.run_sync(
                lambda sync_session: Base.metadata.create_all(sync_session.connection()),
            )

    @asynccontextmanager
    async def _transaction(self) -> AsyncGenerator[AsyncSession]:
        """
        Yield a session holding the write lock.

        Commits when the block exits cleanly, rolls back and re-raises otherwise,
        so a failed write leaves no observable change.
        """
        async with self._write_lock, self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _check_unique(
        self,
        session: AsyncSession,
        title: str,
        url: str,
        exclude_id: int | None = None,
    ) -> None:
        """
        Probe the title and url indexes for a match belonging to a different bookmark.

        Raises:
            BookmarkConstraintError: If either value is taken.
        """
        for field, value in (("title", title), ("url", url)):
            column = getattr(Bookmark, field)
            query = select(Bookmark.id).where(column == value)
            if exclude_id is not None:
                query = query.where(Bookmark.id != exclude_id)
            result = await session.execute(query.limit(1))
            if result.first() is not None:
                raise BookmarkConstraintError(field, value)

    async def add(
        self,
        data: BookmarkCreate,
        *,
        document: str = "",
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> BookmarkRecord:
        """
        Validate and store a new bookmark.

        Args:
            data: The new bookmark.
            document: Opaque document payload (only the CSV import sets it).
            created_at: Creation time to keep instead of now (CSV import).
            updated_at: Update time to keep; defaults to created_at.

        Returns:
            The stored bookmark with its assigned id.

        Raises:
            BookmarkValidationError: If title and/or url are missing (all listed).
            BookmarkConstraintError: If the title or url is already used.
        """
        _raise_if_invalid(data)
        if created_at is None:
            created_at = utcnow()
        if updated_at is None:
            updated_at = created_at

        bookmark = Bookmark(
            title=data.title,
            url=data.url,
            tags=list(data.tags),
            notes=data.notes,
            document=document,
            created_at=created_at,
            updated_at=updated_at,
        )
        try:
            async with self._transaction() as session:
                await self._check_unique(session, data.title, data.url)
                session.add(bookmark)
                await session.flush()
        except IntegrityError as e:
            # Fallback for writers outside this process racing on the unique indexes
            constraint_error = _constraint_error_from(e, {"title": data.title, "url": data.url})
            if constraint_error is None:
                raise
            raise constraint_error from e

        logger.info("Bookmark %s added (%s)", bookmark.id, bookmark.url)
        return BookmarkRecord.model_validate(bookmark)

    async def update(
        self,
        data: BookmarkUpdate,
        only_fields: Iterable[str] | None = None,
    ) -> BookmarkRecord:
        """
        Replace a stored bookmark with the given record.

        By default every mutable field (title, url, tags, notes, document) is
        overwritten, so callers must send the full desired record. Passing
        ``only_fields`` restricts the update to those fields; the merged result is
        validated as a whole. ``id`` and ``created_at`` are always preserved and
        ``updated_at`` always moves forward.

        Raises:
            BookmarkValidationError: If the resulting record is invalid, or
                ``only_fields`` names a field that can't be updated.
            BookmarkNotFoundError: If no bookmark has ``data.id``.
            BookmarkConstraintError: If the new title or url belongs to another bookmark.
        """
        if data.id is None:
            raise BookmarkValidationError(["id"])

        if only_fields is None:
            fields = list(MUTABLE_FIELDS)
            _raise_if_invalid(data)
        else:
            fields = list(only_fields)
            unknown = [name for name in fields if name not in MUTABLE_FIELDS]
            if unknown:
                raise BookmarkValidationError(unknown)

        try:
            async with self._transaction() as session:
                bookmark = await session.get(Bookmark, data.id)
                if bookmark is None:
                    raise BookmarkNotFoundError(data.id)

                values = {name: getattr(bookmark, name) for name in MUTABLE_FIELDS}
                values.update({name: getattr(data, name) for name in fields})
                merged = BookmarkUpdate(id=data.id, **values)
                if only_fields is not None:
                    _raise_if_invalid(merged)

                await self._check_unique(session, merged.title, merged.url, exclude_id=data.id)

                for name in MUTABLE_FIELDS:
                    setattr(bookmark, name, getattr(merged, name))
                # updated_at must strictly increase even if the clock hasn't ticked
                now = utcnow()
                floor = max(bookmark.updated_at, bookmark.created_at) + timedelta(microseconds=1)
                bookmark.updated_at = max(now, floor)
                await session.flush()
        except IntegrityError as e:
            constraint_error = _constraint_error_from(
                e, {"title": merged.title, "url": merged.url},
            )
            if constraint_error is None:
                raise
            raise constraint_error from e

        logger.info("Bookmark %s updated (fields: %s)", bookmark.id, ", ".join(fields))
        return BookmarkRecord.model_validate(bookmark)

    async def delete(self, bookmark_id: int) -> None:
        """
        Permanently delete a bookmark. Its id is never handed out again.

        Raises:
            BookmarkNotFoundError: If no bookmark has this id.
        """
        async with self._transaction() as session:
            bookmark = await session.get(Bookmark, bookmark_id)
            if bookmark is None:
                raise BookmarkNotFoundError(bookmark_id)
            await session.delete(bookmark)
        logger.info("Bookmark %s deleted", bookmark_id)

    async def get(self, bookmark_id: int) -> BookmarkRecord:
        """Get a bookmark by id. Raises BookmarkNotFoundError if absent."""
        async with self._session_factory() as session:
            bookmark = await session.get(Bookmark, bookmark_id)
            if bookmark is None:
                raise BookmarkNotFoundError(bookmark_id)
            return BookmarkRecord.model_validate(bookmark)

    async def get_by_url(self, url: str) -> BookmarkRecord:
        """Get a bookmark by its exact url. Raises BookmarkNotFoundError if absent."""
        async with self._session_factory() as session:
            result = await session.execute(select(Bookmark).where(Bookmark.url == url))
            bookmark = result.scalar_one_or_none()
            if bookmark is None:
                raise BookmarkNotFoundError(url)
            return BookmarkRecord.model_validate(bookmark)

    async def list_records(self) -> list[BookmarkRecord]:
        """List every bookmark with all fields, in id order. Used by CSV export."""
        async with self._session_factory() as session:
            result = await session.execute(select(Bookmark).order_by(Bookmark.id))
            return [BookmarkRecord.model_validate(b) for b in result.scalars()]

    async def list(self) -> list[BookmarkSummary]:
        """List every bookmark as a summary, in insertion (id) order."""
        async with self._session_factory() as session:
            result = await session.execute(select(Bookmark).order_by(Bookmark.id))
            return [BookmarkSummary.model_validate(b) for b in result.scalars()]
