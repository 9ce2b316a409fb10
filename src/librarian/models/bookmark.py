"""Bookmark model for storing bookmarks."""
from sqlalchemy import JSON, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from librarian.models.base import Base, TimestampMixin

TITLE_UNIQUE_INDEX = "uq_bookmarks_title"
URL_UNIQUE_INDEX = "uq_bookmarks_url"


class Bookmark(Base, TimestampMixin):
    """Bookmark model - stores URLs with title, tags, notes and an opaque document."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        Index(TITLE_UNIQUE_INDEX, "title", unique=True),
        Index(URL_UNIQUE_INDEX, "url", unique=True),
        # AUTOINCREMENT keeps SQLite from handing out the id of a deleted max row again
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Reserved for full page content
    document: Mapped[str] = mapped_column(Text, nullable=False, default="")

    def __repr__(self) -> str:
        return f"<Bookmark id={self.id} url={self.url!r}>"
