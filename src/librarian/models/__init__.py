"""SQLAlchemy models."""
from librarian.models.base import Base, TimestampMixin, UTCDateTime
from librarian.models.bookmark import Bookmark

__all__ = ["Base", "Bookmark", "TimestampMixin", "UTCDateTime"]
