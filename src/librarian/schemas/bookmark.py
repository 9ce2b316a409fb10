"""Pydantic schemas for bookmarks."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Fields a caller may change; id and created_at are never taken from input.
MUTABLE_FIELDS = ("title", "url", "tags", "notes", "document")


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Return tags as a list, turning a missing value into an empty list."""
    if tags is None:
        return []
    return list(tags)


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    title and url default to empty strings instead of being required here, so that
    a request missing both is rejected by the repository validator with every
    offending field listed, not by the first schema error.
    """

    title: str = ""
    url: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: list[str] | None) -> list[str]:
        return normalize_tags(v)

    @field_validator("title", "url", "notes", mode="before")
    @classmethod
    def _none_to_empty(cls, v: str | None) -> str:
        return "" if v is None else v


class BookmarkUpdate(BaseModel):
    """
    Schema for a full-record update.

    Every mutable field is replaced with the value given here. The API sets `id`
    from the request path.
    """

    id: int | None = None
    title: str = ""
    url: str = ""
    tags: list[str] = Field(default_factory=list)
    notes: str = ""
    document: str = ""

    @field_validator("tags", mode="before")
    @classmethod
    def _tags(cls, v: list[str] | None) -> list[str]:
        return normalize_tags(v)

    @field_validator("title", "url", "notes", "document", mode="before")
    @classmethod
    def _none_to_empty(cls, v: str | None) -> str:
        return "" if v is None else v


class BookmarkPatch(BaseModel):
    """Schema for a field-mask update: only fields present in the request are applied."""

    title: str | None = None
    url: str | None = None
    tags: list[str] | None = None
    notes: str | None = None
    document: str | None = None

    def to_update(self, bookmark_id: int) -> tuple[BookmarkUpdate, list[str]]:
        """Build the update record and the list of fields it touches."""
        fields = [name for name in MUTABLE_FIELDS if name in self.model_fields_set]
        return BookmarkUpdate(id=bookmark_id, **self.model_dump(include=set(fields))), fields


class BookmarkSummary(BaseModel):
    """Bookmark projection used for listings (notes and document are left out)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    url: str
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class BookmarkRecord(BookmarkSummary):
    """Full bookmark as stored."""

    notes: str
    document: str


class ImportResponse(BaseModel):
    """Result of a CSV import."""

    imported: int
