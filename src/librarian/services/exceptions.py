"""
Exceptions raised by the bookmark repository and the CSV pipeline.

The set is closed: callers switch on the exception class (or its ``kind``)
rather than inspecting messages. Anything that is not a BookmarkError (e.g. a
database OperationalError) is an unrecoverable storage fault and propagates as-is.
"""
from typing import Any


class BookmarkError(Exception):
    """Base class for all bookmark repository errors."""

    kind: str = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses."""
        return {"message": self.message, "error": self.kind}


class BookmarkValidationError(BookmarkError):
    """Raised when one or more required fields are missing or empty."""

    kind = "validation"

    def __init__(self, fields: list[str]) -> None:
        self.fields = list(fields)
        super().__init__(f"Invalid or missing fields: {', '.join(self.fields)}")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "fields": self.fields}


class BookmarkConstraintError(BookmarkError):
    """Raised when a title or url collides with another live bookmark."""

    kind = "constraint"

    def __init__(self, field: str, value: str | None = None) -> None:
        self.field = field
        self.value = value
        if value is None:
            message = f"A bookmark with this {field} already exists"
        else:
            message = f"A bookmark with {field} '{value}' already exists"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "field": self.field, "value": self.value}


class BookmarkNotFoundError(BookmarkError):
    """Raised when no live bookmark matches the requested id or url."""

    kind = "not_found"

    def __init__(self, key: int | str) -> None:
        self.key = key
        super().__init__(f"Bookmark {key!r} not found")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "key": self.key}


class CSVFormatError(BookmarkError):
    """Raised when a CSV import has a bad header, a bad row shape, or an unparsable timestamp."""

    kind = "format"

    def __init__(self, message: str, line: int | None = None) -> None:
        self.line = line
        self.reason = message
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        if self.line is not None:
            data["line"] = self.line
        return data
