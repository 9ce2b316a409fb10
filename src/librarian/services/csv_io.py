"""
Bulk CSV import and export of bookmarks.

The format is pipe-delimited because titles, notes and tags often contain commas
and semicolons. The header must be exactly::

    title|url|tags|notes|document|created_at|updated_at

Tags are joined with ``;`` inside their column and timestamps are RFC 3339.

Import is fail-fast with no rollback: the first bad row aborts the whole import,
and rows imported before it stay in the store.
"""
import csv
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TextIO

from librarian.schemas.bookmark import BookmarkCreate, BookmarkRecord
from librarian.services.bookmark_repository import BookmarkRepository, utcnow
from librarian.services.exceptions import BookmarkError, CSVFormatError

logger = logging.getLogger(__name__)

CSV_DELIMITER = "|"
TAG_SEPARATOR = ";"
CSV_HEADER = ["title", "url", "tags", "notes", "document", "created_at", "updated_at"]

# RFC 3339 date-time: full date, 'T' (or space), time, optional fraction, mandatory offset
RFC3339_PATTERN = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt ](?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?(?P<offset>[Zz]|[+-]\d{2}:\d{2})$",
)


@dataclass
class ParsedRow:
    """One CSV data row, converted to repository input."""

    bookmark: BookmarkCreate
    document: str
    created_at: datetime
    updated_at: datetime


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp into a UTC datetime.

    Fractions finer than microseconds are truncated.

    Raises:
        ValueError: If the value is not a valid RFC 3339 date-time.
    """
    match = RFC3339_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"'{value}' is not an RFC 3339 timestamp")
    fraction = match.group("fraction")
    offset = match.group("offset")
    normalized = f"{match.group('date')}T{match.group('time')}"
    if fraction:
        normalized += f".{fraction[:6].ljust(6, '0')}"
    normalized += "+00:00" if offset in ("Z", "z") else offset
    return datetime.fromisoformat(normalized).astimezone(UTC)


def format_rfc3339(value: datetime) -> str:
    """Format a datetime as RFC 3339 in UTC with a 'Z' suffix."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def split_tags(value: str) -> list[str]:
    """Split the tags column; an empty column means no tags."""
    if value == "":
        return []
    return value.split(TAG_SEPARATOR)


def parse_row(row: list[str], line: int) -> ParsedRow:
    """
    Map a data row positionally onto bookmark fields.

    Missing trailing columns are absent rather than empty: an absent created_at
    means "now" and an absent updated_at defaults to created_at. A timestamp
    column that is present but empty can't be parsed.

    Raises:
        CSVFormatError: If the row has more columns than the header, a timestamp
            can't be parsed, or updated_at precedes created_at.
    """
    if len(row) > len(CSV_HEADER):
        raise CSVFormatError(
            f"expected {len(CSV_HEADER)} columns, got {len(row)}",
            line=line,
        )
    padded: list[str | None] = [*row, *[None] * (len(CSV_HEADER) - len(row))]
    title, url, tags, notes, document, created_raw, updated_raw = padded
    try:
        created_at = utcnow() if created_raw is None else parse_rfc3339(created_raw)
        updated_at = created_at if updated_raw is None else parse_rfc3339(updated_raw)
    except ValueError as e:
        raise CSVFormatError(str(e), line=line) from e
    if updated_at < created_at:
        raise CSVFormatError("updated_at is earlier than created_at", line=line)

    return ParsedRow(
        bookmark=BookmarkCreate(
            title=title or "",
            url=url or "",
            tags=split_tags(tags or ""),
            notes=notes or "",
        ),
        document=document or "",
        created_at=created_at,
        updated_at=updated_at,
    )


async def import_csv(repository: BookmarkRepository, stream: TextIO) -> int:
    """
    Import bookmarks from a pipe-delimited CSV stream.

    Each row goes through BookmarkRepository.add, so it is validated and checked
    for title/url uniqueness like any other new bookmark. Timestamps from the file
    are kept.

    Returns:
        Number of bookmarks imported.

    Raises:
        CSVFormatError: Missing or wrong header, malformed row, bad timestamp.
        BookmarkValidationError: A row is missing its title and/or url.
        BookmarkConstraintError: A row's title or url already exists.
    """
    reader = csv.reader(stream, delimiter=CSV_DELIMITER)
    try:
        header = next(reader)
    except StopIteration:
        raise CSVFormatError("missing header row", line=1) from None
    except (csv.Error, UnicodeDecodeError) as e:
        raise CSVFormatError(str(e), line=reader.line_num) from e
    if header != CSV_HEADER:
        raise CSVFormatError(
            f"invalid header, expected '{CSV_DELIMITER.join(CSV_HEADER)}'",
            line=1,
        )

    imported = 0
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except (csv.Error, UnicodeDecodeError) as e:
            raise CSVFormatError(str(e), line=reader.line_num) from e
        if not row:
            continue
        line = reader.line_num
        try:
            parsed = parse_row(row, line)
            record = await repository.add(
                parsed.bookmark,
                document=parsed.document,
                created_at=parsed.created_at,
                updated_at=parsed.updated_at,
            )
        except BookmarkError as e:
            logger.warning(
                "CSV import stopped at line %s after %s bookmark(s): %s",
                line,
                imported,
                e,
            )
            raise
        imported += 1
        logger.info("Bookmark %s imported from line %s", record.id, line)

    logger.info("CSV import finished: %s bookmark(s) imported", imported)
    return imported


def _to_row(record: BookmarkRecord) -> list[str]:
    return [
        record.title,
        record.url,
        TAG_SEPARATOR.join(record.tags),
        record.notes,
        record.document,
        format_rfc3339(record.created_at),
        format_rfc3339(record.updated_at),
    ]


async def export_csv(repository: BookmarkRepository, stream: TextIO) -> int:
    """
    Write every bookmark to ``stream`` in the import format, in id order.

    Returns:
        Number of bookmarks written.
    """
    writer = csv.writer(stream, delimiter=CSV_DELIMITER, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    records = await repository.list_records()
    for record in records:
        writer.writerow(_to_row(record))
    logger.info("CSV export finished: %s bookmark(s) exported", len(records))
    return len(records)
