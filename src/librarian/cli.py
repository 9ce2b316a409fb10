"""
Command-line interface for Librarian.

``serve`` runs the API. ``import`` and ``export`` work on the database directly.
The remaining commands talk to a running server over HTTP.
"""
import argparse
import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import uvicorn

from librarian import __version__
from librarian.client import LibrarianClient
from librarian.core.config import Settings, get_settings
from librarian.core.logging_setup import configure_logging
from librarian.db.session import create_engine_from_settings, create_session_factory
from librarian.schemas.bookmark import (
    BookmarkCreate,
    BookmarkPatch,
    BookmarkRecord,
    BookmarkSummary,
)
from librarian.services import csv_io
from librarian.services.bookmark_repository import BookmarkRepository
from librarian.services.exceptions import BookmarkError

logger = logging.getLogger(__name__)

LIST_FIELDS = ("id", "title", "url", "tags", "created_at", "updated_at")
DEFAULT_LIST_FIELDS = ";".join(LIST_FIELDS)

CLIENT_COMMANDS = {"add", "get", "update", "delete", "list"}


class CLIError(Exception):
    """Raised for bad command-line input that argparse can't catch."""


def split_tag_option(value: str | None) -> list[str]:
    """Turn a ``--tags "a;b"`` option into a list; missing or empty means no tags."""
    if not value:
        return []
    return [tag for tag in value.split(csv_io.TAG_SEPARATOR) if tag]


def parse_list_fields(value: str) -> list[str]:
    """
    Parse the ``--fields`` option of ``list``.

    Raises:
        CLIError: If a field is not one of LIST_FIELDS.
    """
    fields = [field.strip() for field in value.split(";") if field.strip()]
    unknown = [field for field in fields if field not in LIST_FIELDS]
    if unknown:
        raise CLIError(
            f"unknown field(s): {', '.join(unknown)} (choose from {', '.join(LIST_FIELDS)})",
        )
    return fields


def format_bookmark(record: BookmarkRecord) -> str:
    """Multi-line human readable rendering of a single bookmark."""
    return (
        f"ID:        {record.id}\n"
        f"Title:     {record.title}\n"
        f"URL:       {record.url}\n"
        f"Tags:      {', '.join(record.tags)}\n"
        f"CreatedAt: {csv_io.format_rfc3339(record.created_at)}\n"
        f"UpdatedAt: {csv_io.format_rfc3339(record.updated_at)}\n"
        f"Notes:\n"
        f"\t{record.notes}"
    )


def format_summary(summary: BookmarkSummary, fields: list[str]) -> str:
    """Tab-separated rendering of the chosen summary fields, in the order given."""
    values = []
    for field in fields:
        value = getattr(summary, field)
        if field == "tags":
            value = ",".join(value)
        elif field in ("created_at", "updated_at"):
            value = csv_io.format_rfc3339(value)
        values.append(str(value))
    return "\t".join(values)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one sub-command per operation."""
    parser = argparse.ArgumentParser(
        prog="librarian",
        description="librarian is a bookmark manager application",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--api-url",
        help="URL of the librarian API (default: LIBRARIAN_API_URL or http://127.0.0.1:8080)",
    )
    parser.add_argument("--log-level", help="log level (default: LIBRARIAN_LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", aliases=["s"], help="start librarian service")
    serve.add_argument("--host", help="bind address (default: LIBRARIAN_HOST)")
    serve.add_argument("--port", type=int, help="bind port (default: LIBRARIAN_PORT)")
    serve.set_defaults(command="serve")

    import_ = subparsers.add_parser("import", help="import bookmarks from CSV file")
    import_.add_argument("path", type=Path, help="pipe-delimited CSV file")

    export = subparsers.add_parser("export", help="export bookmarks to CSV file")
    export.add_argument("path", type=Path, nargs="?", help="output file (default: stdout)")

    add = subparsers.add_parser("add", aliases=["a"], help="add bookmark")
    add.add_argument("url", metavar="URL")
    add.add_argument("-t", "--title", default="", help="title of the bookmark")
    add.add_argument("--tags", default="", help='tags of the bookmark, e.g. "python;web"')
    add.add_argument("-n", "--note", default="", help="notes to the bookmark")
    add.set_defaults(command="add")

    get = subparsers.add_parser("get", aliases=["g"], help="get bookmark")
    get.add_argument("id", type=int, metavar="ID")
    get.set_defaults(command="get")

    update = subparsers.add_parser("update", aliases=["u", "up"], help="update bookmark")
    update.add_argument("id", type=int, metavar="ID")
    update.add_argument("--url", help="new URL")
    update.add_argument("-t", "--title", help="new title")
    update.add_argument("--tags", help='new tags, e.g. "python;web" ("" clears them)')
    update.add_argument("-n", "--note", help="new notes")
    update.set_defaults(command="update")

    delete = subparsers.add_parser("delete", aliases=["d", "del"], help="delete bookmark")
    delete.add_argument("id", type=int, metavar="ID")
    delete.set_defaults(command="delete")

    list_ = subparsers.add_parser("list", aliases=["l"], help="lists all bookmarks")
    list_.add_argument(
        "--fields",
        default=DEFAULT_LIST_FIELDS,
        help=f"fields which will be displayed (default: {DEFAULT_LIST_FIELDS})",
    )
    list_.set_defaults(command="list")

    return parser


def build_patch(args: argparse.Namespace) -> BookmarkPatch:
    """Build a field-mask update from the options actually given to ``update``."""
    values = {}
    if args.url is not None:
        values["url"] = args.url
    if args.title is not None:
        values["title"] = args.title
    if args.tags is not None:
        values["tags"] = split_tag_option(args.tags)
    if args.note is not None:
        values["notes"] = args.note
    if not values:
        raise CLIError("nothing to update, pass at least one of --url, --title, --tags, --note")
    return BookmarkPatch(**values)


async def run_client_command(args: argparse.Namespace, client: LibrarianClient) -> None:
    """Run one of the HTTP-backed commands and print its result."""
    if args.command == "add":
        record = await client.add(
            BookmarkCreate(
                title=args.title,
                url=args.url,
                tags=split_tag_option(args.tags),
                notes=args.note,
            ),
        )
        print(format_bookmark(record))
    elif args.command == "get":
        print(format_bookmark(await client.get(args.id)))
    elif args.command == "update":
        print(format_bookmark(await client.patch(args.id, build_patch(args))))
    elif args.command == "delete":
        await client.delete(args.id)
        print(f"Bookmark {args.id} deleted")
    elif args.command == "list":
        fields = parse_list_fields(args.fields)
        for summary in await client.list():
            print(format_summary(summary, fields))
    else:
        raise CLIError(f"unknown command: {args.command}")


@asynccontextmanager
async def open_repository(settings: Settings) -> AsyncGenerator[BookmarkRepository]:
    """Open the configured database directly, for commands that don't need the server."""
    engine = create_engine_from_settings(settings)
    try:
        repository = BookmarkRepository(create_session_factory(engine))
        await repository.initialize()
        yield repository
    finally:
        await engine.dispose()


async def import_file(settings: Settings, path: Path) -> int:
    """Import a CSV file into the configured database."""
    with path.open(newline="", encoding="utf-8-sig") as stream:
        async with open_repository(settings) as repository:
            return await csv_io.import_csv(repository, stream)


async def export_file(settings: Settings, path: Path | None) -> int:
    """Export the configured database as CSV to a file or stdout."""
    async with open_repository(settings) as repository:
        if path is None:
            return await csv_io.export_csv(repository, sys.stdout)
        with path.open("w", newline="", encoding="utf-8") as stream:
            return await csv_io.export_csv(repository, stream)


async def _run_with_client(args: argparse.Namespace, settings: Settings) -> None:
    async with LibrarianClient(base_url=args.api_url or settings.api_url) as client:
        await run_client_command(args, client)


def serve(settings: Settings, host: str | None, port: int | None) -> None:
    """Run the API server under uvicorn."""
    uvicorn.run(
        "librarian.api.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``librarian`` command. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    try:
        if args.command == "serve":
            serve(settings, args.host, args.port)
        elif args.command == "import":
            imported = asyncio.run(import_file(settings, args.path))
            print(f"Imported {imported} bookmark(s) from {args.path}", file=sys.stderr)
        elif args.command == "export":
            exported = asyncio.run(export_file(settings, args.path))
            print(f"Exported {exported} bookmark(s)", file=sys.stderr)
        elif args.command in CLIENT_COMMANDS:
            asyncio.run(_run_with_client(args, settings))
        else:
            parser.error(f"unknown command: {args.command}")
    except (BookmarkError, CLIError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"error: request to librarian API failed: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
