"""
Command line interface for keepsake.

Every command except `serve` opens one database session, commits it when the
command succeeds and rolls it back otherwise. Failures print a single
`error: <message>` line to stderr and exit with status 1.
"""
import argparse
import asyncio
import getpass
import json
import sys
from collections.abc import Awaitable, Callable

import uvicorn
from sqlalchemy.ext.asyncio import AsyncSession

from keepsake import __version__
from keepsake.core.config import Settings, get_settings
from keepsake.core.logging import configure_logging
from keepsake.db.session import async_session_factory, engine, init_db
from keepsake.schemas.account import AccountResponse
from keepsake.schemas.bookmark import (
    BookmarkCreate,
    BookmarkDetailResponse,
    BookmarkPatch,
    BookmarkResponse,
)
from keepsake.services import account_service, bookmark_service
from keepsake.services.account_service import AccountExistsError
from keepsake.services.exceptions import KeepsakeError
from keepsake.services.tag_service import get_tags_with_counts

Handler = Callable[[AsyncSession, argparse.Namespace, Settings], Awaitable[str]]


def _dump(items: list) -> str:
    return json.dumps([item.model_dump(mode="json") for item in items], indent=2)


def _split_tags(values: list[str] | None) -> list[str]:
    """Flatten repeated and comma separated --tags values."""
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return names


async def add_command(db: AsyncSession, args: argparse.Namespace, settings: Settings) -> str:
    """Bookmark a URL."""
    data = BookmarkCreate(
        url=args.url,
        title=args.title,
        excerpt=args.excerpt,
        tags=_split_tags(args.tags),
    )
    bookmark = await bookmark_service.create_bookmark(
        db, data, offline=args.offline, settings=settings,
    )
    return _dump([BookmarkResponse.model_validate(bookmark)])


async def update_command(db: AsyncSession, args: argparse.Namespace, settings: Settings) -> str:
    """Update bookmarks; without indices every bookmark is updated."""
    indices = args.indices
    if not indices:
        everything = await bookmark_service.search_bookmarks(db)
        indices = [str(bookmark.id) for bookmark in everything]

    patch = BookmarkPatch(
        url=args.url,
        title=args.title,
        excerpt=args.excerpt,
        tags=_split_tags(args.tags),
    )
    bookmarks = await bookmark_service.update_bookmarks(
        db,
        indices,
        patch,
        offline=args.offline,
        overwrite=not args.dont_overwrite,
        settings=settings,
    )
    return _dump([BookmarkResponse.model_validate(b) for b in bookmarks])


async def delete_command(db: AsyncSession, args: argparse.Namespace, _settings: Settings) -> str:
    """Delete bookmarks by index."""
    count = await bookmark_service.delete_bookmarks(db, args.indices)
    return f"Deleted {count} bookmark(s)"


async def print_command(db: AsyncSession, args: argparse.Namespace, _settings: Settings) -> str:
    """Print bookmarks as JSON, selected by index or by keyword and tags."""
    schema = BookmarkDetailResponse if args.content else BookmarkResponse
    if args.indices:
        bookmarks = await bookmark_service.get_bookmarks(
            db, args.indices, with_content=args.content,
        )
    else:
        bookmarks = await bookmark_service.search_bookmarks(
            db,
            keyword=args.keyword,
            tags=_split_tags(args.tags),
            with_content=args.content,
        )
    return _dump([schema.model_validate(b) for b in bookmarks])


async def tags_command(db: AsyncSession, _args: argparse.Namespace, _settings: Settings) -> str:
    """Print tags in use with their bookmark counts."""
    return _dump(await get_tags_with_counts(db))


async def account_add_command(
    db: AsyncSession, args: argparse.Namespace, _settings: Settings,
) -> str:
    """Create an account, prompting for the password when not given."""
    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
    account = await account_service.create_account(db, args.username, password)
    return f"Account '{account.username}' created"


async def account_list_command(
    db: AsyncSession, args: argparse.Namespace, _settings: Settings,
) -> str:
    """List accounts whose username contains the keyword."""
    accounts = await account_service.get_accounts(db, args.keyword)
    return _dump([AccountResponse.model_validate(a) for a in accounts])


async def account_delete_command(
    db: AsyncSession, args: argparse.Namespace, _settings: Settings,
) -> str:
    """Delete accounts by username."""
    count = await account_service.delete_accounts(db, args.usernames)
    return f"Deleted {count} account(s)"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="keepsake",
        description="Bookmark manager that archives page content and videos.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Log at the configured level instead of warnings only",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web server")
    serve.add_argument("--host", help="Bind address (default from settings)")
    serve.add_argument("-p", "--port", type=int, help="Port (default from settings)")

    def add_patch_arguments(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("-t", "--title", default="", help="Custom title")
        sub.add_argument("-e", "--excerpt", default="", help="Custom excerpt")
        sub.add_argument(
            "--tags", action="append", metavar="TAGS",
            help="Comma separated tags; prefix a tag with '-' to remove it on update",
        )
        sub.add_argument(
            "--offline", action="store_true",
            help="Don't fetch the page; use only the given fields",
        )

    add = subparsers.add_parser("add", help="Bookmark a URL")
    add.add_argument("url", help="URL to bookmark")
    add_patch_arguments(add)
    add.set_defaults(handler=add_command)

    update = subparsers.add_parser(
        "update", help="Refresh and edit bookmarks (all of them when no index is given)",
    )
    update.add_argument("indices", nargs="*", help="Ids (7) or inclusive ranges (3-9)")
    update.add_argument("-u", "--url", default="", help="New URL; only with a single index")
    add_patch_arguments(update)
    update.add_argument(
        "--dont-overwrite", action="store_true",
        help="Keep stored title and excerpt on refresh and merge tags instead of replacing them",
    )
    update.set_defaults(handler=update_command)

    delete = subparsers.add_parser("delete", help="Delete bookmarks")
    delete.add_argument("indices", nargs="+", help="Ids (7) or inclusive ranges (3-9)")
    delete.set_defaults(handler=delete_command)

    print_ = subparsers.add_parser("print", help="Print bookmarks as JSON")
    print_.add_argument("indices", nargs="*", help="Ids (7) or inclusive ranges (3-9)")
    print_.add_argument("-k", "--keyword", default="", help="Search title, excerpt and content")
    print_.add_argument("--tags", action="append", metavar="TAGS", help="Required tags")
    print_.add_argument("-c", "--content", action="store_true", help="Include content and HTML")
    print_.set_defaults(handler=print_command)

    tags = subparsers.add_parser("tags", help="List tags in use")
    tags.set_defaults(handler=tags_command)

    account = subparsers.add_parser("account", help="Manage login accounts")
    account_commands = account.add_subparsers(dest="account_command", required=True)
    account_add = account_commands.add_parser("add", help="Create an account")
    account_add.add_argument("username")
    account_add.add_argument("--password", help="Prompted for when omitted")
    account_add.set_defaults(handler=account_add_command)
    account_list = account_commands.add_parser("list", help="List accounts")
    account_list.add_argument("keyword", nargs="?", default="", help="Username filter")
    account_list.set_defaults(handler=account_list_command)
    account_delete = account_commands.add_parser("delete", help="Delete accounts")
    account_delete.add_argument("usernames", nargs="+")
    account_delete.set_defaults(handler=account_delete_command)

    return parser


async def run_handler(handler: Handler, args: argparse.Namespace, settings: Settings) -> str:
    """Run one command inside a single committed-or-rolled-back session."""
    try:
        if settings.create_schema:
            await init_db()
        async with async_session_factory() as session:
            try:
                output = await handler(session, args, settings)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    finally:
        await engine.dispose()
    return output


def serve(args: argparse.Namespace, settings: Settings) -> None:
    """Run the API and web pages under uvicorn."""
    uvicorn.run(
        "keepsake.api.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level if args.verbose else "WARNING")

    if args.command == "serve":
        serve(args, settings)
        return 0

    try:
        output = asyncio.run(run_handler(args.handler, args, settings))
    except (KeepsakeError, AccountExistsError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
