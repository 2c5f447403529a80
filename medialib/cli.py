# File: medialib/cli.py
"""
Command line entry point for the media library.

Runs the server and the maintenance jobs that can also be triggered over
HTTP, without going through the API.
"""

import argparse
import json
import logging
import sys
from typing import Any, Callable, List, Optional

from medialib.core.config import settings
from medialib.core.exceptions import MediaLibException
from medialib.core.security import create_access_token
from medialib.db.session import Database
from medialib.services.service_factory import ServiceFactory

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def _print(result: Any) -> None:
    print(json.dumps(result, indent=2, default=str))


def _with_factory(job: Callable[[ServiceFactory], Any]) -> Any:
    database = Database()
    database.connect()
    try:
        with database.transaction() as session:
            return job(ServiceFactory(session))
    finally:
        database.dispose()


def cmd_serve(args) -> None:
    import uvicorn

    uvicorn.run(
        "medialib.main:create_app",
        factory=True,
        host=args.host,
        port=args.port or settings.SERVER_PORT,
        reload=args.reload,
    )


def cmd_init_db(args) -> None:
    database = Database()
    try:
        database.create_all(reset=args.reset)
    finally:
        database.dispose()


def cmd_scan(args) -> None:
    excluded = None
    if args.exclude is not None:
        excluded = [d.strip().lower() for d in args.exclude.split(",") if d.strip()]
    _print(
        _with_factory(
            lambda f: f.get_media_scanner_service().scan(
                args.directory,
                recursive=args.recursive,
                tags=args.tags,
                use_directory_tags=args.directory_tags,
                excluded_directories=excluded,
                is_protected=args.protected,
            )
        )
    )


def cmd_thumbnails(args) -> None:
    _print(_with_factory(lambda f: f.get_thumbnail_service().process_directory(args.directory)))


def cmd_find_thumbnails(args) -> None:
    if args.orphans:
        _print(
            _with_factory(
                lambda f: f.get_thumbnail_service().find_orphan_thumbnails(
                    args.directory, delete=args.delete
                )
            )
        )
    else:
        _print(
            _with_factory(
                lambda f: f.get_thumbnail_service().find_missing_thumbnails(args.directory)
            )
        )


def cmd_populate_tags(args) -> None:
    _print(_with_factory(lambda f: f.get_tag_service().populate_tags(args.start_id)))


def cmd_sync_media_tags(args) -> None:
    _print(_with_factory(lambda f: f.get_tag_service().sync_media_tags(args.start_id)))


def cmd_check_tags(args) -> None:
    _print(_with_factory(lambda f: f.get_tag_service().check_tags()))


def cmd_check_files(args) -> None:
    _print(
        _with_factory(
            lambda f: f.get_media_service().check_files(delete_missing=args.delete_missing)
        )
    )


def cmd_update_created_date(args) -> None:
    _print(
        _with_factory(
            lambda f: f.get_created_date_service().update_created_dates(
                args.directory, recursive=args.recursive
            )
        )
    )


def cmd_optimize_videos(args) -> None:
    _print(
        _with_factory(
            lambda f: f.get_video_optimizer_service().optimize_directory(
                args.directory, recursive=not args.no_recursive
            )
        )
    )


def cmd_token(args) -> None:
    print(create_access_token(args.subject, role=args.role))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medialib",
        description="Manage the media library",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  medialib init-db
  medialib scan photos/2024 --recursive --directory-tags
  medialib thumbnails photos
  medialib populate-tags --start-id 1200
        """,
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="Run the HTTP server")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=None)
    p.add_argument("--reload", action="store_true")
    p.set_defaults(func=cmd_serve)

    p = sub.add_parser("init-db", help="Create all tables")
    p.add_argument("--reset", action="store_true", help="Drop and recreate every table")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("scan", help="Index media files below a directory")
    p.add_argument("directory", help="Directory relative to MEDIA_ROOT")
    p.add_argument("--recursive", action="store_true")
    p.add_argument("--tags", default=None, help="Comma-separated tags for every new row")
    p.add_argument("--directory-tags", action="store_true", help="Derive tags from paths")
    p.add_argument("--exclude", default=None, help="Directory names never used as tags")
    p.add_argument("--protected", action="store_true", help="Mark new rows protected")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("thumbnails", help="Generate missing thumbnails")
    p.add_argument("directory")
    p.set_defaults(func=cmd_thumbnails)

    p = sub.add_parser("find-thumbnails", help="List missing or orphan thumbnails")
    p.add_argument("directory")
    p.add_argument("--orphans", action="store_true", help="Look for orphans instead")
    p.add_argument("--delete", action="store_true", help="Delete the orphans found")
    p.set_defaults(func=cmd_find_thumbnails)

    for name, func, help_text in (
        ("populate-tags", cmd_populate_tags, "Register tags used by media"),
        ("sync-media-tags", cmd_sync_media_tags, "Backfill the media_tags table"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--start-id", type=int, default=0)
        p.set_defaults(func=func)

    p = sub.add_parser("check-tags", help="Soft-delete tags no media uses")
    p.set_defaults(func=cmd_check_tags)

    p = sub.add_parser("check-files", help="Find media whose file is missing")
    p.add_argument("--delete-missing", action="store_true")
    p.set_defaults(func=cmd_check_files)

    p = sub.add_parser("update-created-date", help="Copy .MOV birth times to .mp4 media")
    p.add_argument("directory")
    p.add_argument("--recursive", action="store_true")
    p.set_defaults(func=cmd_update_created_date)

    p = sub.add_parser("optimize-videos", help="Convert .MOV files to .mp4 beside them")
    p.add_argument("directory")
    p.add_argument("--no-recursive", action="store_true")
    p.set_defaults(func=cmd_optimize_videos)

    p = sub.add_parser("token", help="Print a signed access token")
    p.add_argument("subject")
    p.add_argument("--role", default=None)
    p.set_defaults(func=cmd_token)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    try:
        args.func(args)
    except MediaLibException as e:
        logger.error(f"{args.command} failed: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
