#!/usr/bin/env python
"""Command-line entry point for DavNotes."""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from davnotes import __version__
from davnotes.config import config
from davnotes.exceptions import ConfigurationError, DavNotesError
from davnotes.models.schema import NoteType
from davnotes.observability import configure_logging
from davnotes.services.sync_service import NoteSyncService
from davnotes.storage.markdown_parser import MarkdownParser
from davnotes.storage.timestamps import to_iso

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="WebDAV notes client")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--url", help="WebDAV base URL", default=config.server_url)
    parser.add_argument("--username", help="WebDAV username", default=config.username)
    parser.add_argument("--password", help="WebDAV password", default=config.password)
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=config.log_level,
    )
    parser.add_argument(
        "--no-file-log", action="store_true", help="Log to the console only"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("check", help="Test the connection (creates collections on first run)")
    list_cmd = commands.add_parser("list", help="List notes, most recently updated first")
    list_cmd.add_argument(
        "--json", action="store_true", help="Print summaries as a JSON array"
    )
    show = commands.add_parser("show", help="Print a note's JSON record")
    show.add_argument("note_id")
    export = commands.add_parser("export", help="Print a note as its markdown mirror")
    export.add_argument("note_id")
    delete = commands.add_parser("delete", help="Delete a note and its mirror")
    delete.add_argument("note_id")
    return parser.parse_args(argv)


async def run_command(args: argparse.Namespace, service: NoteSyncService) -> None:
    """Connect and execute one subcommand, printing its result."""
    settings = config.model_copy(
        update={"server_url": args.url, "username": args.username, "password": args.password}
    )
    if not settings.has_credentials():
        raise ConfigurationError(
            "Server URL, username and password are required "
            "(set DAVNOTES_SERVER_URL, DAVNOTES_USERNAME, DAVNOTES_PASSWORD)",
            config_key="DAVNOTES_SERVER_URL",
        )

    await service.connect(args.url, args.username, args.password)
    try:
        if args.command == "check":
            print(f"Connected to {args.url}")
        elif args.command == "list":
            summaries = await service.list_notes()
            if args.json:
                print(json.dumps([s.to_json_dict() for s in summaries], indent=2))
            else:
                for summary in summaries:
                    marker = "[x]" if summary.note_type == NoteType.CHECKLIST else "   "
                    print(
                        f"{summary.id}  {to_iso(summary.updated_at)}  "
                        f"{marker} {summary.title}"
                    )
        elif args.command == "show":
            note = await service.get_note(args.note_id)
            print(note.to_json())
        elif args.command == "export":
            note = await service.get_note(args.note_id)
            print(MarkdownParser().render_to_markdown(note))
        elif args.command == "delete":
            await service.delete_note(args.note_id)
            print(f"Deleted {args.note_id}")
    finally:
        await service.disconnect()


def main(argv: Optional[List[str]] = None) -> int:
    """Run the DavNotes command line."""
    args = parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    if args.no_file_log:
        logging.basicConfig(level=log_level)
    else:
        try:
            configure_logging(log_dir=config.log_dir, level=log_level, console=False)
        except DavNotesError as e:
            # Fall back to basic console logging if file logging fails
            logging.basicConfig(level=log_level)
            logger.warning(f"Failed to configure file logging: {e}")

    try:
        asyncio.run(run_command(args, NoteSyncService()))
    except DavNotesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
