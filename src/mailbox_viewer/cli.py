"""Command-line entry point for Mailbox Viewer."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import uvicorn

from mailbox_viewer.core import AppSettings, configure_logging, load_app_settings
from mailbox_viewer.core.datetime_utils import display_datetime
from mailbox_viewer.core.models import MailAddress
from mailbox_viewer.retrieval import MailboxQueryService
from mailbox_viewer.transport import ImapError


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Read-only IMAP mailbox viewer")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "list", "show", "serve"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--uid",
        type=int,
        default=None,
        help="Message UID for the show command.",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address for the serve command (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port for the serve command (default: 8000).",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the exit status."""
    command = args.command
    if command == "info":
        print(f"IMAP host: {settings.imap.host or '(not configured)'}")
        print(f"IMAP port: {settings.imap.port}")
        print(f"Mailbox: {settings.imap.mailbox}")
        print(f"SSL: {'enabled' if settings.imap.use_ssl else 'disabled'}")
        return 0
    if command == "serve":
        _run_server(settings, host=args.host, port=args.port)
        return 0

    service = MailboxQueryService(
        settings.imap, preview_length=settings.web.preview_length
    )
    try:
        if command == "list":
            _run_list(service)
        elif command == "show":
            if args.uid is None:
                print("The show command requires --uid.")
                return 2
            _run_show(service, args.uid)
    except ImapError as exc:
        print(f"Fetch failed: {exc}")
        return 1
    return 0


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    sys.exit(execute(args, settings))


def _format_address(address: MailAddress) -> str:
    if address.name:
        return f"{address.name} <{address.address}>"
    return address.address


def _run_list(service: MailboxQueryService) -> None:
    listing = service.list_messages()
    if not listing.messages:
        print("No emails found in your inbox.")
        return

    header = f"{'UID':>6}  {'Date':<22}  {'From':<30}  Subject"
    print(header)
    print("-" * len(header))
    for summary in listing.messages:
        sender = summary.sender.name or summary.sender.address
        print(
            f"{summary.uid:>6}  {display_datetime(summary.date) or '-':<22}  "
            f"{sender[:30]:<30}  {summary.subject}"
        )
    print(f"Showing {len(listing.messages)} of {listing.total} message(s).")


def _run_show(service: MailboxQueryService, uid: int) -> None:
    detail = service.get_message(uid)
    if detail is None:
        print(f"Message UID {uid} not found.")
        return

    print(f"Subject: {detail.subject}")
    print(f"From: {_format_address(detail.sender)}")
    if detail.to:
        print(f"To: {', '.join(_format_address(a) for a in detail.to)}")
    if detail.cc:
        print(f"Cc: {', '.join(_format_address(a) for a in detail.cc)}")
    print(f"Date: {display_datetime(detail.date)}")
    if detail.flags:
        print(f"Flags: {' '.join(sorted(detail.flags))}")
    print()
    print(detail.content or "No content available")


def _run_server(settings: AppSettings, *, host: str, port: int) -> None:
    from mailbox_viewer.web.app import create_app  # pylint: disable=import-outside-toplevel

    app = create_app(settings)
    print(f"Serving {settings.web.title} on http://{host}:{port}")
    # log_config=None keeps the handlers installed by configure_logging.
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_config=None,
        log_level=settings.logging.level.lower(),
        access_log=settings.logging.access_log,
    )


if __name__ == "__main__":
    main()
