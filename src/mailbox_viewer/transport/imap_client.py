"""IMAP transport adapter providing read-only mailbox access."""

from __future__ import annotations

import imaplib
import logging
import re
from collections.abc import Iterable, Iterator
from types import TracebackType

from ..core.config import ImapSettings
from ..core.interfaces import MailboxProvider
from ..core.models import MessageChunk

LOGGER = logging.getLogger(__name__)

# BODY.PEEK leaves \Seen untouched.
FETCH_ITEMS = "(UID FLAGS BODY.PEEK[])"

_UID_PATTERN = re.compile(rb"UID (\d+)")
_RESPONSE_START = re.compile(rb"^\d+ \(")
_IMAP_ERRORS: tuple[type[Exception], ...] = (imaplib.IMAP4.error, OSError)


def summary_fetch_items(limit: int) -> str:
    """FETCH items for list views, truncating each message to ``limit`` bytes."""
    if limit <= 0:
        return FETCH_ITEMS
    return f"(UID FLAGS BODY.PEEK[]<0.{limit}>)"


class ImapError(RuntimeError):
    """Wrap low level IMAP errors with additional context."""


class ImapClient(MailboxProvider):
    """Thin wrapper around ``imaplib`` offering typed fetch helpers."""

    def __init__(self, settings: ImapSettings, mailbox: str | None = None) -> None:
        """Initialise the client with configuration settings and mailbox."""
        self._settings = settings
        self._connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None = None
        self.mailbox = mailbox or settings.mailbox
        self.exists = 0

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> ImapClient:
        """Connect on entering a context manager scope."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure resources are released on context exit."""
        self.close()

    # Public API ---------------------------------------------------------------
    def connect(self) -> None:
        """Establish IMAP connection and select the configured mailbox."""
        if self._connection is not None:
            return

        host = self._settings.host
        username = self._settings.username
        password = self._settings.password
        if not host:
            raise ImapError("IMAP host is not configured")
        if username is None or password is None:
            raise ImapError("IMAP credentials are not configured")

        connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None = None
        try:
            if self._settings.use_ssl:
                LOGGER.debug(
                    "Connecting to IMAP host %s:%s via SSL", host, self._settings.port
                )
                connection = imaplib.IMAP4_SSL(
                    host, self._settings.port, timeout=self._settings.timeout_seconds
                )
            else:
                LOGGER.debug(
                    "Connecting to IMAP host %s:%s without SSL",
                    host,
                    self._settings.port,
                )
                connection = imaplib.IMAP4(
                    host, self._settings.port, timeout=self._settings.timeout_seconds
                )

            LOGGER.debug("Authenticating as %s", username)
            connection.login(username, password)
            status, data = connection.select(self.mailbox, readonly=True)
            if status != "OK":
                raise ImapError(f"Unable to select mailbox '{self.mailbox}'")
            self.exists = _parse_exists(data)
            LOGGER.debug("Mailbox %s reports %s message(s)", self.mailbox, self.exists)
        except _IMAP_ERRORS as exc:
            _logout_quietly(connection)
            raise ImapError("Failed to connect to IMAP server") from exc
        except ImapError:
            _logout_quietly(connection)
            raise
        self._connection = connection

    def fetch_all(self) -> list[MessageChunk]:
        """Return every message in the mailbox in server sequence order."""
        connection = self._require_connection()
        if self.exists == 0:
            LOGGER.debug("Mailbox %s is empty; skipping fetch", self.mailbox)
            return []

        LOGGER.debug("Fetching %s message(s) from %s", self.exists, self.mailbox)
        try:
            status, data = connection.fetch(
                "1:*", summary_fetch_items(self._settings.summary_fetch_bytes)
            )
        except _IMAP_ERRORS as exc:
            raise ImapError("IMAP error while fetching messages") from exc
        if status != "OK":
            raise ImapError("Failed to fetch messages")
        return list(_parse_fetch_response(data))

    def fetch_uid(self, uid: int) -> MessageChunk | None:
        """Return the message with ``uid`` or ``None`` when it does not exist."""
        connection = self._require_connection()
        uid_str = str(uid)
        LOGGER.debug("Fetching message UID %s", uid_str)
        try:
            status, data = connection.uid("FETCH", uid_str, FETCH_ITEMS)
        except _IMAP_ERRORS as exc:
            raise ImapError(f"IMAP error while fetching UID {uid_str}") from exc
        if status != "OK":
            raise ImapError(f"Failed to fetch message UID {uid_str}")

        for chunk in _parse_fetch_response(data):
            if chunk.uid == uid:
                return chunk
        LOGGER.debug("No message with UID %s in %s", uid_str, self.mailbox)
        return None

    def close(self) -> None:
        """Terminate the IMAP session cleanly."""
        if self._connection is None:
            return
        try:
            LOGGER.debug("Closing IMAP connection")
            self._connection.close()
        except _IMAP_ERRORS:
            LOGGER.debug("IMAP close raised; continuing with logout")
        finally:
            _logout_quietly(self._connection)
            self._connection = None

    # Internal helpers ---------------------------------------------------------
    def _require_connection(self) -> imaplib.IMAP4 | imaplib.IMAP4_SSL:
        if self._connection is None:
            raise ImapError("IMAP connection has not been established")
        return self._connection


def _logout_quietly(connection: imaplib.IMAP4 | imaplib.IMAP4_SSL | None) -> None:
    if connection is None:
        return
    try:
        connection.logout()
    except _IMAP_ERRORS:
        LOGGER.debug("IMAP logout raised; suppressing during shutdown")


def _parse_exists(data: list[bytes | None]) -> int:
    """Read the EXISTS count ``imaplib`` returns from SELECT."""
    if not data or data[0] is None:
        return 0
    try:
        return int(data[0])
    except ValueError:
        return 0


def _group_responses(
    fetch_data: Iterable[tuple[bytes, bytes] | bytes | None],
) -> Iterator[tuple[bytes, bytes]]:
    """Pair each message literal with all metadata surrounding it.

    Servers may send ``UID`` and ``FLAGS`` before or after the ``BODY[]``
    literal, so trailing fragments are folded back into the preceding record.
    """
    metadata: bytes | None = None
    payload = b""
    for entry in fetch_data:
        if entry is None:
            continue
        if isinstance(entry, tuple) and len(entry) == 2:
            if metadata is not None:
                yield metadata, payload
            metadata, payload = entry[0], entry[1]
        elif isinstance(entry, bytes):
            if _RESPONSE_START.match(entry):
                if metadata is not None:
                    yield metadata, payload
                metadata, payload = entry, b""
            elif metadata is not None:
                metadata += b" " + entry
    if metadata is not None:
        yield metadata, payload


def _parse_fetch_response(
    fetch_data: Iterable[tuple[bytes, bytes] | bytes | None],
) -> Iterator[MessageChunk]:
    for metadata, payload in _group_responses(fetch_data):
        uid_match = _UID_PATTERN.search(metadata)
        if uid_match is None:
            LOGGER.warning("FETCH response without UID: %r", metadata[:80])
            continue
        flags = frozenset(
            flag.decode("ascii", errors="replace")
            for flag in imaplib.ParseFlags(metadata)
        )
        yield MessageChunk(uid=int(uid_match.group(1)), raw=payload, flags=flags)


__all__ = [
    "FETCH_ITEMS",
    "summary_fetch_items",
    "ImapClient",
    "ImapError",
]
