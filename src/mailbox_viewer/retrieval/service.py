"""Per-call mailbox queries built on top of the IMAP transport."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..core.config import ImapSettings
from ..core.interfaces import MailboxProvider
from ..core.models import MailboxListing, MessageDetail
from ..transport import ImapClient
from .parser import DEFAULT_PREVIEW_LENGTH, EmailParser

LOGGER = logging.getLogger(__name__)

MailboxFactory = Callable[[ImapSettings], MailboxProvider]


class MailboxQueryService:
    """Open a fresh IMAP session for every query and close it before returning.

    No session outlives a call, so a failed query never affects the next one.
    """

    def __init__(
        self,
        settings: ImapSettings,
        *,
        parser: EmailParser | None = None,
        client_factory: MailboxFactory | None = None,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ) -> None:
        self._settings = settings
        self._parser = parser or EmailParser(preview_length=preview_length)
        self._client_factory: MailboxFactory = client_factory or ImapClient

    def list_messages(self) -> MailboxListing:
        """Return summaries for every message, most recent first."""
        with self._client_factory(self._settings) as mailbox:
            chunks = mailbox.fetch_all()
            total = mailbox.exists
        summaries = [self._parser.parse_summary(chunk) for chunk in chunks]
        summaries.reverse()
        LOGGER.info(
            "Listed %d of %d message(s) from %s",
            len(summaries),
            total,
            self._settings.mailbox,
        )
        return MailboxListing(messages=tuple(summaries), total=total)

    def get_message(self, uid: int) -> MessageDetail | None:
        """Return the full message for ``uid``, or ``None`` if it does not exist."""
        with self._client_factory(self._settings) as mailbox:
            chunk = mailbox.fetch_uid(uid)
        if chunk is None:
            LOGGER.info("Message UID %s not found in %s", uid, self._settings.mailbox)
            return None
        return self._parser.parse_detail(chunk)


__all__ = ["MailboxFactory", "MailboxQueryService"]
