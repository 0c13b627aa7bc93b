"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from types import TracebackType
from typing import Protocol

from .models import MessageChunk


class MailboxProvider(Protocol):
    """Abstraction over a single selected mailbox such as an IMAP folder."""

    mailbox: str
    exists: int

    def __enter__(self) -> MailboxProvider:
        """Open the session and select the mailbox."""
        raise NotImplementedError

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Release the session."""
        raise NotImplementedError

    def fetch_all(self) -> list[MessageChunk]:
        """Return every message in server sequence order."""
        raise NotImplementedError

    def fetch_uid(self, uid: int) -> MessageChunk | None:
        """Return a single message by UID, or ``None`` when it does not exist."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any network resources."""
        raise NotImplementedError


__all__ = ["MailboxProvider"]
