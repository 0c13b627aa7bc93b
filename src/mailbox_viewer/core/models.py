"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True, frozen=True)
class MailAddress:
    """Display name and address pair taken from an envelope header."""

    name: str | None
    address: str


@dataclass(slots=True)
class MessageChunk:
    """Raw IMAP payload paired with its UID and flags."""

    uid: int
    raw: bytes
    flags: frozenset[str] = field(default_factory=frozenset)


@dataclass(slots=True)
class MessageSummary:
    """List projection of a message."""

    uid: int
    subject: str
    sender: MailAddress
    date: datetime
    flags: frozenset[str]
    preview: str


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class MessageDetail:
    """Full projection of a single message."""

    uid: int
    subject: str
    sender: MailAddress
    to: tuple[MailAddress, ...]
    cc: tuple[MailAddress, ...]
    date: datetime
    flags: frozenset[str]
    preview: str
    content: str
    has_html: bool


@dataclass(slots=True)
class MailboxListing:
    """Summaries for a mailbox, newest first, with the server-reported count."""

    messages: tuple[MessageSummary, ...]
    total: int


__all__ = [
    "MailAddress",
    "MailboxListing",
    "MessageChunk",
    "MessageDetail",
    "MessageSummary",
]
