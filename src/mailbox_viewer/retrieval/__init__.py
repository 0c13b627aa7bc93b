"""Mailbox retrieval components."""

from .parser import EmailParser
from .service import MailboxFactory, MailboxQueryService

__all__ = [
    "EmailParser",
    "MailboxFactory",
    "MailboxQueryService",
]
