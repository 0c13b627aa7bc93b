"""Utilities for parsing raw RFC822 messages into display models."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from email.utils import getaddresses, parsedate_to_datetime

from ..core.datetime_utils import utcnow
from ..core.models import MailAddress, MessageChunk, MessageDetail, MessageSummary

NO_SUBJECT = "No Subject"
UNKNOWN_SENDER = MailAddress(name="Unknown", address="unknown@email.com")
DEFAULT_PREVIEW_LENGTH = 200
_ELLIPSIS = "…"


class EmailParser:
    """Convert raw email payloads into summary and detail projections.

    Missing headers are replaced with fixed placeholders. A missing or
    unreadable ``Date`` becomes the time the projection is built, not the
    time the message was sent.
    """

    def __init__(
        self,
        *,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Prepare internal parser instance."""
        self._parser = BytesParser(policy=policy.default)
        self._preview_length = preview_length
        self._clock = clock

    def parse_summary(self, chunk: MessageChunk) -> MessageSummary:
        """Build the list projection for ``chunk``."""
        message = self._parse(chunk.raw)
        text, _ = _extract_bodies(message)
        return MessageSummary(
            uid=chunk.uid,
            subject=_resolve_subject(message),
            sender=_resolve_sender(message),
            date=self._resolve_date(message),
            flags=chunk.flags,
            preview=self._build_preview(text),
        )

    def parse_detail(self, chunk: MessageChunk) -> MessageDetail:
        """Build the full projection for ``chunk``."""
        message = self._parse(chunk.raw)
        text, html = _extract_bodies(message)
        return MessageDetail(
            uid=chunk.uid,
            subject=_resolve_subject(message),
            sender=_resolve_sender(message),
            to=tuple(_extract_addresses(message.get_all("To", []))),
            cc=tuple(_extract_addresses(message.get_all("Cc", []))),
            date=self._resolve_date(message),
            flags=chunk.flags,
            preview=self._build_preview(text),
            content=_select_content(text, html),
            has_html=html is not None,
        )

    # Internal helpers ---------------------------------------------------------
    def _parse(self, payload: bytes) -> EmailMessage:
        return self._parser.parsebytes(payload)  # type: ignore[return-value]

    def _resolve_date(self, message: EmailMessage) -> datetime:
        return _try_parse_datetime(message) or self._clock()

    def _build_preview(self, text: str | None) -> str:
        if not text or self._preview_length <= 0:
            return ""
        collapsed = " ".join(text.split())
        if len(collapsed) <= self._preview_length:
            return collapsed
        return collapsed[: self._preview_length].rstrip() + _ELLIPSIS


def _resolve_subject(message: EmailMessage) -> str:
    subject = message.get("Subject")
    if subject is None:
        return NO_SUBJECT
    subject = str(subject).strip()
    return subject or NO_SUBJECT


def _resolve_sender(message: EmailMessage) -> MailAddress:
    addresses = list(_extract_addresses(message.get_all("From", [])))
    return addresses[0] if addresses else UNKNOWN_SENDER


def _extract_addresses(headers: Iterable[str]) -> Iterable[MailAddress]:
    for display_name, email_address in getaddresses([str(h) for h in headers]):
        if email_address:
            yield MailAddress(name=display_name or None, address=email_address)


def _select_content(text: str | None, html: str | None) -> str:
    if text:
        return text
    if html:
        return html
    return ""


def _collapse_chunks(chunks: Iterable[str], separator: str) -> str | None:
    filtered_chunks = [chunk for chunk in chunks if chunk]
    if not filtered_chunks:
        return None
    return separator.join(filtered_chunks)


def _extract_bodies(message: EmailMessage) -> tuple[str | None, str | None]:
    plain_chunks: list[str] = []
    html_chunks: list[str] = []

    for part in message.walk():
        if part.is_multipart():
            continue
        content_type = part.get_content_type()
        disposition = part.get_content_disposition()
        if disposition == "attachment":
            continue
        try:
            content_obj = part.get_content()
        except LookupError:
            continue
        if not isinstance(content_obj, str):
            continue
        content = content_obj.strip()
        if content_type == "text/plain":
            plain_chunks.append(content)
        elif content_type == "text/html":
            html_chunks.append(content)

    text = _collapse_chunks(plain_chunks, "\n\n")
    html = _collapse_chunks(html_chunks, "\n")
    return text, html


def _try_parse_datetime(message: EmailMessage) -> datetime | None:
    try:
        header_value = message.get("Date")
        if header_value is None:
            return None
        parsed = parsedate_to_datetime(str(header_value))
    except (TypeError, ValueError):
        return None
    # RFC 5322 "-0000" means the zone is unknown; the wall time is UTC.
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


__all__ = ["EmailParser", "NO_SUBJECT", "UNKNOWN_SENDER"]
