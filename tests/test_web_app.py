"""Integration tests for the FastAPI web application."""

from __future__ import annotations

import logging
import re

import pytest
from fakes import FakeMailbox, build_message
from fastapi.testclient import TestClient

from mailbox_viewer.core.config import AppSettings, ImapSettings, WebSettings
from mailbox_viewer.core.models import MessageChunk
from mailbox_viewer.retrieval import MailboxQueryService
from mailbox_viewer.web import create_app


def _client(mailbox: FakeMailbox, settings: AppSettings | None = None) -> TestClient:
    app_settings = settings or AppSettings(imap=ImapSettings(host="imap.test"))
    service = MailboxQueryService(app_settings.imap, client_factory=mailbox)
    return TestClient(create_app(app_settings, query_service=service))


def _seed_chunks() -> list[MessageChunk]:
    return [
        MessageChunk(
            uid=40,
            raw=build_message(subject="Older", text="First body"),
            flags=frozenset({"\\Seen", "\\Flagged"}),
        ),
        MessageChunk(uid=41, raw=build_message(subject=None, sender=None)),
        MessageChunk(uid=42, raw=build_message(subject="Newest", text="Hello")),
    ]


def test_summary_mode_lists_messages_newest_first() -> None:
    client = _client(FakeMailbox(_seed_chunks()))

    response = client.get("/api/emails")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    payload = response.json()
    assert payload["total"] == 3
    assert len(payload["emails"]) <= payload["total"]
    assert [email["uid"] for email in payload["emails"]] == [42, 41, 40]

    newest, untitled, oldest = payload["emails"]
    assert newest["subject"] == "Newest"
    assert newest["from"] == {"name": "Alice", "address": "alice@example.com"}
    assert newest["preview"] == "Hello"
    assert newest["date"].startswith("2025-10-26T12:00:00")
    assert untitled["subject"] == "No Subject"
    assert untitled["from"] == {"name": "Unknown", "address": "unknown@email.com"}
    assert oldest["flags"] == ["\\Flagged", "\\Seen"]
    for email in payload["emails"]:
        assert email["subject"]
        assert email["from"]["address"]


def test_detail_mode_returns_full_message() -> None:
    client = _client(FakeMailbox(_seed_chunks()))

    response = client.get("/api/emails", params={"uid": "42"})

    assert response.status_code == 200
    email = response.json()["email"]
    assert email["uid"] == 42
    assert email["content"] == "Hello"
    assert email["hasHtml"] is False
    assert email["to"] == [{"name": "Bob", "address": "bob@example.com"}]
    assert email["cc"] == []
    assert email["subject"] == "Newest"
    assert email["flags"] == []


def test_detail_mode_html_only_message() -> None:
    chunk = MessageChunk(uid=5, raw=build_message(text=None, html="<p>Hi</p>"))
    client = _client(FakeMailbox([chunk]))

    email = client.get("/api/emails?uid=5").json()["email"]

    assert email["content"] == "<p>Hi</p>"
    assert email["hasHtml"] is True


def test_detail_mode_unknown_uid_returns_null() -> None:
    client = _client(FakeMailbox(_seed_chunks()))

    response = client.get("/api/emails?uid=999")

    assert response.status_code == 200
    assert response.json() == {"email": None}


def test_detail_mode_rejects_non_integer_uid() -> None:
    client = _client(FakeMailbox(_seed_chunks()))

    response = client.get("/api/emails?uid=abc")

    assert response.status_code == 422


@pytest.mark.parametrize("uid", ["0", "-3"])
def test_detail_mode_rejects_non_positive_uid(uid: str) -> None:
    mailbox = FakeMailbox(_seed_chunks())
    client = _client(mailbox)

    response = client.get(f"/api/emails?uid={uid}")

    assert response.status_code == 422
    assert mailbox.opened == 0


def test_empty_uid_falls_back_to_summary_mode() -> None:
    client = _client(FakeMailbox(_seed_chunks()))

    response = client.get("/api/emails?uid=")

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 3
    assert [email["uid"] for email in payload["emails"]] == [42, 41, 40]


def test_unknown_zone_date_is_serialized_as_utc() -> None:
    raw = build_message(date="Sun, 26 Oct 2025 12:00:00 -0000")
    client = _client(FakeMailbox([MessageChunk(uid=3, raw=raw)]))

    email = client.get("/api/emails?uid=3").json()["email"]

    assert email["date"] == "2025-10-26T12:00:00+00:00"


def test_empty_mailbox_returns_empty_list() -> None:
    client = _client(FakeMailbox([]))

    response = client.get("/api/emails")

    assert response.status_code == 200
    assert response.json() == {"emails": [], "total": 0}


@pytest.mark.parametrize(
    "mailbox",
    [FakeMailbox(fail_on_connect=True), FakeMailbox(fail_on_fetch=True)],
    ids=["connect", "fetch"],
)
@pytest.mark.parametrize("query", ["", "?uid=1"], ids=["summary", "detail"])
def test_imap_failure_returns_generic_error(
    mailbox: FakeMailbox, query: str, caplog: pytest.LogCaptureFixture
) -> None:
    client = _client(mailbox)

    with caplog.at_level(logging.ERROR, logger="mailbox_viewer.web.app"):
        response = client.get(f"/api/emails{query}")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch emails"}
    assert "IMAP request failed" in caplog.text


def test_failed_request_does_not_affect_next_request() -> None:
    mailbox = FakeMailbox(_seed_chunks(), fail_on_fetch=True)
    client = _client(mailbox)

    assert client.get("/api/emails").status_code == 500
    mailbox.fail_on_fetch = False
    response = client.get("/api/emails")

    assert response.status_code == 200
    assert response.json()["total"] == 3
    assert mailbox.opened == mailbox.closed == 2


def test_missing_configuration_returns_error() -> None:
    app = create_app(AppSettings())
    client = TestClient(app)

    response = client.get("/api/emails")

    assert response.status_code == 500
    assert "error" in response.json()


def test_index_page_renders_shell() -> None:
    settings = AppSettings(
        imap=ImapSettings(host="imap.test"), web=WebSettings(title="Team Inbox")
    )
    client = _client(FakeMailbox([]), settings)

    response = client.get("/")

    assert response.status_code == 200
    assert "Team Inbox" in response.text
    assert 'data-api-url="/api/emails"' in response.text
    assert "No emails found in your inbox" in response.text
    assert 'id="refresh-button"' in response.text
    assert 'id="detail-overlay"' in response.text


def test_index_page_starts_in_loading_state() -> None:
    html = _client(FakeMailbox([])).get("/").text

    loading = re.search(r'<div id="loading"[^>]*>', html)
    assert loading is not None
    assert "hidden" not in loading.group(0)
    for element_id in ("error-banner", "empty-state", "email-list", "detail-overlay"):
        tag = re.search(rf'<\w+ id="{element_id}"[^>]*>', html)
        assert tag is not None, element_id
        assert tag.group(0).endswith(" hidden>"), element_id
    assert 'role="alert"' in html


def test_static_assets_smoke_check() -> None:
    """Only checks the assets are served; the script itself is not executed here."""
    client = _client(FakeMailbox([]))

    script = client.get("/static/app.js")

    assert script.status_code == 200
    assert "function isCurrentSelection(uid)" in script.text
    assert client.get("/static/styles.css").status_code == 200


def test_healthz_does_not_touch_imap() -> None:
    mailbox = FakeMailbox(fail_on_connect=True)
    client = _client(mailbox)

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert mailbox.opened == 0
