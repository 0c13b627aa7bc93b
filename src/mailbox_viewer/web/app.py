"""FastAPI web application exposing a read-only view of one IMAP mailbox."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request, status as http_status
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.templating import Jinja2Templates

from mailbox_viewer.core import AppSettings, load_app_settings
from mailbox_viewer.core.datetime_utils import serialize_datetime
from mailbox_viewer.core.models import (
    MailAddress,
    MailboxListing,
    MessageDetail,
    MessageSummary,
)
from mailbox_viewer.retrieval import MailboxQueryService
from mailbox_viewer.transport import ImapError

LOGGER = logging.getLogger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch emails"
_NO_STORE = {"Cache-Control": "no-store"}

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
STATIC_DIR = Path(__file__).resolve().parent / "static"
_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_DEFAULT_ENV_FILE = _PROJECT_ROOT / ".env"
_ENV_FILE_OVERRIDE_VAR = "MAILBOX_VIEWER_ENV_FILE"


def create_app(
    settings: AppSettings | None = None,
    *,
    query_service: MailboxQueryService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = settings or load_app_settings(env_file=_resolve_env_file())
    service = query_service or MailboxQueryService(
        app_settings.imap, preview_length=app_settings.web.preview_length
    )
    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    app = FastAPI(title=app_settings.web.title)

    # Compress responses > 1KB; full mailbox listings get large quickly.
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        context = {
            "title": app_settings.web.title,
            "mailbox": app_settings.imap.mailbox,
            "api_url": str(request.url_for("list_or_fetch_emails").path),
        }
        return templates.TemplateResponse(request, "index.html", context)

    @app.get("/api/emails", name="list_or_fetch_emails")
    async def emails(
        uid: str | None = Query(default=None),  # noqa: B008
    ) -> JSONResponse:
        """List the mailbox, or return one message when ``uid`` is supplied.

        An empty ``uid`` (``?uid=``) counts as absent and lists the mailbox.
        """
        message_uid = _parse_uid(uid)
        try:
            if message_uid is None:
                listing = await run_in_threadpool(service.list_messages)
                payload: dict[str, Any] = _serialize_listing(listing)
            else:
                detail = await run_in_threadpool(service.get_message, message_uid)
                payload = {
                    "email": _serialize_detail(detail) if detail is not None else None
                }
        except ImapError as exc:
            LOGGER.exception("IMAP request failed (uid=%s): %s", message_uid, exc)
            return _failure_response()
        except Exception as exc:  # noqa: BLE001  # pylint: disable=broad-exception-caught
            LOGGER.exception(
                "Unexpected error serving emails (uid=%s): %s", message_uid, exc
            )
            return _failure_response()
        return JSONResponse(payload, headers=_NO_STORE)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    return app


def _parse_uid(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        value = 0
    if value < 1:
        raise HTTPException(
            status_code=http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="uid must be a positive integer",
        )
    return value


def _failure_response() -> JSONResponse:
    return JSONResponse(
        {"error": FETCH_FAILED_MESSAGE},
        status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
        headers=_NO_STORE,
    )


def _serialize_address(address: MailAddress) -> dict[str, Any]:
    return {"name": address.name, "address": address.address}


def _serialize_summary(summary: MessageSummary) -> dict[str, Any]:
    return {
        "uid": summary.uid,
        "subject": summary.subject,
        "from": _serialize_address(summary.sender),
        "date": serialize_datetime(summary.date),
        "flags": sorted(summary.flags),
        "preview": summary.preview,
    }


def _serialize_listing(listing: MailboxListing) -> dict[str, Any]:
    return {
        "emails": [_serialize_summary(summary) for summary in listing.messages],
        "total": listing.total,
    }


def _serialize_detail(detail: MessageDetail) -> dict[str, Any]:
    return {
        "uid": detail.uid,
        "subject": detail.subject,
        "from": _serialize_address(detail.sender),
        "to": [_serialize_address(address) for address in detail.to],
        "cc": [_serialize_address(address) for address in detail.cc],
        "date": serialize_datetime(detail.date),
        "flags": sorted(detail.flags),
        "content": detail.content,
        "hasHtml": detail.has_html,
    }


def _resolve_env_file() -> Path:
    override = os.environ.get(_ENV_FILE_OVERRIDE_VAR)
    if override:
        return Path(override).expanduser()
    return _DEFAULT_ENV_FILE


__all__ = ["FETCH_FAILED_MESSAGE", "create_app"]
