"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field


class ImapSettings(BaseModel):
    """Settings controlling IMAP connectivity."""

    host: str | None = Field(default=None, description="IMAP hostname")
    port: int = Field(default=993, description="IMAP port, typically 993 for SSL")
    username: str | None = Field(default=None, description="Account username")
    password: str | None = Field(
        default=None, description="Account or app-specific password"
    )
    mailbox: str = Field(default="INBOX", description="Mailbox to display")
    use_ssl: bool = Field(default=True, description="Whether to enforce SSL")
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Socket timeout for IMAP operations"
    )
    summary_fetch_bytes: int = Field(
        default=65536,
        ge=0,
        description="Bytes of each message fetched for the list; 0 fetches all",
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )
    access_log: bool = Field(
        default=True, description="Emit one uvicorn access line per request"
    )


class WebSettings(BaseModel):
    """Presentation settings for the mailbox page and API."""

    title: str = Field(default="Email Inbox", description="Page heading")
    preview_length: int = Field(
        default=200,
        ge=0,
        description="Maximum characters in a list preview; 0 disables previews",
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    imap: ImapSettings = Field(default_factory=ImapSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    web: WebSettings = Field(default_factory=WebSettings)


ENV_PREFIX = "MAILBOX_VIEWER_"


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value
                for key, value in dotenv_values(env_path).items()
                if key and key.startswith(ENV_PREFIX)
            }

    env_values = {}
    if include_environment:
        env_values = {
            key: value
            for key, value in os.environ.items()
            if key.startswith(ENV_PREFIX)
        }

    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        path = _normalize_key(key)
        if not path:
            continue
        normalized_value: Any = value
        if isinstance(value, str) and value == "":
            normalized_value = None
        elif isinstance(value, str):
            lowercase_value = value.lower()
            if lowercase_value == "true":
                normalized_value = True
            elif lowercase_value == "false":
                normalized_value = False
        _merge_into_tree(collected, path, normalized_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(
        env_file, include_environment=include_environment
    )
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "ImapSettings",
    "LoggingSettings",
    "WebSettings",
    "load_app_settings",
]
