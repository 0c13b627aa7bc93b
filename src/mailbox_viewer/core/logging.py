"""Logging configuration helpers."""

from __future__ import annotations

import logging
import logging.config
from typing import Any

from .config import LoggingSettings


def _structured_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for structured logs."""
    return {
        "format": "{asctime} {levelname} {name} {message}",
        "style": "{",
    }


def _plain_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for human readable logs."""
    return {
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    }


def _logger_levels(settings: LoggingSettings) -> dict[str, dict[str, Any]]:
    """Per-logger overrides for the package and the uvicorn server it runs under."""
    return {
        "mailbox_viewer": {"level": settings.level, "propagate": True},
        # uvicorn installs its own handlers; route everything through ours.
        "uvicorn": {"level": settings.level, "handlers": [], "propagate": True},
        "uvicorn.error": {"handlers": [], "propagate": True},
        "uvicorn.access": {
            "level": "INFO" if settings.access_log else "WARNING",
            "handlers": [],
            "propagate": True,
        },
    }


def configure_logging(settings: LoggingSettings) -> None:
    """Configure application logging according to provided settings."""
    formatter = _structured_formatter() if settings.structured else _plain_formatter()

    dict_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": formatter,
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": settings.level,
            },
        },
        "loggers": _logger_levels(settings),
        "root": {
            "handlers": ["console"],
            "level": settings.level,
        },
    }

    logging.config.dictConfig(dict_config)


__all__ = ["configure_logging"]
