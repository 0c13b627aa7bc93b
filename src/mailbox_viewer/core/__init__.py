"""Core utilities for configuration, logging, and domain models."""

from .config import AppSettings, ImapSettings, WebSettings, load_app_settings
from .logging import configure_logging

__all__ = [
    "AppSettings",
    "ImapSettings",
    "WebSettings",
    "configure_logging",
    "load_app_settings",
]
