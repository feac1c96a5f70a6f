"""Utility helpers for reusable functionality."""

from .datetime import (
    ensure_app_timezone,
    get_app_timezone,
    resolve_timezone,
    utc_now,
)

__all__ = [
    "ensure_app_timezone",
    "get_app_timezone",
    "resolve_timezone",
    "utc_now",
]
