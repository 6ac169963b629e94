"""Server-side session lifecycle: validation, throttled refresh and revocation."""

from __future__ import annotations

from typing import Any

from .config import SessionSettings, resolve_database_path
from .database import Database


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the session HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Database",
    "SessionSettings",
    "create_app",
    "resolve_database_path",
]
