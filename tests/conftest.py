from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from authsession.clock import FrozenClock
from authsession.config import SessionSettings
from authsession.cookies import CookieTransport, sign_cookie_value
from authsession.database import Database
from authsession.store import InMemorySessionStore

SECRET = "tests-secret-key"
THIRTY_DAYS = 60 * 60 * 24 * 30
ONE_DAY = 60 * 60 * 24


class RecordingErrorSink:
    def __init__(self) -> None:
        self.errors: List[BaseException] = []

    def report(self, error: BaseException) -> None:
        self.errors.append(error)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> SessionSettings:
    return SessionSettings(
        secret=SECRET,
        max_age=THIRTY_DAYS,
        update_age=ONE_DAY,
        secure_cookies=False,
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "sessions.sqlite3")
    db.initialize()
    return db


@pytest.fixture
def error_sink() -> RecordingErrorSink:
    return RecordingErrorSink()


@pytest.fixture
def make_transport(settings: SessionSettings) -> Callable[..., CookieTransport]:
    def factory(token: Optional[str] = None, *, dont_remember: bool = False) -> CookieTransport:
        cookies = {}
        if token is not None:
            cookies[settings.session_cookie_name] = sign_cookie_value(settings.secret, token)
        if dont_remember:
            cookies[settings.dont_remember_cookie_name] = sign_cookie_value(settings.secret, "true")
        return CookieTransport(settings, cookies)

    return factory
