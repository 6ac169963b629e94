"""Resolution of raw session tokens into live sessions."""

from __future__ import annotations

import logging
from typing import Optional, Union

import anyio

from .clock import Clock, SystemClock
from .cookies import CookieTransport
from .errors import ErrorSink, LoggingErrorSink, Rejected, Rejection
from .models import SessionView
from .store import SessionStore

logger = logging.getLogger("authsession.validator")

ValidationResult = Union[SessionView, Rejected]


class SessionValidator:
    """Look up a token, enforce expiry and clean up expired rows."""

    def __init__(
        self,
        store: SessionStore,
        *,
        clock: Clock | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._error_sink = error_sink or LoggingErrorSink()

    async def validate(
        self,
        token: Optional[str],
        transport: CookieTransport | None = None,
    ) -> ValidationResult:
        if not token:
            return Rejected(Rejection.NO_CREDENTIAL)

        view = await anyio.to_thread.run_sync(self._store.find_by_token, token)
        if view is None:
            if transport is not None:
                transport.delete_session_cookie()
            return Rejected(Rejection.NOT_FOUND)

        if view.session.expires_at <= self._clock.now():
            if transport is not None:
                transport.delete_session_cookie()
            await self._discard(view.session.id)
            return Rejected(Rejection.EXPIRED)

        return view

    async def _discard(self, session_id: str) -> None:
        try:
            await anyio.to_thread.run_sync(self._store.delete_by_id, session_id)
        except Exception as exc:
            self._error_sink.report(exc)
            return
        logger.debug("Removed expired session %s", session_id)


__all__ = ["SessionValidator", "ValidationResult"]
