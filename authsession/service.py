"""Session lifecycle orchestration: resolve, refresh and revoke."""

from __future__ import annotations

import logging
from typing import List, Literal, Union

import anyio

from .clock import Clock, SystemClock
from .config import SessionSettings
from .cookies import CookieTransport
from .errors import ErrorSink, LoggingErrorSink, Rejected, Rejection
from .models import Gone, SessionView, User
from .refresh import RefreshPolicy
from .store import SessionStore
from .validator import SessionValidator

logger = logging.getLogger("authsession.service")

ResolveResult = Union[SessionView, Rejected, None]
RevokeResult = Union[Literal[True], Rejected]


class SessionLifecycleService:
    """Combine validation, throttled refresh and cookie upkeep for one request.

    The service holds no session state of its own: every decision is made
    against the store, which is also the only point where concurrent
    requests for the same session can interleave.
    """

    def __init__(
        self,
        store: SessionStore,
        settings: SessionSettings,
        *,
        clock: Clock | None = None,
        error_sink: ErrorSink | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._clock = clock or SystemClock()
        self._error_sink = error_sink or LoggingErrorSink()
        self._policy = RefreshPolicy.from_settings(settings)
        self._validator = SessionValidator(store, clock=self._clock, error_sink=self._error_sink)

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    @property
    def policy(self) -> RefreshPolicy:
        return self._policy

    async def resolve(self, transport: CookieTransport) -> ResolveResult:
        """Return the caller's live session, ``None`` when unauthenticated.

        Unexpected store failures are reported and returned as
        ``Rejected(Rejection.INTERNAL)``.
        """

        token = transport.session_token()
        if not token:
            return None
        dont_remember = transport.dont_remember()

        try:
            validated = await self._validator.validate(token, transport)
            if isinstance(validated, Rejected):
                return None

            now = self._clock.now()
            if not self._policy.is_due(validated.session, now, dont_remember=dont_remember):
                return validated

            new_expiry = self._policy.next_expiry(now)
            outcome = await anyio.to_thread.run_sync(
                self._store.update_expiry, validated.session.id, new_expiry
            )
            if isinstance(outcome, Gone):
                # Revoked between lookup and update.
                logger.info("Session %s disappeared during refresh", validated.session.id)
                transport.delete_session_cookie()
                return None

            refreshed = outcome.session
            remaining = int((refreshed.expires_at - self._clock.now()).total_seconds())
            transport.set_session_cookie(refreshed.token, False, max_age=remaining)
            logger.debug(
                "Extended session %s for user %s until %s",
                refreshed.id,
                refreshed.user_id,
                refreshed.expires_at.isoformat(),
            )
            return SessionView(session=refreshed, user=validated.user)
        except Exception as exc:
            self._error_sink.report(exc)
            return Rejected(Rejection.INTERNAL)

    async def revoke_one(self, session_id: str, requesting_user_id: int) -> RevokeResult:
        try:
            session = await anyio.to_thread.run_sync(self._store.find_by_id, session_id)
        except Exception as exc:
            self._error_sink.report(exc)
            return Rejected(Rejection.INTERNAL)

        if session is None:
            return Rejected(Rejection.NOT_FOUND)
        if session.user_id != requesting_user_id:
            logger.warning(
                "User %s attempted to revoke session %s owned by another user",
                requesting_user_id,
                session_id,
            )
            return Rejected(Rejection.FORBIDDEN)

        try:
            await anyio.to_thread.run_sync(self._store.delete_by_id, session_id)
        except Exception as exc:
            self._error_sink.report(exc)
            return Rejected(Rejection.INTERNAL)

        logger.info("User %s revoked session %s", requesting_user_id, session_id)
        return True

    async def revoke_all(self, requesting_user_id: int) -> RevokeResult:
        try:
            await anyio.to_thread.run_sync(self._store.delete_all_for_user, requesting_user_id)
        except Exception as exc:
            self._error_sink.report(exc)
            return Rejected(Rejection.INTERNAL)

        logger.info("User %s revoked all sessions", requesting_user_id)
        return True

    async def list_active(self, user: User) -> Union[List[SessionView], Rejected]:
        """Return the user's unexpired sessions, oldest first.

        Expired rows are skipped but left in place; cleanup happens on
        validation or through :meth:`Database.delete_expired_sessions`.
        """

        try:
            sessions = await anyio.to_thread.run_sync(self._store.list_for_user, user.id)
        except Exception as exc:
            self._error_sink.report(exc)
            return Rejected(Rejection.INTERNAL)

        now = self._clock.now()
        live = sorted((s for s in sessions if s.is_live(now)), key=lambda s: s.created_at)
        return [SessionView(session=session, user=user) for session in live]


__all__ = ["ResolveResult", "RevokeResult", "SessionLifecycleService"]
