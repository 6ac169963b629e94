"""HTTP endpoints exposing session resolution and revocation."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, List, Optional, Tuple

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .clock import Clock
from .config import SessionSettings, resolve_database_path, settings_from_env
from .cookies import CookieTransport
from .database import Database
from .errors import ErrorSink, Rejected, Rejection
from .fingerprint import RequestMemo, memoize_per_request
from .models import Session, SessionView, User
from .service import ResolveResult, SessionLifecycleService
from .store import SessionStore

logger = logging.getLogger("authsession.api")


def _trusted_proxy_hosts() -> list[str] | str:
    raw = os.getenv("AUTHSESSION_TRUSTED_PROXIES")
    if not raw:
        return "*"
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "*"


class SessionPayload(BaseModel):
    id: str
    user_id: int
    expires_at: datetime
    created_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class UserPayload(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    created_at: datetime


class SessionViewPayload(BaseModel):
    session: SessionPayload
    user: UserPayload


class RevokeSessionRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=256)


class StatusResponse(BaseModel):
    status: bool


def _session_to_payload(session: Session) -> SessionPayload:
    # The cookie token is deliberately absent from every payload.
    return SessionPayload(
        id=session.id,
        user_id=session.user_id,
        expires_at=session.expires_at,
        created_at=session.created_at,
        ip_address=session.ip_address,
        user_agent=session.user_agent,
    )


def _user_to_payload(user: User) -> UserPayload:
    return UserPayload(id=user.id, name=user.name, email=user.email, created_at=user.created_at)


def _view_to_payload(view: SessionView) -> SessionViewPayload:
    return SessionViewPayload(session=_session_to_payload(view.session), user=_user_to_payload(view.user))


def _respond(transport: CookieTransport, status_code: int, payload: Any = None) -> Response:
    if payload is None:
        response: Response = Response(status_code=status_code)
    else:
        response = JSONResponse(content=payload, status_code=status_code)
    return transport.apply(response)


_REVOKE_STATUS = {
    Rejection.NOT_FOUND: status.HTTP_400_BAD_REQUEST,
    Rejection.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    Rejection.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def register_session_routes(app: FastAPI, service: SessionLifecycleService) -> None:
    """Expose the session endpoints on the provided FastAPI application."""

    settings = service.settings

    def _transport(request: Request) -> CookieTransport:
        return CookieTransport.for_request(request, settings)

    @memoize_per_request(lambda request: request.cookies.get(settings.session_cookie_name))
    async def _resolve(request: Request) -> ResolveResult:
        return await service.resolve(_transport(request))

    async def _authenticate(request: Request) -> Tuple[Optional[SessionView], Optional[Response]]:
        outcome = await _resolve(request)
        transport = _transport(request)
        if isinstance(outcome, Rejected):
            return None, _respond(transport, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if outcome is None:
            return None, _respond(transport, status.HTTP_401_UNAUTHORIZED)
        return outcome, None

    @app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/session", response_model=SessionViewPayload)
    async def get_session(request: Request) -> Response:
        view, failure = await _authenticate(request)
        if failure is not None:
            return failure
        return _respond(_transport(request), status.HTTP_200_OK, _view_to_payload(view).model_dump(mode="json"))

    @app.get("/user/list-sessions", response_model=List[SessionPayload])
    async def list_sessions(request: Request) -> Response:
        view, failure = await _authenticate(request)
        if failure is not None:
            return failure

        listed = await service.list_active(view.user)
        if isinstance(listed, Rejected):
            return _respond(_transport(request), status.HTTP_500_INTERNAL_SERVER_ERROR)
        payload = [_session_to_payload(item.session).model_dump(mode="json") for item in listed]
        return _respond(_transport(request), status.HTTP_200_OK, payload)

    @app.post("/user/revoke-session", response_model=StatusResponse)
    async def revoke_session(request: Request, body: RevokeSessionRequest) -> Response:
        view, failure = await _authenticate(request)
        if failure is not None:
            return failure

        outcome = await service.revoke_one(body.id, view.user.id)
        transport = _transport(request)
        if isinstance(outcome, Rejected):
            return _respond(transport, _REVOKE_STATUS[outcome.reason])

        RequestMemo.for_request(request).invalidate()
        return _respond(transport, status.HTTP_200_OK, StatusResponse(status=True).model_dump())

    @app.post("/user/revoke-sessions", response_model=StatusResponse)
    async def revoke_sessions(request: Request) -> Response:
        view, failure = await _authenticate(request)
        if failure is not None:
            return failure

        outcome = await service.revoke_all(view.user.id)
        transport = _transport(request)
        if isinstance(outcome, Rejected):
            return _respond(transport, status.HTTP_500_INTERNAL_SERVER_ERROR)

        RequestMemo.for_request(request).invalidate()
        return _respond(transport, status.HTTP_200_OK, StatusResponse(status=True).model_dump())


def create_app(
    *,
    database: Database | None = None,
    store: SessionStore | None = None,
    settings: SessionSettings | None = None,
    clock: Clock | None = None,
    error_sink: ErrorSink | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the session service."""

    if store is None:
        if database is None:
            database = Database(resolve_database_path(os.getenv("AUTHSESSION_DB_PATH")))
        database.initialize()
        store = database

    session_settings = settings or settings_from_env()
    if not session_settings.secure_cookies:
        logger.warning(
            "Session cookies are not marked as secure. Only disable secure cookies for"
            " local development."
        )

    service = SessionLifecycleService(
        store,
        session_settings,
        clock=clock,
        error_sink=error_sink,
    )

    app = FastAPI(
        title="Session Lifecycle Service",
        version="0.1.0",
        description="Resolve, refresh and revoke cookie-backed user sessions.",
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxy_hosts())
    app.state.store = store
    app.state.session_service = service

    register_session_routes(app, service)
    return app


__all__ = ["create_app", "register_session_routes"]
