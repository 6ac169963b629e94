"""Signed cookie transport for session credentials."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional

from itsdangerous import BadSignature, Signer
from starlette.requests import Request
from starlette.responses import Response

from .config import SessionSettings

_SIGNER_SALT = "authsession.cookie"
_STATE_ATTR = "session_cookie_transport"
_DONT_REMEMBER_VALUE = "true"


def build_signer(secret: str) -> Signer:
    return Signer(secret, salt=_SIGNER_SALT)


def sign_cookie_value(secret: str, value: str) -> str:
    """Return ``value`` with an appended HMAC signature, as stored in the cookie."""

    return build_signer(secret).sign(value).decode("utf-8")


@dataclass(frozen=True)
class _CookieWrite:
    name: str
    value: str
    max_age: Optional[int]


@dataclass(frozen=True)
class _CookieDelete:
    name: str


class CookieTransport:
    """Reads signed cookies from a request and queues cookie writes for its response.

    Writes are recorded rather than applied immediately so that the session
    core can run before the handler has decided which response to send;
    :meth:`apply` replays them onto whatever response is finally returned.
    """

    def __init__(self, settings: SessionSettings, cookies: Mapping[str, str] | None = None) -> None:
        self._settings = settings
        self._cookies = dict(cookies or {})
        self._signer = build_signer(settings.secret)
        self._pending: List[_CookieWrite | _CookieDelete] = []

    @classmethod
    def for_request(cls, request: Request, settings: SessionSettings) -> "CookieTransport":
        """Return the transport bound to ``request``, creating it on first use."""

        transport = getattr(request.state, _STATE_ATTR, None)
        if transport is None:
            transport = cls(settings, request.cookies)
            setattr(request.state, _STATE_ATTR, transport)
        return transport

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    def read_signed_cookie(self, name: str) -> Optional[str]:
        raw = self._cookies.get(name)
        if not raw:
            return None
        try:
            return self._signer.unsign(raw).decode("utf-8")
        except (BadSignature, UnicodeDecodeError):
            return None

    def session_token(self) -> Optional[str]:
        return self.read_signed_cookie(self._settings.session_cookie_name)

    def dont_remember(self) -> bool:
        return self.read_signed_cookie(self._settings.dont_remember_cookie_name) is not None

    def set_session_cookie(
        self,
        token: str,
        dont_remember: bool = False,
        *,
        max_age: Optional[int] = None,
    ) -> None:
        # Without "remember me" the session cookie lives for the browser session only.
        if dont_remember:
            cookie_max_age = None
        elif max_age is None:
            cookie_max_age = self._settings.max_age
        else:
            cookie_max_age = max(int(max_age), 0)
        self._queue_write(self._settings.session_cookie_name, token, cookie_max_age)
        if dont_remember:
            self._queue_write(self._settings.dont_remember_cookie_name, _DONT_REMEMBER_VALUE, None)

    def delete_session_cookie(self) -> None:
        for name in (self._settings.session_cookie_name, self._settings.dont_remember_cookie_name):
            self._cookies.pop(name, None)
            self._pending.append(_CookieDelete(name))

    def apply(self, response: Response) -> Response:
        """Write all queued cookie operations onto ``response``."""

        for operation in self._pending:
            if isinstance(operation, _CookieDelete):
                response.delete_cookie(
                    operation.name,
                    path="/",
                    secure=self._settings.secure_cookies,
                    httponly=True,
                    samesite=self._settings.same_site,
                )
                continue
            response.set_cookie(
                operation.name,
                operation.value,
                max_age=operation.max_age,
                secure=self._settings.secure_cookies,
                httponly=True,
                samesite=self._settings.same_site,
                path="/",
            )
        return response

    def _queue_write(self, name: str, value: str, max_age: Optional[int]) -> None:
        signed = self._signer.sign(value).decode("utf-8")
        self._cookies[name] = signed
        self._pending.append(_CookieWrite(name=name, value=signed, max_age=max_age))


__all__ = ["CookieTransport", "build_signer", "sign_cookie_value"]
