"""Request fingerprints and request-scoped memoisation of session lookups."""

from __future__ import annotations

import functools
import hashlib
import json
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple, TypeVar

from starlette.requests import Request

from .errors import Rejected

_STATE_ATTR = "session_resolution_memo"
_MISSING = object()

T = TypeVar("T")


def request_fingerprint(
    method: str,
    url: str,
    headers: Iterable[Tuple[str, str]],
    client_host: Optional[str],
    token: str,
) -> str:
    """Derive a stable key identifying one logical request and credential.

    The key is a SHA-256 digest so that the raw token never ends up in a
    cache key or a log line.
    """

    normalised_headers = sorted((name.lower(), value) for name, value in headers)
    user_agent = next((value for name, value in normalised_headers if name == "user-agent"), "")
    parts = [
        method.upper(),
        url,
        json.dumps(normalised_headers, separators=(",", ":")),
        user_agent,
        client_host or "",
        token,
    ]
    return hashlib.sha256(":".join(parts).encode("utf-8")).hexdigest()


def fingerprint_request(request: Request, token: Optional[str]) -> str:
    client_host = request.client.host if request.client else None
    return request_fingerprint(
        request.method,
        str(request.url),
        request.headers.items(),
        client_host,
        token or "",
    )


class RequestMemo:
    """A cache attached to a single request's state.

    Instances are created lazily per request and are dropped together with
    the request object, so entries can never be shared across requests.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}

    @classmethod
    def for_request(cls, request: Request) -> "RequestMemo":
        memo = getattr(request.state, _STATE_ATTR, None)
        if memo is None:
            memo = cls()
            setattr(request.state, _STATE_ATTR, memo)
        return memo

    def get(self, key: str, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def memoize_per_request(
    token_of: Callable[[Request], Optional[str]],
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Memoise an async ``func(request, ...)`` for the lifetime of ``request``.

    Failures (:class:`Rejected` results) are never cached so that a retry
    within the same request reaches the store again.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(request: Request, *args: Any, **kwargs: Any) -> T:
            memo = RequestMemo.for_request(request)
            key = fingerprint_request(request, token_of(request))
            cached = memo.get(key, _MISSING)
            if cached is not _MISSING:
                return cached
            result = await func(request, *args, **kwargs)
            if not isinstance(result, Rejected):
                memo.put(key, result)
            return result

        return wrapper

    return decorator


__all__ = ["RequestMemo", "fingerprint_request", "memoize_per_request", "request_fingerprint"]
