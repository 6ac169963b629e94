"""Domain models shared by the session store and the lifecycle service."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Union


@dataclass(frozen=True)
class User:
    """Represents a user account that owns sessions."""

    id: int
    name: str
    email: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class Session:
    """A server-side session record binding a cookie token to a user."""

    id: str
    user_id: int
    token: str
    expires_at: datetime
    created_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def is_live(self, now: datetime) -> bool:
        return self.expires_at > now

    def with_expiry(self, expires_at: datetime) -> "Session":
        return replace(self, expires_at=expires_at)


@dataclass(frozen=True)
class SessionView:
    """The session/user pair handed to request handlers."""

    session: Session
    user: User


@dataclass(frozen=True)
class Updated:
    session: Session


@dataclass(frozen=True)
class Gone:
    """The row vanished before a conditional update could be applied."""


UpdateResult = Union[Updated, Gone]


__all__ = ["Gone", "Session", "SessionView", "UpdateResult", "Updated", "User"]
