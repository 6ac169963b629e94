"""Session store contract and an in-memory implementation."""

from __future__ import annotations

import secrets
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Protocol

from .models import Gone, Session, SessionView, UpdateResult, Updated, User


class SessionStore(Protocol):
    """Keyed persistence the lifecycle service talks to.

    ``update_expiry`` is a conditional update: it reports :class:`Gone`
    instead of raising when the row no longer exists.
    """

    def find_by_token(self, token: str) -> Optional[SessionView]:
        ...

    def find_by_id(self, session_id: str) -> Optional[Session]:
        ...

    def update_expiry(self, session_id: str, expires_at: datetime) -> UpdateResult:
        ...

    def delete_by_id(self, session_id: str) -> None:
        ...

    def delete_all_for_user(self, user_id: int) -> None:
        ...

    def list_for_user(self, user_id: int) -> List[Session]:
        ...


def generate_session_token() -> str:
    return secrets.token_urlsafe(32)


def generate_session_id() -> str:
    return uuid.uuid4().hex


class InMemorySessionStore:
    """Thread-safe in-memory store for tests and embedded deployments."""

    def __init__(self) -> None:
        self._users: Dict[int, User] = {}
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._next_user_id = 1

    def create_user(self, name: str, email: Optional[str] = None) -> User:
        with self._lock:
            user = User(
                id=self._next_user_id,
                name=name,
                email=email.strip().lower() if email else None,
                created_at=datetime.now(timezone.utc),
            )
            self._users[user.id] = user
            self._next_user_id += 1
        return user

    def create_session(
        self,
        user_id: int,
        *,
        max_age: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Session:
        created_at = now or datetime.now(timezone.utc)
        session = Session(
            id=generate_session_id(),
            user_id=user_id,
            token=generate_session_token(),
            expires_at=created_at + timedelta(seconds=max_age),
            created_at=created_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        with self._lock:
            if user_id not in self._users:
                raise ValueError("User not found")
            self._sessions[session.id] = session
        return session

    def find_by_token(self, token: str) -> Optional[SessionView]:
        with self._lock:
            for session in self._sessions.values():
                if secrets.compare_digest(session.token, token):
                    user = self._users.get(session.user_id)
                    if user is None:
                        return None
                    return SessionView(session=session, user=user)
        return None

    def find_by_id(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def update_expiry(self, session_id: str, expires_at: datetime) -> UpdateResult:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                return Gone()
            updated = current.with_expiry(expires_at)
            self._sessions[session_id] = updated
        return Updated(updated)

    def delete_by_id(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def delete_all_for_user(self, user_id: int) -> None:
        with self._lock:
            for session_id in [sid for sid, s in self._sessions.items() if s.user_id == user_id]:
                del self._sessions[session_id]

    def list_for_user(self, user_id: int) -> List[Session]:
        with self._lock:
            sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.created_at)


__all__ = [
    "InMemorySessionStore",
    "SessionStore",
    "generate_session_id",
    "generate_session_token",
]
