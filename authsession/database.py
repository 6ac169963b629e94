"""SQLite-backed persistence for users and sessions."""
from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from .config import resolve_database_path
from .models import Gone, Session, SessionView, UpdateResult, Updated, User
from .store import generate_session_id, generate_session_token


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Database:
    """Simple wrapper around SQLite implementing the session store contract."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT UNIQUE,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    token TEXT NOT NULL UNIQUE,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    expires_at TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    ip_address TEXT,
                    user_agent TEXT
                );

                CREATE INDEX IF NOT EXISTS idx_sessions_user_id ON sessions(user_id);
                """
            )

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def create_user(self, name: str, email: Optional[str] = None) -> User:
        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("Name must not be empty")

        created_at = _current_timestamp()
        normalized_email = email.strip().lower() if email else None

        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO users (name, email, created_at) VALUES (?, ?, ?)",
                    (normalized_name, normalized_email, _serialize_datetime(created_at)),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("A user with that email already exists") from exc
            user_id = cursor.lastrowid

        return User(id=user_id, name=normalized_name, email=normalized_email, created_at=created_at)

    def get_user(self, user_id: int) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?",
                (email.strip().lower(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    # ------------------------------------------------------------------
    # Session management
    # ------------------------------------------------------------------
    def create_session(
        self,
        user_id: int,
        *,
        max_age: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Session:
        """Insert a new session row for ``user_id`` expiring ``max_age`` seconds from now."""

        created_at = now or _current_timestamp()
        session = Session(
            id=generate_session_id(),
            user_id=user_id,
            token=generate_session_token(),
            expires_at=created_at + timedelta(seconds=max_age),
            created_at=created_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO sessions (id, token, user_id, expires_at, created_at, ip_address, user_agent)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        session.id,
                        session.token,
                        user_id,
                        _serialize_datetime(session.expires_at),
                        _serialize_datetime(session.created_at),
                        ip_address,
                        user_agent,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("User not found") from exc
        return session

    def find_by_token(self, token: str) -> Optional[SessionView]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT s.id, s.token, s.user_id, s.expires_at, s.created_at, s.ip_address, s.user_agent,
                       u.name AS user_name, u.email AS user_email, u.created_at AS user_created_at
                  FROM sessions AS s
                  JOIN users AS u ON u.id = s.user_id
                 WHERE s.token = ?
                """,
                (token,),
            ).fetchone()
        if row is None:
            return None
        user = User(
            id=int(row["user_id"]),
            name=str(row["user_name"]),
            email=row["user_email"],
            created_at=_parse_datetime(str(row["user_created_at"])),
        )
        return SessionView(session=self._row_to_session(row), user=user)

    def find_by_id(self, session_id: str) -> Optional[Session]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    def update_expiry(self, session_id: str, expires_at: datetime) -> UpdateResult:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE sessions SET expires_at = ? WHERE id = ?",
                (_serialize_datetime(expires_at), session_id),
            )
            if cursor.rowcount == 0:
                return Gone()
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        if row is None:
            return Gone()
        return Updated(self._row_to_session(row))

    def delete_by_id(self, session_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    def delete_all_for_user(self, user_id: int) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))

    def list_for_user(self, user_id: int) -> List[Session]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM sessions WHERE user_id = ? ORDER BY created_at, id",
                (user_id,),
            ).fetchall()
        return [self._row_to_session(row) for row in rows]

    def delete_expired_sessions(self, now: Optional[datetime] = None) -> int:
        """Remove every session whose expiry is at or before ``now``."""

        cutoff = now or _current_timestamp()
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM sessions WHERE expires_at <= ?",
                (_serialize_datetime(cutoff),),
            )
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=int(row["id"]),
            name=str(row["name"]),
            email=row["email"],
            created_at=_parse_datetime(str(row["created_at"])),
        )

    def _row_to_session(self, row: sqlite3.Row) -> Session:
        return Session(
            id=str(row["id"]),
            user_id=int(row["user_id"]),
            token=str(row["token"]),
            expires_at=_parse_datetime(str(row["expires_at"])),
            created_at=_parse_datetime(str(row["created_at"])),
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
        )


__all__ = ["Database", "resolve_database_path"]
