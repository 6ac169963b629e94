"""Throttled sliding-expiry decisions for sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from .config import SessionSettings
from .models import Session


def should_refresh(expires_at: datetime, max_age: int, update_age: int, now: datetime) -> bool:
    """Return ``True`` once ``update_age`` seconds have passed since the expiry was reset.

    The expiry was last reset to ``expires_at`` at ``expires_at - max_age``,
    so the session is due when ``expires_at - max_age + update_age <= now``.
    An ``update_age`` of zero makes every request due; one at or above
    ``max_age`` means a live session is never due.
    """

    due_at = expires_at - timedelta(seconds=max_age) + timedelta(seconds=update_age)
    return due_at <= now


def next_expiry(max_age: int, now: datetime) -> datetime:
    return now + timedelta(seconds=max_age)


@dataclass(frozen=True)
class RefreshPolicy:
    """Binds the configured durations to the refresh decision."""

    max_age: int
    update_age: int

    @classmethod
    def from_settings(cls, settings: SessionSettings) -> "RefreshPolicy":
        return cls(max_age=settings.max_age, update_age=settings.update_age)

    def is_due(self, session: Session, now: datetime, *, dont_remember: bool = False) -> bool:
        # Sessions issued without "remember me" keep their original expiry.
        if dont_remember:
            return False
        return should_refresh(session.expires_at, self.max_age, self.update_age, now)

    def next_expiry(self, now: datetime) -> datetime:
        return next_expiry(self.max_age, now)


__all__ = ["RefreshPolicy", "next_expiry", "should_refresh"]
