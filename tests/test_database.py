from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from authsession.database import Database
from authsession.models import Gone, Updated

NOW = datetime(2026, 5, 4, 10, 0, tzinfo=timezone.utc)


def test_find_by_token_joins_user(database: Database) -> None:
    user = database.create_user("Session Owner", "Owner@Example.com")
    session = database.create_session(
        user.id,
        max_age=3600,
        ip_address="203.0.113.7",
        user_agent="pytest",
        now=NOW,
    )

    view = database.find_by_token(session.token)

    assert view is not None
    assert view.session == session
    assert view.user.id == user.id
    assert view.user.email == "owner@example.com"
    assert database.find_by_token("unknown-token") is None


def test_session_requires_existing_user(database: Database) -> None:
    with pytest.raises(ValueError):
        database.create_session(999, max_age=60)


def test_duplicate_email_is_rejected(database: Database) -> None:
    database.create_user("First", "dup@example.com")
    with pytest.raises(ValueError):
        database.create_user("Second", "DUP@example.com")


def test_update_expiry_reports_gone_for_missing_rows(database: Database) -> None:
    user = database.create_user("Tester")
    session = database.create_session(user.id, max_age=60, now=NOW)
    new_expiry = NOW + timedelta(days=7)

    outcome = database.update_expiry(session.id, new_expiry)
    assert isinstance(outcome, Updated)
    assert outcome.session.expires_at == new_expiry
    assert outcome.session.token == session.token

    database.delete_by_id(session.id)
    assert isinstance(database.update_expiry(session.id, new_expiry), Gone)
    assert database.find_by_id(session.id) is None


def test_list_and_bulk_delete_are_scoped_to_user(database: Database) -> None:
    owner = database.create_user("Owner")
    other = database.create_user("Other")
    first = database.create_session(owner.id, max_age=60, now=NOW)
    second = database.create_session(owner.id, max_age=60, now=NOW + timedelta(seconds=5))
    foreign = database.create_session(other.id, max_age=60, now=NOW)

    assert [s.id for s in database.list_for_user(owner.id)] == [first.id, second.id]

    database.delete_all_for_user(owner.id)

    assert database.list_for_user(owner.id) == []
    assert database.find_by_id(foreign.id) == foreign


def test_delete_expired_sessions_counts_removed_rows(database: Database) -> None:
    user = database.create_user("Tester")
    stale = database.create_session(user.id, max_age=60, now=NOW)
    fresh = database.create_session(user.id, max_age=3600, now=NOW)

    removed = database.delete_expired_sessions(NOW + timedelta(minutes=1))

    assert removed == 1
    assert database.find_by_id(stale.id) is None
    assert database.find_by_id(fresh.id) is not None


def test_expiry_purge_compares_sub_second_timestamps(database: Database) -> None:
    user = database.create_user("Tester")
    just_expired = database.create_session(
        user.id, max_age=60, now=NOW - timedelta(seconds=60, microseconds=1)
    )
    barely_live = database.create_session(
        user.id, max_age=60, now=NOW - timedelta(seconds=60) + timedelta(microseconds=1)
    )

    assert database.delete_expired_sessions(NOW) == 1
    assert database.find_by_id(just_expired.id) is None
    assert database.find_by_id(barely_live.id) is not None
