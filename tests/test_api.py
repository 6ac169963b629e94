from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from authsession.api import create_app
from authsession.cookies import sign_cookie_value
from authsession.store import InMemorySessionStore


@pytest.fixture
def client(database, settings, clock, error_sink) -> TestClient:
    app = create_app(database=database, settings=settings, clock=clock, error_sink=error_sink)
    return TestClient(app)


@pytest.fixture
def login(client, database, settings, clock):
    def _login(name: str = "Alice", email: str | None = None):
        user = database.create_user(name, email)
        session = database.create_session(
            user.id,
            max_age=settings.max_age,
            ip_address="203.0.113.7",
            user_agent="pytest",
            now=clock.now(),
        )
        client.cookies.set(settings.session_cookie_name, sign_cookie_value(settings.secret, session.token))
        return user, session

    return _login


def test_healthcheck(client) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_session_requires_cookie(client) -> None:
    response = client.get("/session")
    assert response.status_code == 401
    assert response.content == b""


def test_session_returns_view_without_token(client, login) -> None:
    user, session = login("Alice", "alice@example.com")

    response = client.get("/session")

    assert response.status_code == 200
    body = response.json()
    assert body["session"]["id"] == session.id
    assert body["user"]["email"] == "alice@example.com"
    assert "token" not in body["session"]
    assert session.token not in response.text
    assert "set-cookie" not in response.headers


def test_due_session_is_refreshed(client, login, settings, clock, database) -> None:
    _, session = login()
    now = clock.advance(timedelta(days=29, hours=1))

    response = client.get("/session")

    assert response.status_code == 200
    cookie = response.headers["set-cookie"]
    assert cookie.startswith(f"{settings.session_cookie_name}=")
    assert f"Max-Age={settings.max_age}" in cookie
    assert database.find_by_id(session.id).expires_at == now + timedelta(seconds=settings.max_age)


def test_expired_session_is_rejected_and_cleared(client, login, settings, clock, database) -> None:
    _, session = login()
    clock.advance(timedelta(days=31))

    response = client.get("/session")

    assert response.status_code == 401
    cleared = response.headers.get_list("set-cookie")
    assert any(header.startswith(f'{settings.session_cookie_name}=""') for header in cleared)
    assert database.find_by_id(session.id) is None


def test_list_sessions_hides_tokens(client, login, database, settings, clock) -> None:
    user, current = login()
    other = database.create_session(user.id, max_age=settings.max_age, now=clock.now())

    response = client.get("/user/list-sessions")

    assert response.status_code == 200
    listed = response.json()
    assert {item["id"] for item in listed} == {current.id, other.id}
    assert all("token" not in item for item in listed)


def test_revoke_session_status_codes(client, login, database, settings, clock) -> None:
    user, _ = login()
    spare = database.create_session(user.id, max_age=settings.max_age, now=clock.now())
    stranger = database.create_user("Mallory")
    foreign = database.create_session(stranger.id, max_age=settings.max_age, now=clock.now())

    missing = client.post("/user/revoke-session", json={"id": "does-not-exist"})
    assert missing.status_code == 400
    assert missing.content == b""

    forbidden = client.post("/user/revoke-session", json={"id": foreign.id})
    assert forbidden.status_code == 403
    assert database.find_by_id(foreign.id) is not None

    revoked = client.post("/user/revoke-session", json={"id": spare.id})
    assert revoked.status_code == 200
    assert revoked.json() == {"status": True}
    assert database.find_by_id(spare.id) is None


def test_revoke_session_validates_body(client, login) -> None:
    login()
    response = client.post("/user/revoke-session", json={"id": ""})
    assert response.status_code == 422


def test_revoke_all_sessions(client, login, database, settings, clock) -> None:
    user, _ = login()
    database.create_session(user.id, max_age=settings.max_age, now=clock.now())

    response = client.post("/user/revoke-sessions")

    assert response.status_code == 200
    assert response.json() == {"status": True}
    assert database.list_for_user(user.id) == []
    assert client.get("/session").status_code == 401


def test_store_failure_is_internal_error(settings, clock, error_sink) -> None:
    store = InMemorySessionStore()

    def _fail(token):
        raise RuntimeError("store unavailable")

    store.find_by_token = _fail
    app = create_app(store=store, settings=settings, clock=clock, error_sink=error_sink)
    client = TestClient(app)
    client.cookies.set(settings.session_cookie_name, sign_cookie_value(settings.secret, "anything"))

    response = client.get("/session")

    assert response.status_code == 500
    assert response.content == b""
    assert len(error_sink.errors) == 1
