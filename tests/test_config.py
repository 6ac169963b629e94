from __future__ import annotations

from pathlib import Path

import pytest

from authsession.config import (
    DEFAULT_MAX_AGE,
    DEFAULT_UPDATE_AGE,
    SessionSettings,
    load_settings,
    resolve_database_path,
    settings_from_env,
)


def test_defaults_and_cookie_names() -> None:
    settings = SessionSettings(secret="s3cret")
    assert settings.max_age == DEFAULT_MAX_AGE
    assert settings.update_age == DEFAULT_UPDATE_AGE
    assert settings.session_cookie_name == "authsession.session_token"
    assert settings.dont_remember_cookie_name == "authsession.dont_remember"
    assert settings.secure_cookies is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"secret": ""},
        {"secret": "s", "max_age": 0},
        {"secret": "s", "update_age": -1},
        {"secret": "s", "same_site": "sometimes"},
    ],
)
def test_invalid_settings_are_rejected(kwargs) -> None:
    with pytest.raises(ValueError):
        SessionSettings(**kwargs)


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "session.yaml"
    config_path.write_text(
        "session:\n"
        "  secret: from-file\n"
        "  max_age: 2592000\n"
        "  update_age: 86400\n"
        "  cookie_prefix: portal\n"
        "  secure_cookies: false\n",
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.secret == "from-file"
    assert settings.max_age == 2592000
    assert settings.update_age == 86400
    assert settings.session_cookie_name == "portal.session_token"
    assert settings.secure_cookies is False


def test_yaml_without_session_section_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "empty.yaml"
    config_path.write_text("other: {}\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(config_path)


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_path = tmp_path / "session.yaml"
    config_path.write_text("session:\n  secret: from-file\n  max_age: 600\n", encoding="utf-8")

    settings = settings_from_env(
        {
            "AUTHSESSION_CONFIG": str(config_path),
            "AUTHSESSION_UPDATE_AGE": "60",
            "AUTHSESSION_SESSION_SECURE": "off",
        }
    )

    assert settings.secret == "from-file"
    assert settings.max_age == 600
    assert settings.update_age == 60
    assert settings.secure_cookies is False


def test_missing_secret_in_environment() -> None:
    with pytest.raises(RuntimeError):
        settings_from_env({})


def test_database_path_resolution(tmp_path: Path) -> None:
    explicit = resolve_database_path(str(tmp_path / "custom.sqlite3"))
    assert explicit == (tmp_path / "custom.sqlite3").resolve()
    assert resolve_database_path(None).name == "sessions.sqlite3"
