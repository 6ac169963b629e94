"""Configuration management for the session service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

DEFAULT_MAX_AGE = 60 * 60 * 24 * 7
DEFAULT_UPDATE_AGE = 60 * 60 * 24
DEFAULT_COOKIE_PREFIX = "authsession"

_FALSE_VALUES = {"0", "false", "no", "off"}
_SAME_SITE_VALUES = {"lax", "strict", "none"}


def _env_flag(value: Optional[str], default: bool = True) -> bool:
    if value is None:
        return default
    return value.strip().lower() not in _FALSE_VALUES


@dataclass(frozen=True)
class SessionSettings:
    """Process-wide session configuration passed explicitly to the service."""

    secret: str
    max_age: int = DEFAULT_MAX_AGE
    update_age: int = DEFAULT_UPDATE_AGE
    cookie_prefix: str = DEFAULT_COOKIE_PREFIX
    secure_cookies: bool = True
    same_site: str = "lax"

    def __post_init__(self) -> None:
        if not self.secret:
            raise ValueError("A signing secret must be configured for session cookies")
        if self.max_age <= 0:
            raise ValueError("Session max_age must be a positive number of seconds")
        if self.update_age < 0:
            raise ValueError("Session update_age must not be negative")
        if self.same_site not in _SAME_SITE_VALUES:
            raise ValueError(f"Unsupported same_site value '{self.same_site}'")
        if not self.cookie_prefix:
            raise ValueError("Cookie prefix must not be empty")

    @property
    def session_cookie_name(self) -> str:
        return f"{self.cookie_prefix}.session_token"

    @property
    def dont_remember_cookie_name(self) -> str:
        return f"{self.cookie_prefix}.dont_remember"

    @staticmethod
    def from_dict(data: Mapping[str, object]) -> "SessionSettings":
        """Create :class:`SessionSettings` from raw mapping data."""
        if not data.get("secret"):
            raise ValueError("Missing required session configuration field: secret")

        secure = data.get("secure_cookies", True)
        if isinstance(secure, str):
            secure = _env_flag(secure)

        return SessionSettings(
            secret=str(data["secret"]),
            max_age=int(data.get("max_age", DEFAULT_MAX_AGE)),
            update_age=int(data.get("update_age", DEFAULT_UPDATE_AGE)),
            cookie_prefix=str(data.get("cookie_prefix", DEFAULT_COOKIE_PREFIX)),
            secure_cookies=bool(secure),
            same_site=str(data.get("same_site", "lax")).lower(),
        )


def _read_session_section(config_path: Path) -> Dict[str, object]:
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    section = raw.get("session")
    if section is None:
        raise ValueError("Configuration file must define a 'session' mapping")
    if not isinstance(section, dict):
        raise ValueError("The 'session' configuration entry must be a mapping")
    return dict(section)


def load_settings(config_path: Path) -> SessionSettings:
    """Load session settings from a YAML file."""
    return SessionSettings.from_dict(_read_session_section(config_path))


def settings_from_env(environ: Mapping[str, str] | None = None) -> SessionSettings:
    """Build settings from an optional YAML file plus environment overrides."""
    env = os.environ if environ is None else environ

    raw: Dict[str, object] = {}
    config_file = env.get("AUTHSESSION_CONFIG")
    if config_file:
        raw.update(_read_session_section(Path(config_file).expanduser()))

    overrides = {
        "secret": env.get("AUTHSESSION_SECRET"),
        "max_age": env.get("AUTHSESSION_MAX_AGE"),
        "update_age": env.get("AUTHSESSION_UPDATE_AGE"),
        "cookie_prefix": env.get("AUTHSESSION_COOKIE_PREFIX"),
        "same_site": env.get("AUTHSESSION_SAME_SITE"),
    }
    for key, value in overrides.items():
        if value is not None and value.strip():
            raw[key] = value.strip()

    secure = env.get("AUTHSESSION_SESSION_SECURE")
    if secure is not None:
        raw["secure_cookies"] = _env_flag(secure)

    if not raw.get("secret"):
        raise RuntimeError(
            "AUTHSESSION_SECRET must be configured (or provided via AUTHSESSION_CONFIG) to sign session cookies"
        )
    return SessionSettings.from_dict(raw)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the session database."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "sessions.sqlite3").resolve(strict=False)


__all__ = [
    "DEFAULT_MAX_AGE",
    "DEFAULT_UPDATE_AGE",
    "SessionSettings",
    "load_settings",
    "resolve_database_path",
    "settings_from_env",
]
