"""Issue a session for an existing user and print its signed cookie."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from authsession.config import settings_from_env
from authsession.cookies import sign_cookie_value
from authsession.database import Database, resolve_database_path


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a session and print the cookie that carries it")
    parser.add_argument("email", help="Email address of the user who will own the session")
    parser.add_argument(
        "--dont-remember",
        action="store_true",
        help="Also print a signed dont_remember marker so the session is never extended",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="Override the database location (defaults to AUTHSESSION_DB_PATH or the repository data directory)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(list(argv) if argv is not None else None)

    try:
        settings = settings_from_env()
    except (RuntimeError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    db_path = resolve_database_path(args.db_path or os.getenv("AUTHSESSION_DB_PATH"))
    database = Database(db_path)
    database.initialize()

    user = database.get_user_by_email(args.email)
    if user is None:
        print(f"No user with email {args.email!r} found in {db_path}", file=sys.stderr)
        return 1

    session = database.create_session(user.id, max_age=settings.max_age, user_agent="issue_session.py")
    print(f"Session {session.id} expires at {session.expires_at.isoformat()}")
    print(f"{settings.session_cookie_name}={sign_cookie_value(settings.secret, session.token)}")
    if args.dont_remember:
        print(f"{settings.dont_remember_cookie_name}={sign_cookie_value(settings.secret, 'true')}")
    print("\nStore this value securely; it grants access as this user.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
