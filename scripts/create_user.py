import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from authsession.database import Database, resolve_database_path


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user that can own sessions")
    parser.add_argument("name", help="Display name for the user")
    parser.add_argument("email", nargs="?", default=None, help="Optional unique email address")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to AUTHSESSION_DB_PATH or data/sessions.sqlite3)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    db_env = args.db_path or os.getenv("AUTHSESSION_DB_PATH")
    db_path = resolve_database_path(db_env)

    database = Database(db_path)
    database.initialize()

    try:
        user = database.create_user(args.name, args.email)
    except ValueError as exc:  # duplicates, etc.
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user.id}: {user.name} <{user.email or 'no email'}>")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
