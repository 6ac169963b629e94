"""Command-line interface for the session lifecycle service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from typing import Callable, Dict, Sequence

from authsession.database import Database, resolve_database_path

logger = logging.getLogger("authsession.main")


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--db-path",
        default=None,
        help="SQLite database location (defaults to AUTHSESSION_DB_PATH or data/sessions.sqlite3)",
    )

    parser = argparse.ArgumentParser(description="Session lifecycle service utilities")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", parents=[common], help="Create the users and sessions tables")
    subparsers.add_parser("purge-expired", parents=[common], help="Delete sessions whose expiry has passed")

    serve = subparsers.add_parser("serve", parents=[common], help="Run the session HTTP API under uvicorn")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--ssl-certfile", default=None, help="PEM certificate chain; requires --ssl-keyfile")
    serve.add_argument("--ssl-keyfile", default=None, help="PEM private key; requires --ssl-certfile")
    return parser


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    args_list = list(argv) if argv is not None else sys.argv[1:]

    # Anything that does not name a command is a set of serve options.
    if not args_list or (args_list[0] not in _COMMANDS and args_list[0] not in ("-h", "--help")):
        args_list = ["serve", *args_list]

    return _build_parser().parse_args(args_list)


def _open_database(db_path: str | None = None) -> Database:
    path = resolve_database_path(db_path or os.getenv("AUTHSESSION_DB_PATH"))
    database = Database(path)
    database.initialize()
    logger.info("Using session database at %s", path)
    return database


def _serve(database: Database, args: argparse.Namespace) -> None:
    import uvicorn

    from authsession.api import create_app

    if bool(args.ssl_certfile) != bool(args.ssl_keyfile):
        raise SystemExit("--ssl-certfile and --ssl-keyfile must be given together.")

    tls = {}
    if args.ssl_certfile:
        tls = {"ssl_certfile": args.ssl_certfile, "ssl_keyfile": args.ssl_keyfile}
    logger.info("Serving sessions on %s:%s (%s)", args.host, args.port, "TLS" if tls else "plain HTTP")
    uvicorn.run(create_app(database=database), host=args.host, port=args.port, log_level="info", **tls)


def _init_db(database: Database, args: argparse.Namespace) -> None:
    print(f"Session database ready at {database.path}.")


def _purge_expired(database: Database, args: argparse.Namespace) -> None:
    removed = database.delete_expired_sessions()
    logger.info("Purged %s expired session(s)", removed)
    print(f"Removed {removed} expired session(s).")


_COMMANDS: Dict[str, Callable[[Database, argparse.Namespace], None]] = {
    "serve": _serve,
    "init-db": _init_db,
    "purge-expired": _purge_expired,
}


def main(argv: Sequence[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    database = _open_database(args.db_path)
    _COMMANDS[args.command](database, args)


if __name__ == "__main__":
    main()
