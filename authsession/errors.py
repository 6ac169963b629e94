"""Failure taxonomy and error reporting for the session core."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger("authsession.errors")


class Rejection(str, Enum):
    """Reasons an operation did not produce a session or succeed."""

    NO_CREDENTIAL = "no_credential"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


@dataclass(frozen=True)
class Rejected:
    reason: Rejection


class ErrorSink(Protocol):
    def report(self, error: BaseException) -> None:
        ...


class LoggingErrorSink:
    """Report unexpected failures to the ``authsession.errors`` logger.

    Reporting is fire-and-forget: a failure while logging is itself
    swallowed so that it can never alter the caller's control flow.
    """

    def __init__(self, target: logging.Logger | None = None) -> None:
        self._logger = target or logger

    def report(self, error: BaseException) -> None:
        with suppress(Exception):
            self._logger.error(
                "Unexpected session failure: %s",
                type(error).__name__,
                exc_info=(type(error), error, error.__traceback__),
            )


__all__ = ["ErrorSink", "LoggingErrorSink", "Rejected", "Rejection"]
