"""Session ID logging context for tracing a client session across modules.

Provides a session-aware logger that attaches a correlation ID to every
log record, making it easy to follow one client's holds, confirmations
and expiries through the scheduling engine.

The ID is bound per action with ``session_scope``. Tasks started inside
the scope, such as hold timers, copy the binding and keep it for their
whole life, so two sessions in one process never overwrite each other.

Usage:
    from slotbook.logging_context import get_session_logger, session_scope

    logger = get_session_logger(__name__)
    with session_scope("SESSION-client1"):
        logger.info("Hold created")  # record.session_id == "SESSION-client1"
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

NO_SESSION = "NO_SESSION"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def set_session_id(session_id: str) -> Token:
    """Set the correlation ID for the current async context.

    Returns a token for ``reset_session_id``.
    """
    return _session_id.set(session_id)


def reset_session_id(token: Token) -> None:
    """Restore the correlation ID that was current before ``set_session_id``."""
    _session_id.reset(token)


def get_session_id() -> str:
    """Retrieve the current correlation ID."""
    return _session_id.get()


@contextmanager
def session_scope(session_id: str) -> Iterator[None]:
    """Bind ``session_id`` for the duration of the block."""
    token = set_session_id(session_id)
    try:
        yield
    finally:
        reset_session_id(token)


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached.

    The filter adds ``session_id`` to each record so formatters can
    include ``%(session_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
