"""Result dictionaries returned to UI code by the session facades."""

from contextlib import nullcontext
from typing import Any, Awaitable, Callable, Optional, TypedDict, TypeVar

from slotbook.errors import BookingError
from slotbook.logging_context import get_session_logger, session_scope

logger = get_session_logger(__name__)

T = TypeVar("T")


class ActionResult(TypedDict, total=False):
    """Outcome of a session action. ``error`` names the failure type."""

    success: bool
    message: str
    error: str
    reservation: dict[str, Any]
    reservations: list[dict[str, Any]]
    slots: list[dict[str, Any]]
    windows: list[dict[str, Any]]
    days: list[dict[str, Any]]
    user: dict[str, Any]


def failure(exc: BookingError) -> ActionResult:
    return {"success": False, "message": exc.user_message, "error": type(exc).__name__}


async def run_action(
    action: Awaitable[T],
    on_success: Callable[[T], ActionResult],
    description: Optional[str] = None,
    session_id: Optional[str] = None,
) -> ActionResult:
    """
    Await ``action`` and turn its value or BookingError into an ActionResult.

    With ``session_id`` the action runs inside that session's logging scope.
    """
    with session_scope(session_id) if session_id else nullcontext():
        try:
            value = await action
        except BookingError as exc:
            logger.warning("%s failed: %s", description or "Action", exc)
            return failure(exc)
    result = on_success(value)
    result.setdefault("success", True)
    return result
