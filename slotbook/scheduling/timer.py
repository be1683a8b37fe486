"""Cancellable countdown task driving a hold's automatic release."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from slotbook.errors import BookingError

logger = logging.getLogger(__name__)


class HoldTimer:
    """
    Calls ``on_tick(reservation_id)`` once per ``interval`` seconds.

    The countdown stops when ``on_tick`` returns False or when ``cancel()``
    is called. A tick that fails with a BookingError (for example a
    network error while releasing an expired hold) is logged and retried
    on the next tick.
    """

    def __init__(
        self,
        reservation_id: str,
        on_tick: Callable[[str], Awaitable[bool]],
        interval: float,
    ) -> None:
        self.reservation_id = reservation_id
        self.interval = interval
        self._on_tick = on_tick
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"hold-timer-{self.reservation_id}"
        )

    def cancel(self) -> None:
        """Stop the countdown. A no-op from inside the timer's own tick."""
        if self._task is None or self._task.done():
            return
        if self._task is asyncio.current_task():
            return
        self._task.cancel()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                keep_going = await self._on_tick(self.reservation_id)
            except BookingError as exc:
                logger.warning("Hold timer tick failed for %s: %s", self.reservation_id, exc)
                continue
            if not keep_going:
                logger.debug("Hold timer finished for %s", self.reservation_id)
                return
