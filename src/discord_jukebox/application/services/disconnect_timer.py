"""Single-slot idle-disconnect timer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ...domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

IDLE_DISCONNECT_SECONDS: float = 15 * 60


class DisconnectTimer:
    """Holds at most one pending idle-disconnect callback.

    Arming always cancels the previously armed timer first, so a stale timer
    can never fire after a newer one was armed. A timer that fires releases
    the slot before running its callback; cancelling after that point only
    affects newer timers.
    """

    def __init__(self, delay: float = IDLE_DISCONNECT_SECONDS) -> None:
        self._delay = delay
        self._task: asyncio.Task[None] | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def armed(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(
        self, callback: Callable[[], Awaitable[None]], delay: float | None = None
    ) -> None:
        self.cancel()
        wait = self._delay if delay is None else delay
        self._task = asyncio.create_task(self._run(callback, wait))
        logger.debug(LogTemplates.TIMER_ARMED, wait)

    def cancel(self) -> bool:
        """Cancel the armed timer. Returns True if one was pending."""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        logger.debug(LogTemplates.TIMER_CANCELLED)
        return True

    async def _run(self, callback: Callable[[], Awaitable[None]], wait: float) -> None:
        await asyncio.sleep(wait)

        # Fired: give up the slot so a concurrent arm()/cancel() cannot
        # cancel the callback half way through.
        if self._task is asyncio.current_task():
            self._task = None

        logger.info(LogTemplates.TIMER_FIRED)
        try:
            await callback()
        except Exception:
            logger.exception(LogTemplates.TIMER_CALLBACK_ERROR)
