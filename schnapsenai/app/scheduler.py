"""Delayed-action scheduler for a single match session."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

ActionFactory = Callable[[], Awaitable[None]]
SleepFn = Callable[[float], Awaitable[None]]


class ActionScheduler:
    """Run protocol actions after a fixed delay, one pending action per slot.

    Scheduling into an occupied slot cancels the older action. After
    ``cancel_all`` the scheduler is closed and ignores new requests.
    """

    def __init__(self, label: str = "session", sleep: SleepFn = asyncio.sleep) -> None:
        self._label = label
        self._sleep = sleep
        self._pending: dict[str, asyncio.Task[None]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending_slots(self) -> tuple[str, ...]:
        return tuple(sorted(slot for slot, task in self._pending.items() if not task.done()))

    def schedule(self, slot: str, delay: float, action: ActionFactory) -> asyncio.Task[None] | None:
        """Schedule ``action`` to run after ``delay`` seconds in ``slot``."""
        if self._closed:
            logger.debug("[%s] scheduler closed; dropping %s action", self._label, slot)
            return None
        previous = self._pending.get(slot)
        if previous is not None and not previous.done():
            logger.debug("[%s] superseding pending %s action", self._label, slot)
            previous.cancel()
        task = asyncio.get_running_loop().create_task(self._run(slot, delay, action))
        self._pending[slot] = task
        task.add_done_callback(lambda done, slot=slot: self._forget(slot, done))
        return task

    def cancel(self, slot: str) -> bool:
        task = self._pending.pop(slot, None)
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every pending action and close the scheduler."""
        self._closed = True
        cancelled = 0
        for task in self._pending.values():
            if not task.done():
                task.cancel()
                cancelled += 1
        self._pending.clear()
        return cancelled

    async def idle(self) -> None:
        """Wait until no action is pending, including ones scheduled meanwhile."""
        while True:
            tasks = [task for task in self._pending.values() if not task.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, slot: str, delay: float, action: ActionFactory) -> None:
        try:
            if delay > 0:
                await self._sleep(delay)
            else:
                await asyncio.sleep(0)
            await action()
        except asyncio.CancelledError:
            logger.debug("[%s] %s action cancelled", self._label, slot)
            raise
        except Exception:  # noqa: BLE001
            logger.exception("[%s] %s action failed", self._label, slot)

    def _forget(self, slot: str, task: asyncio.Task[None]) -> None:
        if self._pending.get(slot) is task:
            del self._pending[slot]
