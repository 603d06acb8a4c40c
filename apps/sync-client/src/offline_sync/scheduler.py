"""Cancellable timers for settle delays and retry backoff."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger("offline_sync.scheduler")

AsyncCallback = Callable[[], Awaitable[None]]


class TimerHandle:
    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Scheduler:
    def now(self) -> float:  # pragma: no cover - interface
        raise NotImplementedError

    def call_later(self, delay: float, callback: AsyncCallback) -> TimerHandle:  # pragma: no cover - interface
        raise NotImplementedError


class _AsyncioTimer(TimerHandle):
    def __init__(self) -> None:
        super().__init__()
        self.timer: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        super().cancel()
        if self.timer is not None:
            self.timer.cancel()


class AsyncioScheduler(Scheduler):
    """Runs callbacks as tasks on the running event loop."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def call_later(self, delay: float, callback: AsyncCallback) -> TimerHandle:
        loop = asyncio.get_running_loop()
        handle = _AsyncioTimer()

        async def run() -> None:
            # The timer may be cancelled between firing and the task's first step.
            if handle.cancelled:
                return
            await callback()

        def fire() -> None:
            if handle.cancelled:
                return
            task = loop.create_task(run())
            self._tasks.add(task)
            task.add_done_callback(self._on_done)

        handle.timer = loop.call_later(max(delay, 0.0), fire)
        return handle

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Scheduled callback failed: %r", exc)


__all__ = ["AsyncCallback", "AsyncioScheduler", "Scheduler", "TimerHandle"]
