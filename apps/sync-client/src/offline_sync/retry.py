"""Sync cycles chained with exponential backoff."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .committer import BatchCommitter
from .config import SyncSettings
from .metrics import CYCLE_COUNTER
from .models import SyncReport
from .operation_queue import OperationQueue
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger("offline_sync.retry")


@dataclass
class RetryState:
    attempt: int = 0
    scheduled_at: Optional[float] = None
    handle: Optional[TimerHandle] = None


class RetryScheduler:
    """Runs one sync cycle at a time and reschedules while operations remain.

    Attempt ``n`` that leaves work behind schedules attempt ``n + 1`` after
    ``backoff_base * 2**n``. Once ``max_retry_attempts`` is reached the
    sequence stops; queued operations stay put until the next trigger.
    """

    def __init__(
        self,
        queue: OperationQueue,
        committer: BatchCommitter,
        scheduler: Scheduler,
        settings: SyncSettings,
        *,
        is_online: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._queue = queue
        self._committer = committer
        self._scheduler = scheduler
        self._settings = settings
        self._is_online = is_online
        # A trigger reserves the slot until its cycle actually starts running.
        self._reserved = False
        self._running = False
        self._idle = asyncio.Event()
        self._idle.set()
        self.state = RetryState()
        self.exhausted = False
        self.last_report: Optional[SyncReport] = None

    @property
    def in_flight(self) -> bool:
        return self._reserved or self._running

    @property
    def retry_pending(self) -> bool:
        return self.state.handle is not None

    def trigger(self) -> bool:
        """Start a fresh sequence at attempt 0 unless a cycle is already running."""
        if self.in_flight:
            logger.info("Sync cycle already in flight; trigger ignored")
            return False
        self._cancel_pending()
        self._reserved = True
        self._idle.clear()
        self.exhausted = False

        async def run() -> None:
            await self.schedule_sync(0)

        self.state = RetryState(attempt=0, scheduled_at=self._scheduler.now())
        self.state.handle = self._scheduler.call_later(0, run)
        return True

    async def schedule_sync(self, attempt: int = 0) -> Optional[SyncReport]:
        if self._running:
            logger.info("Sync cycle already running; attempt=%s skipped", attempt)
            return None
        self._reserved = False
        self._running = True
        self._idle.clear()
        self.state = RetryState(attempt=attempt)

        if self._is_online is not None and not self._is_online():
            logger.info("Offline; deferring %s queued operations until reconnect", len(self._queue))
            self._finish()
            return None

        report: Optional[SyncReport] = None
        try:
            report = await self.run_cycle()
            remaining = report.remaining
            CYCLE_COUNTER.labels(result="drained" if report.drained else "remaining").inc()
        except Exception:
            logger.exception("Sync cycle failed attempt=%s", attempt)
            remaining = len(self._queue)
            CYCLE_COUNTER.labels(result="error").inc()
        finally:
            self._running = False
        self.last_report = report

        if remaining == 0:
            self.state = RetryState()
            self._finish()
            return report

        if attempt >= self._settings.max_retry_attempts:
            self.exhausted = True
            logger.error(
                "Max retries exhausted attempt=%s remaining=%s; operations kept for next sync",
                attempt,
                remaining,
            )
            self._finish()
            return report

        delay = self._settings.backoff_delay(attempt)

        async def retry() -> None:
            await self.schedule_sync(attempt + 1)

        self.state.scheduled_at = self._scheduler.now() + delay
        self.state.handle = self._scheduler.call_later(delay, retry)
        logger.info("Retrying sync attempt=%s in %.1fs remaining=%s", attempt + 1, delay, remaining)
        return report

    async def run_cycle(self) -> SyncReport:
        snapshot = self._queue.drain_snapshot()
        report = SyncReport(snapshot_size=len(snapshot))
        if snapshot:
            logger.info("Processing %s offline operations", len(snapshot))
            committed = await self._committer.commit(snapshot, report)
            self._queue.remove_committed(committed)
        report.remaining = len(self._queue)
        logger.info(
            "Queue processing completed. success=%s already_present=%s failed_sub_batches=%s remaining=%s",
            len(report.committed),
            report.already_present,
            report.failed_sub_batches,
            report.remaining,
        )
        return report

    def cancel(self) -> None:
        self._cancel_pending()
        self._reserved = False
        if not self._running:
            self._idle.set()

    async def wait_idle(self) -> None:
        await self._idle.wait()

    def _cancel_pending(self) -> None:
        if self.state.handle is not None:
            self.state.handle.cancel()
            self.state.handle = None

    def _finish(self) -> None:
        self._running = False
        self._idle.set()


__all__ = ["RetryScheduler", "RetryState"]
