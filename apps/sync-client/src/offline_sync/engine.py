"""Entry points wiring the queue, connectivity monitor and sync components."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from .cache import LocalCache, build_cache
from .cleanup import LocalCleanup
from .committer import BatchCommitter
from .config import SyncSettings
from .connectivity import ConnectivityMonitor, ConnectivitySource
from .models import Operation
from .operation_queue import OperationQueue
from .remote import HttpRemoteStore, RemoteStore
from .retry import RetryScheduler
from .scheduler import AsyncioScheduler, Scheduler

logger = logging.getLogger("offline_sync.engine")


class OfflineSyncEngine:
    def __init__(
        self,
        settings: SyncSettings,
        remote: RemoteStore,
        *,
        cache: Optional[LocalCache] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        self._settings = settings
        self._remote = remote
        self._cache = cache if cache is not None else build_cache(settings.cache_path)
        self._scheduler = scheduler or AsyncioScheduler()
        self.queue = OperationQueue()
        self.cleanup = LocalCleanup(self._cache)
        self.monitor = ConnectivityMonitor(
            self._scheduler,
            settle_delay=settings.settle_delay_seconds,
            state_cache=self._cache,
        )
        self.committer = BatchCommitter(remote, self.cleanup, settings)
        self.retry = RetryScheduler(
            self.queue,
            self.committer,
            self._scheduler,
            settings,
            is_online=self.monitor.is_online,
        )
        self._detach_reconnect = self.monitor.on_reconnected(self._on_reconnected)

    @classmethod
    def from_settings(
        cls,
        settings: SyncSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        scheduler: Optional[Scheduler] = None,
    ) -> "OfflineSyncEngine":
        return cls(settings, HttpRemoteStore(settings, transport=transport), scheduler=scheduler)

    def start(self, source: ConnectivitySource) -> int:
        """Restore cached operations and begin watching connectivity."""
        restored = self.restore()
        self.monitor.start(source)
        return restored

    def add_to_offline_queue(self, operation: Operation) -> int:
        self.cleanup.remember(operation)
        size = self.queue.enqueue(operation)
        logger.info("Operation added to offline queue. Queue size: %s", size)
        return size

    def restore(self) -> int:
        restored = 0
        for operation in self.cleanup.pending():
            if operation in self.queue:
                continue
            self.queue.enqueue(operation)
            restored += 1
        if restored:
            logger.info("Loaded %s offline operations from storage", restored)
        return restored

    def sync_offline_data(self) -> bool:
        self.restore()
        if not self.monitor.is_online() or len(self.queue) == 0:
            return False
        started = self.retry.trigger()
        if started:
            logger.info("Syncing %s offline operations", len(self.queue))
        return started

    def pending_operations(self) -> List[Operation]:
        return self.queue.drain_snapshot()

    def _on_reconnected(self) -> None:
        if self.sync_offline_data():
            logger.info("Network reconnected. Processing %s queued operations.", len(self.queue))

    async def close(self) -> None:
        self.retry.cancel()
        self.monitor.stop()
        self._detach_reconnect()
        await self._remote.close()


__all__ = ["OfflineSyncEngine"]
