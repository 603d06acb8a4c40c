from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, List, Sequence, Set

from offline_sync.errors import RemoteStoreError
from offline_sync.models import Operation, OperationKind
from offline_sync.remote import InMemoryRemoteStore
from offline_sync.scheduler import AsyncCallback, Scheduler, TimerHandle


@dataclass
class _Timer:
    due: float
    seq: int
    callback: AsyncCallback
    handle: TimerHandle


class ManualScheduler(Scheduler):
    """Scheduler whose clock only moves when a test calls ``advance``."""

    def __init__(self) -> None:
        self.current = 0.0
        self.delays: List[float] = []
        self._timers: List[_Timer] = []
        self._seq = 0

    def now(self) -> float:
        return self.current

    def call_later(self, delay: float, callback: AsyncCallback) -> TimerHandle:
        self._seq += 1
        handle = TimerHandle()
        self._timers.append(_Timer(self.current + delay, self._seq, callback, handle))
        self.delays.append(delay)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.handle.cancelled)

    async def advance(self, seconds: float = 0.0) -> None:
        target = self.current + seconds
        while True:
            self._timers = [t for t in self._timers if not t.handle.cancelled]
            due = [t for t in self._timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))
            self._timers.remove(timer)
            self.current = max(self.current, timer.due)
            await timer.callback()
        self.current = target


class FlakyRemoteStore(InMemoryRemoteStore):
    """In-memory store that fails selected commits or queries."""

    def __init__(
        self,
        *,
        fail_commits: Collection[int] = (),
        fail_all_commits: bool = False,
        fail_queries: Collection[int] = (),
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.fail_commits = set(fail_commits)
        self.fail_all_commits = fail_all_commits
        self.fail_queries = set(fail_queries)
        self.commit_attempts = 0
        self.query_attempts = 0

    async def find_existing(self, kind: OperationKind, keys: Sequence[str]) -> Set[str]:
        self.query_attempts += 1
        if self.query_attempts in self.fail_queries:
            raise RemoteStoreError("existence query unavailable")
        return await super().find_existing(kind, keys)

    async def commit_batch(self, kind: OperationKind, operations: Sequence[Operation]) -> None:
        self.commit_attempts += 1
        if self.fail_all_commits or self.commit_attempts in self.fail_commits:
            raise RemoteStoreError("commit rejected")
        await super().commit_batch(kind, operations)


def booking(ref: str, **extra) -> Operation:
    return Operation.booking({"reference": ref, "status": "confirmed", **extra})


def bookings(count: int, prefix: str = "AQ") -> List[Operation]:
    return [booking(f"{prefix}{i:04d}") for i in range(count)]
