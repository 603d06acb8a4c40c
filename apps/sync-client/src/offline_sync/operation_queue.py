"""In-memory queue of operations awaiting remote commit."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List

from .metrics import ENQUEUED_COUNTER, QUEUE_DEPTH
from .models import Operation

logger = logging.getLogger("offline_sync.queue")


class OperationQueue:
    """Append-only buffer; entries leave only once confirmed committed."""

    def __init__(self) -> None:
        self._items: List[Operation] = []

    def enqueue(self, operation: Operation) -> int:
        self._items.append(operation)
        ENQUEUED_COUNTER.labels(kind=operation.kind.value).inc()
        QUEUE_DEPTH.set(len(self._items))
        logger.info("Operation queued kind=%s key=%s size=%s", operation.kind.value, operation.natural_key, len(self._items))
        return len(self._items)

    def drain_snapshot(self) -> List[Operation]:
        return list(self._items)

    def remove_committed(self, operations: Iterable[Operation]) -> int:
        committed = {op.identity for op in operations}
        if not committed:
            return 0
        before = len(self._items)
        self._items = [op for op in self._items if op.identity not in committed]
        QUEUE_DEPTH.set(len(self._items))
        return before - len(self._items)

    def __contains__(self, operation: object) -> bool:
        if not isinstance(operation, Operation):
            return False
        return any(op.identity == operation.identity for op in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Operation]:
        return iter(list(self._items))


__all__ = ["OperationQueue"]
