"""Batched, deduplicated commit of queued operations."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Set

from .cleanup import LocalCleanup
from .config import SyncSettings
from .dedup import ExistenceDeduplicator, chunked
from .metrics import COMMIT_LATENCY, COMMITTED_COUNTER, FAILED_SUBBATCH_COUNTER
from .models import Operation, OperationKind, SyncReport
from .remote import RemoteStore

logger = logging.getLogger("offline_sync.committer")


def group_by_kind(operations: Sequence[Operation]) -> Dict[OperationKind, List[Operation]]:
    groups: Dict[OperationKind, List[Operation]] = {}
    for op in operations:
        groups.setdefault(op.kind, []).append(op)
    return groups


class BatchCommitter:
    """Writes operations in outer batches and atomic sub-batches.

    Each sub-batch is committed as a unit: all of its new operations succeed
    or none do. Sub-batches run sequentially. Every operation reported as
    committed has already been forgotten by the local cache when ``commit``
    returns, even if a later sub-batch failed.
    """

    def __init__(
        self,
        remote: RemoteStore,
        cleanup: LocalCleanup,
        settings: SyncSettings,
        *,
        dedup: Optional[ExistenceDeduplicator] = None,
    ) -> None:
        self._remote = remote
        self._cleanup = cleanup
        self._settings = settings
        self._dedup = dedup or ExistenceDeduplicator(remote, query_limit=settings.existence_query_limit)

    async def commit(self, operations: Sequence[Operation], report: Optional[SyncReport] = None) -> List[Operation]:
        report = report if report is not None else SyncReport()
        successes: List[Operation] = []
        written: Dict[OperationKind, Set[str]] = {}

        for outer in chunked(operations, self._settings.outer_batch_size):
            report.outer_batches += 1
            for kind, group in group_by_kind(outer).items():
                seen = written.setdefault(kind, set())
                pending_keys = [op.natural_key for op in group if op.natural_key not in seen]
                existing = await self._dedup.find_existing(kind, pending_keys)
                for sub_batch in chunked(group, self._settings.sub_batch_size):
                    report.sub_batches += 1
                    await self._commit_sub_batch(kind, sub_batch, existing, seen, successes, report)

        report.committed.extend(successes)
        return successes

    async def _commit_sub_batch(
        self,
        kind: OperationKind,
        sub_batch: List[Operation],
        existing: Set[str],
        seen: Set[str],
        successes: List[Operation],
        report: SyncReport,
    ) -> None:
        new_ops: List[Operation] = []
        for op in sub_batch:
            if op.natural_key in existing or op.natural_key in seen:
                self._succeed(op, "already_present", successes, report)
            else:
                new_ops.append(op)
        if not new_ops:
            return

        # Same key twice in one sub-batch is written once.
        to_write: List[Operation] = []
        batch_keys: Set[str] = set()
        for op in new_ops:
            if op.natural_key not in batch_keys:
                batch_keys.add(op.natural_key)
                to_write.append(op)
        try:
            with COMMIT_LATENCY.labels(kind=kind.value).time():
                await self._remote.commit_batch(kind, to_write)
        except Exception as exc:
            report.failed_sub_batches += 1
            FAILED_SUBBATCH_COUNTER.labels(kind=kind.value).inc()
            logger.warning(
                "Sub-batch commit failed kind=%s size=%s; leaving for next cycle: %r",
                kind.value,
                len(to_write),
                exc,
            )
            return

        seen.update(batch_keys)
        first = {id(op) for op in to_write}
        for op in new_ops:
            self._succeed(op, "written" if id(op) in first else "already_present", successes, report)

    def _succeed(self, op: Operation, outcome: str, successes: List[Operation], report: SyncReport) -> None:
        successes.append(op)
        if outcome == "already_present":
            report.already_present += 1
            logger.info("Operation %s %s already exists remotely, skipping upload", op.kind.value, op.natural_key)
        COMMITTED_COUNTER.labels(kind=op.kind.value, outcome=outcome).inc()
        self._cleanup.forget(op.kind, op.natural_key)


__all__ = ["BatchCommitter", "group_by_kind"]
