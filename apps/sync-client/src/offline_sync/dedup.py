"""Existence checks that keep retried operations from being written twice.

A chunk whose existence query fails contributes no keys: its operations are
treated as unknown and still written. If the backend does not reject duplicate
natural keys on its own, that path can leave a duplicate remote record.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Set

from .metrics import DEDUP_FALLBACK_COUNTER
from .models import OperationKind
from .remote import RemoteStore

logger = logging.getLogger("offline_sync.dedup")


def chunked(items: Sequence, size: int) -> List[list]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class ExistenceDeduplicator:
    def __init__(self, remote: RemoteStore, *, query_limit: int = 20) -> None:
        self._remote = remote
        self._query_limit = query_limit

    async def find_existing(self, kind: OperationKind, keys: Sequence[str]) -> Set[str]:
        unique = list(dict.fromkeys(keys))
        existing: Set[str] = set()
        for chunk in chunked(unique, self._query_limit):
            try:
                existing |= await self._remote.find_existing(kind, chunk)
            except Exception as exc:
                DEDUP_FALLBACK_COUNTER.labels(kind=kind.value).inc()
                logger.warning(
                    "Existence query failed kind=%s keys=%s; treating them as unknown: %r",
                    kind.value,
                    len(chunk),
                    exc,
                )
        if existing:
            logger.info("Found %s of %s %s keys already committed", len(existing), len(unique), kind.value)
        return existing


__all__ = ["ExistenceDeduplicator", "chunked"]
