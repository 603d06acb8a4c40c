"""Mirror of pending operations in the durable local cache."""

from __future__ import annotations

import logging
from typing import List

from pydantic import ValidationError

from .cache import LocalCache
from .errors import CacheError
from .models import Operation, OperationKind, cache_key

logger = logging.getLogger("offline_sync.cleanup")


class LocalCleanup:
    """Sole owner of deletions from the durable cache."""

    def __init__(self, cache: LocalCache) -> None:
        self._cache = cache

    def remember(self, operation: Operation) -> bool:
        try:
            self._cache.set(operation.cache_key, operation.model_dump(mode="json"))
        except CacheError:
            logger.exception("Failed to cache operation key=%s", operation.cache_key)
            return False
        return True

    def forget(self, kind: OperationKind | str, natural_key: str) -> bool:
        key = cache_key(kind, natural_key)
        try:
            self._cache.remove(key)
        except CacheError:
            logger.warning("Failed to remove cached operation key=%s", key, exc_info=True)
            return False
        logger.debug("Forgot cached operation key=%s", key)
        return True

    def pending(self) -> List[Operation]:
        prefixes = tuple(f"{kind.value}_" for kind in OperationKind)
        operations: List[Operation] = []
        for key in self._cache.keys():
            if not key.startswith(prefixes):
                continue
            value = self._cache.get(key)
            if value is None:
                continue
            try:
                operation = Operation.model_validate(value)
            except ValidationError:
                logger.warning("Skipping unreadable cache entry key=%s", key)
                continue
            if operation.cache_key != key:
                logger.warning("Skipping cache entry with mismatched key=%s", key)
                continue
            operations.append(operation)
        return operations


__all__ = ["LocalCleanup"]
