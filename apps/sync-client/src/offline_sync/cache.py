"""Durable key-value caches that survive process restarts."""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import CacheError

logger = logging.getLogger("offline_sync.cache")


class LocalCache:
    def get(self, key: str) -> Optional[Any]:  # pragma: no cover - interface
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def remove(self, key: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def keys(self) -> List[str]:  # pragma: no cover - interface
        raise NotImplementedError


class MemoryLocalCache(LocalCache):
    def __init__(self) -> None:
        self._items: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._items.get(key)

    def set(self, key: str, value: Any) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class FileLocalCache(LocalCache):
    """Keeps every entry in one JSON document, rewritten atomically on change.

    Each ``set`` and ``remove`` rewrites the whole document so a committed
    operation is gone from disk before the next sub-batch starts. That makes
    draining ``n`` cached operations cost O(n^2) bytes written, which is fine
    for queues of a few thousand entries.

    In-memory state only changes after the new document is on disk, so a
    failed write leaves both views as they were.
    """

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._items = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CacheError(f"Failed to read cache {self._path}") from exc
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CacheError(f"Cache file {self._path} is not valid JSON") from exc
        if not isinstance(data, dict):
            raise CacheError(f"Cache file {self._path} does not hold a JSON object")
        logger.info("Loaded %s cache entries from %s", len(data), self._path)
        return data

    def _flush(self, items: Dict[str, Any]) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        payload = json.dumps(items, separators=(",", ":"), ensure_ascii=False)
        try:
            with tmp_path.open("w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise CacheError(f"Failed to write cache {self._path}") from exc

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._items.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            items = dict(self._items)
            items[key] = value
            self._flush(items)
            self._items = items

    def remove(self, key: str) -> None:
        with self._lock:
            if key not in self._items:
                return
            items = dict(self._items)
            del items[key]
            self._flush(items)
            self._items = items

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items)


def build_cache(path: Optional[str]) -> LocalCache:
    if not path:
        return MemoryLocalCache()
    return FileLocalCache(path)


__all__ = ["FileLocalCache", "LocalCache", "MemoryLocalCache", "build_cache"]
