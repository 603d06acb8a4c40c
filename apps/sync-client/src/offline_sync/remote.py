"""Remote document store clients used by the committer."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import httpx

from .config import SyncSettings
from .errors import RemoteStoreError
from .models import KIND_SPECS, Operation, OperationKind

logger = logging.getLogger("offline_sync.remote")


class RemoteStore:
    async def find_existing(self, kind: OperationKind, keys: Sequence[str]) -> Set[str]:  # pragma: no cover - interface
        raise NotImplementedError

    async def commit_batch(self, kind: OperationKind, operations: Sequence[Operation]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - optional override
        return None


def batch_idempotency_key(kind: OperationKind, keys: Iterable[str]) -> str:
    digest = hashlib.sha256()
    digest.update(kind.value.encode("utf-8"))
    for key in sorted(keys):
        digest.update(b"\x00")
        digest.update(key.encode("utf-8"))
    return digest.hexdigest()


class HttpRemoteStore(RemoteStore):
    def __init__(self, settings: SyncSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.remote_base_url,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "User-Agent": self._settings.user_agent,
            "Content-Type": "application/json",
        }
        if self._settings.remote_api_key:
            headers["Authorization"] = f"Bearer {self._settings.remote_api_key}"
        return headers

    async def _post(self, path: str, body: Dict[str, Any], headers: Dict[str, str]) -> httpx.Response:
        try:
            response = await self._client.post(path, content=json.dumps(body, separators=(",", ":")), headers=headers)
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Request to {path} failed: {exc!r}") from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("Remote store request failed path=%s status=%s body=%s", path, response.status_code, response.text)
            raise RemoteStoreError(f"Request to {path} returned {response.status_code}") from exc
        return response

    async def find_existing(self, kind: OperationKind, keys: Sequence[str]) -> Set[str]:
        if not keys:
            return set()
        spec = KIND_SPECS[kind]
        body = {"field": spec.key_field, "values": list(keys)}
        response = await self._post(f"/v1/{spec.collection}:exists", body, self._headers())
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteStoreError("Existence query returned invalid JSON") from exc
        existing = data.get("existing") if isinstance(data, dict) else None
        if not isinstance(existing, list):
            raise RemoteStoreError("Existence query response is missing 'existing'")
        requested = set(keys)
        return {str(key) for key in existing if str(key) in requested}

    async def commit_batch(self, kind: OperationKind, operations: Sequence[Operation]) -> None:
        if not operations:
            return
        spec = KIND_SPECS[kind]
        headers = self._headers()
        headers["Idempotency-Key"] = batch_idempotency_key(kind, [op.natural_key for op in operations])
        body = {
            "key_field": spec.key_field,
            "writes": [{**op.payload, spec.key_field: op.natural_key} for op in operations],
        }
        await self._post(f"/v1/{spec.collection}:batchWrite", body, headers)
        logger.debug("Committed %s %s writes", len(operations), kind.value)

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryRemoteStore(RemoteStore):
    """Dict-backed store enforcing the same list and batch ceilings as the backend."""

    def __init__(self, *, max_query_size: Optional[int] = None, max_batch_size: Optional[int] = None) -> None:
        self._max_query_size = max_query_size
        self._max_batch_size = max_batch_size
        self.records: Dict[OperationKind, Dict[str, List[Dict[str, Any]]]] = {}
        self.queries: List[Tuple[OperationKind, List[str]]] = []
        self.commits: List[Tuple[OperationKind, List[str]]] = []

    def seed(self, kind: OperationKind, key: str, payload: Optional[Dict[str, Any]] = None) -> None:
        self.records.setdefault(kind, {}).setdefault(key, []).append(dict(payload or {}))

    def count(self, kind: OperationKind, key: str) -> int:
        return len(self.records.get(kind, {}).get(key, []))

    async def find_existing(self, kind: OperationKind, keys: Sequence[str]) -> Set[str]:
        if self._max_query_size is not None and len(keys) > self._max_query_size:
            raise RemoteStoreError(f"Query list of {len(keys)} exceeds limit {self._max_query_size}")
        self.queries.append((kind, list(keys)))
        stored = self.records.get(kind, {})
        return {key for key in keys if stored.get(key)}

    async def commit_batch(self, kind: OperationKind, operations: Sequence[Operation]) -> None:
        if self._max_batch_size is not None and len(operations) > self._max_batch_size:
            raise RemoteStoreError(f"Batch of {len(operations)} exceeds limit {self._max_batch_size}")
        self.commits.append((kind, [op.natural_key for op in operations]))
        for op in operations:
            self.seed(kind, op.natural_key, op.payload)


__all__ = ["HttpRemoteStore", "InMemoryRemoteStore", "RemoteStore", "batch_idempotency_key"]
