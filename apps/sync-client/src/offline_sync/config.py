"""Configuration objects for the offline sync engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SyncSettings:
    remote_base_url: str = "http://localhost:8080"
    remote_api_key: str = ""
    request_timeout_seconds: float = 10.0
    # Remote write-batch ceiling and atomic commit unit.
    outer_batch_size: int = 200
    sub_batch_size: int = 20
    # Largest list accepted by the remote "key in [...]" filter.
    existence_query_limit: int = 20
    max_retry_attempts: int = 5
    settle_delay_seconds: float = 2.0
    backoff_base_seconds: float = 1.0
    cache_path: Optional[str] = None
    probe_url: Optional[str] = None
    probe_interval_seconds: float = 15.0
    user_agent: str = "offline-sync-python/0.1.0"

    def __post_init__(self) -> None:
        for name in ("outer_batch_size", "sub_batch_size", "existence_query_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")
        if self.sub_batch_size > self.outer_batch_size:
            raise ValueError("sub_batch_size cannot exceed outer_batch_size")
        if self.max_retry_attempts < 0:
            raise ValueError("max_retry_attempts cannot be negative")
        if self.settle_delay_seconds < 0 or self.backoff_base_seconds < 0:
            raise ValueError("delays cannot be negative")

    def backoff_delay(self, attempt: int) -> float:
        return self.backoff_base_seconds * (2 ** attempt)

    @classmethod
    def from_env(cls) -> "SyncSettings":
        return cls(
            remote_base_url=os.environ.get("SYNC_REMOTE_URL", "http://localhost:8080"),
            remote_api_key=os.environ.get("SYNC_REMOTE_API_KEY", ""),
            request_timeout_seconds=float(os.environ.get("SYNC_REQUEST_TIMEOUT", "10.0")),
            outer_batch_size=int(os.environ.get("SYNC_OUTER_BATCH_SIZE", "200")),
            sub_batch_size=int(os.environ.get("SYNC_SUB_BATCH_SIZE", "20")),
            existence_query_limit=int(os.environ.get("SYNC_EXISTENCE_QUERY_LIMIT", "20")),
            max_retry_attempts=int(os.environ.get("SYNC_MAX_RETRY_ATTEMPTS", "5")),
            settle_delay_seconds=float(os.environ.get("SYNC_SETTLE_DELAY", "2.0")),
            backoff_base_seconds=float(os.environ.get("SYNC_BACKOFF_BASE", "1.0")),
            cache_path=os.environ.get("SYNC_CACHE_PATH") or None,
            probe_url=os.environ.get("SYNC_PROBE_URL") or None,
            probe_interval_seconds=float(os.environ.get("SYNC_PROBE_INTERVAL", "15.0")),
        )


__all__ = ["SyncSettings"]
