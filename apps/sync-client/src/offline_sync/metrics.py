"""Prometheus instruments shared by the sync components."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

ENQUEUED_COUNTER = Counter("offline_sync_enqueued_total", "Operations submitted to the offline queue", ["kind"])
COMMITTED_COUNTER = Counter(
    "offline_sync_committed_total",
    "Operations confirmed committed remotely",
    ["kind", "outcome"],
)
FAILED_SUBBATCH_COUNTER = Counter(
    "offline_sync_failed_subbatches_total",
    "Atomic sub-batch commits that failed",
    ["kind"],
)
DEDUP_FALLBACK_COUNTER = Counter(
    "offline_sync_dedup_fallbacks_total",
    "Existence query chunks that failed and were treated as unknown",
    ["kind"],
)
CYCLE_COUNTER = Counter("offline_sync_cycles_total", "Sync cycles by result", ["result"])
QUEUE_DEPTH = Gauge("offline_sync_queue_depth", "Operations waiting in the offline queue")
COMMIT_LATENCY = Histogram("offline_sync_commit_latency_seconds", "Atomic sub-batch commit latency", ["kind"])


__all__ = [
    "COMMIT_LATENCY",
    "COMMITTED_COUNTER",
    "CYCLE_COUNTER",
    "DEDUP_FALLBACK_COUNTER",
    "ENQUEUED_COUNTER",
    "FAILED_SUBBATCH_COUNTER",
    "QUEUE_DEPTH",
]
