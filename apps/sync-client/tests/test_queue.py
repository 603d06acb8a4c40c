from __future__ import annotations

import pytest
from pydantic import ValidationError

from offline_sync.config import SyncSettings
from offline_sync.models import Operation, OperationKind
from offline_sync.operation_queue import OperationQueue

from support import booking


def test_enqueue_returns_length_and_accepts_duplicates() -> None:
    queue = OperationQueue()
    assert queue.enqueue(booking("AQ1")) == 1
    assert queue.enqueue(booking("AQ1")) == 2
    assert len(queue) == 2


def test_snapshot_is_a_copy() -> None:
    queue = OperationQueue()
    queue.enqueue(booking("AQ1"))
    snapshot = queue.drain_snapshot()
    queue.enqueue(booking("AQ2"))

    assert [op.natural_key for op in snapshot] == ["AQ1"]
    assert len(queue) == 2


def test_remove_committed_matches_on_kind_and_key() -> None:
    queue = OperationQueue()
    queue.enqueue(booking("AQ1"))
    queue.enqueue(booking("AQ2"))
    queue.enqueue(booking("AQ1", guests=3))

    removed = queue.remove_committed([booking("AQ1")])

    assert removed == 2
    assert [op.natural_key for op in queue] == ["AQ2"]
    assert booking("AQ2") in queue
    assert booking("AQ1") not in queue


def test_booking_without_reference_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Operation.booking({"status": "confirmed"})


def test_operation_is_immutable_and_keyed() -> None:
    op = booking("AQ9")
    assert op.kind is OperationKind.BOOKING
    assert op.cache_key == "booking_AQ9"
    with pytest.raises(ValidationError):
        op.natural_key = "other"  # type: ignore[misc]


def test_settings_reject_inconsistent_limits() -> None:
    with pytest.raises(ValueError):
        SyncSettings(outer_batch_size=10, sub_batch_size=20)
    with pytest.raises(ValueError):
        SyncSettings(max_retry_attempts=-1)


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNC_SUB_BATCH_SIZE", "10")
    monkeypatch.setenv("SYNC_BACKOFF_BASE", "0.5")
    monkeypatch.setenv("SYNC_CACHE_PATH", "/tmp/offline.json")
    settings = SyncSettings.from_env()
    assert settings.sub_batch_size == 10
    assert settings.outer_batch_size == 200
    assert settings.backoff_delay(3) == 4.0
    assert settings.cache_path == "/tmp/offline.json"


def test_booking_reference_is_normalised_in_payload() -> None:
    padded = Operation.booking({"reference": " AQ1 ", "status": "confirmed"})
    assert padded.natural_key == "AQ1"
    assert padded.payload["reference"] == "AQ1"

    numeric = Operation.booking({"reference": 1042})
    assert numeric.natural_key == "1042"
    assert numeric.payload["reference"] == "1042"
