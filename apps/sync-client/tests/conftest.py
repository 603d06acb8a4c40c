from __future__ import annotations

import pytest

from offline_sync.cache import MemoryLocalCache
from offline_sync.config import SyncSettings

from support import ManualScheduler


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def cache() -> MemoryLocalCache:
    return MemoryLocalCache()


@pytest.fixture()
def settings() -> SyncSettings:
    return SyncSettings(remote_base_url="https://store.example.com", remote_api_key="test-key")
