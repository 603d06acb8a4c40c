"""Offline operation queue and batched sync engine."""

from .cache import FileLocalCache, LocalCache, MemoryLocalCache
from .config import SyncSettings
from .connectivity import ConnectivityMonitor, ManualConnectivitySource, PollingConnectivitySource, ReachabilityProbe
from .engine import OfflineSyncEngine
from .models import Operation, OperationKind, SyncReport
from .remote import HttpRemoteStore, InMemoryRemoteStore, RemoteStore

__all__ = [
    "ConnectivityMonitor",
    "FileLocalCache",
    "HttpRemoteStore",
    "InMemoryRemoteStore",
    "LocalCache",
    "ManualConnectivitySource",
    "MemoryLocalCache",
    "OfflineSyncEngine",
    "Operation",
    "OperationKind",
    "PollingConnectivitySource",
    "ReachabilityProbe",
    "RemoteStore",
    "SyncReport",
    "SyncSettings",
]
