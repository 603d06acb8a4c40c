"""Exception types raised by the sync engine's collaborators."""

from __future__ import annotations


class SyncError(Exception):
    """Base class for sync engine errors."""


class RemoteStoreError(SyncError):
    """The remote store rejected or failed a query or commit."""


class CacheError(SyncError):
    """The durable local cache could not be read or written."""


__all__ = ["SyncError", "RemoteStoreError", "CacheError"]
