"""Command line access to the durable offline queue."""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import replace
from typing import List, Optional

import httpx

from .cache import build_cache
from .cleanup import LocalCleanup
from .config import SyncSettings
from .connectivity import ReachabilityProbe
from .engine import OfflineSyncEngine
from .errors import CacheError

logger = logging.getLogger("offline_sync.cli")


def list_pending(settings: SyncSettings) -> List[str]:
    cleanup = LocalCleanup(build_cache(settings.cache_path))
    return [f"{op.kind.value}\t{op.natural_key}\tpending sync" for op in cleanup.pending()]


async def run_sync(settings: SyncSettings, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    """Push every cached operation; returns the number still pending afterwards."""
    if settings.probe_url:
        probe = ReachabilityProbe(settings.probe_url, timeout=settings.request_timeout_seconds, transport=transport)
        try:
            online = await probe.check_connection()
        finally:
            await probe.close()
        if not online:
            logger.warning("Backend unreachable at %s; nothing synced", settings.probe_url)
            return len(LocalCleanup(build_cache(settings.cache_path)).pending())

    engine = OfflineSyncEngine.from_settings(settings, transport=transport)
    try:
        if engine.sync_offline_data():
            await engine.retry.wait_idle()
        return len(engine.queue)
    finally:
        await engine.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="offline-sync", description="Inspect and flush the offline operation queue")
    parser.add_argument("--cache", dest="cache_path", help="Path of the durable cache file (overrides SYNC_CACHE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("pending", help="List operations waiting for sync")
    sub.add_parser("sync", help="Commit cached operations to the remote store")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    settings = SyncSettings.from_env()
    if args.cache_path:
        settings = replace(settings, cache_path=args.cache_path)

    try:
        if args.command == "pending":
            lines = list_pending(settings)
            for line in lines:
                print(line)
            print(f"{len(lines)} operation(s) pending")
            return 0
        remaining = asyncio.run(run_sync(settings))
    except CacheError as exc:
        logger.error("Durable cache unusable: %s", exc)
        return 1
    if remaining:
        logger.error("%s operation(s) still pending after sync", remaining)
        return 1
    return 0


__all__ = ["build_parser", "list_pending", "main", "run_sync"]
