from __future__ import annotations

from typing import List

import httpx
import pytest

from offline_sync.cache import MemoryLocalCache
from offline_sync.connectivity import (
    NETWORK_STATE_KEY,
    ConnectivityMonitor,
    ManualConnectivitySource,
    PollingConnectivitySource,
    ReachabilityProbe,
)

from support import ManualScheduler


def make_monitor(scheduler: ManualScheduler, **kwargs) -> ConnectivityMonitor:
    return ConnectivityMonitor(scheduler, settle_delay=2.0, **kwargs)


def test_start_is_idempotent(scheduler: ManualScheduler) -> None:
    source = ManualConnectivitySource()
    monitor = make_monitor(scheduler)
    monitor.start(source)
    monitor.start(source)
    assert source.listener_count == 1

    monitor.stop()
    assert source.listener_count == 0


def test_subscribers_see_state_changes_only(scheduler: ManualScheduler) -> None:
    source = ManualConnectivitySource()
    monitor = make_monitor(scheduler)
    seen: List[bool] = []
    monitor.subscribe(seen.append)
    monitor.start(source)

    source.set_connected(True)
    source.set_connected(False)
    source.set_connected(False)
    source.set_connected(True)

    assert seen == [False, True]
    assert monitor.is_online() is True


def test_missing_state_counts_as_offline(scheduler: ManualScheduler) -> None:
    monitor = make_monitor(scheduler)
    monitor.handle_change(None)
    assert monitor.is_online() is False


@pytest.mark.asyncio
async def test_reconnect_fires_after_settle_delay(scheduler: ManualScheduler) -> None:
    source = ManualConnectivitySource()
    monitor = make_monitor(scheduler, initially_online=False)
    reconnects: List[str] = []
    monitor.on_reconnected(lambda: reconnects.append("up"))
    monitor.start(source)

    source.set_connected(True)
    await scheduler.advance(1.9)
    assert reconnects == []
    assert monitor.reconnect_pending

    await scheduler.advance(0.2)
    assert reconnects == ["up"]
    assert not monitor.reconnect_pending


@pytest.mark.asyncio
async def test_flapping_connection_signals_once(scheduler: ManualScheduler) -> None:
    source = ManualConnectivitySource()
    monitor = make_monitor(scheduler, initially_online=False)
    reconnects: List[str] = []
    monitor.on_reconnected(lambda: reconnects.append("up"))
    monitor.start(source)

    for _ in range(5):
        source.set_connected(True)
        await scheduler.advance(0.5)
        source.set_connected(False)
        await scheduler.advance(0.2)
    source.set_connected(True)
    source.set_connected(True)
    await scheduler.advance(10)

    assert reconnects == ["up"]


@pytest.mark.asyncio
async def test_reconnect_dropped_when_offline_again(scheduler: ManualScheduler) -> None:
    source = ManualConnectivitySource()
    monitor = make_monitor(scheduler, initially_online=False)
    reconnects: List[str] = []
    monitor.on_reconnected(lambda: reconnects.append("up"))
    monitor.start(source)

    source.set_connected(True)
    await scheduler.advance(1.0)
    source.set_connected(False)
    await scheduler.advance(10)

    assert reconnects == []


def test_network_state_is_persisted_and_restored(scheduler: ManualScheduler) -> None:
    cache = MemoryLocalCache()
    source = ManualConnectivitySource()
    monitor = make_monitor(scheduler, state_cache=cache)
    monitor.start(source)
    source.set_connected(False)
    assert cache.get(NETWORK_STATE_KEY) == {"is_connected": False}

    restarted = make_monitor(scheduler, state_cache=cache)
    assert restarted.is_online() is True
    restarted.start(ManualConnectivitySource())
    assert restarted.is_online() is False


def test_failing_handler_does_not_block_others(scheduler: ManualScheduler) -> None:
    monitor = make_monitor(scheduler)
    seen: List[bool] = []

    def broken(_: bool) -> None:
        raise RuntimeError("boom")

    monitor.subscribe(broken)
    monitor.subscribe(seen.append)
    monitor.handle_change(False)
    assert seen == [False]


@pytest.mark.asyncio
async def test_probe_reports_reachability() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/up":
            return httpx.Response(200)
        if request.url.path == "/down":
            return httpx.Response(503)
        raise httpx.ConnectError("unreachable", request=request)

    transport = httpx.MockTransport(handler)
    for path, expected in (("/up", True), ("/down", False), ("/gone", False)):
        probe = ReachabilityProbe(f"https://probe.example.com{path}", transport=transport)
        assert await probe.check_connection() is expected
        await probe.close()


@pytest.mark.asyncio
async def test_polling_source_feeds_monitor(scheduler: ManualScheduler) -> None:
    responses = iter([503, 200, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(responses))

    probe = ReachabilityProbe("https://probe.example.com/health", transport=httpx.MockTransport(handler))
    source = PollingConnectivitySource(probe, scheduler, interval=15.0)
    monitor = make_monitor(scheduler)
    monitor.start(source)

    source.start()
    await scheduler.advance(0)
    assert monitor.is_online() is False

    await scheduler.advance(15)
    assert monitor.is_online() is True

    source.stop()
    assert scheduler.pending == 1  # settle timer only
    await probe.close()
