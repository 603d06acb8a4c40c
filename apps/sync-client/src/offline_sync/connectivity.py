"""Connectivity tracking with a debounced reconnect signal."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import httpx

from .cache import LocalCache
from .errors import CacheError
from .scheduler import Scheduler, TimerHandle

logger = logging.getLogger("offline_sync.connectivity")

NETWORK_STATE_KEY = "network_state"

Listener = Callable[[bool], None]
Unsubscribe = Callable[[], None]


class ConnectivitySource:
    def add_listener(self, callback: Listener) -> Unsubscribe:  # pragma: no cover - interface
        raise NotImplementedError


class ManualConnectivitySource(ConnectivitySource):
    """Source driven by explicit ``set_connected`` calls."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def add_listener(self, callback: Listener) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def set_connected(self, connected: bool) -> None:
        for listener in list(self._listeners):
            listener(connected)


class ReachabilityProbe:
    """Checks that the backend is actually reachable, not just that a link is up."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def check_connection(self, timeout: Optional[float] = None) -> bool:
        try:
            response = await self._client.get(self._url, timeout=timeout or self._timeout)
        except httpx.HTTPError as exc:
            logger.info("Connection check failed url=%s error=%r", self._url, exc)
            return False
        return response.is_success

    async def close(self) -> None:
        await self._client.aclose()


class PollingConnectivitySource(ConnectivitySource):
    def __init__(self, probe: ReachabilityProbe, scheduler: Scheduler, *, interval: float = 15.0) -> None:
        self._probe = probe
        self._scheduler = scheduler
        self._interval = interval
        self._listeners: List[Listener] = []
        self._timer: Optional[TimerHandle] = None

    def add_listener(self, callback: Listener) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def poll_once(self) -> bool:
        connected = await self._probe.check_connection()
        for listener in list(self._listeners):
            listener(connected)
        return connected

    def start(self) -> None:
        if self._timer is None:
            self._timer = self._scheduler.call_later(0, self._tick)

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _tick(self) -> None:
        try:
            await self.poll_once()
        finally:
            if self._timer is not None:
                self._timer = self._scheduler.call_later(self._interval, self._tick)


class ConnectivityMonitor:
    """Publishes online/offline changes and a settled reconnect signal."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        settle_delay: float = 2.0,
        state_cache: Optional[LocalCache] = None,
        initially_online: bool = True,
    ) -> None:
        self._scheduler = scheduler
        self._settle_delay = settle_delay
        self._state_cache = state_cache
        self._online = initially_online
        self._handlers: List[Listener] = []
        self._reconnect_callbacks: List[Callable[[], None]] = []
        self._settle_timer: Optional[TimerHandle] = None
        self._detach: Optional[Unsubscribe] = None

    def is_online(self) -> bool:
        return self._online

    @property
    def started(self) -> bool:
        return self._detach is not None

    @property
    def reconnect_pending(self) -> bool:
        return self._settle_timer is not None

    def subscribe(self, handler: Listener) -> Unsubscribe:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def on_reconnected(self, callback: Callable[[], None]) -> Unsubscribe:
        self._reconnect_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._reconnect_callbacks:
                self._reconnect_callbacks.remove(callback)

        return unsubscribe

    def start(self, source: ConnectivitySource) -> None:
        if self._detach is not None:
            return
        self._load_state()
        self._detach = source.add_listener(self.handle_change)
        logger.info("Connectivity monitoring started online=%s", self._online)

    def stop(self) -> None:
        if self._detach is not None:
            self._detach()
            self._detach = None
        self._cancel_settle()

    def handle_change(self, connected: Optional[bool]) -> None:
        # A missing state from the platform counts as offline.
        now_online = bool(connected)
        was_online = self._online
        if now_online == was_online:
            return
        self._online = now_online
        logger.info("Connection status changed: %s", "online" if now_online else "offline")
        self._save_state()

        for handler in list(self._handlers):
            try:
                handler(now_online)
            except Exception:
                logger.exception("Connectivity handler failed")

        self._cancel_settle()
        if now_online:
            self._settle_timer = self._scheduler.call_later(self._settle_delay, self._settled)

    async def _settled(self) -> None:
        self._settle_timer = None
        if not self._online:
            return
        logger.info("Connection settled; signalling reconnect")
        for callback in list(self._reconnect_callbacks):
            try:
                callback()
            except Exception:
                logger.exception("Reconnect callback failed")

    def _cancel_settle(self) -> None:
        if self._settle_timer is not None:
            self._settle_timer.cancel()
            self._settle_timer = None

    def _load_state(self) -> None:
        if self._state_cache is None:
            return
        try:
            stored = self._state_cache.get(NETWORK_STATE_KEY)
        except CacheError:
            logger.warning("Failed to load network state", exc_info=True)
            return
        if isinstance(stored, dict) and "is_connected" in stored:
            self._online = bool(stored["is_connected"])
            logger.info("Loaded network state from storage: %s", "online" if self._online else "offline")

    def _save_state(self) -> None:
        if self._state_cache is None:
            return
        try:
            self._state_cache.set(NETWORK_STATE_KEY, {"is_connected": self._online})
        except CacheError:
            logger.warning("Failed to save network state", exc_info=True)


__all__ = [
    "ConnectivityMonitor",
    "ConnectivitySource",
    "ManualConnectivitySource",
    "NETWORK_STATE_KEY",
    "PollingConnectivitySource",
    "ReachabilityProbe",
]
