"""Timed reconnect after connection-level errors.

This is the only automatic retry in the sender, and it works on the
connection, never on individual records.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from fluent_forward.events import EVENT_ERROR, EventEmitter
from fluent_forward.metrics import registry
from fluent_forward.transport.connection_manager import ConnectionManager


class ReconnectSupervisor:
    """Re-runs ``ensure_connected()`` ``interval_ms`` after every error event."""

    def __init__(
        self,
        manager: ConnectionManager,
        events: EventEmitter,
        interval_ms: int,
        internal_logger: logging.Logger,
        on_reconnected: Callable[[], object] | None = None,
    ):
        self.manager = manager
        self.events = events
        self.interval_ms = interval_ms
        self.internal_logger = internal_logger
        self.on_reconnected = on_reconnected
        self._timers: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._started = False

    @property
    def enabled(self) -> bool:
        return bool(self.interval_ms)

    def start(self) -> None:
        """Subscribe to ``error`` events; no-op when the interval is 0."""
        if not self.enabled or self._started:
            return
        self.events.on(EVENT_ERROR, self._on_error)
        self._started = True

    def stop(self) -> None:
        """Unsubscribe and cancel any scheduled or running reconnect."""
        if self._started:
            self.events.off(EVENT_ERROR, self._on_error)
            self._started = False
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        for task in self._tasks:
            task.cancel()
        self._tasks.clear()

    def _on_error(self, error: object) -> None:
        self.internal_logger.error("Fluentd error: %r", error)
        self.internal_logger.info(
            "Fluentd will reconnect after %s seconds",
            self.interval_ms / 1000,
        )
        loop = asyncio.get_running_loop()
        timer: asyncio.TimerHandle | None = None

        def fire() -> None:
            if timer is not None:
                self._timers.discard(timer)
            task = loop.create_task(self._reconnect())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        timer = loop.call_later(self.interval_ms / 1000, fire)
        self._timers.add(timer)

    async def _reconnect(self) -> None:
        self.internal_logger.info("Fluentd is reconnecting...")
        if not await self.manager.ensure_connected():
            registry.record_reconnection("failure")
            return
        registry.record_reconnection("success")
        self.internal_logger.info("Fluentd reconnection finished!!")
        if self.on_reconnected is not None:
            self.on_reconnected()
