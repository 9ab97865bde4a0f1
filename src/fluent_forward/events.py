"""Minimal publish/subscribe surface for ``connect`` and ``error`` events."""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

Listener = Callable[..., object]

EVENT_CONNECT = "connect"
EVENT_ERROR = "error"


class EventEmitter:
    """Ordered listener lists keyed by event name, with once-semantics.

    Listener exceptions are logged and do not interrupt the remaining
    listeners or the caller.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> EventEmitter:
        """Subscribe ``listener`` to every ``event``."""
        self._listeners.setdefault(event, []).append((listener, False))
        return self

    add_listener = on

    def once(self, event: str, listener: Listener) -> EventEmitter:
        """Subscribe ``listener`` to the next ``event`` only."""
        self._listeners.setdefault(event, []).append((listener, True))
        return self

    def off(self, event: str, listener: Listener) -> EventEmitter:
        """Remove the most recently added registration of ``listener``."""
        entries = self._listeners.get(event, [])
        for index in range(len(entries) - 1, -1, -1):
            if entries[index][0] is listener:
                del entries[index]
                break
        if not entries:
            self._listeners.pop(event, None)
        return self

    remove_listener = off

    def remove_all_listeners(self, event: str | None = None) -> EventEmitter:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def listeners(self, event: str) -> list[Listener]:
        return [listener for listener, _ in self._listeners.get(event, [])]

    def emit(self, event: str, *args: object) -> bool:
        """Call listeners of ``event`` in registration order.

        Returns:
            True if the event had listeners
        """
        entries = self._listeners.get(event)
        if not entries:
            return False

        snapshot = list(entries)
        remaining = [entry for entry in entries if not entry[1]]
        if remaining:
            self._listeners[event] = remaining
        else:
            self._listeners.pop(event, None)

        for listener, _ in snapshot:
            invoke(listener, *args, event=event)
        return True

    def dispatch(
        self,
        event: str,
        payload: object = None,
        callback: Callable[[object], object] | None = None,
    ) -> None:
        """Deliver ``payload`` to a per-call callback first, then broadcast.

        The broadcast only happens when ``event`` has subscribers, so an
        unobserved error is never raised for lack of listeners.
        """
        if callback is not None:
            invoke(callback, payload, event=event)
        if self.listener_count(event) > 0:
            if payload is None:
                self.emit(event)
            else:
                self.emit(event, payload)


def invoke(listener: Callable[..., object], *args: object, event: str = "") -> None:
    """Call a user-supplied callable, logging anything it raises."""
    try:
        listener(*args)
    except Exception:
        # User code must not stall the flush loop
        logger.exception(
            "Listener %r raised while handling %s",
            listener,
            event or "callback",
            extra={"event": event, "listener": repr(listener)},
        )
