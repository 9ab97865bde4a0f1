"""Connection management for the single outbound collector connection.

This module implements the ConnectionManager class which owns the one
TCPConnection a sender uses, creates it on demand, replaces it when it stops
being writable, and tears it down on transport errors.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from fluent_forward.config import SenderConfig
from fluent_forward.events import EVENT_CONNECT, EVENT_ERROR, EventEmitter
from fluent_forward.metrics import registry
from fluent_forward.transport.socket_abstraction import TCPConnection

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection state enumeration."""

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """Owns the collector connection and its lifecycle.

    State machine: UNCONNECTED -> CONNECTING -> CONNECTED, and back to
    UNCONNECTED on any transport error or explicit close. Transport errors
    are published on the ``error`` event; the manager never retries on its
    own (see ReconnectSupervisor).
    """

    def __init__(
        self,
        config: SenderConfig,
        events: EventEmitter,
        connection_factory: Callable[..., TCPConnection] = TCPConnection,
    ) -> None:
        """Initialize connection manager.

        Args:
            config: Endpoint and timeout configuration
            events: Emitter receiving ``connect`` and ``error`` events
            connection_factory: Builds the TCPConnection (injectable for tests)

        """
        self.config: SenderConfig = config
        self.events: EventEmitter = events
        self.connection_factory = connection_factory
        self.conn: TCPConnection | None = None
        self.state: ConnectionState = ConnectionState.UNCONNECTED
        self._connecting: asyncio.Future[bool] | None = None
        self.last_error: Exception | None = None

    def _set_state(self, state: ConnectionState) -> None:
        self.state = state
        registry.record_connection_state(state.value)

    async def ensure_connected(self) -> bool:
        """Make sure a writable connection exists.

        Always completes on a later loop turn, never synchronously.

        Returns:
            True once connected, False if the attempt failed (the failure
            has already been published on the ``error`` event)
        """
        conn = self.conn
        if conn is None:
            return await self._open()

        if self.state is ConnectionState.CONNECTING and self._connecting is not None:
            return await asyncio.shield(self._connecting)

        if not conn.writable:
            logger.debug(
                "Connection to %s is not writable, replacing it",
                conn.endpoint,
                extra={"endpoint": conn.endpoint},
            )
            self._discard(conn)
            await asyncio.sleep(0)
            return await self.ensure_connected()

        await asyncio.sleep(0)
        return True

    async def _open(self) -> bool:
        conn = self.connection_factory(
            host=self.config.host,
            port=self.config.port,
            path=self.config.path,
            connect_timeout=self.config.timeout,
        )
        self.conn = conn
        self._set_state(ConnectionState.CONNECTING)
        connecting: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        self._connecting = connecting
        try:
            await conn.connect()
        except (TimeoutError, OSError) as e:
            self.handle_transport_error(conn, e)
            connecting.set_result(False)
            return False
        except asyncio.CancelledError:
            self._discard(conn)
            connecting.cancel()
            raise
        finally:
            if self._connecting is connecting:
                self._connecting = None

        if self.conn is not conn:
            # Closed or replaced while the connect was in flight
            conn.destroy()
            connecting.set_result(False)
            return False

        self._set_state(ConnectionState.CONNECTED)
        self.events.dispatch(EVENT_CONNECT)
        connecting.set_result(True)
        return True

    def _discard(self, conn: TCPConnection) -> None:
        conn.destroy()
        if self.conn is conn:
            self.conn = None
            self._set_state(ConnectionState.UNCONNECTED)

    def handle_transport_error(
        self,
        conn: TCPConnection,
        error: Exception,
        callback: Callable[[object], object] | None = None,
    ) -> None:
        """Destroy ``conn`` and publish ``error``.

        Errors from a connection that has already been replaced or closed are
        ignored, so one failure is reported once.
        """
        if self.conn is not conn:
            return
        self.last_error = error
        registry.record_transport_error(type(error).__name__)
        logger.warning(
            "Transport error on %s: %r",
            conn.endpoint,
            error,
            extra={"endpoint": conn.endpoint, "error_type": type(error).__name__},
        )
        self._discard(conn)
        self.events.dispatch(EVENT_ERROR, error, callback)

    async def close(self) -> None:
        """Gracefully close the active connection (idempotent)."""
        conn, self.conn = self.conn, None
        if conn is None:
            return
        self._set_state(ConnectionState.UNCONNECTED)
        await conn.close()

    @property
    def writable(self) -> bool:
        return self.conn is not None and self.state is ConnectionState.CONNECTED and self.conn.writable
