"""FluentSender: ordered send queue and flush loop over one collector connection.

``emit()`` validates and encodes a record synchronously, appends it to a FIFO
queue and returns a future for its SendResult. A single flush task drains the
queue one record at a time; with acknowledgment enabled the next record is
not written until the previous one is acknowledged or has timed out.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Coroutine, Mapping
from datetime import datetime
from typing import Any, Final

from fluent_forward.config import SenderConfig
from fluent_forward.correlation import correlation_context, generate_correlation_id
from fluent_forward.events import EVENT_ERROR, EventEmitter, Listener, invoke
from fluent_forward.metrics import registry
from fluent_forward.protocol.exceptions import DataTypeError, MissingTag, ResponseError, ResponseTimeout
from fluent_forward.protocol.packet import Callback, PacketEncoder, PendingItem, Timestamp
from fluent_forward.stream import EventStream
from fluent_forward.transport.acknowledgment import AckHandshake
from fluent_forward.transport.connection_manager import ConnectionManager, ConnectionState
from fluent_forward.transport.reconnect import ReconnectSupervisor
from fluent_forward.transport.socket_abstraction import TCPConnection
from fluent_forward.transport.types import SendResult

logger = logging.getLogger(__name__)

# Loop turns to wait for a CONNECTED socket to become writable
_WRITABLE_RECHECK_TURNS: Final = 16


class FluentSender:
    """Forwards records to a collector over one persistent connection.

    Usage:
        >>> sender = FluentSender("app", host="127.0.0.1", require_ack_response=True)
        >>> result = await sender.emit("access", {"path": "/"})
        >>> result.success
        True
        >>> await sender.end()

    Invariants:
    - Records are written in emit() order, each exactly once.
    - At most one flush task runs at a time (``_flushing`` guard).
    - With acknowledgment enabled at most one record awaits its ack.
    """

    def __init__(
        self,
        tag_prefix: str | None = None,
        config: SenderConfig | None = None,
        *,
        internal_logger: logging.Logger | None = None,
        connection_factory: Callable[..., TCPConnection] = TCPConnection,
        **options: Any,
    ) -> None:
        """Initialize the sender.

        Args:
            tag_prefix: Prepended to every label as ``prefix.label``
            config: Base configuration (environment defaults if None)
            internal_logger: Logger for connection-level notices (module logger if None)
            connection_factory: Builds TCPConnection instances (tests inject fakes)
            **options: SenderConfig field overrides (host, port, path, ...)

        """
        base_config = config or SenderConfig()
        self.config: SenderConfig = base_config.replace(**options) if options else base_config
        self.tag_prefix = tag_prefix
        self.internal_logger = internal_logger or logger

        self.events = EventEmitter()
        self.encoder = PacketEncoder(
            tag_prefix,
            require_ack_response=self.config.require_ack_response,
            milliseconds=self.config.milliseconds,
        )
        self.manager = ConnectionManager(self.config, self.events, connection_factory)
        self.ack = AckHandshake(self.config.ack_response_timeout_seconds)
        self.reconnect_supervisor = ReconnectSupervisor(
            self.manager,
            self.events,
            self.config.reconnect_interval,
            self.internal_logger,
            on_reconnected=self.flush,
        )
        self.reconnect_supervisor.start()

        self._send_queue: deque[PendingItem] = deque()
        self._flushing = False
        self._ending = False
        self._tasks: set[asyncio.Task[None]] = set()

    # Event subscription

    def on(self, event: str, listener: Listener) -> FluentSender:
        self.events.on(event, listener)
        return self

    add_listener = on

    def once(self, event: str, listener: Listener) -> FluentSender:
        self.events.once(event, listener)
        return self

    def off(self, event: str, listener: Listener) -> FluentSender:
        self.events.off(event, listener)
        return self

    remove_listener = off

    def remove_all_listeners(self, event: str | None = None) -> FluentSender:
        self.events.remove_all_listeners(event)
        return self

    def listener_count(self, event: str) -> int:
        return self.events.listener_count(event)

    # Public operations

    @property
    def queue_size(self) -> int:
        return len(self._send_queue)

    def emit(
        self,
        label: Any,
        data: Any = None,
        timestamp: Timestamp | datetime | None = None,
        callback: Callback | None = None,
    ) -> asyncio.Future[SendResult]:
        """Queue a record for delivery.

        Must be called with a running event loop. Validation errors
        (MissingTag, DataTypeError) are reported synchronously: the callback
        and the ``error`` event fire before this returns, and the returned
        future is already resolved.

        The label may be omitted: ``emit(data)``, ``emit(data, timestamp)`` and
        ``emit(data, callback)`` shift the arguments left, as does passing a
        callable where the timestamp goes.

        Args:
            label: Appended to the tag prefix; may be None or omitted when a prefix is set
            data: Record payload, a mapping (or list/tuple)
            timestamp: Epoch number, EventTime or datetime (now if None)
            callback: Called once with None on success or with the error

        Returns:
            Future resolved with the record's SendResult
        """
        if label is not None and not isinstance(label, str):
            if callback is None:
                label, data, timestamp, callback = None, label, data, timestamp
            else:
                label, data, timestamp = None, label, data
        if callable(timestamp) and callback is None:
            timestamp, callback = None, timestamp

        loop = asyncio.get_running_loop()
        result: asyncio.Future[SendResult] = loop.create_future()

        try:
            item = self.encoder.make_packet_item(label, data, timestamp)
        except (MissingTag, DataTypeError) as e:
            registry.record_event("missing_tag" if isinstance(e, MissingTag) else "invalid_data")
            logger.debug("Rejected record: %s", e, extra={"label": label, "tag_prefix": self.tag_prefix})
            self.events.dispatch(EVENT_ERROR, e, callback)
            result.set_result(SendResult.failed(generate_correlation_id(), e))
            return result

        item.callback = callback
        item.result = result
        self._send_queue.append(item)
        registry.record_event("queued")
        registry.record_queue_depth(len(self._send_queue))
        logger.debug(
            "Queued record for %s",
            item.tag,
            extra={"tag": item.tag, "correlation_id": item.correlation_id, "queue_size": len(self._send_queue)},
        )
        self._spawn(self._connect_and_flush())
        return result

    async def end(
        self,
        label: str | None = None,
        data: Any = None,
        callback: Callback | None = None,
    ) -> SendResult | None:
        """Optionally send a final record, then close the connection.

        With both ``label`` and ``data`` the final record is delivered (or
        fails) before the connection is closed; otherwise the connection is
        closed on the next loop turn. Records still queued at close time are
        failed with ConnectionAbortedError. Automatic reconnects stop.

        Returns:
            The final record's SendResult, or None when none was sent
        """
        self._ending = True
        self.reconnect_supervisor.stop()
        result: SendResult | None = None
        try:
            if label is not None and data is not None:
                result = await self.emit(label, data)
            else:
                await asyncio.sleep(0)
            await self.manager.close()
            self._abandon_queue(ConnectionAbortedError("sender closed"))
        finally:
            self._ending = False
        if callback is not None:
            invoke(callback, result.error if result else None)
        return result

    def to_stream(self, options: str | Mapping[str, Any] | None = None) -> EventStream:
        """Line-oriented writer emitting ``{"message": line}`` per line.

        Raises:
            ValueError: No label given
        """
        if isinstance(options, str):
            options = {"label": options}
        options = options or {}
        label = options.get("label")
        if not label:
            msg = "label is needed"
            raise ValueError(msg)
        return EventStream(self, label, encoding=options.get("encoding") or "utf-8")

    # Flush loop

    def flush(self) -> None:
        """Start draining the queue unless a flush is already running."""
        if self._flushing:
            return
        self._flushing = True
        self._spawn(self._flush_send_queue())

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _connect_and_flush(self) -> None:
        if await self.manager.ensure_connected():
            self.flush()
        elif self._ending:
            self._abandon_queue(self.manager.last_error or ConnectionAbortedError("connection failed"))

    async def _flush_send_queue(self) -> None:
        try:
            await asyncio.sleep(0)
            conn = await self._wait_writable()
            if conn is None:
                return
            await self._drain(conn)
        finally:
            self._flushing = False
            if self._ending and self._send_queue and self.manager.conn is None:
                self._abandon_queue(self.manager.last_error or ConnectionAbortedError("connection lost"))

    async def _wait_writable(self) -> TCPConnection | None:
        conn = self.manager.conn
        for _ in range(_WRITABLE_RECHECK_TURNS):
            conn = self.manager.conn
            if conn is None or self.manager.state is not ConnectionState.CONNECTED:
                return None
            if conn.writable:
                return conn
            await asyncio.sleep(0)
        if conn is not None:
            self.manager.handle_transport_error(conn, ConnectionResetError(f"{conn.endpoint} is not writable"))
        return None

    async def _drain(self, conn: TCPConnection) -> None:
        while self._send_queue:
            if self.manager.conn is not conn:
                return
            item = self._send_queue.popleft()
            registry.record_queue_depth(len(self._send_queue))
            with correlation_context(item.correlation_id):
                if not await self._send_item(conn, item):
                    return

    async def _send_item(self, conn: TCPConnection, item: PendingItem) -> bool:
        """Write one item and settle it. Returns False if the connection is gone."""
        try:
            await conn.send(item.packet)
        except OSError as e:
            registry.record_packet_sent("error")
            self._fail_transport(conn, item, e)
            return False
        registry.record_packet_sent("success")

        if not self.config.require_ack_response:
            self._complete(item)
            return True

        try:
            await self.ack.wait_for_ack(conn, item)
        except (ResponseError, ResponseTimeout) as e:
            self._fail(item, e)
            return True
        except OSError as e:
            self._fail_transport(conn, item, e)
            return False
        self._complete(item)
        return True

    # Item settlement

    def _complete(self, item: PendingItem) -> None:
        if item.callback is not None:
            invoke(item.callback, None)
        item.resolve(SendResult.ok(item.correlation_id))

    def _fail(self, item: PendingItem, error: Exception) -> None:
        self.events.dispatch(EVENT_ERROR, error, item.callback)
        item.resolve(SendResult.failed(item.correlation_id, error))

    def _fail_transport(self, conn: TCPConnection, item: PendingItem, error: Exception) -> None:
        if self.manager.conn is conn:
            self.manager.handle_transport_error(conn, error, item.callback)
        elif item.callback is not None:
            # Connection already torn down and reported
            invoke(item.callback, error, event=EVENT_ERROR)
        item.resolve(SendResult.failed(item.correlation_id, error))

    def _abandon_queue(self, error: Exception) -> None:
        while self._send_queue:
            item = self._send_queue.popleft()
            if item.callback is not None:
                invoke(item.callback, error, event=EVENT_ERROR)
            item.resolve(SendResult.failed(item.correlation_id, error))
        registry.record_queue_depth(0)


def create_fluent_sender(tag_prefix: str | None = None, **options: Any) -> FluentSender:
    """Build a FluentSender with SenderConfig overrides as keyword arguments."""
    return FluentSender(tag_prefix, **options)
