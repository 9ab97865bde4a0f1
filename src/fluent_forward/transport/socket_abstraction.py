"""Asyncio stream connection (TCP or Unix socket) with deadlines and instrumentation."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Any

from fluent_forward.protocol.codec import ResponseDecoder

logger = logging.getLogger(__name__)


class TCPConnection:
    """Async stream connection to the collector.

    Errors are logged and re-raised so the connection manager can tear the
    connection down and publish them.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 24224,
        path: str | None = None,
        connect_timeout: float = 3.0,
        max_read_size: int = 65536,
    ):
        """
        Initialize connection parameters.

        Args:
            host: Target host
            port: Target port
            path: Unix domain socket path; used instead of host/port when set
            connect_timeout: Connection timeout in seconds
            max_read_size: Maximum bytes to read in one operation
        """
        self.host = host
        self.port = port
        self.path = path
        self.connect_timeout = connect_timeout
        self.max_read_size = max_read_size
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._decoder = ResponseDecoder()
        self._pending_read: asyncio.Task[Any] | None = None

    @property
    def endpoint(self) -> str:
        return f"unix:{self.path}" if self.path else f"{self.host}:{self.port}"

    async def connect(self) -> None:
        """
        Establish the connection with timeout.

        Raises:
            TimeoutError: Connect did not complete within connect_timeout
            OSError: Connection refused, unreachable, missing socket file, ...
        """
        start_time = time.perf_counter()
        logger.info(
            "Connecting to %s (timeout: %.1fs)",
            self.endpoint,
            self.connect_timeout,
            extra={"endpoint": self.endpoint, "timeout": self.connect_timeout},
        )
        try:
            if self.path:
                opener = asyncio.open_unix_connection(self.path)
            else:
                opener = asyncio.open_connection(self.host, self.port)
            self.reader, self.writer = await asyncio.wait_for(opener, timeout=self.connect_timeout)
        except (TimeoutError, OSError) as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Connection to %s failed after %.1fms: %r",
                self.endpoint,
                elapsed_ms,
                e,
                extra={"endpoint": self.endpoint, "elapsed_ms": elapsed_ms, "error": repr(e)},
            )
            raise
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Connected to %s in %.1fms",
            self.endpoint,
            elapsed_ms,
            extra={"endpoint": self.endpoint, "elapsed_ms": elapsed_ms},
        )

    @property
    def writable(self) -> bool:
        """True while the write side is open."""
        return self.writer is not None and not self.writer.is_closing()

    async def send(self, data: bytes) -> None:
        """
        Write ``data`` and wait for the transport buffer to drain.

        Raises:
            ConnectionResetError: Connection is not writable
            OSError: Write failed
        """
        if not self.writable or self.writer is None:
            msg = f"Cannot send to {self.endpoint}: not writable"
            raise ConnectionResetError(msg)

        start_time = time.perf_counter()
        self.writer.write(data)
        await self.writer.drain()
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "Sent %d bytes to %s in %.1fms",
            len(data),
            self.endpoint,
            elapsed_ms,
            extra={"bytes": len(data), "endpoint": self.endpoint, "elapsed_ms": elapsed_ms},
        )

    async def read_response(self, timeout: float) -> Any:
        """
        Wait up to ``timeout`` seconds for the next decoded response.

        A timeout does not cancel the underlying read: the next call picks up
        the same pending read, so a late response is returned to whichever
        caller is waiting next.

        Raises:
            TimeoutError: Nothing complete arrived within ``timeout``
            ConnectionResetError: Peer closed the connection
            PacketDecodeError: Response bytes are not valid MessagePack
        """
        if self._pending_read is None:
            self._pending_read = asyncio.create_task(self._read_one())
        pending = self._pending_read
        try:
            return await asyncio.wait_for(asyncio.shield(pending), timeout=timeout)
        finally:
            if pending.done() and self._pending_read is pending:
                self._pending_read = None

    async def _read_one(self) -> Any:
        if self.reader is None:
            msg = f"Cannot receive from {self.endpoint}: not connected"
            raise ConnectionResetError(msg)
        while True:
            complete, response = self._decoder.next_response()
            if complete:
                return response
            data = await self.reader.read(self.max_read_size)
            if not data:
                msg = f"Connection closed by {self.endpoint}"
                raise ConnectionResetError(msg)
            logger.debug(
                "Received %d bytes from %s",
                len(data),
                self.endpoint,
                extra={"bytes": len(data), "endpoint": self.endpoint},
            )
            self._decoder.feed(data)

    def _cancel_pending_read(self) -> None:
        pending, self._pending_read = self._pending_read, None
        if pending is None:
            return
        if pending.done():
            if not pending.cancelled():
                # Retrieve so asyncio does not report it as never retrieved
                pending.exception()
        else:
            pending.cancel()

    def destroy(self) -> None:
        """Abort the connection immediately, discarding buffered writes."""
        self._cancel_pending_read()
        if self.writer is not None:
            logger.debug("Destroying connection to %s", self.endpoint, extra={"endpoint": self.endpoint})
            self.writer.transport.abort()
        self.writer = None
        self.reader = None

    async def close(self) -> None:
        """Close the connection gracefully (flush pending writes, then FIN)."""
        self._cancel_pending_read()
        if self.writer:
            logger.info(
                "Closing connection to %s",
                self.endpoint,
                extra={"endpoint": self.endpoint},
            )
            try:
                self.writer.close()
                with contextlib.suppress(ConnectionError):
                    await self.writer.wait_closed()
            except OSError as e:
                logger.warning(
                    "Error closing connection: %s",
                    e,
                    extra={
                        "endpoint": self.endpoint,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
            finally:
                self.writer = None
                self.reader = None

    def __repr__(self) -> str:
        status = "writable" if self.writable else "closed"
        return f"TCPConnection({self.endpoint}, {status})"
